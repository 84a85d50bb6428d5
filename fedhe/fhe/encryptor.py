from typing import Any, Sequence
import logging
import time

import numpy as np

from ..exceptions import CapacityExceededError, InvalidInputError
from . import serialization
from .ckks_context import CKKSContextManager


def as_real_vector(values: Sequence[float]) -> np.ndarray:
    """Convert input to a 1-D float64 vector, rejecting anything CKKS cannot encode."""
    try:
        vector = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Values must be a sequence of real numbers: {e}") from e
    if vector.ndim != 1:
        raise InvalidInputError(f"Values must be a flat vector, got shape {vector.shape}.")
    if not np.all(np.isfinite(vector)):
        raise InvalidInputError("Values must be finite; NaN or infinity cannot be encrypted.")
    return vector


class CKKSEncryptor:
    """Packs real vectors into CKKS slots and encrypts them under the public key."""

    def __init__(self, context: CKKSContextManager, benchmark_manager: Any = None):
        self.context = context
        self.benchmark_manager = benchmark_manager

    def encrypt(self, values: Sequence[float]) -> bytes:
        """
        Encrypt one vector into a single ciphertext.

        The vector must fit in `batch_size` slots. Longer inputs are rejected,
        never truncated; splitting a model across ciphertexts is the caller's job.
        """
        public_key = self.context.require_public_key()
        cc = self.context.cc

        vector = as_real_vector(values)
        if vector.size == 0:
            raise InvalidInputError("Cannot encrypt an empty vector.")
        if vector.size > self.context.batch_size:
            raise CapacityExceededError(
                f"Vector of length {vector.size} exceeds the ciphertext capacity of "
                f"{self.context.batch_size} slots.",
                {"length": int(vector.size), "batch_size": self.context.batch_size})

        start_time = time.time()
        plaintext = cc.MakeCKKSPackedPlaintext(vector.tolist())
        ciphertext = cc.Encrypt(public_key, plaintext)
        data = serialization.dump_object(ciphertext, "ciphertext")
        duration = time.time() - start_time

        if self.benchmark_manager:
            self.benchmark_manager.log_event('Encryptor', 'Encryption Time', duration, 'seconds')
            self.benchmark_manager.log_event('Encryptor', 'Ciphertext Size', len(data), 'bytes')
        logging.getLogger(__name__).debug(
            f"Encrypted {vector.size} values into {len(data)} bytes in {duration:.4f}s")
        return data
