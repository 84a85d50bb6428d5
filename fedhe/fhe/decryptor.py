from numbers import Integral
from typing import Any
import logging
import time

import numpy as np

from ..exceptions import InvalidInputError
from . import serialization
from .ckks_context import CKKSContextManager


class CKKSDecryptor:
    """Decrypts ciphertexts with the private key and decodes the real slot values."""

    def __init__(self, context: CKKSContextManager, benchmark_manager: Any = None):
        self.context = context
        self.benchmark_manager = benchmark_manager

    def decrypt(self, ciphertext: bytes, dimension: int) -> np.ndarray:
        """
        Decrypt a ciphertext and return its first `dimension` values.

        Ciphertexts do not record how many slots hold data, so the caller
        passes the original vector length.
        """
        secret_key = self.context.require_private_key()
        cc = self.context.cc

        if isinstance(dimension, bool) or not isinstance(dimension, Integral):
            raise InvalidInputError(f"dimension must be an integer, got {dimension!r}.")
        if not 0 <= dimension <= self.context.batch_size:
            raise InvalidInputError(
                f"dimension must be between 0 and the batch size {self.context.batch_size}, got {dimension}.",
                {"dimension": int(dimension), "batch_size": self.context.batch_size})

        start_time = time.time()
        ct = serialization.load_ciphertext(ciphertext)
        try:
            plaintext = cc.Decrypt(secret_key, ct)
        except RuntimeError as e:
            raise InvalidInputError(f"Ciphertext could not be decrypted with the loaded key: {e}") from e
        plaintext.SetLength(self.context.batch_size)
        values = np.array(plaintext.GetRealPackedValue(), dtype=np.float64)[:int(dimension)]
        duration = time.time() - start_time

        if self.benchmark_manager:
            self.benchmark_manager.log_event('Decryptor', 'Decryption Time', duration, 'seconds')
        logging.getLogger(__name__).debug(f"Decrypted {dimension} values in {duration:.4f}s")
        return values
