from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .base_fhe_manager import BaseFHEManager
from .ckks_context import CKKSContextManager
from .decryptor import CKKSDecryptor
from .encryptor import CKKSEncryptor
from .homomorphic_aggregator import CKKSHomomorphicAggregator


class CKKS(BaseFHEManager):
    """
    CKKS facade: one context manager plus the encryptor, decryptor and
    homomorphic aggregator that share it.

    Typical lifecycle::

        ckks = CKKS(batch_size=8192, scaling_factor_bits=40)
        ckks.gen_crypto_context_and_keys("/path/to/federation/crypto")
        files = ckks.get_crypto_params_files()

        # elsewhere, e.g. on a learner or the aggregator
        ckks = CKKS(batch_size=8192, scaling_factor_bits=40)
        ckks.load_crypto_context_from_file(files["crypto_context_file"])
        ckks.load_public_key_from_file(files["public_key_file"])
    """

    def __init__(self, batch_size: int, scaling_factor_bits: int,
                 multiplicative_depth: int = 2, security_level: str = 'standard',
                 benchmark_manager: Any = None):
        super().__init__(benchmark_manager)
        self.context = CKKSContextManager(
            batch_size, scaling_factor_bits,
            multiplicative_depth=multiplicative_depth,
            security_level=security_level,
            benchmark_manager=benchmark_manager)
        self.encryptor = CKKSEncryptor(self.context, benchmark_manager)
        self.decryptor = CKKSDecryptor(self.context, benchmark_manager)
        self.aggregator = CKKSHomomorphicAggregator(self.context, benchmark_manager)

    @property
    def batch_size(self) -> int:
        return self.context.batch_size

    @property
    def scaling_factor_bits(self) -> int:
        return self.context.scaling_factor_bits

    @property
    def slot_count(self) -> int:
        return self.context.slot_count

    def gen_crypto_context_and_keys(self, directory: str) -> None:
        self.context.generate_crypto_context_and_keys(directory)

    def get_crypto_params_files(self) -> Dict[str, str]:
        return self.context.get_crypto_params_files().to_dict()

    def load_crypto_context_from_file(self, filepath: str) -> None:
        self.context.load_crypto_context_from_file(filepath)

    def load_public_key_from_file(self, filepath: str) -> None:
        self.context.load_public_key_from_file(filepath)

    def load_private_key_from_file(self, filepath: str) -> None:
        self.context.load_private_key_from_file(filepath)

    def load_eval_mult_key_from_file(self, filepath: str) -> None:
        self.context.load_eval_mult_key_from_file(filepath)

    def load_context_and_keys_from_files(self, crypto_context_file: str, public_key_file: str,
                                         private_key_file: str,
                                         eval_mult_key_file: Optional[str] = None) -> None:
        self.context.load_context_and_keys_from_files(
            crypto_context_file, public_key_file, private_key_file, eval_mult_key_file)

    def encrypt(self, values: Sequence[float]) -> bytes:
        return self.encryptor.encrypt(values)

    def compute_weighted_average(self, ciphertexts: List[bytes], weights: List[float]) -> bytes:
        return self.aggregator.compute_weighted_average(ciphertexts, weights)

    def decrypt(self, ciphertext: bytes, dimension: int) -> np.ndarray:
        return self.decryptor.decrypt(ciphertext, dimension)
