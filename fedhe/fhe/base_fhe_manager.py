from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence
import numpy as np


class BaseFHEManager(ABC):
    """Abstract Base Class for the FHE boundary exposed to the surrounding process."""
    def __init__(self, benchmark_manager: Any = None):
        self.benchmark_manager = benchmark_manager

    @property
    @abstractmethod
    def slot_count(self) -> int:
        pass

    @abstractmethod
    def gen_crypto_context_and_keys(self, directory: str) -> None:
        pass

    @abstractmethod
    def get_crypto_params_files(self) -> Dict[str, str]:
        pass

    @abstractmethod
    def load_crypto_context_from_file(self, filepath: str) -> None:
        pass

    @abstractmethod
    def load_public_key_from_file(self, filepath: str) -> None:
        pass

    @abstractmethod
    def load_private_key_from_file(self, filepath: str) -> None:
        pass

    @abstractmethod
    def load_context_and_keys_from_files(self, crypto_context_file: str, public_key_file: str,
                                         private_key_file: str,
                                         eval_mult_key_file: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def encrypt(self, values: Sequence[float]) -> bytes:
        """Encrypts one vector (at most `slot_count` values) into a ciphertext."""
        pass

    @abstractmethod
    def compute_weighted_average(self, ciphertexts: List[bytes], weights: List[float]) -> bytes:
        """Combines ciphertexts into their weighted average without decrypting."""
        pass

    @abstractmethod
    def decrypt(self, ciphertext: bytes, dimension: int) -> np.ndarray:
        """Decrypts a ciphertext and returns its first `dimension` values."""
        pass
