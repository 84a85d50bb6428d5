from typing import Any, Dict, Optional


class FedHEError(Exception):
    """Base exception for all fedhe errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class InvalidInputError(FedHEError, ValueError):
    """Raised when aggregation or crypto inputs fail validation."""
    pass


class CapacityExceededError(InvalidInputError):
    """Raised when a vector does not fit in the slots of one ciphertext."""
    pass


class CryptoFileError(FedHEError, OSError):
    """Raised for missing, unreadable or incompatible context/key files."""
    pass


class KeyNotLoadedError(FedHEError):
    """Raised when an operation needs key material that is not loaded."""
    pass
