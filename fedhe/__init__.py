import logging

from .aggregators import FHE_AVAILABLE, aggregator_registry, get_aggregator
from .core import (
    BenchmarkManager,
    ClientPayload,
    CryptoParams,
    EncryptedModel,
    FederatedModel,
    decrypt_model,
    encrypt_model,
)
from .core.federated_server import FederatedServer
from .exceptions import (
    CapacityExceededError,
    CryptoFileError,
    FedHEError,
    InvalidInputError,
    KeyNotLoadedError,
)

__version__ = "1.0.0"


def configure_logging(level=logging.INFO):
    """Configure logging for the fedhe package.

    Args:
        level: The logging level to set. Can be logging.DEBUG, logging.INFO,
              logging.WARNING, logging.ERROR, or logging.CRITICAL
    """
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    logging.getLogger('fedhe').setLevel(level)
