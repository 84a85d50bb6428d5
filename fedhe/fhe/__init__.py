from .ckks_context import CKKSContextManager
from .ckks_manager import CKKS
from .decryptor import CKKSDecryptor
from .encryptor import CKKSEncryptor
from .homomorphic_aggregator import CKKSHomomorphicAggregator

# The FHE Manager Registry
fhe_manager_registry = {
    "ckks": CKKS,
}
