from .benchmark_manager import BenchmarkManager, BenchmarkProfile
from .payload import (
    ClientPayload,
    EncryptedModel,
    EncryptedTensor,
    decrypt_model,
    encrypt_model,
    extract_contributions,
)
from .protocol_state import (
    CryptoContextState,
    CryptoContextStateMachine,
    ProtocolViolationError,
    StateTransitionError,
)
from .types import CryptoParams, FederatedModel, Model
