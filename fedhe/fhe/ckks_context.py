import hashlib
import logging
import os
import threading
import time
from numbers import Integral
from typing import Any, Dict, Optional

from openfhe import *

from ..core.protocol_state import (
    CryptoContextState,
    CryptoContextStateMachine,
    ProtocolViolationError,
)
from ..core.types import CryptoParams
from ..exceptions import CryptoFileError, InvalidInputError, KeyNotLoadedError
from . import serialization
from .serialization import CONTEXT, EVAL_MULT_KEY, PRIVATE_KEY, PUBLIC_KEY

MIN_SCALING_FACTOR_BITS = 20
MAX_SCALING_FACTOR_BITS = 59
MAX_BATCH_SIZE = 32768
# Smallest ring dimension that gives 128-bit security for the moduli used here
MIN_RING_DIMENSION = 16384

DEFAULT_FILENAMES = {
    CONTEXT: "cryptocontext.txt",
    PUBLIC_KEY: "key-public.txt",
    PRIVATE_KEY: "key-private.txt",
    EVAL_MULT_KEY: "key-eval-mult.txt",
}

_SECURITY_LEVELS = {
    "standard": "HEStd_128_classic",
    "high": "HEStd_192_classic",
}


class CKKSContextManager:
    """
    Owns the CKKS crypto context and key material for one process.

    Material is either generated once (``generate_crypto_context_and_keys``)
    or loaded from the four persisted artifacts. After that it is read-only:
    encryptors, decryptors and homomorphic aggregators only hold a reference
    to this manager and query it for the context and keys they need.
    """

    def __init__(self, batch_size: int, scaling_factor_bits: int,
                 multiplicative_depth: int = 2, security_level: str = 'standard',
                 benchmark_manager: Any = None):
        if isinstance(batch_size, bool) or not isinstance(batch_size, Integral):
            raise InvalidInputError(f"batch_size must be an integer, got {batch_size!r}.")
        if batch_size <= 0 or batch_size & (batch_size - 1) or batch_size > MAX_BATCH_SIZE:
            raise InvalidInputError(
                f"batch_size must be a power of two between 1 and {MAX_BATCH_SIZE}, got {batch_size}.")
        if isinstance(scaling_factor_bits, bool) or not isinstance(scaling_factor_bits, Integral):
            raise InvalidInputError(f"scaling_factor_bits must be an integer, got {scaling_factor_bits!r}.")
        if not MIN_SCALING_FACTOR_BITS <= scaling_factor_bits <= MAX_SCALING_FACTOR_BITS:
            raise InvalidInputError(
                f"scaling_factor_bits must be in [{MIN_SCALING_FACTOR_BITS}, {MAX_SCALING_FACTOR_BITS}], "
                f"got {scaling_factor_bits}.")
        if multiplicative_depth < 1:
            raise InvalidInputError("multiplicative_depth must be at least 1.")
        if security_level not in _SECURITY_LEVELS:
            raise InvalidInputError(f"Unknown security level: '{security_level}'.")

        self.batch_size = int(batch_size)
        self.scaling_factor_bits = int(scaling_factor_bits)
        self.multiplicative_depth = int(multiplicative_depth)
        self.security_level = security_level
        self.benchmark_manager = benchmark_manager

        self.cc = None
        self._public_key = None
        self._secret_key = None
        self._has_eval_mult_key = False
        self._files: Dict[str, Optional[str]] = {kind: None for kind in DEFAULT_FILENAMES}
        self._digests: Dict[str, str] = {}
        self._instance_id: Optional[str] = None

        # Generation and loading are exclusive; encrypt/decrypt/aggregate only read.
        self._init_lock = threading.RLock()
        self.state_machine = CryptoContextStateMachine()
        self.logger = logging.getLogger(__name__)

    # ---- introspection ---------------------------------------------------
    @property
    def state(self) -> CryptoContextState:
        return self.state_machine.current_state

    @property
    def instance_id(self) -> Optional[str]:
        """Key generation the loaded artifacts belong to; None before any generate/load."""
        return self._instance_id

    @property
    def slot_count(self) -> int:
        return self.batch_size

    @property
    def has_context(self) -> bool:
        return self.cc is not None

    @property
    def has_public_key(self) -> bool:
        return self._public_key is not None

    @property
    def has_private_key(self) -> bool:
        return self._secret_key is not None

    @property
    def has_eval_mult_key(self) -> bool:
        return self._has_eval_mult_key

    def require_context(self) -> Any:
        if self.cc is None:
            raise KeyNotLoadedError("Crypto context has not been generated or loaded.")
        return self.cc

    def require_public_key(self) -> Any:
        self.require_context()
        if self._public_key is None:
            raise KeyNotLoadedError("Encryption requires the public key, which is not loaded.")
        return self._public_key

    def require_private_key(self) -> Any:
        self.require_context()
        if self._secret_key is None:
            raise KeyNotLoadedError("Decryption requires the private key, which is not loaded.")
        return self._secret_key

    def require_eval_mult_key(self) -> None:
        self.require_context()
        if not self._has_eval_mult_key:
            raise KeyNotLoadedError(
                "Homomorphic aggregation requires the evaluation-multiplication key, which is not loaded.")

    # ---- generation --------------------------------------------------------
    def _build_parameters(self) -> Any:
        params = CCParamsCKKSRNS()
        params.SetMultiplicativeDepth(self.multiplicative_depth)
        params.SetScalingModSize(self.scaling_factor_bits)
        params.SetBatchSize(self.batch_size)
        params.SetRingDim(max(2 * self.batch_size, MIN_RING_DIMENSION))
        params.SetScalingTechnique(ScalingTechnique.FLEXIBLEAUTO)
        params.SetSecurityLevel(getattr(SecurityLevel, _SECURITY_LEVELS[self.security_level]))
        return params

    def generate_crypto_context_and_keys(self, directory: str) -> CryptoParams:
        """
        Create a new context, key pair and evaluation key, and persist all
        four artifacts under `directory`. Allowed once, on an empty manager.
        """
        with self._init_lock:
            self.state_machine.require_state(CryptoContextState.EMPTY)
            start_time = time.time()

            cc = GenCryptoContext(self._build_parameters())
            cc.Enable(PKESchemeFeature.PKE)
            cc.Enable(PKESchemeFeature.KEYSWITCH)
            cc.Enable(PKESchemeFeature.LEVELEDSHE)
            keys = cc.KeyGen()
            cc.EvalMultKeyGen(keys.secretKey)

            instance_id = serialization.new_instance_id()
            files = {kind: os.path.join(directory, name) for kind, name in DEFAULT_FILENAMES.items()}
            payloads = {
                CONTEXT: serialization.dump_object(cc, "crypto context"),
                PUBLIC_KEY: serialization.dump_object(keys.publicKey, "public key"),
                PRIVATE_KEY: serialization.dump_object(keys.secretKey, "private key"),
                EVAL_MULT_KEY: serialization.dump_eval_mult_keys(cc),
            }
            try:
                os.makedirs(directory, exist_ok=True)
                for kind, payload in payloads.items():
                    serialization.write_artifact(files[kind], kind, payload,
                                                 self.batch_size, self.scaling_factor_bits, instance_id)
            except OSError as e:
                raise CryptoFileError(f"Could not persist crypto artifacts under {directory}: {e}",
                                      {"directory": directory}) from e

            self.cc = cc
            self._public_key = keys.publicKey
            self._secret_key = keys.secretKey
            self._has_eval_mult_key = True
            self._files = files
            self._digests = {kind: hashlib.sha256(p).hexdigest() for kind, p in payloads.items()}
            self._instance_id = instance_id
            self._advance({"source": "generated", "directory": directory})

            duration = time.time() - start_time
            if self.benchmark_manager:
                self.benchmark_manager.log_event('FHE Setup (CKKS)', 'Setup Time', duration, 'seconds')
            self.logger.info(
                f"CKKS context generated in {directory}. Batch size: {self.batch_size}, "
                f"scaling factor bits: {self.scaling_factor_bits}, ring dimension: {cc.GetRingDimension()}")
            return self.get_crypto_params_files()

    # ---- loading -------------------------------------------------------------
    def _advance(self, metadata: Optional[Dict[str, Any]] = None) -> None:
        self.state_machine.advance(self.has_context, self.has_public_key, self.has_private_key,
                                   self.has_eval_mult_key, metadata)

    def _read(self, kind: str, path: str):
        """Read an artifact; returns (payload, digest, instance_id, already_loaded)."""
        instance_id, payload = serialization.read_artifact(
            path, kind, self.batch_size, self.scaling_factor_bits, self._instance_id)
        digest = hashlib.sha256(payload).hexdigest()
        loaded = self._digests.get(kind)
        if loaded is None:
            return payload, digest, instance_id, False
        if loaded == digest:
            return payload, digest, instance_id, True
        error_msg = (f"A different {kind.replace('_', ' ')} is already loaded; "
                     f"key material is immutable once established (got {path}).")
        self.logger.error(error_msg)
        raise ProtocolViolationError(error_msg, {"path": path, "kind": kind})

    def _commit(self, kind: str, path: str, digest: str, instance_id: str) -> None:
        # The first artifact pins the key generation for all later loads
        self._instance_id = self._instance_id or instance_id
        self._digests[kind] = digest
        self._files[kind] = path
        self._advance({"loaded": kind, "path": path})

    def load_crypto_context_from_file(self, filepath: str) -> None:
        """
        Load the crypto context. If the evaluation-multiplication key artifact
        sits next to it under its standard name, it is loaded as well; a
        sibling that cannot be loaded is skipped with a warning.
        """
        with self._init_lock:
            start_time = time.time()
            payload, digest, instance_id, already_loaded = self._read(CONTEXT, filepath)
            if not already_loaded:
                self.cc = serialization.load_crypto_context(payload)
                self._commit(CONTEXT, filepath, digest, instance_id)
                self.logger.info(f"Loaded CKKS crypto context from {filepath}")

            sibling = os.path.join(os.path.dirname(filepath), DEFAULT_FILENAMES[EVAL_MULT_KEY])
            if not self._has_eval_mult_key and os.path.isfile(sibling):
                try:
                    self.load_eval_mult_key_from_file(sibling)
                except CryptoFileError as e:
                    self.logger.warning(f"Evaluation-multiplication key not loaded from {sibling}: {e}")

            if self.benchmark_manager and not already_loaded:
                self.benchmark_manager.log_event('FHE Setup (CKKS)', 'Context Load Time',
                                                 time.time() - start_time, 'seconds')

    def load_public_key_from_file(self, filepath: str) -> None:
        with self._init_lock:
            self.state_machine.forbid_state(CryptoContextState.EMPTY)
            payload, digest, instance_id, already_loaded = self._read(PUBLIC_KEY, filepath)
            if already_loaded:
                return
            self._public_key = serialization.load_public_key(payload)
            self._commit(PUBLIC_KEY, filepath, digest, instance_id)
            self.logger.info(f"Loaded CKKS public key from {filepath}")

    def load_private_key_from_file(self, filepath: str) -> None:
        with self._init_lock:
            self.state_machine.forbid_state(CryptoContextState.EMPTY)
            payload, digest, instance_id, already_loaded = self._read(PRIVATE_KEY, filepath)
            if already_loaded:
                return
            self._secret_key = serialization.load_private_key(payload)
            self._commit(PRIVATE_KEY, filepath, digest, instance_id)
            self.logger.info(f"Loaded CKKS private key from {filepath}")

    def load_eval_mult_key_from_file(self, filepath: str) -> None:
        with self._init_lock:
            self.state_machine.forbid_state(CryptoContextState.EMPTY)
            payload, digest, instance_id, already_loaded = self._read(EVAL_MULT_KEY, filepath)
            if already_loaded:
                return
            serialization.load_eval_mult_keys(self.cc, payload)
            self._has_eval_mult_key = True
            self._commit(EVAL_MULT_KEY, filepath, digest, instance_id)
            self.logger.info(f"Loaded CKKS evaluation-multiplication key from {filepath}")

    def load_context_and_keys_from_files(self, crypto_context_file: str, public_key_file: str,
                                         private_key_file: str,
                                         eval_mult_key_file: Optional[str] = None) -> None:
        with self._init_lock:
            self.load_crypto_context_from_file(crypto_context_file)
            if eval_mult_key_file is not None:
                self.load_eval_mult_key_from_file(eval_mult_key_file)
            self.load_public_key_from_file(public_key_file)
            self.load_private_key_from_file(private_key_file)

    # ---- artifacts -----------------------------------------------------------
    def get_crypto_params_files(self) -> CryptoParams:
        """
        Locations of the four artifacts. Artifacts that were never loaded
        explicitly are reported at their standard name next to the context.
        """
        self.state_machine.forbid_state(CryptoContextState.EMPTY)
        directory = os.path.dirname(self._files[CONTEXT])
        files = {kind: self._files[kind] or os.path.join(directory, name)
                 for kind, name in DEFAULT_FILENAMES.items()}
        return CryptoParams(
            crypto_context_file=files[CONTEXT],
            public_key_file=files[PUBLIC_KEY],
            private_key_file=files[PRIVATE_KEY],
            eval_mult_key_file=files[EVAL_MULT_KEY],
        )
