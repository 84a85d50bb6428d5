"""
Crypto Lifecycle State Machine
==============================

Generating or loading CKKS material establishes an ordering: the crypto
context comes first, keys afterwards, and encrypt/decrypt/aggregate calls
only once the material they need is present. The context manager derives
its state from the material it holds and records every change here, so
out-of-order calls fail with a clear error instead of inside OpenFHE.
"""

from enum import Enum, auto
from typing import Any, Dict, List, Optional
import logging
from dataclasses import dataclass, field
from datetime import datetime

from ..exceptions import FedHEError


class CryptoContextState(Enum):
    """States for the CKKS context manager"""
    EMPTY = auto()                   # Nothing generated or loaded
    CONTEXT_READY = auto()           # Crypto context loaded, no keys
    PUBLIC_KEY_LOADED = auto()       # Context + public key
    PRIVATE_KEY_LOADED = auto()      # Context + private key
    KEYS_LOADED = auto()             # Context + public and private keys
    OPERATIONAL_READY = auto()       # Context, both keys and evaluation key


class StateTransitionError(FedHEError):
    """Raised when the material would move the manager backwards or skip the context"""
    pass


class ProtocolViolationError(FedHEError):
    """Raised when an operation is called in the wrong lifecycle state"""
    pass


@dataclass
class StateTransition:
    from_state: CryptoContextState
    to_state: CryptoContextState
    timestamp: datetime
    metadata: Dict[str, Any] = field(default_factory=dict)


_S = CryptoContextState

# Loading only ever adds material, so every edge points forward
_ALLOWED_TRANSITIONS = {
    _S.EMPTY: {_S.CONTEXT_READY, _S.OPERATIONAL_READY},
    _S.CONTEXT_READY: {_S.PUBLIC_KEY_LOADED, _S.PRIVATE_KEY_LOADED, _S.KEYS_LOADED, _S.OPERATIONAL_READY},
    _S.PUBLIC_KEY_LOADED: {_S.KEYS_LOADED, _S.OPERATIONAL_READY},
    _S.PRIVATE_KEY_LOADED: {_S.KEYS_LOADED, _S.OPERATIONAL_READY},
    _S.KEYS_LOADED: {_S.OPERATIONAL_READY},
    _S.OPERATIONAL_READY: set(),
}


class CryptoContextStateMachine:
    """Lifecycle of one CKKS context manager, with an audit trail of transitions."""

    def __init__(self, manager_id: str = "ckks"):
        self.manager_id = manager_id
        self._current_state = CryptoContextState.EMPTY
        self._history: List[StateTransition] = []
        self.logger = logging.getLogger(f"{__name__}.{manager_id}")

    @property
    def current_state(self) -> CryptoContextState:
        return self._current_state

    def transition_to(self, new_state: CryptoContextState,
                      metadata: Optional[Dict[str, Any]] = None) -> None:
        if new_state not in _ALLOWED_TRANSITIONS[self._current_state]:
            error_msg = (f"Invalid crypto state transition for '{self.manager_id}': "
                         f"{self._current_state.name} -> {new_state.name}")
            self.logger.error(error_msg)
            raise StateTransitionError(error_msg)

        old_state, self._current_state = self._current_state, new_state
        self._history.append(StateTransition(old_state, new_state, datetime.now(), metadata or {}))
        self.logger.info(f"{old_state.name} -> {new_state.name} {metadata or ''}")

    def advance(self, has_context: bool, has_public_key: bool, has_private_key: bool,
                has_eval_mult_key: bool, metadata: Optional[Dict[str, Any]] = None) -> None:
        """Move to the state implied by the loaded material. No-op if already there."""
        if not has_context:
            target = _S.EMPTY
        elif has_public_key and has_private_key and has_eval_mult_key:
            target = _S.OPERATIONAL_READY
        elif has_public_key and has_private_key:
            target = _S.KEYS_LOADED
        elif has_public_key:
            target = _S.PUBLIC_KEY_LOADED
        elif has_private_key:
            target = _S.PRIVATE_KEY_LOADED
        else:
            target = _S.CONTEXT_READY

        if target != self._current_state:
            self.transition_to(target, metadata)

    def require_state(self, *states: CryptoContextState) -> None:
        if self._current_state not in states:
            self._violation(f"expected state in {[s.name for s in states]}")

    def forbid_state(self, *states: CryptoContextState) -> None:
        if self._current_state in states:
            self._violation("operation not allowed")

    def _violation(self, reason: str) -> None:
        error_msg = (f"Protocol violation for '{self.manager_id}': {reason}, "
                     f"current state is {self._current_state.name}")
        self.logger.error(error_msg)
        raise ProtocolViolationError(error_msg, {"state": self._current_state.name})

    def get_transition_history(self) -> List[StateTransition]:
        return list(self._history)
