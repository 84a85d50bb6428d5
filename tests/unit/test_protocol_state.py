import pytest

from fedhe.core.protocol_state import (
    CryptoContextState,
    CryptoContextStateMachine,
    ProtocolViolationError,
    StateTransitionError,
)
from fedhe.exceptions import FedHEError


def test_starts_empty():
    sm = CryptoContextStateMachine()

    assert sm.current_state == CryptoContextState.EMPTY
    assert sm.get_transition_history() == []


def test_generation_jumps_to_operational_ready():
    sm = CryptoContextStateMachine()

    sm.advance(True, True, True, True, {"source": "generated"})

    assert sm.current_state == CryptoContextState.OPERATIONAL_READY
    history = sm.get_transition_history()
    assert len(history) == 1
    assert history[0].from_state == CryptoContextState.EMPTY
    assert history[0].metadata == {"source": "generated"}


def test_incremental_loading_path():
    sm = CryptoContextStateMachine()

    sm.advance(True, False, False, False)
    assert sm.current_state == CryptoContextState.CONTEXT_READY
    sm.advance(True, True, False, False)
    assert sm.current_state == CryptoContextState.PUBLIC_KEY_LOADED
    sm.advance(True, True, True, False)
    assert sm.current_state == CryptoContextState.KEYS_LOADED
    sm.advance(True, True, True, True)
    assert sm.current_state == CryptoContextState.OPERATIONAL_READY


def test_private_key_first_path():
    sm = CryptoContextStateMachine()

    sm.advance(True, False, False, False)
    sm.advance(True, False, True, False)

    assert sm.current_state == CryptoContextState.PRIVATE_KEY_LOADED


def test_evaluation_key_alone_keeps_context_ready():
    sm = CryptoContextStateMachine()

    sm.advance(True, False, False, False)
    sm.advance(True, False, False, True)

    assert sm.current_state == CryptoContextState.CONTEXT_READY
    assert len(sm.get_transition_history()) == 1


def test_repeated_advance_is_idempotent():
    sm = CryptoContextStateMachine()
    sm.advance(True, False, False, False)
    sm.advance(True, False, False, False)

    assert len(sm.get_transition_history()) == 1


def test_backwards_transition_rejected():
    sm = CryptoContextStateMachine()
    sm.advance(True, True, True, True)

    with pytest.raises(StateTransitionError):
        sm.transition_to(CryptoContextState.CONTEXT_READY)


def test_keys_without_context_rejected():
    sm = CryptoContextStateMachine()

    with pytest.raises(StateTransitionError):
        sm.transition_to(CryptoContextState.PUBLIC_KEY_LOADED)


def test_require_and_forbid_state():
    sm = CryptoContextStateMachine()

    sm.require_state(CryptoContextState.EMPTY)
    with pytest.raises(ProtocolViolationError):
        sm.forbid_state(CryptoContextState.EMPTY)

    sm.advance(True, False, False, False)
    with pytest.raises(ProtocolViolationError):
        sm.require_state(CryptoContextState.EMPTY)


def test_lifecycle_errors_share_base_class():
    assert issubclass(StateTransitionError, FedHEError)
    assert issubclass(ProtocolViolationError, FedHEError)


def test_violation_reports_current_state():
    sm = CryptoContextStateMachine("learner-3")

    with pytest.raises(ProtocolViolationError, match="learner-3") as exc_info:
        sm.require_state(CryptoContextState.OPERATIONAL_READY)

    assert exc_info.value.details == {"state": "EMPTY"}
