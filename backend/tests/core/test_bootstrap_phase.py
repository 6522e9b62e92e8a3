"""Bootstrap Phases — tests for the lifecycle state machine.

Invariants:
    - Happy path visits every phase once, in order
    - Skipping or reversing a phase raises InvalidPhaseTransitionError
    - FATAL_ABORT reachable from any non-terminal phase; terminal phases are final
"""

import pytest

from streamgate.core.bootstrap_phase import (
    BootstrapPhase, PhaseTracker, is_valid_transition, next_phase,
)
from streamgate.core.errors import InvalidPhaseTransitionError

HAPPY_PATH = [
    BootstrapPhase.CONNECTING_STORAGE,
    BootstrapPhase.WIRING_MIDDLEWARE,
    BootstrapPhase.WIRING_ROUTES,
    BootstrapPhase.WIRING_ERROR_BOUNDARY,
    BootstrapPhase.LAUNCHING_BACKGROUND_JOBS,
    BootstrapPhase.LISTENING,
]


def test_happy_path_is_recorded_in_order():
    tracker = PhaseTracker()
    for phase in HAPPY_PATH:
        tracker.advance(phase)
    assert tracker.phase is BootstrapPhase.LISTENING
    assert tracker.visited == [BootstrapPhase.INIT, *HAPPY_PATH]


def test_next_phase_follows_declaration_order():
    assert next_phase(BootstrapPhase.INIT) is BootstrapPhase.CONNECTING_STORAGE
    assert next_phase(BootstrapPhase.WIRING_ROUTES) is BootstrapPhase.WIRING_ERROR_BOUNDARY
    assert next_phase(BootstrapPhase.LISTENING) is None
    assert next_phase(BootstrapPhase.FATAL_ABORT) is None


def test_skipping_a_phase_is_rejected():
    tracker = PhaseTracker()
    with pytest.raises(InvalidPhaseTransitionError) as exc_info:
        tracker.advance(BootstrapPhase.WIRING_ROUTES)
    assert exc_info.value.code == "INVALID_PHASE_TRANSITION"
    assert tracker.phase is BootstrapPhase.INIT


def test_going_back_is_rejected():
    tracker = PhaseTracker()
    tracker.advance(BootstrapPhase.CONNECTING_STORAGE)
    tracker.advance(BootstrapPhase.WIRING_MIDDLEWARE)
    assert not is_valid_transition(tracker.phase, BootstrapPhase.CONNECTING_STORAGE)


@pytest.mark.parametrize("phase", [BootstrapPhase.INIT, *HAPPY_PATH[:-1]])
def test_abort_is_valid_from_every_non_terminal_phase(phase):
    assert is_valid_transition(phase, BootstrapPhase.FATAL_ABORT)


def test_terminal_phases_accept_nothing():
    for terminal in (BootstrapPhase.LISTENING, BootstrapPhase.FATAL_ABORT):
        for requested in BootstrapPhase:
            assert not is_valid_transition(terminal, requested)


def test_abort_is_a_no_op_once_terminal():
    tracker = PhaseTracker()
    tracker.advance(BootstrapPhase.CONNECTING_STORAGE)
    tracker.abort()
    tracker.abort()
    assert tracker.phase is BootstrapPhase.FATAL_ABORT
    assert tracker.visited.count(BootstrapPhase.FATAL_ABORT) == 1
