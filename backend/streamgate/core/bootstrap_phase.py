"""Bootstrap Phases — the process lifecycle as an explicit, validated state machine.

Invariants:
    - Phases advance strictly in declaration order, one step at a time
    - FATAL_ABORT is reachable from every non-terminal phase and is terminal
    - LISTENING is terminal for the sequencer (no recovery path)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from streamgate.core.errors import InvalidPhaseTransitionError


class BootstrapPhase(str, Enum):
    INIT = "init"
    CONNECTING_STORAGE = "connecting_storage"
    WIRING_MIDDLEWARE = "wiring_middleware"
    WIRING_ROUTES = "wiring_routes"
    WIRING_ERROR_BOUNDARY = "wiring_error_boundary"
    LAUNCHING_BACKGROUND_JOBS = "launching_background_jobs"
    LISTENING = "listening"
    FATAL_ABORT = "fatal_abort"


_ORDERED_PHASES = (
    BootstrapPhase.INIT,
    BootstrapPhase.CONNECTING_STORAGE,
    BootstrapPhase.WIRING_MIDDLEWARE,
    BootstrapPhase.WIRING_ROUTES,
    BootstrapPhase.WIRING_ERROR_BOUNDARY,
    BootstrapPhase.LAUNCHING_BACKGROUND_JOBS,
    BootstrapPhase.LISTENING,
)

TERMINAL_PHASES = frozenset({BootstrapPhase.LISTENING, BootstrapPhase.FATAL_ABORT})


def next_phase(current: BootstrapPhase) -> BootstrapPhase | None:
    """Return the phase after `current` in the happy path, or None if terminal."""
    if current in TERMINAL_PHASES:
        return None
    return _ORDERED_PHASES[_ORDERED_PHASES.index(current) + 1]


def is_valid_transition(current: BootstrapPhase, requested: BootstrapPhase) -> bool:
    if current in TERMINAL_PHASES:
        return False
    if requested is BootstrapPhase.FATAL_ABORT:
        return True
    return next_phase(current) is requested


@dataclass
class PhaseTracker:
    """Current phase plus the timestamped history of every transition."""
    phase: BootstrapPhase = BootstrapPhase.INIT
    history: list[tuple[BootstrapPhase, datetime]] = field(
        default_factory=lambda: [(BootstrapPhase.INIT, datetime.now(timezone.utc))],
    )

    def advance(self, requested: BootstrapPhase) -> BootstrapPhase:
        if not is_valid_transition(self.phase, requested):
            raise InvalidPhaseTransitionError(self.phase.value, requested.value)
        self.phase = requested
        self.history.append((requested, datetime.now(timezone.utc)))
        return requested

    def abort(self) -> None:
        """Move to FATAL_ABORT unless already terminal."""
        if self.phase not in TERMINAL_PHASES:
            self.advance(BootstrapPhase.FATAL_ABORT)

    @property
    def visited(self) -> list[BootstrapPhase]:
        return [phase for phase, _ in self.history]
