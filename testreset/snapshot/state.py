"""
ResetStateMachine - Phases of one database reset.

IDLE → DATA_LOADED → SEQUENCES_RESET → TABLES_CLEANED → IDLE

Table restores happen while DATA_LOADED; a failure anywhere leaves the machine
where it stopped, and the next reset starts over from IDLE.
"""

from enum import Enum, auto
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
from datetime import datetime


class ResetPhase(Enum):
    """Database reset phases."""
    IDLE = auto()
    DATA_LOADED = auto()
    SEQUENCES_RESET = auto()
    TABLES_CLEANED = auto()


# Valid phase transitions
TRANSITIONS: Dict[ResetPhase, List[ResetPhase]] = {
    ResetPhase.IDLE: [ResetPhase.DATA_LOADED],
    ResetPhase.DATA_LOADED: [ResetPhase.SEQUENCES_RESET],
    ResetPhase.SEQUENCES_RESET: [ResetPhase.TABLES_CLEANED],
    ResetPhase.TABLES_CLEANED: [ResetPhase.IDLE],
}


@dataclass
class PhaseEvent:
    """Record of a phase transition."""
    from_phase: ResetPhase
    to_phase: ResetPhase
    timestamp: datetime
    duration_ms: int
    metadata: Dict[str, Any] = field(default_factory=dict)


class ResetStateMachine:
    """
    Tracks the phase of the current reset.

    Ensures valid transitions and keeps the history of the last reset.
    """

    def __init__(self):
        self._phase = ResetPhase.IDLE
        self._history: List[PhaseEvent] = []
        self._entered_at = datetime.now()

    @property
    def phase(self) -> ResetPhase:
        return self._phase

    @property
    def history(self) -> List[PhaseEvent]:
        return self._history.copy()

    def can_transition(self, to_phase: ResetPhase) -> bool:
        return to_phase in TRANSITIONS.get(self._phase, [])

    def begin(self) -> None:
        """Start a new reset, discarding where a failed one stopped."""
        self._phase = ResetPhase.IDLE
        self._history = []
        self._entered_at = datetime.now()

    def transition(self, to_phase: ResetPhase, metadata: Optional[Dict[str, Any]] = None):
        """
        Move to the next phase.

        Raises:
            ValueError: If transition is not valid
        """
        if not self.can_transition(to_phase):
            raise ValueError(
                f"Invalid transition: {self._phase.name} → {to_phase.name}. "
                f"Valid transitions: {[p.name for p in TRANSITIONS.get(self._phase, [])]}"
            )

        now = datetime.now()
        self._history.append(PhaseEvent(
            from_phase=self._phase,
            to_phase=to_phase,
            timestamp=now,
            duration_ms=int((now - self._entered_at).total_seconds() * 1000),
            metadata=metadata or {},
        ))
        self._phase = to_phase
        self._entered_at = now
