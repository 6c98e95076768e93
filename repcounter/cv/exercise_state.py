"""
Per-exercise counting state.

ExerciseState is immutable: every classification pass returns a fresh
instance built with dataclasses.replace, so a renderer reading the state
never observes a half-applied update.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional


class Phase(Enum):
    """Movement phase of the active exercise."""
    UNKNOWN = "unknown"
    CLOSED = "closed"
    OPEN = "open"
    UP = "up"
    DOWN = "down"


class Side(Enum):
    LEFT = "left"
    RIGHT = "right"
    NONE = "none"


class DecisionKind(Enum):
    """Outcome of a counting attempt on this frame."""
    NONE = "none"
    REP = "rep"
    REJECT = "reject"


@dataclass(frozen=True)
class Decision:
    """
    Tagged decision event returned with each new state.

    Rep decisions carry the range of motion (0-100) reached during the rep,
    or None when the exercise has no ROM measure.
    """
    kind: DecisionKind = DecisionKind.NONE
    message: str = ""
    rom_pct: Optional[float] = None

    @classmethod
    def rep(cls, rom_pct: Optional[float] = None, message: str = "Rep counted.") -> "Decision":
        return cls(kind=DecisionKind.REP, message=message, rom_pct=rom_pct)

    @classmethod
    def reject(cls, message: str) -> "Decision":
        return cls(kind=DecisionKind.REJECT, message=message)

    @property
    def is_rep(self) -> bool:
        return self.kind == DecisionKind.REP

    @property
    def is_reject(self) -> bool:
        return self.kind == DecisionKind.REJECT

    @property
    def is_event(self) -> bool:
        return self.kind != DecisionKind.NONE


NO_DECISION = Decision()


@dataclass(frozen=True)
class RepProgress:
    """
    Progress through the current repetition.

    reached_extreme is set when the inner phase ("deep enough", "open
    enough") is visited and clears exactly when a rep is counted.
    attempt_started_ms is the time the current attempt entered its inner
    phase; it gates the very first rep of an exercise. peak_rom_pct is the
    best range of motion seen since the last counted rep.
    """
    reached_extreme: bool = False
    last_side: Side = Side.NONE
    attempt_started_ms: Optional[float] = None
    peak_rom_pct: Optional[float] = None

    def mark_extreme(
        self,
        now_ms: float,
        entering: bool,
        side: Optional[Side] = None
    ) -> "RepProgress":
        started = self.attempt_started_ms
        if entering or started is None:
            started = now_ms
        return replace(
            self,
            reached_extreme=True,
            last_side=side if side is not None else self.last_side,
            attempt_started_ms=started,
        )

    def observe_rom(self, rom_pct: Optional[float]) -> "RepProgress":
        if rom_pct is None:
            return self
        if self.peak_rom_pct is not None and self.peak_rom_pct >= rom_pct:
            return self
        return replace(self, peak_rom_pct=rom_pct)

    def counted(self, side: Optional[Side] = None) -> "RepProgress":
        return replace(
            self,
            reached_extreme=False,
            attempt_started_ms=None,
            peak_rom_pct=None,
            last_side=side if side is not None else self.last_side,
        )


@dataclass(frozen=True)
class ExerciseState:
    """Counting state for the active exercise."""
    exercise_id: str
    phase: Phase = Phase.UNKNOWN
    rep_count: int = 0
    last_phase_change_ms: float = 0.0
    last_rep_ms: Optional[float] = None
    progress: RepProgress = field(default_factory=RepProgress)
    feedback: str = ""
    rom_pct: Optional[float] = None
    decision: Decision = NO_DECISION
    decision_id: int = 0

    @classmethod
    def initial(cls, exercise_id: str) -> "ExerciseState":
        return cls(exercise_id=exercise_id)

    def with_decision(self, decision: Decision) -> "ExerciseState":
        """Attach a decision, bumping the monotonic id for real events."""
        if not decision.is_event:
            return replace(self, decision=NO_DECISION)
        return replace(self, decision=decision, decision_id=self.decision_id + 1)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exercise_id": self.exercise_id,
            "phase": self.phase.value,
            "rep_count": self.rep_count,
            "last_phase_change_ms": self.last_phase_change_ms,
            "last_rep_ms": self.last_rep_ms,
            "reached_extreme": self.progress.reached_extreme,
            "last_side": self.progress.last_side.value,
            "feedback": self.feedback,
            "rom_pct": self.rom_pct,
            "decision": {
                "kind": self.decision.kind.value,
                "message": self.decision.message,
                "rom_pct": self.decision.rom_pct,
                "id": self.decision_id,
            },
        }
