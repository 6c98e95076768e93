"""
Rep quality classification and session aggregation.

Each counted rep is labelled from its tempo (time since the previous counted
rep) and its range of motion:

    sloppy  0 < tempo < exercise minimum tempo
    clean   ROM >= 70%
    ok      ROM >= 50%, or ROM not measured
    sloppy  otherwise
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Optional

# Minimum tempo per exercise in ms
MIN_TEMPO_MS = {
    "jumping_jacks": 380.0,
    "high_knees": 300.0,
    "jump_squats": 520.0,
    "squats": 700.0,
    "lunges": 750.0,
}
DEFAULT_MIN_TEMPO_MS = 650.0

CLEAN_ROM_PCT = 70.0
OK_ROM_PCT = 50.0


class QualityLabel(Enum):
    CLEAN = "clean"
    OK = "ok"
    SLOPPY = "sloppy"


def min_tempo_ms(exercise_id: str) -> float:
    return MIN_TEMPO_MS.get(exercise_id, DEFAULT_MIN_TEMPO_MS)


def classify_rep_quality(
    exercise_id: str,
    now_ms: float,
    previous_rep_ms: Optional[float],
    rom_pct: Optional[float]
) -> QualityLabel:
    """Label one counted rep."""
    tempo = now_ms - previous_rep_ms if previous_rep_ms is not None else 0.0
    if 0 < tempo < min_tempo_ms(exercise_id):
        return QualityLabel.SLOPPY
    if rom_pct is None:
        return QualityLabel.OK
    if rom_pct >= CLEAN_ROM_PCT:
        return QualityLabel.CLEAN
    if rom_pct >= OK_ROM_PCT:
        return QualityLabel.OK
    return QualityLabel.SLOPPY


@dataclass(frozen=True)
class QualityTally:
    clean: int = 0
    ok: int = 0
    sloppy: int = 0
    rom_sum: float = 0.0
    rom_count: int = 0

    @property
    def total(self) -> int:
        return self.clean + self.ok + self.sloppy

    @property
    def avg_rom_pct(self) -> Optional[float]:
        if self.rom_count == 0:
            return None
        return self.rom_sum / self.rom_count

    def merged(self, other: "QualityTally") -> "QualityTally":
        return QualityTally(
            clean=self.clean + other.clean,
            ok=self.ok + other.ok,
            sloppy=self.sloppy + other.sloppy,
            rom_sum=self.rom_sum + other.rom_sum,
            rom_count=self.rom_count + other.rom_count,
        )

    def record(self, label: QualityLabel, rom_pct: Optional[float]) -> "QualityTally":
        counts = {label.value: getattr(self, label.value) + 1}
        if rom_pct is not None:
            counts["rom_sum"] = self.rom_sum + rom_pct
            counts["rom_count"] = self.rom_count + 1
        return replace(self, **counts)

    def to_dict(self) -> dict:
        return {
            "clean": self.clean,
            "ok": self.ok,
            "sloppy": self.sloppy,
            "rom_sum": self.rom_sum,
            "rom_count": self.rom_count,
            "avg_rom_pct": self.avg_rom_pct,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "QualityTally":
        return cls(
            clean=int(data.get("clean", 0)),
            ok=int(data.get("ok", 0)),
            sloppy=int(data.get("sloppy", 0)),
            rom_sum=float(data.get("rom_sum", 0.0)),
            rom_count=int(data.get("rom_count", 0)),
        )


@dataclass(frozen=True)
class QualityAggregate:
    """Session-wide tally plus a per-exercise breakdown."""
    overall: QualityTally = field(default_factory=QualityTally)
    by_exercise: Dict[str, QualityTally] = field(default_factory=dict)

    def record(
        self,
        exercise_id: str,
        label: QualityLabel,
        rom_pct: Optional[float]
    ) -> "QualityAggregate":
        by_exercise = dict(self.by_exercise)
        by_exercise[exercise_id] = by_exercise.get(exercise_id, QualityTally()).record(label, rom_pct)
        return QualityAggregate(overall=self.overall.record(label, rom_pct), by_exercise=by_exercise)

    def snapshot(self) -> dict:
        """Finalized copy for the history store."""
        return self.to_dict()

    def to_dict(self) -> dict:
        return {
            **self.overall.to_dict(),
            "by_exercise": {ex: tally.to_dict() for ex, tally in self.by_exercise.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "QualityAggregate":
        return cls(
            overall=QualityTally.from_dict(data),
            by_exercise={
                ex: QualityTally.from_dict(tally)
                for ex, tally in (data.get("by_exercise") or {}).items()
            },
        )
