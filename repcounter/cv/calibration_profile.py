"""Per-exercise calibration profile."""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class CalibrationProfile:
    """
    Measured extremes for one exercise.

    Values are keyed by name (e.g. "top_angle", "open_ratio"). A missing key
    falls back to the classifier default supplied by the caller.
    """
    exercise_id: str
    values: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "values", dict(self.values))

    def get(self, name: str, default: float) -> float:
        value = self.values.get(name)
        return float(value) if value is not None else default

    def updated(self, new_values: Mapping[str, float]) -> "CalibrationProfile":
        merged = dict(self.values)
        merged.update({k: float(v) for k, v in new_values.items()})
        return CalibrationProfile(exercise_id=self.exercise_id, values=merged)

    def to_dict(self) -> Dict[str, Any]:
        return {"exercise_id": self.exercise_id, "values": dict(self.values)}


def resolve(profile: Optional[CalibrationProfile], name: str, default: float) -> float:
    """Read a calibrated value, or the default when uncalibrated."""
    if profile is None:
        return default
    return profile.get(name, default)
