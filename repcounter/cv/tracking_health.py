"""
Tracking health monitor.

Summarizes how well the pose provider currently sees the body parts the
active exercise depends on, and suggests a single camera hint.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from repcounter.cv.landmarks import BodyGroup, LandmarkFrame
from repcounter.cv.rep_classifiers import ExerciseClassifier


class TrackingHealth(Enum):
    GOOD = "good"
    PARTIAL = "partial"
    LOST = "lost"


# First missing group in this order drives the hint
HINT_PRIORITY = (BodyGroup.LOWER_BODY, BodyGroup.UPPER_BODY, BodyGroup.ARMS)

HINTS = {
    BodyGroup.LOWER_BODY: "Step back so your legs and feet are in frame.",
    BodyGroup.UPPER_BODY: "Move so your head and shoulders are in frame.",
    BodyGroup.ARMS: "Keep both arms in frame.",
}
NO_POSE_HINT = "No body detected. Step into the frame."


@dataclass(frozen=True)
class TrackingReport:
    health: TrackingHealth
    missing: List[BodyGroup]
    hint: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "health": self.health.value,
            "missing": [group.value for group in self.missing],
            "hint": self.hint,
        }


def assess(classifier: ExerciseClassifier, frame: Optional[LandmarkFrame]) -> TrackingReport:
    """
    good: every required group visible; partial: exactly one group missing;
    lost: no pose at all or two or more groups missing.
    """
    if frame is None:
        return TrackingReport(TrackingHealth.LOST, list(HINT_PRIORITY), NO_POSE_HINT)

    missing = []
    for group in HINT_PRIORITY:
        indices = classifier.TRACKING_GROUPS.get(group)
        if not indices:
            continue
        visible = all(
            frame.confident(idx, classifier.GATE.get(idx, 0.5)) is not None
            for idx in indices
        )
        if not visible:
            missing.append(group)

    if not missing:
        return TrackingReport(TrackingHealth.GOOD, [])

    health = TrackingHealth.PARTIAL if len(missing) == 1 else TrackingHealth.LOST
    return TrackingReport(health, missing, HINTS[missing[0]])
