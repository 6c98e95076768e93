"""
Landmark frame types for the real-time rep counter.

Frames arrive from an external pose provider as an ordered list of up to 33
BlazePose keypoints with normalized image coordinates (0-1, y grows
downwards), an optional depth and an optional visibility score.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Optional, Sequence


MAX_LANDMARKS = 33


class MediaPipeLandmark(IntEnum):
    """MediaPipe Pose landmark indices for quick reference."""
    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


class BodyGroup(Enum):
    """Landmark groups used for visibility checks, in hint priority order."""
    LOWER_BODY = "lower_body"
    UPPER_BODY = "upper_body"
    ARMS = "arms"


@dataclass(frozen=True)
class Keypoint:
    """Single keypoint with 2D position, optional depth and visibility."""
    x: float  # Normalized x coordinate (0-1)
    y: float  # Normalized y coordinate (0-1, 0 = top of frame)
    z: Optional[float] = None  # Depth relative to hips
    visibility: Optional[float] = None  # Confidence score (0-1), None = not reported

    def is_confident(self, min_visibility: float = 0.5) -> bool:
        """Keypoints without a visibility score are trusted."""
        if self.visibility is None:
            return True
        return self.visibility >= min_visibility


@dataclass(frozen=True)
class LandmarkFrame:
    """All keypoints for a single captured frame."""
    timestamp_ms: float
    keypoints: Sequence[Keypoint] = field(default_factory=tuple)

    def __post_init__(self):
        if len(self.keypoints) > MAX_LANDMARKS:
            raise ValueError(
                f"Frame carries {len(self.keypoints)} keypoints, max is {MAX_LANDMARKS}"
            )
        object.__setattr__(self, "keypoints", tuple(self.keypoints))

    def __len__(self) -> int:
        return len(self.keypoints)

    def get(self, idx: int) -> Optional[Keypoint]:
        if 0 <= idx < len(self.keypoints):
            return self.keypoints[idx]
        return None

    def confident(self, idx: int, min_visibility: float = 0.5) -> Optional[Keypoint]:
        """Return the keypoint if present and confident enough, else None."""
        kp = self.get(idx)
        if kp is None or not kp.is_confident(min_visibility):
            return None
        return kp


def frame_from_points(
    timestamp_ms: float,
    points: List[tuple],
) -> LandmarkFrame:
    """
    Build a frame from raw tuples.

    Each tuple is (x, y), (x, y, z) or (x, y, z, visibility).
    """
    keypoints = []
    for point in points:
        x, y = point[0], point[1]
        z = point[2] if len(point) > 2 else None
        visibility = point[3] if len(point) > 3 else None
        keypoints.append(Keypoint(x=x, y=y, z=z, visibility=visibility))
    return LandmarkFrame(timestamp_ms=timestamp_ms, keypoints=keypoints)
