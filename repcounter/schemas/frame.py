"""Landmark frame schemas."""

from typing import List, Optional
from pydantic import BaseModel, Field

from repcounter.cv.landmarks import MAX_LANDMARKS, Keypoint, LandmarkFrame


class KeypointIn(BaseModel):
    """Single keypoint in normalized image coordinates."""
    x: float
    y: float
    z: Optional[float] = None
    visibility: Optional[float] = Field(None, ge=0.0, le=1.0)


class FrameIn(BaseModel):
    """
    One frame from the pose provider.

    keypoints is null (or empty) when no pose was detected.
    """
    timestamp_ms: float = Field(..., ge=0)
    keypoints: Optional[List[KeypointIn]] = Field(None, max_length=MAX_LANDMARKS)

    def to_frame(self) -> Optional[LandmarkFrame]:
        if not self.keypoints:
            return None
        return LandmarkFrame(
            timestamp_ms=self.timestamp_ms,
            keypoints=[
                Keypoint(x=kp.x, y=kp.y, z=kp.z, visibility=kp.visibility)
                for kp in self.keypoints
            ],
        )
