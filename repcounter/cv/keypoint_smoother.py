"""
Temporal keypoint smoothing using an Exponential Moving Average.

Each coordinate is blended with the previous smoothed frame:

    smoothed = prev + (raw - prev) * alpha

Visibility passes through unchanged: it gates how much a keypoint is
trusted, it is not geometry. A cold start (no previous frame) or a change in
landmark count re-seeds the smoother with the raw frame.
"""

import logging
from typing import Optional

from repcounter.cv.landmarks import Keypoint, LandmarkFrame

logger = logging.getLogger(__name__)

DEFAULT_ALPHA = 0.25


def smooth_landmarks(
    prev: Optional[LandmarkFrame],
    raw: LandmarkFrame,
    alpha: float = DEFAULT_ALPHA
) -> LandmarkFrame:
    """
    Blend a raw frame against the previous smoothed frame.

    Args:
        prev: Previous smoothed frame, or None on cold start
        raw: Newly captured frame
        alpha: Blend factor (0 = frozen, 1 = no smoothing)

    Returns:
        New smoothed frame carrying the raw frame's timestamp
    """
    if prev is None or len(prev) != len(raw):
        if prev is not None:
            logger.debug(f"Landmark count changed ({len(prev)} -> {len(raw)}), re-seeding smoother")
        return LandmarkFrame(timestamp_ms=raw.timestamp_ms, keypoints=raw.keypoints)

    keypoints = []
    for p, n in zip(prev.keypoints, raw.keypoints):
        if n.z is not None and p.z is not None:
            z = p.z + (n.z - p.z) * alpha
        else:
            z = n.z
        keypoints.append(Keypoint(
            x=p.x + (n.x - p.x) * alpha,
            y=p.y + (n.y - p.y) * alpha,
            z=z,
            visibility=n.visibility
        ))

    return LandmarkFrame(timestamp_ms=raw.timestamp_ms, keypoints=keypoints)

