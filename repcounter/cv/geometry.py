"""2D geometry helpers for keypoint analysis."""

import numpy as np

from repcounter.cv.landmarks import Keypoint

# Floor for denominators in ratio and angle math
EPSILON = 1e-6


def clamp01(value: float) -> float:
    return float(min(1.0, max(0.0, value)))


def distance(a: Keypoint, b: Keypoint) -> float:
    """Euclidean distance in the image plane."""
    return float(np.hypot(a.x - b.x, a.y - b.y))


def angle_at_vertex(a: Keypoint, b: Keypoint, c: Keypoint) -> float:
    """
    Angle ABC at vertex b, in degrees.

    The cosine is clamped to [-1, 1] and the denominator floored at EPSILON so
    coincident points produce a finite angle instead of raising.
    """
    ab = np.array([a.x - b.x, a.y - b.y])
    cb = np.array([c.x - b.x, c.y - b.y])

    denom = max(float(np.linalg.norm(ab) * np.linalg.norm(cb)), EPSILON)
    cos = np.clip(np.dot(ab, cb) / denom, -1.0, 1.0)
    return float(np.degrees(np.arccos(cos)))


def midpoint(a: Keypoint, b: Keypoint) -> Keypoint:
    return Keypoint(x=(a.x + b.x) / 2, y=(a.y + b.y) / 2)


def weighted_midpoint(a: Keypoint, b: Keypoint) -> Keypoint:
    """Midpoint pulled towards the more confident keypoint."""
    wa = a.visibility if a.visibility is not None else 1.0
    wb = b.visibility if b.visibility is not None else 1.0
    total = wa + wb
    if total < EPSILON:
        return midpoint(a, b)
    return Keypoint(
        x=(a.x * wa + b.x * wb) / total,
        y=(a.y * wa + b.y * wb) / total,
        visibility=max(wa, wb),
    )


def safe_ratio(numerator: float, denominator: float) -> float:
    return numerator / max(denominator, EPSILON)
