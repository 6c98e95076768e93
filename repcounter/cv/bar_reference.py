"""
Reference line ("bar") locator for pull-up style exercises.

Two ways to place the bar:

1. Manual: the first point is kept as a draft, the second finalizes a
   horizontal line at the vertical midpoint of both points spanning their
   x-range.
2. Auto: wrist heights are sampled for a short window while the athlete
   hangs; with enough confident samples the line is placed at the median
   wrist height, a small offset below the hands.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple

import numpy as np

from repcounter.cv.landmarks import LandmarkFrame, MediaPipeLandmark

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BarReference:
    """Horizontal reference line in normalized image coordinates."""
    y: float
    x_min: float
    x_max: float

    def to_dict(self) -> dict:
        return {"y": self.y, "x_min": self.x_min, "x_max": self.x_max}


class LocatorMode(Enum):
    UNSET = "unset"
    DRAFT = "draft"            # One manual point recorded
    AUTO_SAMPLING = "auto_sampling"
    SET = "set"


@dataclass(frozen=True)
class BarLocator:
    """Immutable locator state; every operation returns a new locator."""
    mode: LocatorMode = LocatorMode.UNSET
    reference: Optional[BarReference] = None
    draft_point: Optional[Tuple[float, float]] = None
    sampling_started_ms: Optional[float] = None
    samples_y: Tuple[float, ...] = field(default_factory=tuple)
    samples_x: Tuple[float, ...] = field(default_factory=tuple)

    # Auto placement defaults
    AUTO_WINDOW_MS = 900.0
    AUTO_MIN_SAMPLES = 10
    AUTO_OFFSET = 0.02
    WRIST_MIN_CONFIDENCE = 0.5

    @property
    def is_set(self) -> bool:
        return self.reference is not None

    def add_point(self, x: float, y: float) -> "BarLocator":
        """Manual placement: draft on the first point, finalize on the second."""
        if self.mode != LocatorMode.DRAFT or self.draft_point is None:
            logger.debug(f"Bar draft point at ({x:.3f}, {y:.3f})")
            return BarLocator(
                mode=LocatorMode.DRAFT,
                reference=self.reference,
                draft_point=(x, y),
            )

        x0, y0 = self.draft_point
        reference = BarReference(y=(y0 + y) / 2, x_min=min(x0, x), x_max=max(x0, x))
        logger.info(f"Bar set manually at y={reference.y:.3f} "
                   f"(x {reference.x_min:.3f}-{reference.x_max:.3f})")
        return BarLocator(mode=LocatorMode.SET, reference=reference)

    def start_auto(self, now_ms: Optional[float] = None) -> "BarLocator":
        """Begin wrist sampling; without a timestamp the window opens on the next frame."""
        logger.info("Bar auto-placement started")
        return BarLocator(
            mode=LocatorMode.AUTO_SAMPLING,
            reference=self.reference,
            sampling_started_ms=now_ms,
        )

    def update(
        self,
        frame: Optional[LandmarkFrame],
        now_ms: float,
        window_ms: float = AUTO_WINDOW_MS,
        min_samples: int = AUTO_MIN_SAMPLES,
        offset: float = AUTO_OFFSET
    ) -> "BarLocator":
        """Feed a frame while auto-sampling; no-op in any other mode."""
        if self.mode != LocatorMode.AUTO_SAMPLING:
            return self
        started_ms = self.sampling_started_ms if self.sampling_started_ms is not None else now_ms

        samples_y = self.samples_y
        samples_x = self.samples_x
        if frame is not None:
            wrists = [
                frame.confident(idx, self.WRIST_MIN_CONFIDENCE)
                for idx in (MediaPipeLandmark.LEFT_WRIST, MediaPipeLandmark.RIGHT_WRIST)
            ]
            wrists = [w for w in wrists if w is not None]
            if wrists:
                samples_y = samples_y + (float(np.mean([w.y for w in wrists])),)
                samples_x = samples_x + tuple(w.x for w in wrists)

        if now_ms - started_ms < window_ms:
            return replace(
                self, sampling_started_ms=started_ms, samples_y=samples_y, samples_x=samples_x
            )

        if len(samples_y) < min_samples:
            logger.warning(f"Bar auto-placement aborted: {len(samples_y)} samples "
                          f"< {min_samples} required")
            return BarLocator(mode=LocatorMode.UNSET)

        # Image y grows downwards: +offset sits just below the hands
        reference = BarReference(
            y=float(np.median(samples_y)) + offset,
            x_min=float(min(samples_x)),
            x_max=float(max(samples_x)),
        )
        logger.info(f"Bar set automatically at y={reference.y:.3f} from {len(samples_y)} samples")
        return BarLocator(mode=LocatorMode.SET, reference=reference)

    def clear(self) -> "BarLocator":
        return BarLocator()

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "reference": self.reference.to_dict() if self.reference else None,
            "draft_point": list(self.draft_point) if self.draft_point else None,
        }
