"""
Session Engine

Frame-synchronous pipeline for one live session:

    raw frame → EMA smoothing → bar locator → hands-free calibration
              → exercise classifier → tracking health → rep quality

process_frame() is a pure function over an immutable SessionSnapshot and
explicit inputs (calibration profile, engine settings, classifier registry).
Callers own the snapshot and swap it atomically.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Optional

from repcounter.cv import calibration as calib
from repcounter.cv.bar_reference import BarLocator
from repcounter.cv.calibration_profile import CalibrationProfile
from repcounter.cv.exercise_state import Decision, ExerciseState, NO_DECISION
from repcounter.cv.keypoint_smoother import DEFAULT_ALPHA, smooth_landmarks
from repcounter.cv.landmarks import LandmarkFrame
from repcounter.cv.rep_classifiers import (
    DEFAULT_REGISTRY,
    ClassifierRegistry,
    ReferenceLineClassifier,
)
from repcounter.cv.rep_quality import QualityAggregate, QualityLabel, classify_rep_quality
from repcounter.cv.tracking_health import TrackingReport, assess

logger = logging.getLogger(__name__)

PAUSED_FEEDBACK = "Paused."


@dataclass(frozen=True)
class EngineSettings:
    """Tunables for the pipeline, usually built from application settings."""
    smoothing_alpha: float = DEFAULT_ALPHA
    calibration_enabled: bool = True
    calibration_stable_ms: float = calib.STABLE_MS
    calibration_cooldown_ms: float = calib.COOLDOWN_MS
    calibration_timeout_ms: Optional[float] = None
    bar_window_ms: float = BarLocator.AUTO_WINDOW_MS
    bar_min_samples: int = BarLocator.AUTO_MIN_SAMPLES
    bar_offset: float = BarLocator.AUTO_OFFSET

    @classmethod
    def from_settings(cls, settings) -> "EngineSettings":
        return cls(
            smoothing_alpha=settings.smoothing_alpha,
            calibration_enabled=settings.calibration_enabled,
            calibration_stable_ms=settings.calibration_stable_ms,
            calibration_cooldown_ms=settings.calibration_cooldown_ms,
            calibration_timeout_ms=settings.calibration_timeout_ms,
            bar_window_ms=settings.bar_auto_window_ms,
            bar_min_samples=settings.bar_auto_min_samples,
            bar_offset=settings.bar_auto_offset,
        )


@dataclass(frozen=True)
class SessionTotals:
    """Counts across every exercise performed in the session."""
    total_reps: int = 0
    total_rejects: int = 0
    reps_by_exercise: Dict[str, int] = field(default_factory=dict)

    def record(self, exercise_id: str, decision: Decision) -> "SessionTotals":
        if decision.is_rep:
            reps = dict(self.reps_by_exercise)
            reps[exercise_id] = reps.get(exercise_id, 0) + 1
            return replace(self, total_reps=self.total_reps + 1, reps_by_exercise=reps)
        if decision.is_reject:
            return replace(self, total_rejects=self.total_rejects + 1)
        return self

    def to_dict(self) -> dict:
        return {
            "total_reps": self.total_reps,
            "total_rejects": self.total_rejects,
            "reps_by_exercise": dict(self.reps_by_exercise),
        }


@dataclass(frozen=True)
class SessionSnapshot:
    exercise: ExerciseState
    smoothed: Optional[LandmarkFrame] = None
    last_frame_ms: Optional[float] = None
    calibration: calib.CalibrationState = calib.IDLE
    bar: BarLocator = field(default_factory=BarLocator)
    quality: QualityAggregate = field(default_factory=QualityAggregate)
    totals: SessionTotals = field(default_factory=SessionTotals)
    last_quality: Optional[QualityLabel] = None
    tracking: Optional[TrackingReport] = None
    paused: bool = False

    @property
    def exercise_id(self) -> str:
        return self.exercise.exercise_id


@dataclass(frozen=True)
class FrameOutcome:
    """Result of feeding one frame to the pipeline."""
    snapshot: SessionSnapshot
    decision: Decision = NO_DECISION
    quality: Optional[QualityLabel] = None
    # Profile captured by hands-free calibration on this frame, to be persisted
    captured_profile: Optional[CalibrationProfile] = None
    skipped: bool = False


# =============================================================================
# Session lifecycle
# =============================================================================

def new_session(
    exercise_id: str,
    has_profile: bool,
    now_ms: Optional[float] = None,
    settings: EngineSettings = EngineSettings(),
    registry: ClassifierRegistry = DEFAULT_REGISTRY
) -> SessionSnapshot:
    """Raises ValueError for an unknown exercise id."""
    registry.get(exercise_id)
    return SessionSnapshot(
        exercise=ExerciseState.initial(exercise_id),
        calibration=calib.initial_state(
            exercise_id, has_profile, settings.calibration_enabled, now_ms
        ),
    )


def switch_exercise(
    snapshot: SessionSnapshot,
    exercise_id: str,
    has_profile: bool,
    now_ms: Optional[float] = None,
    settings: EngineSettings = EngineSettings(),
    registry: ClassifierRegistry = DEFAULT_REGISTRY
) -> SessionSnapshot:
    """
    Select another exercise: counting state and in-flight calibration are
    discarded, session totals and quality are kept. The bar is cleared when
    the new exercise does not use one.
    """
    new_classifier = registry.get(exercise_id)
    bar = snapshot.bar
    if not isinstance(new_classifier, ReferenceLineClassifier):
        bar = bar.clear()

    logger.info(f"Switching exercise {snapshot.exercise_id} → {exercise_id}")
    return replace(
        snapshot,
        exercise=ExerciseState.initial(exercise_id),
        calibration=calib.initial_state(
            exercise_id, has_profile, settings.calibration_enabled, now_ms
        ),
        bar=bar,
        last_quality=None,
    )


def set_paused(snapshot: SessionSnapshot, paused: bool) -> SessionSnapshot:
    return replace(snapshot, paused=paused)


def restart_calibration(
    snapshot: SessionSnapshot,
    now_ms: Optional[float] = None,
    settings: EngineSettings = EngineSettings()
) -> SessionSnapshot:
    """After the active profile was cleared: sample again when enabled."""
    return replace(
        snapshot,
        calibration=calib.initial_state(
            snapshot.exercise_id, False, settings.calibration_enabled, now_ms
        ),
    )


def start_auto_calibration(
    snapshot: SessionSnapshot,
    now_ms: Optional[float] = None,
    registry: ClassifierRegistry = DEFAULT_REGISTRY
) -> SessionSnapshot:
    """Raises ValueError when the active exercise is not calibratable."""
    calib.require_recipe(registry.get(snapshot.exercise_id).exercise_id)
    return replace(snapshot, calibration=calib.start_sampling(now_ms))


def capture_calibration(
    snapshot: SessionSnapshot,
    profile: Optional[CalibrationProfile],
    step: int,
    registry: ClassifierRegistry = DEFAULT_REGISTRY
) -> Optional[CalibrationProfile]:
    """Manual capture from the latest smoothed frame, None on low confidence."""
    classifier = registry.get(snapshot.exercise_id)
    return calib.capture(classifier, profile, snapshot.smoothed, step, snapshot.bar.reference)


def summarize(snapshot: SessionSnapshot) -> dict:
    """Finalized totals and quality aggregate for the history store."""
    return {
        **snapshot.totals.to_dict(),
        "quality": snapshot.quality.snapshot(),
    }


# =============================================================================
# Per-frame pipeline
# =============================================================================

def process_frame(
    snapshot: SessionSnapshot,
    frame: Optional[LandmarkFrame],
    now_ms: float,
    profile: Optional[CalibrationProfile] = None,
    settings: EngineSettings = EngineSettings(),
    registry: ClassifierRegistry = DEFAULT_REGISTRY
) -> FrameOutcome:
    """
    Feed one frame (None = no pose detected) through the pipeline.

    Frames whose timestamp does not advance past the previous frame are
    skipped entirely.
    """
    if snapshot.last_frame_ms is not None and now_ms <= snapshot.last_frame_ms:
        logger.debug(f"Skipping frame at {now_ms:.0f}ms (last {snapshot.last_frame_ms:.0f}ms)")
        return FrameOutcome(snapshot=snapshot, skipped=True)

    classifier = registry.get(snapshot.exercise_id)

    current = None
    smoothed = snapshot.smoothed
    if frame is not None:
        current = smooth_landmarks(snapshot.smoothed, frame, settings.smoothing_alpha)
        smoothed = current

    bar = snapshot.bar.update(
        current, now_ms,
        window_ms=settings.bar_window_ms,
        min_samples=settings.bar_min_samples,
        offset=settings.bar_offset,
    )

    calibration_state, captured = calib.update(
        snapshot.calibration, classifier, profile, current, now_ms,
        bar=bar.reference,
        stable_needed_ms=settings.calibration_stable_ms,
        cooldown_ms=settings.calibration_cooldown_ms,
        timeout_ms=settings.calibration_timeout_ms,
    )
    if captured is not None:
        profile = captured

    tracking = assess(classifier, current)

    prev = snapshot.exercise
    if snapshot.paused:
        exercise = replace(prev, feedback=PAUSED_FEEDBACK, decision=NO_DECISION)
    else:
        exercise = classifier.classify(prev, current, now_ms, profile, bar.reference)

    decision = exercise.decision
    quality_label = None
    quality = snapshot.quality
    last_quality = snapshot.last_quality
    if decision.is_rep:
        quality_label = classify_rep_quality(
            snapshot.exercise_id, now_ms, prev.last_rep_ms, decision.rom_pct
        )
        quality = quality.record(snapshot.exercise_id, quality_label, decision.rom_pct)
        last_quality = quality_label

    new_snapshot = replace(
        snapshot,
        exercise=exercise,
        smoothed=smoothed,
        last_frame_ms=now_ms,
        calibration=calibration_state,
        bar=bar,
        quality=quality,
        totals=snapshot.totals.record(snapshot.exercise_id, decision),
        last_quality=last_quality,
        tracking=tracking,
    )
    return FrameOutcome(
        snapshot=new_snapshot,
        decision=decision,
        quality=quality_label,
        captured_profile=captured,
    )
