"""
Real-time rep counting pipeline over body keypoint frames.

PIPELINE COMPONENTS:
1. landmarks: LandmarkFrame / Keypoint types (BlazePose 33-point layout)
2. keypoint_smoother: EMA temporal smoothing
3. rep_classifiers: Per-exercise hysteresis state machines and registry
4. calibration: Two-step manual / hands-free threshold personalization
5. bar_reference: Reference line for pull-up style exercises
6. tracking_health: Visibility summary and camera hints
7. rep_quality: Clean / ok / sloppy labels and session aggregation
8. session_engine: Pure per-frame orchestration

EXERCISE FAMILIES:
- Open/close: jumping jacks
- Hinge angle: squats, lunges, jump squats
- Alternating lift: high knees
- Multi-gate: burpees
- Reference line: pull-ups, chin-ups

Usage:
    from repcounter.cv import new_session, process_frame

    snapshot = new_session("squats", now_ms=0.0, has_profile=False)
    for frame in frames:
        outcome = process_frame(snapshot, frame, frame.timestamp_ms)
        snapshot = outcome.snapshot
        if outcome.decision.is_rep:
            print(f"Rep {snapshot.exercise.rep_count}: {outcome.quality.value}")
"""

from repcounter.cv.landmarks import (
    BodyGroup, Keypoint, LandmarkFrame, MediaPipeLandmark, frame_from_points
)
from repcounter.cv.geometry import angle_at_vertex, distance, midpoint, weighted_midpoint
from repcounter.cv.keypoint_smoother import smooth_landmarks
from repcounter.cv.exercise_state import (
    Decision, DecisionKind, ExerciseState, Phase, RepProgress, Side
)
from repcounter.cv.calibration_profile import CalibrationProfile
from repcounter.cv.bar_reference import BarLocator, BarReference, LocatorMode
from repcounter.cv.rep_classifiers import (
    ClassifierRegistry,
    ExerciseClassifier,
    OpenCloseClassifier,
    HingeAngleClassifier,
    SquatClassifier,
    LungeClassifier,
    JumpSquatClassifier,
    AlternatingLiftClassifier,
    MultiGateClassifier,
    ReferenceLineClassifier,
    ChinUpClassifier,
    DEFAULT_REGISTRY,
    create_default_registry,
    get_classifier,
)
from repcounter.cv.calibration import CalibrationState, CalibrationStatus
from repcounter.cv.tracking_health import TrackingHealth, TrackingReport
from repcounter.cv.rep_quality import (
    QualityAggregate, QualityLabel, QualityTally, classify_rep_quality
)
from repcounter.cv.session_engine import (
    EngineSettings,
    FrameOutcome,
    SessionSnapshot,
    SessionTotals,
    new_session,
    process_frame,
    switch_exercise,
)

__all__ = [
    # Frames & geometry
    "BodyGroup",
    "Keypoint",
    "LandmarkFrame",
    "MediaPipeLandmark",
    "frame_from_points",
    "angle_at_vertex",
    "distance",
    "midpoint",
    "weighted_midpoint",

    # Smoothing
    "smooth_landmarks",

    # Exercise state
    "Decision",
    "DecisionKind",
    "ExerciseState",
    "Phase",
    "RepProgress",
    "Side",

    # Classifiers
    "ClassifierRegistry",
    "ExerciseClassifier",
    "OpenCloseClassifier",
    "HingeAngleClassifier",
    "SquatClassifier",
    "LungeClassifier",
    "JumpSquatClassifier",
    "AlternatingLiftClassifier",
    "MultiGateClassifier",
    "ReferenceLineClassifier",
    "ChinUpClassifier",
    "DEFAULT_REGISTRY",
    "create_default_registry",
    "get_classifier",

    # Calibration & bar
    "CalibrationProfile",
    "CalibrationState",
    "CalibrationStatus",
    "BarLocator",
    "BarReference",
    "LocatorMode",

    # Health & quality
    "TrackingHealth",
    "TrackingReport",
    "QualityAggregate",
    "QualityLabel",
    "QualityTally",
    "classify_rep_quality",

    # Pipeline
    "EngineSettings",
    "FrameOutcome",
    "SessionSnapshot",
    "SessionTotals",
    "new_session",
    "process_frame",
    "switch_exercise",
]
