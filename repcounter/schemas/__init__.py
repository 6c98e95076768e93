"""Pydantic schemas for API request/response models."""

from repcounter.schemas.frame import (
    KeypointIn,
    FrameIn,
)
from repcounter.schemas.session import (
    SessionCreate,
    ExerciseSwitch,
    DecisionResponse,
    ExerciseStateResponse,
    TrackingResponse,
    CalibrationStatusResponse,
    BarLocatorResponse,
    QualitySummaryResponse,
    SessionTotalsResponse,
    SessionStateResponse,
    FrameResultResponse,
)
from repcounter.schemas.calibration import (
    CalibrationCapture,
    CalibrationProfileResponse,
    BarPoint,
)
from repcounter.schemas.workout import (
    WorkoutGoalIn,
    WorkoutGoalResponse,
    SessionEnd,
    WorkoutResponse,
    WorkoutListResponse,
    QualityTrendPoint,
    QualityTrendResponse,
)

__all__ = [
    "KeypointIn",
    "FrameIn",
    "SessionCreate",
    "ExerciseSwitch",
    "DecisionResponse",
    "ExerciseStateResponse",
    "TrackingResponse",
    "CalibrationStatusResponse",
    "BarLocatorResponse",
    "QualitySummaryResponse",
    "SessionTotalsResponse",
    "SessionStateResponse",
    "FrameResultResponse",
    "CalibrationCapture",
    "CalibrationProfileResponse",
    "BarPoint",
    "WorkoutGoalIn",
    "WorkoutGoalResponse",
    "SessionEnd",
    "WorkoutResponse",
    "WorkoutListResponse",
    "QualityTrendPoint",
    "QualityTrendResponse",
]
