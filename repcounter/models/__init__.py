"""Database models."""

from repcounter.models.base import Base
from repcounter.models.calibration_profile import CalibrationProfileRecord
from repcounter.models.workout import WorkoutSession, WorkoutMode

__all__ = [
    "Base",
    "CalibrationProfileRecord",
    "WorkoutSession",
    "WorkoutMode",
]
