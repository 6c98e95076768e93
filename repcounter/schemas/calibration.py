"""Calibration and bar reference schemas."""

from datetime import datetime
from typing import Dict, Optional
from pydantic import BaseModel, Field


class CalibrationCapture(BaseModel):
    """Manual capture of one calibration step from the latest frame."""
    step: int = Field(..., description="0 = first pose, 1 = second pose")


class CalibrationProfileResponse(BaseModel):
    exercise_id: str
    values: Dict[str, float]
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BarPoint(BaseModel):
    """Manual bar placement point in normalized image coordinates."""
    x: float = Field(..., ge=0.0, le=1.0)
    y: float = Field(..., ge=0.0, le=1.0)
