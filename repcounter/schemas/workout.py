"""Workout history schemas."""

from datetime import datetime
from typing import Optional, List, Dict
from pydantic import BaseModel, Field, field_validator

from repcounter.cv.rep_classifiers import DEFAULT_REGISTRY
from repcounter.models.workout import WorkoutMode
from repcounter.schemas.session import QualitySummaryResponse


class WorkoutGoalIn(BaseModel):
    """Rep target for one exercise; whether it was reached is computed on save."""
    exercise: str
    target_reps: int = Field(..., ge=1)

    @field_validator("exercise")
    @classmethod
    def validate_exercise(cls, v: str) -> str:
        if v not in DEFAULT_REGISTRY:
            raise ValueError(f"Unsupported exercise: {v}")
        return v


class WorkoutGoalResponse(BaseModel):
    exercise: str
    target_reps: int
    reached: bool


class SessionEnd(BaseModel):
    """Schema for finalizing a live session into the history."""
    mode: str = Field(WorkoutMode.FREE, description="free, plan or custom")
    plan_id: Optional[str] = Field(None, max_length=100)
    plan_name: Optional[str] = Field(None, max_length=200)
    goal: Optional[WorkoutGoalIn] = None

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: str) -> str:
        if v not in WorkoutMode.all():
            raise ValueError(f"mode must be one of: {WorkoutMode.all()}")
        return v


class WorkoutResponse(BaseModel):
    """Schema for a stored workout session."""
    id: str
    started_at: datetime
    ended_at: datetime
    duration_seconds: float
    mode: str
    plan_id: Optional[str] = None
    plan_name: Optional[str] = None
    goal: Optional[WorkoutGoalResponse] = None
    total_reps: int
    total_rejects: int
    reps_by_exercise: Dict[str, int]
    quality_summary: Optional[QualitySummaryResponse] = None
    created_at: datetime

    class Config:
        from_attributes = True


class WorkoutListResponse(BaseModel):
    """Schema for paginated workout list."""
    items: List[WorkoutResponse]
    total: int
    page: int
    page_size: int
    has_more: bool


class QualityTrendPoint(BaseModel):
    """Quality mix for one day."""
    date: str
    sessions: int
    total_reps: int
    clean: int
    ok: int
    sloppy: int
    clean_pct: float
    avg_rom_pct: Optional[float] = None


class QualityTrendResponse(BaseModel):
    days: int
    points: List[QualityTrendPoint]
    by_exercise: Dict[str, Dict[str, Optional[float]]]
