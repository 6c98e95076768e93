"""Live session schemas."""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class SessionCreate(BaseModel):
    """Schema for starting a live session."""
    exercise_id: str = Field(..., description="Exercise to count, e.g. squats or jumping_jacks")
    calibration_enabled: Optional[bool] = Field(
        None, description="Override the hands-free calibration setting for this session"
    )


class ExerciseSwitch(BaseModel):
    exercise_id: str


class DecisionResponse(BaseModel):
    kind: str  # "none", "rep", "reject"
    message: str
    rom_pct: Optional[float] = None
    id: int


class ExerciseStateResponse(BaseModel):
    exercise_id: str
    phase: str
    rep_count: int
    last_phase_change_ms: float
    last_rep_ms: Optional[float] = None
    reached_extreme: bool
    last_side: str
    feedback: str
    rom_pct: Optional[float] = None
    decision: DecisionResponse


class TrackingResponse(BaseModel):
    health: str  # "good", "partial", "lost"
    missing: List[str]
    hint: Optional[str] = None


class CalibrationStatusResponse(BaseModel):
    status: str  # "idle", "sampling", "done"
    step: int
    stable_ms: float
    stable_target_ms: float
    title: Optional[str] = None
    hint: Optional[str] = None


class BarReferenceResponse(BaseModel):
    y: float
    x_min: float
    x_max: float


class BarLocatorResponse(BaseModel):
    mode: str  # "unset", "draft", "auto_sampling", "set"
    reference: Optional[BarReferenceResponse] = None
    draft_point: Optional[List[float]] = None


class QualityTallyResponse(BaseModel):
    clean: int
    ok: int
    sloppy: int
    rom_sum: float
    rom_count: int
    avg_rom_pct: Optional[float] = None


class QualitySummaryResponse(QualityTallyResponse):
    by_exercise: Dict[str, QualityTallyResponse] = {}


class SessionTotalsResponse(BaseModel):
    total_reps: int
    total_rejects: int
    reps_by_exercise: Dict[str, int]


class SessionStateResponse(BaseModel):
    """Full snapshot of a live session."""
    id: str
    paused: bool
    exercise: ExerciseStateResponse
    calibration: CalibrationStatusResponse
    calibrated: bool
    bar: BarLocatorResponse
    tracking: Optional[TrackingResponse] = None
    totals: SessionTotalsResponse
    quality: QualitySummaryResponse
    last_quality: Optional[str] = None


class FrameResultResponse(BaseModel):
    """Result of processing one frame."""
    skipped: bool
    decision: DecisionResponse
    quality: Optional[str] = None  # Label of the rep counted on this frame
    calibration_captured: bool = False
    state: SessionStateResponse
