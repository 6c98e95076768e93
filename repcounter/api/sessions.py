"""Live session API endpoints."""

import logging
from dataclasses import replace
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from repcounter.config import Settings, get_settings
from repcounter.cv.rep_classifiers import ReferenceLineClassifier
from repcounter.cv.session_engine import EngineSettings
from repcounter.database import get_db
from repcounter.history import delete_profile, load_profile, save_profile, store_workout
from repcounter.schemas.calibration import BarPoint, CalibrationCapture, CalibrationProfileResponse
from repcounter.schemas.frame import FrameIn
from repcounter.schemas.session import (
    DecisionResponse,
    ExerciseSwitch,
    FrameResultResponse,
    SessionCreate,
    SessionStateResponse,
)
from repcounter.schemas.workout import SessionEnd, WorkoutResponse
from repcounter.sessions import LiveSession, SessionLimitReached, SessionRegistry, get_session_registry

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_session(session_id: str, registry: SessionRegistry) -> LiveSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found"
        )
    return session


def _state(session: LiveSession) -> SessionStateResponse:
    return SessionStateResponse.model_validate(session.describe())


def _require_bar_exercise(session: LiveSession):
    if not isinstance(session.registry.get(session.exercise_id), ReferenceLineClassifier):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{session.exercise_id} does not use a bar reference"
        )


@router.post("", response_model=SessionStateResponse, status_code=status.HTTP_201_CREATED)
def start_session(
    payload: SessionCreate,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_session_registry),
    settings: Settings = Depends(get_settings)
):
    """Start a live counting session."""
    engine_settings = EngineSettings.from_settings(settings)
    if payload.calibration_enabled is not None:
        engine_settings = replace(engine_settings, calibration_enabled=payload.calibration_enabled)

    try:
        session = LiveSession(
            payload.exercise_id,
            profile=load_profile(db, payload.exercise_id),
            settings=engine_settings,
        )
        registry.add(session)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SessionLimitReached as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return _state(session)


@router.get("/{session_id}", response_model=SessionStateResponse)
def get_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Current snapshot of a live session."""
    return _state(_get_session(session_id, registry))


@router.post("/{session_id}/frames", response_model=FrameResultResponse)
def process_frame(
    session_id: str,
    frame: FrameIn,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_session_registry)
):
    """
    Feed one landmark frame.

    Frames whose timestamp does not advance are skipped. A hands-free
    calibration capture on this frame is persisted immediately.
    """
    session = _get_session(session_id, registry)
    outcome = session.process(frame.to_frame(), frame.timestamp_ms)

    if outcome.captured_profile is not None:
        save_profile(db, outcome.captured_profile)

    exercise = outcome.snapshot.exercise
    return FrameResultResponse(
        skipped=outcome.skipped,
        decision=DecisionResponse(
            kind=outcome.decision.kind.value,
            message=outcome.decision.message,
            rom_pct=outcome.decision.rom_pct,
            id=exercise.decision_id,
        ),
        quality=outcome.quality.value if outcome.quality else None,
        calibration_captured=outcome.captured_profile is not None,
        state=_state(session),
    )


@router.put("/{session_id}/exercise", response_model=SessionStateResponse)
def switch_exercise(
    session_id: str,
    payload: ExerciseSwitch,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Select another exercise; counting restarts, session totals are kept."""
    session = _get_session(session_id, registry)
    try:
        session.switch_exercise(payload.exercise_id, load_profile(db, payload.exercise_id))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _state(session)


@router.post("/{session_id}/pause", response_model=SessionStateResponse)
def pause_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry)
):
    session = _get_session(session_id, registry)
    session.set_paused(True)
    return _state(session)


@router.post("/{session_id}/resume", response_model=SessionStateResponse)
def resume_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry)
):
    session = _get_session(session_id, registry)
    session.set_paused(False)
    return _state(session)


@router.post("/{session_id}/calibration/capture", response_model=CalibrationProfileResponse)
def capture_calibration(
    session_id: str,
    payload: CalibrationCapture,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Capture one calibration step from the latest frame."""
    session = _get_session(session_id, registry)
    try:
        profile = session.capture_calibration(payload.step)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Pose not visible enough to capture. Step back and try again."
        )
    return CalibrationProfileResponse.model_validate(save_profile(db, profile))


@router.post("/{session_id}/calibration/auto", response_model=SessionStateResponse)
def start_auto_calibration(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Start hands-free calibration for the active exercise."""
    session = _get_session(session_id, registry)
    try:
        session.start_auto_calibration()
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _state(session)


@router.delete("/{session_id}/calibration", response_model=SessionStateResponse)
def clear_calibration(
    session_id: str,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Delete the active exercise's profile and restart calibration."""
    session = _get_session(session_id, registry)
    exercise_id = session.exercise_id
    delete_profile(db, exercise_id)
    registry.profile_cleared(exercise_id)
    return _state(session)


@router.post("/{session_id}/bar/points", response_model=SessionStateResponse)
def add_bar_point(
    session_id: str,
    point: BarPoint,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Manual bar placement: first point drafts, second point sets the bar."""
    session = _get_session(session_id, registry)
    _require_bar_exercise(session)
    session.add_bar_point(point.x, point.y)
    return _state(session)


@router.post("/{session_id}/bar/auto", response_model=SessionStateResponse)
def start_bar_auto(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Place the bar from wrist heights sampled over the next frames."""
    session = _get_session(session_id, registry)
    _require_bar_exercise(session)
    session.start_bar_auto()
    return _state(session)


@router.delete("/{session_id}/bar", response_model=SessionStateResponse)
def clear_bar(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry)
):
    session = _get_session(session_id, registry)
    session.clear_bar()
    return _state(session)


@router.post("/{session_id}/end", response_model=WorkoutResponse)
def end_session(
    session_id: str,
    payload: Optional[SessionEnd] = None,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_session_registry),
    settings: Settings = Depends(get_settings)
):
    """Finalize a live session and store it in the workout history."""
    session = _get_session(session_id, registry)
    payload = payload or SessionEnd()

    workout = store_workout(
        db,
        session,
        mode=payload.mode,
        plan_name=payload.plan_name,
        plan_id=payload.plan_id,
        goal=(payload.goal.exercise, payload.goal.target_reps) if payload.goal else None,
        retention=settings.history_retention,
    )
    registry.remove(session_id)
    logger.info(f"Ended session {session_id}")
    return WorkoutResponse.model_validate(workout)
