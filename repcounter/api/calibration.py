"""Calibration profile API endpoints."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from repcounter.database import get_db
from repcounter.history import delete_profile, list_profiles
from repcounter.models.calibration_profile import CalibrationProfileRecord
from repcounter.schemas.calibration import CalibrationProfileResponse
from repcounter.sessions import SessionRegistry, get_session_registry

router = APIRouter()


@router.get("", response_model=List[CalibrationProfileResponse])
def get_profiles(db: Session = Depends(get_db)):
    """List stored calibration profiles."""
    return [CalibrationProfileResponse.model_validate(r) for r in list_profiles(db)]


@router.get("/{exercise_id}", response_model=CalibrationProfileResponse)
def get_profile(exercise_id: str, db: Session = Depends(get_db)):
    record = db.get(CalibrationProfileRecord, exercise_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No calibration stored for {exercise_id}"
        )
    return CalibrationProfileResponse.model_validate(record)


@router.delete("/{exercise_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_profile(
    exercise_id: str,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Delete a profile; live sessions on that exercise recalibrate."""
    if not delete_profile(db, exercise_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No calibration stored for {exercise_id}"
        )
    registry.profile_cleared(exercise_id)
