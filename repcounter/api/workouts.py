"""Workout history API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, func, desc, delete
from sqlalchemy.orm import Session

from repcounter.database import get_db
from repcounter.models.workout import WorkoutSession
from repcounter.schemas.workout import WorkoutResponse, WorkoutListResponse

router = APIRouter()


@router.get("", response_model=WorkoutListResponse)
def list_workouts(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """List stored workouts, newest first."""
    total = db.execute(select(func.count(WorkoutSession.id))).scalar()

    offset = (page - 1) * page_size
    query = (
        select(WorkoutSession)
        .order_by(desc(WorkoutSession.started_at))
        .offset(offset)
        .limit(page_size)
    )
    workouts = db.execute(query).scalars().all()

    return WorkoutListResponse(
        items=[WorkoutResponse.model_validate(w) for w in workouts],
        total=total,
        page=page,
        page_size=page_size,
        has_more=(offset + len(workouts)) < total
    )


@router.get("/{workout_id}", response_model=WorkoutResponse)
def get_workout(workout_id: str, db: Session = Depends(get_db)):
    workout = db.get(WorkoutSession, workout_id)
    if not workout:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Workout not found"
        )
    return WorkoutResponse.model_validate(workout)


@router.delete("/{workout_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_workout(workout_id: str, db: Session = Depends(get_db)):
    workout = db.get(WorkoutSession, workout_id)
    if not workout:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Workout not found"
        )
    db.delete(workout)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def clear_workouts(db: Session = Depends(get_db)):
    """Delete the whole workout history."""
    db.execute(delete(WorkoutSession))
