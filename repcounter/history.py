"""
Calibration profile store and workout history.

Sync SQLAlchemy helpers shared by the API routers. Callers own the session
and its transaction (see database.get_db).
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from repcounter.cv.calibration_profile import CalibrationProfile
from repcounter.models.calibration_profile import CalibrationProfileRecord
from repcounter.models.workout import WorkoutMode, WorkoutSession
from repcounter.sessions import LiveSession

logger = logging.getLogger(__name__)


# =============================================================================
# Calibration profiles
# =============================================================================

def load_profile(db: Session, exercise_id: str) -> Optional[CalibrationProfile]:
    record = db.get(CalibrationProfileRecord, exercise_id)
    return record.to_profile() if record else None


def save_profile(db: Session, profile: CalibrationProfile) -> CalibrationProfileRecord:
    """Insert or replace the profile for its exercise."""
    record = db.get(CalibrationProfileRecord, profile.exercise_id)
    if record is None:
        record = CalibrationProfileRecord(exercise_id=profile.exercise_id)
        db.add(record)
    record.values = dict(profile.values)
    db.flush()
    db.refresh(record)
    logger.info(f"Saved calibration for {profile.exercise_id}: {record.values}")
    return record


def delete_profile(db: Session, exercise_id: str) -> bool:
    record = db.get(CalibrationProfileRecord, exercise_id)
    if record is None:
        return False
    db.delete(record)
    db.flush()
    logger.info(f"Deleted calibration for {exercise_id}")
    return True


def list_profiles(db: Session) -> List[CalibrationProfileRecord]:
    return db.query(CalibrationProfileRecord).order_by(CalibrationProfileRecord.exercise_id).all()


# =============================================================================
# Workout history
# =============================================================================

def store_workout(
    db: Session,
    session: LiveSession,
    mode: str = WorkoutMode.FREE,
    plan_name: Optional[str] = None,
    plan_id: Optional[str] = None,
    goal: Optional[Tuple[str, int]] = None,
    retention: int = 50,
    ended_at: Optional[datetime] = None
) -> WorkoutSession:
    """
    Persist a finalized live session and trim the history.

    goal is an (exercise, target reps) pair; it is stored as reached when the
    session counted at least that many reps of the exercise.
    """
    ended_at = ended_at or datetime.now(timezone.utc)
    summary = session.summary()

    workout = WorkoutSession(
        started_at=session.started_at,
        ended_at=ended_at,
        duration_seconds=max(0.0, (ended_at - session.started_at).total_seconds()),
        mode=mode,
        plan_id=plan_id,
        plan_name=plan_name,
        total_reps=summary["total_reps"],
        total_rejects=summary["total_rejects"],
    )
    workout.reps_by_exercise = summary["reps_by_exercise"]
    workout.quality_summary = summary["quality"]
    if goal is not None:
        exercise, target_reps = goal
        workout.goal = {
            "exercise": exercise,
            "target_reps": target_reps,
            "reached": summary["reps_by_exercise"].get(exercise, 0) >= target_reps,
        }
    db.add(workout)
    db.flush()
    db.refresh(workout)

    logger.info(
        f"Stored workout {workout.id}: {workout.total_reps} reps, "
        f"{workout.total_rejects} rejects"
    )
    enforce_retention(db, retention)
    return workout


def enforce_retention(db: Session, keep: int) -> int:
    """Delete all but the newest `keep` workouts. Returns the number removed."""
    stale = (
        db.query(WorkoutSession)
        .order_by(WorkoutSession.started_at.desc(), WorkoutSession.id.desc())
        .offset(keep)
        .all()
    )
    for workout in stale:
        db.delete(workout)
    if stale:
        db.flush()
        logger.info(f"Trimmed {len(stale)} workouts beyond retention of {keep}")
    return len(stale)
