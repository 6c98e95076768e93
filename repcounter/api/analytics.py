"""Analytics API endpoints."""

from datetime import datetime, timedelta, timezone
from typing import Dict, List

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from repcounter.cv.rep_quality import QualityAggregate, QualityTally
from repcounter.database import get_db
from repcounter.models.workout import WorkoutSession
from repcounter.schemas.workout import QualityTrendPoint, QualityTrendResponse

router = APIRouter()


def _clean_pct(tally: QualityTally) -> float:
    return tally.clean / tally.total * 100 if tally.total > 0 else 0.0


@router.get("/quality", response_model=QualityTrendResponse)
def get_quality_trend(
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db)
):
    """
    Rep quality over time.

    Includes:
    - Daily clean / ok / sloppy mix and average ROM
    - Per-exercise totals over the whole period
    """
    since_date = datetime.now(timezone.utc) - timedelta(days=days)
    workouts = db.execute(
        select(WorkoutSession)
        .where(WorkoutSession.started_at >= since_date)
        .order_by(WorkoutSession.started_at)
    ).scalars().all()

    daily: Dict[str, QualityTally] = {}
    sessions: Dict[str, int] = {}
    reps: Dict[str, int] = {}
    by_exercise: Dict[str, QualityTally] = {}

    for w in workouts:
        day = w.started_at.date().isoformat()
        aggregate = QualityAggregate.from_dict(w.quality_summary or {})
        daily[day] = daily.get(day, QualityTally()).merged(aggregate.overall)
        sessions[day] = sessions.get(day, 0) + 1
        reps[day] = reps.get(day, 0) + w.total_reps

        for exercise_id, tally in aggregate.by_exercise.items():
            by_exercise[exercise_id] = by_exercise.get(exercise_id, QualityTally()).merged(tally)

    points: List[QualityTrendPoint] = []
    for day, tally in daily.items():
        points.append(QualityTrendPoint(
            date=day,
            sessions=sessions[day],
            total_reps=reps[day],
            clean=tally.clean,
            ok=tally.ok,
            sloppy=tally.sloppy,
            clean_pct=_clean_pct(tally),
            avg_rom_pct=tally.avg_rom_pct,
        ))

    return QualityTrendResponse(
        days=days,
        points=points,
        by_exercise={
            exercise_id: {
                "reps": float(tally.total),
                "clean_pct": _clean_pct(tally),
                "avg_rom_pct": tally.avg_rom_pct,
            }
            for exercise_id, tally in by_exercise.items()
        },
    )
