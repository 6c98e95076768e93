"""Workout session model."""

import uuid
import json
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import String, Integer, Float, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from repcounter.models.base import Base, TimestampMixin


class WorkoutMode:
    """How the session was driven."""
    FREE = "free"
    PLAN = "plan"
    CUSTOM = "custom"  # User-built workout

    @classmethod
    def all(cls) -> List[str]:
        return [cls.FREE, cls.PLAN, cls.CUSTOM]


class WorkoutSession(Base, TimestampMixin):
    """
    Finalized live session stored in the history.

    total_reps equals the sum of reps_by_exercise.
    """

    __tablename__ = "workout_sessions"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    ended_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration_seconds: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    mode: Mapped[str] = mapped_column(String(20), default=WorkoutMode.FREE, nullable=False)
    plan_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    plan_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    total_reps: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_rejects: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Stored as JSON strings
    _reps_by_exercise: Mapped[str] = mapped_column("reps_by_exercise", Text, nullable=False, default="{}")
    _quality_summary: Mapped[Optional[str]] = mapped_column("quality_summary", Text, nullable=True)
    _goal: Mapped[Optional[str]] = mapped_column("goal", Text, nullable=True)

    @property
    def reps_by_exercise(self) -> Dict[str, int]:
        return json.loads(self._reps_by_exercise) if self._reps_by_exercise else {}

    @reps_by_exercise.setter
    def reps_by_exercise(self, value: Dict[str, int]):
        self._reps_by_exercise = json.dumps(value)

    @property
    def quality_summary(self) -> Optional[dict]:
        if self._quality_summary:
            return json.loads(self._quality_summary)
        return None

    @quality_summary.setter
    def quality_summary(self, value: Optional[dict]):
        if value is not None:
            self._quality_summary = json.dumps(value)
        else:
            self._quality_summary = None

    @property
    def goal(self) -> Optional[dict]:
        """Rep goal as {exercise, target_reps, reached}."""
        return json.loads(self._goal) if self._goal else None

    @goal.setter
    def goal(self, value: Optional[dict]):
        self._goal = json.dumps(value) if value is not None else None
