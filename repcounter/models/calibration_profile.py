"""Calibration profile model."""

import json
from typing import Dict

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from repcounter.cv.calibration_profile import CalibrationProfile
from repcounter.models.base import Base, TimestampMixin


class CalibrationProfileRecord(Base, TimestampMixin):
    """
    Persisted calibration extremes, one row per exercise.

    Survives session resets and restarts; removed only by an explicit clear.
    """

    __tablename__ = "calibration_profiles"

    exercise_id: Mapped[str] = mapped_column(String(50), primary_key=True)

    # Named extremes (stored as JSON string)
    _values: Mapped[str] = mapped_column("values_json", Text, nullable=False, default="{}")

    @property
    def values(self) -> Dict[str, float]:
        return json.loads(self._values) if self._values else {}

    @values.setter
    def values(self, value: Dict[str, float]):
        self._values = json.dumps(value)

    def to_profile(self) -> CalibrationProfile:
        return CalibrationProfile(exercise_id=self.exercise_id, values=self.values)
