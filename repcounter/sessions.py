"""
Live session ownership.

FastAPI serves sync endpoints from a thread pool, so every live session is
held by a LiveSession that serializes access through a lock and swaps its
immutable SessionSnapshot atomically.
"""

import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

from repcounter.config import get_settings
from repcounter.cv import session_engine as engine
from repcounter.cv.calibration import IDLE
from repcounter.cv.calibration_profile import CalibrationProfile
from repcounter.cv.landmarks import LandmarkFrame
from repcounter.cv.rep_classifiers import DEFAULT_REGISTRY, ClassifierRegistry

logger = logging.getLogger(__name__)


class SessionLimitReached(RuntimeError):
    """Raised when starting a session would exceed max_live_sessions."""


class LiveSession:
    """One athlete's live counting session."""

    def __init__(
        self,
        exercise_id: str,
        profile: Optional[CalibrationProfile] = None,
        settings: engine.EngineSettings = engine.EngineSettings(),
        registry: ClassifierRegistry = DEFAULT_REGISTRY,
        session_id: Optional[str] = None
    ):
        self.id = session_id or str(uuid.uuid4())
        self.settings = settings
        self.registry = registry
        self.started_at = datetime.now(timezone.utc)
        self._lock = threading.Lock()
        self._profile = profile
        self._snapshot = engine.new_session(
            exercise_id, profile is not None, settings=settings, registry=registry
        )

    @property
    def snapshot(self) -> engine.SessionSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def profile(self) -> Optional[CalibrationProfile]:
        with self._lock:
            return self._profile

    @property
    def exercise_id(self) -> str:
        return self.snapshot.exercise_id

    def process(self, frame: Optional[LandmarkFrame], now_ms: float) -> engine.FrameOutcome:
        with self._lock:
            outcome = engine.process_frame(
                self._snapshot, frame, now_ms, self._profile, self.settings, self.registry
            )
            self._snapshot = outcome.snapshot
            if outcome.captured_profile is not None:
                self._profile = outcome.captured_profile
            return outcome

    def switch_exercise(self, exercise_id: str, profile: Optional[CalibrationProfile]) -> None:
        with self._lock:
            self._snapshot = engine.switch_exercise(
                self._snapshot, exercise_id, profile is not None,
                now_ms=self._snapshot.last_frame_ms,
                settings=self.settings, registry=self.registry,
            )
            self._profile = profile

    def set_paused(self, paused: bool) -> None:
        with self._lock:
            self._snapshot = engine.set_paused(self._snapshot, paused)
        logger.info(f"Session {self.id} {'paused' if paused else 'resumed'}")

    def capture_calibration(self, step: int) -> Optional[CalibrationProfile]:
        """Manual capture; stops hands-free sampling when it succeeds."""
        with self._lock:
            profile = engine.capture_calibration(self._snapshot, self._profile, step, self.registry)
            if profile is not None:
                self._profile = profile
                if self._snapshot.calibration.is_sampling:
                    self._snapshot = replace(self._snapshot, calibration=IDLE)
            return profile

    def start_auto_calibration(self) -> None:
        with self._lock:
            self._snapshot = engine.start_auto_calibration(
                self._snapshot, self._snapshot.last_frame_ms, self.registry
            )

    def clear_calibration(self) -> None:
        with self._lock:
            self._profile = None
            self._snapshot = engine.restart_calibration(
                self._snapshot, self._snapshot.last_frame_ms, self.settings
            )

    def add_bar_point(self, x: float, y: float) -> None:
        with self._lock:
            self._snapshot = replace(self._snapshot, bar=self._snapshot.bar.add_point(x, y))

    def start_bar_auto(self) -> None:
        with self._lock:
            bar = self._snapshot.bar.start_auto(self._snapshot.last_frame_ms)
            self._snapshot = replace(self._snapshot, bar=bar)

    def clear_bar(self) -> None:
        with self._lock:
            self._snapshot = replace(self._snapshot, bar=self._snapshot.bar.clear())

    def describe(self) -> dict:
        """Serializable view of the current snapshot."""
        with self._lock:
            snapshot, profile = self._snapshot, self._profile
        return {
            "id": self.id,
            "paused": snapshot.paused,
            "exercise": snapshot.exercise.to_dict(),
            "calibration": snapshot.calibration.to_dict(
                snapshot.exercise_id, self.settings.calibration_stable_ms
            ),
            "calibrated": profile is not None,
            "bar": snapshot.bar.to_dict(),
            "tracking": snapshot.tracking.to_dict() if snapshot.tracking else None,
            "totals": snapshot.totals.to_dict(),
            "quality": snapshot.quality.to_dict(),
            "last_quality": snapshot.last_quality.value if snapshot.last_quality else None,
        }

    def summary(self) -> dict:
        with self._lock:
            return engine.summarize(self._snapshot)


class SessionRegistry:
    """In-memory registry of live sessions."""

    def __init__(self, max_sessions: int = 32):
        self.max_sessions = max_sessions
        self._sessions: Dict[str, LiveSession] = {}
        self._lock = threading.Lock()

    def add(self, session: LiveSession) -> LiveSession:
        with self._lock:
            if len(self._sessions) >= self.max_sessions:
                raise SessionLimitReached(
                    f"Too many live sessions ({self.max_sessions}); end one first"
                )
            self._sessions[session.id] = session
        logger.info(f"Started session {session.id} ({session.exercise_id})")
        return session

    def get(self, session_id: str) -> Optional[LiveSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Optional[LiveSession]:
        with self._lock:
            return self._sessions.pop(session_id, None)

    def sessions(self) -> List[LiveSession]:
        with self._lock:
            return list(self._sessions.values())

    def profile_cleared(self, exercise_id: str) -> None:
        """Propagate a deleted profile to sessions counting that exercise."""
        for session in self.sessions():
            if session.exercise_id == exercise_id:
                session.clear_calibration()

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()


_registry: Optional[SessionRegistry] = None


def get_session_registry() -> SessionRegistry:
    """Dependency returning the process-wide registry."""
    global _registry
    if _registry is None:
        _registry = SessionRegistry(max_sessions=get_settings().max_live_sessions)
    return _registry
