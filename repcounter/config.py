"""Application configuration."""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Rep Counter"
    debug: bool = False
    api_prefix: str = "/api"
    cors_origins: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Database (SQLite for local dev, PostgreSQL for production)
    database_url: str = "sqlite:///./repcounter.db"

    # Frame preprocessing
    smoothing_alpha: float = 0.25  # EMA blend factor (1 = no smoothing)

    # Calibration
    calibration_enabled: bool = True  # Hands-free sampling when a profile is missing
    calibration_stable_ms: float = 900.0  # Continuous stability before a capture
    calibration_cooldown_ms: float = 700.0  # Minimum gap between captures
    calibration_timeout_ms: Optional[float] = 60_000.0  # Abort sampling after this long (None = never)

    # Bar reference auto-placement
    bar_auto_window_ms: float = 900.0
    bar_auto_min_samples: int = 10
    bar_auto_offset: float = 0.02  # Line sits this far below the hands

    # Sessions & history
    max_live_sessions: int = 32
    history_retention: int = 50  # Newest workouts kept

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
