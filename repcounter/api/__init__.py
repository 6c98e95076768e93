"""API routes."""

from fastapi import APIRouter

from repcounter.api import sessions, calibration, workouts, analytics

api_router = APIRouter()

api_router.include_router(sessions.router, prefix="/sessions", tags=["Live Sessions"])
api_router.include_router(calibration.router, prefix="/calibration", tags=["Calibration"])
api_router.include_router(workouts.router, prefix="/workouts", tags=["Workouts"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])
