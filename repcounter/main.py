"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from repcounter.config import get_settings
from repcounter.api import api_router
from repcounter.cv.rep_classifiers import DEFAULT_REGISTRY
from repcounter.database import engine
from repcounter.models import Base
from repcounter.sessions import get_session_registry

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    Base.metadata.create_all(bind=engine)
    logger.info(f"Starting {settings.app_name}")
    yield
    live = len(get_session_registry().sessions())
    if live:
        logger.warning(f"Shutting down with {live} live sessions not ended")
    logger.info(f"Shutting down {settings.app_name}")


app = FastAPI(
    title=settings.app_name,
    description="""
    Real-time Rep Counter API

    Turns a stream of body keypoint frames into validated exercise repetitions
    with live feedback and quality labels.

    ## Key Features

    - **Rep Detection**: Hysteresis state machines per exercise with debounce
    - **Rejections**: Too-fast or too-shallow attempts are reported, not counted
    - **Calibration**: Manual or hands-free capture of personal extremes
    - **Quality**: Clean / ok / sloppy labels from tempo and range of motion
    - **History**: Finalized sessions with per-exercise breakdown

    Frames come from an external pose provider (33 BlazePose landmarks,
    normalized coordinates).
    """,
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": "1.0.0",
        "live_sessions": len(get_session_registry().sessions()),
    }


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "app": settings.app_name,
        "docs": "/docs",
        "health": "/health",
        "exercises": DEFAULT_REGISTRY.exercise_ids(),
    }
