"""Shared fixtures: in-memory database, test settings and a fresh live-session registry."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from repcounter.config import Settings, get_settings
from repcounter.database import get_db
from repcounter.main import app
from repcounter.models import Base
from repcounter.sessions import SessionRegistry, get_session_registry


@pytest.fixture
def db_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(engine, autocommit=False, autoflush=False, expire_on_commit=False)
    yield factory
    engine.dispose()


@pytest.fixture
def db(db_session_factory):
    session = db_session_factory()
    yield session
    session.close()


@pytest.fixture
def test_settings():
    # Raw frames reach the classifiers; hands-free calibration only where a test starts it
    return Settings(
        smoothing_alpha=1.0,
        calibration_enabled=False,
        history_retention=2,
    )


@pytest.fixture
def session_registry():
    return SessionRegistry(max_sessions=3)


@pytest.fixture
def client(db_session_factory, session_registry, test_settings):
    def override_get_db():
        session = db_session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_registry] = lambda: session_registry
    app.dependency_overrides[get_settings] = lambda: test_settings
    yield TestClient(app)
    app.dependency_overrides.clear()
