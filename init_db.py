"""Initialize SQLite database for local development."""

from sqlalchemy import create_engine
from repcounter.models import Base, CalibrationProfileRecord, WorkoutSession  # noqa: F401
from repcounter.config import get_settings

settings = get_settings()

def init_db():
    """Create all tables in the database."""
    engine = create_engine(settings.database_url, echo=True)
    Base.metadata.create_all(bind=engine)
    print("Database tables created successfully!")

if __name__ == "__main__":
    init_db()
