from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from trialdesk.config import load_settings
from trialdesk.models import Base

settings = load_settings()

engine = create_engine(settings.database_url, echo=False)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def init_db():
    """Create all tables."""
    Base.metadata.create_all(bind=engine)


def get_db():
    """FastAPI dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
