import os

# Importing trialdesk.database builds an engine from DATABASE_URL; keep test
# runs off the real postgres instance.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from trialdesk.models import Base, Teacher, TeacherAvailability


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    yield session
    session.close()


@pytest.fixture
def seed(db):
    """
    seed(teachers=[(id, name, type[, status])], slots=[(teacher_id, date, "HH:MM:SS"[, booked])])
    """
    def _seed(teachers=(), slots=()):
        for t in teachers:
            tid, name, ttype = t[:3]
            status = t[3] if len(t) > 3 else "approved"
            db.add(Teacher(id=tid, full_name=name, teacher_type=ttype, status=status, role="teacher"))
        db.flush()
        for s in slots:
            tid, day, slot = s[:3]
            booked = s[3] if len(s) > 3 else False
            db.add(TeacherAvailability(teacher_id=tid, date=day, time_slot=slot,
                                       is_available=True, is_booked=booked))
        db.commit()
    return _seed
