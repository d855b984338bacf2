from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime,
    Date, JSON, ForeignKey, UniqueConstraint, Enum as SAEnum
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func
import enum
import uuid

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


# ── Enums ────────────────────────────────────────────────────────────────────

class TeacherType(str, enum.Enum):
    KIDS = "kids"
    ADULT = "adult"
    MIXED = "mixed"
    EXPERT = "expert"

class TeacherStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class UserRole(str, enum.Enum):
    TEACHER = "teacher"
    SALES = "sales"
    ADMIN = "admin"
    SUPERVISOR = "supervisor"

class SessionStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


# ── Core entities ─────────────────────────────────────────────────────────────

class Teacher(Base):
    __tablename__ = "teachers"

    id = Column(String, primary_key=True, default=_uuid)
    full_name = Column(String, nullable=False)
    teacher_type = Column(SAEnum(TeacherType, values_callable=lambda e: [m.value for m in e]),
                          nullable=False)
    status = Column(SAEnum(TeacherStatus, values_callable=lambda e: [m.value for m in e]),
                    default=TeacherStatus.PENDING)
    role = Column(SAEnum(UserRole, values_callable=lambda e: [m.value for m in e]),
                  default=UserRole.TEACHER)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class TeacherAvailability(Base):
    __tablename__ = "teacher_availability"
    __table_args__ = (
        UniqueConstraint("teacher_id", "date", "time_slot", name="uq_teacher_date_slot"),
    )

    id = Column(String, primary_key=True, default=_uuid)
    teacher_id = Column(String, ForeignKey("teachers.id"), nullable=False)
    date = Column(Date, nullable=False)                # UTC calendar day
    time_slot = Column(String, nullable=False)         # "14:30:00" UTC, 30-min grid
    is_available = Column(Boolean, nullable=False, default=True)
    is_booked = Column(Boolean, nullable=False, default=False)
    booked_session_id = Column(String, nullable=True)  # trial_sessions.id once claimed
    created_at = Column(DateTime, server_default=func.now())


# ── Bookings ──────────────────────────────────────────────────────────────────

class TrialSession(Base):
    __tablename__ = "trial_sessions"

    id = Column(String, primary_key=True, default=_uuid)
    teacher_id = Column(String, ForeignKey("teachers.id"), nullable=False)
    availability_id = Column(String, ForeignKey("teacher_availability.id"),
                             nullable=False, unique=True)
    session_date = Column(Date, nullable=False)        # UTC day
    utc_start_time = Column(String, nullable=False)
    teacher_type = Column(String, nullable=True)       # requested filter, not the teacher's own
    student_names = Column(String, nullable=False)
    booking_data = Column(JSON, nullable=False)        # forwarded as-is
    booked_by_role = Column(String, nullable=False)
    status = Column(SAEnum(SessionStatus, values_callable=lambda e: [m.value for m in e]),
                    default=SessionStatus.PENDING)
    created_at = Column(DateTime, server_default=func.now())


# ── Ingestion tracking ────────────────────────────────────────────────────────

class IngestionRun(Base):
    __tablename__ = "ingestion_runs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_at = Column(DateTime, server_default=func.now())
    source_hash = Column(String, nullable=False)       # hash of input files
    status = Column(String, default="success")
    diff_summary = Column(JSON, default=dict)          # what changed
