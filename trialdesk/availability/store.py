"""
SQLAlchemy adapter for teacher availability.

Executes SlotQuery range reads and the single conditional UPDATE that
claims a slot. Transport failures surface as DataStoreUnavailable.
"""
from contextlib import contextmanager
from datetime import date
from typing import Iterable, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from trialdesk.availability.aggregate import SlotRow
from trialdesk.availability.query import SlotQuery
from trialdesk.errors import DataStoreUnavailable
from trialdesk.models import Teacher, TeacherAvailability, TeacherStatus, UserRole


@contextmanager
def store_errors():
    try:
        yield
    except OperationalError as e:
        raise DataStoreUnavailable(f"Data store unreachable: {e.orig}") from e


def fetch_slot_rows(db: Session, query: SlotQuery) -> list[SlotRow]:
    """Open, unbooked slots of approved teachers matching the query."""
    in_window = or_(*(
        and_(
            TeacherAvailability.date == seg.date,
            TeacherAvailability.time_slot >= seg.start_time,
            TeacherAvailability.time_slot < seg.end_time,
        )
        for seg in query.segments
    ))
    with store_errors():
        rows = (
            db.query(
                TeacherAvailability.teacher_id,
                Teacher.full_name,
                Teacher.teacher_type,
                TeacherAvailability.date,
                TeacherAvailability.time_slot,
            )
            .join(Teacher, Teacher.id == TeacherAvailability.teacher_id)
            .filter(
                in_window,
                TeacherAvailability.is_available.is_(query.is_available),
                TeacherAvailability.is_booked.is_(query.is_booked),
                Teacher.status == TeacherStatus(query.teacher_status),
                Teacher.role == UserRole(query.teacher_role),
                Teacher.teacher_type.in_(query.teacher_types),
            )
            .order_by(TeacherAvailability.date, TeacherAvailability.time_slot,
                      TeacherAvailability.teacher_id)
            .all()
        )

    return [
        SlotRow(
            teacher_id=teacher_id,
            teacher_name=full_name or "Unnamed Teacher",
            teacher_type=_enum_value(teacher_type),
            time_slot=time_slot,
            utc_date=utc_date,
        )
        for teacher_id, full_name, teacher_type, utc_date, time_slot in rows
    ]


def get_approved_teacher(db: Session, teacher_id: str) -> Optional[Teacher]:
    with store_errors():
        return (
            db.query(Teacher)
            .filter(
                Teacher.id == teacher_id,
                Teacher.status == TeacherStatus.APPROVED,
                Teacher.role == UserRole.TEACHER,
            )
            .first()
        )


def open_slot_candidates(db: Session, utc_date: date, time_slot: str,
                         teacher_ids: Optional[Iterable[str]] = None,
                         teacher_types: Optional[Iterable[str]] = None) -> list[Teacher]:
    """
    Approved teachers with an open record at (utc_date, time_slot), ordered
    by (full_name, id). Used for 'book any'.
    """
    with store_errors():
        q = (
            db.query(Teacher)
            .join(TeacherAvailability, Teacher.id == TeacherAvailability.teacher_id)
            .filter(
                TeacherAvailability.date == utc_date,
                TeacherAvailability.time_slot == time_slot,
                TeacherAvailability.is_available.is_(True),
                TeacherAvailability.is_booked.is_(False),
                Teacher.status == TeacherStatus.APPROVED,
                Teacher.role == UserRole.TEACHER,
            )
        )
        if teacher_ids is not None:
            q = q.filter(Teacher.id.in_(list(teacher_ids)))
        if teacher_types is not None:
            q = q.filter(Teacher.teacher_type.in_(list(teacher_types)))
        return q.order_by(Teacher.full_name, Teacher.id).all()


def claim_slot(db: Session, teacher_id: str, utc_date: date, time_slot: str,
               session_id: Optional[str] = None) -> Optional[str]:
    """
    Conditionally mark one record booked. Returns its id, or None if the
    slot was missing or already claimed. Does not commit.
    """
    with store_errors():
        record_id = (
            db.query(TeacherAvailability.id)
            .filter(
                TeacherAvailability.teacher_id == teacher_id,
                TeacherAvailability.date == utc_date,
                TeacherAvailability.time_slot == time_slot,
            )
            .scalar()
        )
        if record_id is None:
            return None

        claimed = (
            db.query(TeacherAvailability)
            .filter(
                TeacherAvailability.id == record_id,
                TeacherAvailability.is_available.is_(True),
                TeacherAvailability.is_booked.is_(False),
            )
            .update(
                {TeacherAvailability.is_booked: True, TeacherAvailability.booked_session_id: session_id},
                synchronize_session=False,
            )
        )
    return record_id if claimed == 1 else None


def teacher_records(db: Session, teacher_id: str, utc_dates: Iterable[date]) -> list[TeacherAvailability]:
    with store_errors():
        return (
            db.query(TeacherAvailability)
            .filter(
                TeacherAvailability.teacher_id == teacher_id,
                TeacherAvailability.date.in_(list(utc_dates)),
            )
            .all()
        )


def _enum_value(value) -> str:
    return getattr(value, "value", value)
