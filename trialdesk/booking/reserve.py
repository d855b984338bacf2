"""
Booking reservation: claims one teacher slot and records the trial session.

Checks run in this order, each mapping to one failure kind:
  booker role not allowed            → PERMISSION_DENIED
  subject data / slot time invalid   → VALIDATION_FAILED
  slot falls on today (Egypt)        → TODAY_LOCKED
  no approved teacher of that id/type → TEACHER_NOT_FOUND
  conditional claim touched 0 rows   → SLOT_ALREADY_TAKEN

The claim is one conditional UPDATE plus the session INSERT in a single
transaction. Failures come back as BookingFailure values, never raised.
Only a data-store outage raises (DataStoreUnavailable).
"""
import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence, Union

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from trialdesk.availability import store
from trialdesk.availability.query import expand_teacher_types
from trialdesk.booking.schemas import BookingSubject
from trialdesk.config import DEFAULT_BOOKER_ROLES
from trialdesk.errors import DataStoreUnavailable, InvalidSearchParameters
from trialdesk.models import Teacher, TrialSession
from trialdesk.timezones.convert import (
    format_slot_time, parse_slot_time, today_in_operations, utc_to_operations_time
)

logger = logging.getLogger(__name__)

ANY_TEACHER = "any"


class BookingFailureReason(str, enum.Enum):
    SLOT_ALREADY_TAKEN = "SLOT_ALREADY_TAKEN"
    TEACHER_NOT_FOUND = "TEACHER_NOT_FOUND"
    TODAY_LOCKED = "TODAY_LOCKED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    VALIDATION_FAILED = "VALIDATION_FAILED"


@dataclass(frozen=True)
class BookingSuccess:
    session_id: str
    teacher_id: str
    teacher_name: str
    student_names: str
    utc_date: date
    utc_time_slot: str
    success: bool = True


@dataclass(frozen=True)
class BookingFailure:
    reason: BookingFailureReason
    message: str
    success: bool = False


BookingResult = Union[BookingSuccess, BookingFailure]
TeacherChoice = Union[str, Sequence[str]]


def reserve_slot(
    db: Session,
    utc_date: date,
    utc_time_slot: str,
    teacher_id: TeacherChoice,
    subject_data: dict,
    teacher_type: Optional[str] = None,
    booked_by_role: str = "sales",
    booker_roles: Sequence[str] = DEFAULT_BOOKER_ROLES,
    today: Optional[date] = None,
) -> BookingResult:
    """
    teacher_id: one id, ANY_TEACHER, or a list of acceptable ids. With more
    than one candidate, teachers are tried in (full_name, id) order.
    """
    if (booked_by_role or "").lower() not in booker_roles:
        return _fail(BookingFailureReason.PERMISSION_DENIED,
                     f"Role {booked_by_role!r} may not book trial sessions")

    try:
        subject = BookingSubject.model_validate(subject_data or {})
    except ValidationError as e:
        return _fail(BookingFailureReason.VALIDATION_FAILED, _summarize(e))

    try:
        slot = format_slot_time(parse_slot_time(utc_time_slot))
        type_filter = expand_teacher_types(teacher_type) if teacher_type else None
    except InvalidSearchParameters as e:
        return _fail(BookingFailureReason.VALIDATION_FAILED, str(e))

    local_date, _ = utc_to_operations_time(utc_date, slot)
    if local_date == (today or today_in_operations()):
        return _fail(BookingFailureReason.TODAY_LOCKED,
                     "Cannot book a trial for today. Please pick a future date.")

    try:
        candidates = _candidates(db, utc_date, slot, teacher_id, type_filter)
        if candidates is None:
            return _fail(BookingFailureReason.TEACHER_NOT_FOUND,
                         f"Teacher not found: {teacher_id!r}")

        for teacher in candidates:
            result = _claim_and_record(db, teacher, utc_date, slot, subject,
                                       teacher_type, booked_by_role)
            if result is not None:
                logger.info("Booked %s at %s %s with %s (session %s)",
                            result.student_names, utc_date, slot,
                            result.teacher_name, result.session_id)
                return result

    except DataStoreUnavailable:
        db.rollback()
        raise

    logger.warning("Slot %s %s already taken (teacher=%r)", utc_date, slot, teacher_id)
    return _fail(BookingFailureReason.SLOT_ALREADY_TAKEN,
                 "This time slot was just booked by someone else. Please select another time.")


# ── Helpers ───────────────────────────────────────────────────────────────────

def _candidates(db: Session, utc_date: date, slot: str,
                teacher_id: TeacherChoice, type_filter) -> Optional[list[Teacher]]:
    """None means no requested teacher exists (of the requested type) at all."""
    def known(tid: str) -> Optional[Teacher]:
        teacher = store.get_approved_teacher(db, tid)
        if teacher is None or (type_filter and teacher.teacher_type not in type_filter):
            return None
        return teacher

    if isinstance(teacher_id, str) and teacher_id != ANY_TEACHER:
        teacher = known(teacher_id)
        return [teacher] if teacher else None

    ids = None if teacher_id == ANY_TEACHER else list(dict.fromkeys(teacher_id))
    if ids is not None and not any(known(i) for i in ids):
        return None
    return store.open_slot_candidates(db, utc_date, slot,
                                      teacher_ids=ids, teacher_types=type_filter)


def _claim_and_record(db: Session, teacher: Teacher, utc_date: date, slot: str,
                      subject: BookingSubject, teacher_type: Optional[str],
                      booked_by_role: str) -> Optional[BookingSuccess]:
    session_id = str(uuid.uuid4())
    teacher_key, teacher_name = teacher.id, teacher.full_name
    student_names = subject.student_names()

    record_id = store.claim_slot(db, teacher_key, utc_date, slot, session_id=session_id)
    if record_id is None:
        db.rollback()
        return None

    try:
        with store.store_errors():
            db.add(TrialSession(
                id=session_id,
                teacher_id=teacher_key,
                availability_id=record_id,
                session_date=utc_date,
                utc_start_time=slot,
                teacher_type=teacher_type,
                student_names=student_names,
                booking_data=subject.model_dump(),
                booked_by_role=booked_by_role.lower(),
            ))
            db.commit()
    except IntegrityError:
        db.rollback()
        return None

    return BookingSuccess(
        session_id=session_id,
        teacher_id=teacher_key,
        teacher_name=teacher_name,
        student_names=student_names,
        utc_date=utc_date,
        utc_time_slot=slot,
    )


def _fail(reason: BookingFailureReason, message: str) -> BookingFailure:
    logger.info("Booking refused: %s (%s)", reason.value, message)
    return BookingFailure(reason=reason, message=message)


def _summarize(err: ValidationError) -> str:
    parts = []
    for e in err.errors():
        loc = ".".join(str(p) for p in e["loc"]) or "booking"
        parts.append(f"{loc}: {e['msg']}")
    return "; ".join(parts)
