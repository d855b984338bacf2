"""
Teacher-side availability editing.

Teachers work in Egypt wall-clock time on a half-hour grid (08:00–22:00).
Records are stored in UTC, so each grid cell is converted on the way in
and out. Booked records are never toggled or deleted.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from trialdesk.availability import store
from trialdesk.errors import AvailabilityEditError, EditRejection, InvalidSearchParameters
from trialdesk.models import Teacher, TeacherAvailability
from trialdesk.timezones.convert import (
    SLOT_MINUTES, operations_time_to_utc, parse_slot_time, today_in_operations
)

logger = logging.getLogger(__name__)

GRID_START_HOUR = 8
GRID_END_HOUR = 22


@dataclass(frozen=True)
class GridSlot:
    time: str               # "HH:MM" Egypt time
    utc_date: date
    utc_time_slot: str
    record_id: Optional[str] = None
    is_available: bool = False
    is_booked: bool = False


def grid_times() -> list[str]:
    return [
        f"{hour:02d}:{minute:02d}"
        for hour in range(GRID_START_HOUR, GRID_END_HOUR)
        for minute in range(0, 60, SLOT_MINUTES)
    ]


def list_teacher_day(db: Session, teacher_id: str, day: date) -> list[GridSlot]:
    cells = [(t, *operations_time_to_utc(day, t)) for t in grid_times()]
    records = store.teacher_records(db, teacher_id, {utc_date for _, utc_date, _ in cells})
    by_key = {(r.date, r.time_slot): r for r in records}

    result = []
    for local_time, utc_date, utc_slot in cells:
        record = by_key.get((utc_date, utc_slot))
        result.append(GridSlot(
            time=local_time,
            utc_date=utc_date,
            utc_time_slot=utc_slot,
            record_id=record.id if record else None,
            is_available=bool(record and record.is_available),
            is_booked=bool(record and record.is_booked),
        ))
    return result


def toggle_availability(db: Session, teacher_id: str, day: date, local_time: str,
                        today: Optional[date] = None) -> GridSlot:
    """Open a closed cell, or close an open one. Returns the new state."""
    local_time = _grid_time(local_time)

    if day == (today or today_in_operations()):
        raise AvailabilityEditError(EditRejection.TODAY_LOCKED,
                                    "Cannot modify availability for today")

    with store.store_errors():
        if db.get(Teacher, teacher_id) is None:
            raise AvailabilityEditError(EditRejection.UNKNOWN_TEACHER,
                                        f"Teacher not found: {teacher_id}")

        utc_date, utc_slot = operations_time_to_utc(day, local_time)
        record = (
            db.query(TeacherAvailability)
            .filter(
                TeacherAvailability.teacher_id == teacher_id,
                TeacherAvailability.date == utc_date,
                TeacherAvailability.time_slot == utc_slot,
            )
            .first()
        )

        if record is None:
            record = TeacherAvailability(
                teacher_id=teacher_id, date=utc_date, time_slot=utc_slot,
                is_available=True, is_booked=False,
            )
            db.add(record)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise AvailabilityEditError(EditRejection.SLOT_BOOKED,
                                            "Slot changed concurrently, refresh and retry") from None
            logger.info("teacher %s opened %s %s (UTC %s %s)",
                        teacher_id, day, local_time, utc_date, utc_slot)
            return GridSlot(local_time, utc_date, utc_slot, record.id, True, False)

        if record.is_booked:
            raise AvailabilityEditError(EditRejection.SLOT_BOOKED,
                                        "Cannot modify a booked slot")

        if not record.is_available:
            record_id = record.id
            record.is_available = True
            db.commit()
            logger.info("teacher %s reopened %s %s (UTC %s %s)",
                        teacher_id, day, local_time, utc_date, utc_slot)
            return GridSlot(local_time, utc_date, utc_slot, record_id, True, False)

        # conditional delete, so a booking landing in between wins
        deleted = (
            db.query(TeacherAvailability)
            .filter(TeacherAvailability.id == record.id,
                    TeacherAvailability.is_booked.is_(False))
            .delete(synchronize_session=False)
        )
        if deleted != 1:
            db.rollback()
            raise AvailabilityEditError(EditRejection.SLOT_BOOKED,
                                        "Cannot modify a booked slot")
        db.commit()
        logger.info("teacher %s closed %s %s", teacher_id, day, local_time)
        return GridSlot(local_time, utc_date, utc_slot)


def _grid_time(local_time: str) -> str:
    try:
        t = parse_slot_time(local_time)
    except InvalidSearchParameters as e:
        raise AvailabilityEditError(EditRejection.OFF_GRID, str(e)) from None
    text = t.strftime("%H:%M")
    if text not in grid_times():
        raise AvailabilityEditError(EditRejection.OFF_GRID,
                                    f"{text} is outside {GRID_START_HOUR:02d}:00–{GRID_END_HOUR:02d}:00")
    return text
