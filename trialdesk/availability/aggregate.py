"""
Slot aggregator. One bookable slot per distinct UTC date and start time.

Grouping happens on the raw UTC slot string, before any display
formatting. Every slot is a fixed 30-minute granule, so the end time is
derived from the start, never read from a row.
"""
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

from trialdesk.timezones.convert import SLOT_MINUTES, format_slot_time, slot_instant


@dataclass(frozen=True)
class SlotRow:
    teacher_id: str
    teacher_name: str
    teacher_type: str
    time_slot: str          # UTC "HH:MM:SS"
    utc_date: Optional[date] = None


@dataclass(frozen=True)
class SlotTeacher:
    id: str
    name: str
    teacher_type: str


@dataclass
class AggregatedTimeSlot:
    utc_date: date
    utc_start_time: str
    utc_end_time: str
    teachers: list[SlotTeacher]
    client_display: str = ""
    operations_display: str = ""
    client_day_label: str = ""        # "Tuesday, June 24, 2025", client-local start day
    end_date: Optional[date] = None   # differs from utc_date only for the 23:30 slot

    @property
    def teacher_count(self) -> int:
        return len(self.teachers)


def slot_end(utc_date: date, start: str) -> tuple[date, str]:
    end = slot_instant(utc_date, start) + timedelta(minutes=SLOT_MINUTES)
    return end.date(), format_slot_time(end.time())


def aggregate_slots(rows: Iterable[SlotRow], utc_date: Optional[date] = None) -> list[AggregatedTimeSlot]:
    """
    Groups on (row date, time_slot). `utc_date` stands in for rows that
    carry no date of their own.
    """
    groups: dict[tuple[date, str], list[SlotTeacher]] = {}
    for row in rows:
        key = (row.utc_date or utc_date, row.time_slot)
        groups.setdefault(key, []).append(
            SlotTeacher(id=row.teacher_id, name=row.teacher_name, teacher_type=row.teacher_type)
        )

    result = []
    for day, start in sorted(groups):
        teachers = sorted(groups[day, start], key=lambda t: (t.name, t.id))
        end_date, end = slot_end(day, start)
        result.append(AggregatedTimeSlot(
            utc_date=day,
            utc_start_time=start,
            utc_end_time=end,
            end_date=end_date,
            teachers=teachers,
        ))
    return result
