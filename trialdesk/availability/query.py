"""
Availability query builder. Decides WHAT to ask the store for.
No I/O here; store.py executes the SlotQuery.
"""
from dataclasses import dataclass
from datetime import date, timedelta

from trialdesk.errors import InvalidSearchParameters
from trialdesk.models import TeacherStatus, TeacherType, UserRole
from trialdesk.timezones.convert import UtcQueryPoint


# Window around the converted hour: one hour before, two after.
WINDOW_HOURS_BEFORE = 1
WINDOW_HOURS_AFTER = 2

DAY_START = "00:00:00"
DAY_END = "24:00:00"   # exclusive bound; sorts after every "HH:MM:SS" of the day


@dataclass(frozen=True)
class QuerySegment:
    date: date
    start_time: str                 # inclusive, "HH:MM:SS"
    end_time: str                   # exclusive


@dataclass(frozen=True)
class SlotQuery:
    date: date                      # UTC date the search is anchored on
    segments: tuple[QuerySegment, ...]
    teacher_types: tuple[str, ...]
    is_available: bool = True
    is_booked: bool = False
    teacher_status: str = TeacherStatus.APPROVED.value
    teacher_role: str = UserRole.TEACHER.value


def expand_teacher_types(teacher_type: str) -> tuple[str, ...]:
    """
    'mixed' matches every type; a concrete type matches itself or 'mixed'
    (a mixed teacher can take any request).
    """
    try:
        requested = TeacherType((teacher_type or "").strip().lower())
    except ValueError:
        raise InvalidSearchParameters(f"Unknown teacher type: {teacher_type!r}") from None

    if requested is TeacherType.MIXED:
        return tuple(t.value for t in TeacherType)
    return (requested.value, TeacherType.MIXED.value)


def _hour_bound(hour: int) -> str:
    return DAY_END if hour >= 24 else f"{hour:02d}:00:00"


def window_segments(utc_date: date, utc_hour: int) -> tuple[QuerySegment, ...]:
    """
    [utc_hour-1, utc_hour+2) split at UTC midnight. Hours before 00:00 go to
    the previous date, hours past 24:00 to the next one.
    """
    start = utc_hour - WINDOW_HOURS_BEFORE
    end = utc_hour + WINDOW_HOURS_AFTER
    segments = []
    if start < 0:
        segments.append(QuerySegment(utc_date - timedelta(days=1), _hour_bound(start + 24), DAY_END))
    segments.append(QuerySegment(utc_date, _hour_bound(max(start, 0)), _hour_bound(min(end, 24))))
    if end > 24:
        segments.append(QuerySegment(utc_date + timedelta(days=1), DAY_START, _hour_bound(end - 24)))
    return tuple(segments)


def build_slot_query(point: UtcQueryPoint, teacher_type: str) -> SlotQuery:
    return SlotQuery(
        date=point.utc_date,
        segments=window_segments(point.utc_date, point.utc_hour),
        teacher_types=expand_teacher_types(teacher_type),
    )


def build_day_query(utc_date: date, teacher_type: str) -> SlotQuery:
    return SlotQuery(
        date=utc_date,
        segments=(QuerySegment(utc_date, DAY_START, DAY_END),),
        teacher_types=expand_teacher_types(teacher_type),
    )
