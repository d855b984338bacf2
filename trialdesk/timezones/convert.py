"""
Client-time → UTC conversion.

The client picks a calendar day and a whole local hour. The UTC hour is
`local_hour - offset` wrapped into [0, 24); whenever the wrap happens the
UTC instant sits on a different calendar day, and the query date must move
with it:

  Saudi (+3), 01:00 on Jun 24  →  22:00 UTC on Jun 23   (day_shift = -1)
  UTC-5,      23:00 on Jun 24  →  04:00 UTC on Jun 25   (day_shift = +1)

Teacher-side conversions (operations zone ↔ UTC) use real IANA rules since
they work on concrete dates.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

import pytz

from trialdesk.errors import InvalidSearchParameters
from trialdesk.timezones.registry import OPERATIONS_TIMEZONE, TimezoneDescriptor, lookup


SLOT_MINUTES = 30


@dataclass(frozen=True)
class UtcConversion:
    utc_hour: int       # 0..23
    day_shift: int      # -1 | 0 | +1


@dataclass(frozen=True)
class UtcQueryPoint:
    utc_date: date
    utc_hour: int
    day_shift: int
    local_date: date
    local_hour: int
    timezone_id: str


def _validate_hour(local_hour) -> int:
    if isinstance(local_hour, bool) or not isinstance(local_hour, int):
        raise InvalidSearchParameters(f"Hour must be an integer, got {local_hour!r}")
    if not 0 <= local_hour <= 23:
        raise InvalidSearchParameters(f"Hour must be between 0 and 23, got {local_hour}")
    return local_hour


def convert_client_hour_to_utc(local_hour: int, offset: int) -> UtcConversion:
    _validate_hour(local_hour)
    utc_hour = local_hour - offset
    day_shift = 0
    if utc_hour < 0:
        utc_hour += 24
        day_shift = -1
    elif utc_hour >= 24:
        utc_hour -= 24
        day_shift = 1
    return UtcConversion(utc_hour=utc_hour, day_shift=day_shift)


def utc_to_local_hour(utc_hour: int, day_shift: int, offset: int) -> int:
    """Inverse of convert_client_hour_to_utc."""
    return utc_hour + day_shift * 24 + offset


def resolve_utc_query(day: date, local_hour: int,
                      timezone: Union[str, TimezoneDescriptor]) -> UtcQueryPoint:
    """Where (UTC date + hour) a client's local day/hour actually lands."""
    if not isinstance(day, date) or isinstance(day, datetime):
        raise InvalidSearchParameters(f"Expected a calendar date, got {day!r}")
    tz = timezone if isinstance(timezone, TimezoneDescriptor) else lookup(timezone)
    conv = convert_client_hour_to_utc(local_hour, tz.offset)
    return UtcQueryPoint(
        utc_date=day + timedelta(days=conv.day_shift),
        utc_hour=conv.utc_hour,
        day_shift=conv.day_shift,
        local_date=day,
        local_hour=local_hour,
        timezone_id=tz.id,
    )


# ── Slot strings ──────────────────────────────────────────────────────────────

def parse_slot_time(value: str) -> time:
    """'14:30' or '14:30:00' → time. Must sit on the 30-minute grid."""
    try:
        parts = [int(p) for p in value.split(":")]
        if len(parts) == 2:
            parts.append(0)
        h, m, s = parts
        t = time(h, m, s)
    except (ValueError, AttributeError, TypeError):
        raise InvalidSearchParameters(f"Bad time slot: {value!r}") from None
    if t.minute % SLOT_MINUTES or t.second:
        raise InvalidSearchParameters(f"Time slot off the 30-minute grid: {value!r}")
    return t


def format_slot_time(t: time) -> str:
    return t.strftime("%H:%M:%S")


def slot_instant(utc_date: date, slot: str) -> datetime:
    """UTC date + 'HH:MM:SS' → aware UTC datetime."""
    return pytz.utc.localize(datetime.combine(utc_date, parse_slot_time(slot)))


# ── Operations-zone (teacher side) ────────────────────────────────────────────

def operations_time_to_utc(local_date: date, local_time: str) -> tuple[date, str]:
    """Egypt wall-clock on a given day → (UTC date, 'HH:MM:SS')."""
    tz = OPERATIONS_TIMEZONE.tzinfo
    naive = datetime.combine(local_date, parse_slot_time(local_time))
    utc_dt = tz.localize(naive).astimezone(pytz.utc)
    return utc_dt.date(), format_slot_time(utc_dt.time())


def utc_to_operations_time(utc_date: date, slot: str) -> tuple[date, str]:
    """(UTC date, 'HH:MM:SS') → (Egypt date, 'HH:MM')."""
    local_dt = slot_instant(utc_date, slot).astimezone(OPERATIONS_TIMEZONE.tzinfo)
    return local_dt.date(), local_dt.strftime("%H:%M")


def today_in_operations(now: Optional[datetime] = None) -> date:
    now = now or datetime.now(pytz.utc)
    if now.tzinfo is None:
        now = pytz.utc.localize(now)
    return now.astimezone(OPERATIONS_TIMEZONE.tzinfo).date()
