"""
Dual-timezone display strings for aggregated slots.

Display always converts the real UTC instant through the IANA zone (pytz),
so DST is honoured even where the registry's fixed offset is not.
"""
from datetime import date, datetime, time
from typing import Optional

import pytz

from trialdesk.availability.aggregate import AggregatedTimeSlot
from trialdesk.errors import InvalidSearchParameters
from trialdesk.timezones.convert import format_slot_time, parse_slot_time, slot_instant
from trialdesk.timezones.registry import OPERATIONS_TIMEZONE, TimezoneDescriptor


def format_clock(dt: datetime) -> str:
    """datetime → '4:00 PM' (no leading zero, 12 for noon/midnight)."""
    hour = dt.hour % 12 or 12
    period = "PM" if dt.hour >= 12 else "AM"
    return f"{hour}:{dt.minute:02d} {period}"


def format_day_label(day: date) -> str:
    """date → 'Tuesday, June 24, 2025'"""
    return f"{day.strftime('%A, %B')} {day.day}, {day.year}"


def format_range(start: datetime, end: datetime, tz: TimezoneDescriptor,
                 reference: bool = False) -> str:
    zone = tz.tzinfo
    text = f"{format_clock(start.astimezone(zone))}-{format_clock(end.astimezone(zone))}"
    if reference:
        text += f" ({tz.short_name})"
    return text


def decorate(slot: AggregatedTimeSlot, client_tz: TimezoneDescriptor,
             operations_tz: TimezoneDescriptor = OPERATIONS_TIMEZONE) -> AggregatedTimeSlot:
    """Fill display strings and the client-local day label (in place, returned)."""
    start = slot_instant(slot.utc_date, slot.utc_start_time)
    end = slot_instant(slot.end_date or slot.utc_date, slot.utc_end_time)
    slot.client_display = format_range(start, end, client_tz)
    slot.operations_display = format_range(start, end, operations_tz, reference=True)
    slot.client_day_label = format_day_label(start.astimezone(client_tz.tzinfo).date())
    return slot


def parse_clock(text: str, local_date: date, tz: TimezoneDescriptor,
                is_dst: Optional[bool] = None) -> datetime:
    """
    '7:00 PM' on a local day in `tz` → aware UTC datetime.
    Inverse of format_clock for a known local date.

    A wall-clock time inside a DST fall-back hour happens twice; pass
    is_dst to pick one, otherwise it is rejected. Times skipped by a
    spring-forward jump are always rejected.
    """
    try:
        clock, period = text.strip().split(" ")
        hour_s, minute_s = clock.split(":")
        hour, minute = int(hour_s), int(minute_s)
    except ValueError:
        raise InvalidSearchParameters(f"Bad clock string: {text!r}") from None
    if period not in ("AM", "PM") or not 1 <= hour <= 12:
        raise InvalidSearchParameters(f"Bad clock string: {text!r}")

    hour = hour % 12 + (12 if period == "PM" else 0)
    naive = datetime.combine(local_date, time(hour, minute))
    try:
        local = tz.tzinfo.localize(naive, is_dst=is_dst)
    except pytz.AmbiguousTimeError:
        raise InvalidSearchParameters(
            f"{text} on {local_date} happens twice in {tz.short_name}; specify is_dst"
        ) from None
    except pytz.NonExistentTimeError:
        local = None
    # with is_dst given, pytz accepts skipped times; they do not round-trip
    if local is None or tz.tzinfo.normalize(local).replace(tzinfo=None) != naive:
        raise InvalidSearchParameters(f"{text} on {local_date} does not exist in {tz.short_name}")
    return local.astimezone(pytz.utc)


def slot_from_display(text: str, local_date: date, tz: TimezoneDescriptor,
                      is_dst: Optional[bool] = None) -> tuple[date, str]:
    """Client display time → (UTC date, "HH:MM:SS") as stored on availability."""
    instant = parse_clock(text, local_date, tz, is_dst=is_dst)
    slot = format_slot_time(instant.time())
    parse_slot_time(slot)   # must sit on the 30-minute grid
    return instant.date(), slot
