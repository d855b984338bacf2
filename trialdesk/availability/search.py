"""
Availability search: the entry point sales uses to find trial slots.

Flow:
  client day + hour + zone → UTC query point (date shifted if needed)
  → SlotQuery window (split at UTC midnight) → store rows
  → grouped by UTC date + start → display strings
"""
import logging
from datetime import date

from sqlalchemy.orm import Session

from trialdesk.availability.aggregate import AggregatedTimeSlot, aggregate_slots
from trialdesk.availability.display import decorate
from trialdesk.availability.query import build_day_query, build_slot_query
from trialdesk.availability.store import fetch_slot_rows
from trialdesk.timezones.convert import resolve_utc_query
from trialdesk.timezones.registry import OPERATIONS_TIMEZONE, lookup

logger = logging.getLogger(__name__)


def search_available_slots(
    db: Session,
    day: date,
    timezone_id: str,
    teacher_type: str,
    hour: int,
) -> list[AggregatedTimeSlot]:
    """
    Bookable slots around `hour` (client local) on `day` (client local).
    Empty list when nothing matches.
    """
    client_tz = lookup(timezone_id)
    point = resolve_utc_query(day, hour, client_tz)
    query = build_slot_query(point, teacher_type)

    logger.debug(
        "search %s %02d:00 %s → UTC %s types=%s",
        day, hour, client_tz.id,
        " + ".join(f"{s.date} [{s.start_time}, {s.end_time})" for s in query.segments),
        ",".join(query.teacher_types),
    )

    rows = fetch_slot_rows(db, query)
    slots = [decorate(s, client_tz, OPERATIONS_TIMEZONE) for s in aggregate_slots(rows)]
    logger.info("search %s %s h=%s: %d slot(s) from %d row(s)",
                day, client_tz.id, hour, len(slots), len(rows))
    return slots


def search_all_available_slots(
    db: Session,
    utc_date: date,
    timezone_id: str,
    teacher_type: str,
) -> list[AggregatedTimeSlot]:
    """Every bookable slot stored under one UTC day."""
    client_tz = lookup(timezone_id)
    query = build_day_query(utc_date, teacher_type)
    rows = fetch_slot_rows(db, query)
    return [decorate(s, client_tz, OPERATIONS_TIMEZONE) for s in aggregate_slots(rows)]
