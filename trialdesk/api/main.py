"""
FastAPI app — trial booking endpoints:
  GET  /timezones
  POST /availability/search
  POST /availability/search/day
  POST /bookings
  GET  /teachers/{teacher_id}/availability
  POST /teachers/{teacher_id}/availability/toggle
  POST /ingest/run
"""
import logging
from dataclasses import asdict
from datetime import date
from typing import Optional, Union

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from trialdesk.availability.aggregate import AggregatedTimeSlot
from trialdesk.availability.display import slot_from_display
from trialdesk.availability.editing import list_teacher_day, toggle_availability
from trialdesk.availability.search import search_all_available_slots, search_available_slots
from trialdesk.booking.reserve import BookingFailureReason, reserve_slot
from trialdesk.database import get_db, init_db, settings
from trialdesk.errors import (
    AvailabilityEditError, DataStoreUnavailable, EditRejection,
    InvalidSearchParameters, InvalidTimezone, TrialDeskError
)
from trialdesk.ingestion.job import run_ingestion
from trialdesk.timezones.convert import today_in_operations
from trialdesk.timezones.registry import (
    OPERATIONS_TIMEZONE, TimezoneDescriptor, client_timezones, lookup
)

logger = logging.getLogger(__name__)

app = FastAPI(title="TrialDesk Booking API", version="1.0.0")

BOOKING_STATUS = {
    BookingFailureReason.SLOT_ALREADY_TAKEN: 409,
    BookingFailureReason.TEACHER_NOT_FOUND: 404,
    BookingFailureReason.TODAY_LOCKED: 423,
    BookingFailureReason.PERMISSION_DENIED: 403,
    BookingFailureReason.VALIDATION_FAILED: 422,
}

EDIT_STATUS = {
    EditRejection.SLOT_BOOKED: 409,
    EditRejection.TODAY_LOCKED: 423,
    EditRejection.OFF_GRID: 422,
    EditRejection.UNKNOWN_TEACHER: 404,
}


@app.on_event("startup")
def startup():
    logging.basicConfig(level=settings.log_level)
    init_db()
    logger.info("Database initialized")


# ── Error mapping ─────────────────────────────────────────────────────────────

@app.exception_handler(TrialDeskError)
def trialdesk_error(request: Request, exc: TrialDeskError):
    if isinstance(exc, (InvalidTimezone, InvalidSearchParameters)):
        status = 400
    elif isinstance(exc, DataStoreUnavailable):
        logger.error("data store unavailable on %s: %s", request.url.path, exc)
        status = 503
    elif isinstance(exc, AvailabilityEditError):
        return JSONResponse(status_code=EDIT_STATUS[exc.reason],
                            content={"code": exc.reason.value, "detail": str(exc)})
    else:
        status = 500
    return JSONResponse(status_code=status, content={"code": exc.code, "detail": str(exc)})


# ── Request bodies ────────────────────────────────────────────────────────────

class SlotSearchRequest(BaseModel):
    date: date
    timezone: str
    teacher_type: str
    hour: int


class DaySearchRequest(BaseModel):
    utc_date: date
    timezone: str
    teacher_type: str


class ReservationRequest(BaseModel):
    # Either the stored UTC slot, or the client-side display time it was picked from.
    utc_date: Optional[date] = None
    utc_time_slot: Optional[str] = None
    client_date: Optional[date] = None
    client_time: Optional[str] = None           # "7:00 PM"
    timezone: Optional[str] = None
    is_dst: Optional[bool] = None
    teacher_id: Union[str, list[str]] = "any"
    teacher_type: Optional[str] = None
    booked_by_role: str = "sales"
    booking: dict


class ToggleRequest(BaseModel):
    day: date
    time: str


# ── Timezones ─────────────────────────────────────────────────────────────────

@app.get("/timezones")
def timezones():
    """Registry entries plus the offset each zone is actually on today (DST included)."""
    today = today_in_operations()
    return {
        "operations": _zone_to_dict(OPERATIONS_TIMEZONE, today),
        "clients": [_zone_to_dict(tz, today) for tz in client_timezones()],
    }


# ── Search ────────────────────────────────────────────────────────────────────

@app.post("/availability/search")
def availability_search(body: SlotSearchRequest, db: Session = Depends(get_db)):
    """
    Slots around the client's local hour.
    - date: client-local calendar day
    - hour: client-local hour, 0-23
    """
    slots = search_available_slots(db, body.date, body.timezone, body.teacher_type, body.hour)
    return {"count": len(slots), "slots": [_slot_to_dict(s) for s in slots]}


@app.post("/availability/search/day")
def availability_search_day(body: DaySearchRequest, db: Session = Depends(get_db)):
    slots = search_all_available_slots(db, body.utc_date, body.timezone, body.teacher_type)
    return {"count": len(slots), "slots": [_slot_to_dict(s) for s in slots]}


# ── Booking ───────────────────────────────────────────────────────────────────

@app.post("/bookings", status_code=201)
def create_booking(body: ReservationRequest, db: Session = Depends(get_db)):
    utc_date, utc_time_slot = _requested_slot(body)
    result = reserve_slot(
        db,
        utc_date=utc_date,
        utc_time_slot=utc_time_slot,
        teacher_id=body.teacher_id,
        subject_data=body.booking,
        teacher_type=body.teacher_type,
        booked_by_role=body.booked_by_role,
        booker_roles=settings.booker_roles,
    )
    if not result.success:
        raise HTTPException(
            status_code=BOOKING_STATUS[result.reason],
            detail={"code": result.reason.value, "message": result.message},
        )
    return {
        "success": True,
        "session_id": result.session_id,
        "teacher_id": result.teacher_id,
        "teacher_name": result.teacher_name,
        "student_names": result.student_names,
        "utc_date": result.utc_date.isoformat(),
        "utc_time_slot": result.utc_time_slot,
    }


# ── Teacher availability ──────────────────────────────────────────────────────

@app.get("/teachers/{teacher_id}/availability")
def teacher_availability(teacher_id: str, day: date, db: Session = Depends(get_db)):
    """Half-hour grid for one Egypt-local day."""
    return {
        "teacher_id": teacher_id,
        "day": day.isoformat(),
        "slots": [_grid_to_dict(g) for g in list_teacher_day(db, teacher_id, day)],
    }


@app.post("/teachers/{teacher_id}/availability/toggle")
def teacher_availability_toggle(teacher_id: str, body: ToggleRequest,
                                db: Session = Depends(get_db)):
    return _grid_to_dict(toggle_availability(db, teacher_id, body.day, body.time))


# ── Ingestion ─────────────────────────────────────────────────────────────────

@app.post("/ingest/run")
def ingest_run(force: bool = False, db: Session = Depends(get_db)):
    """
    Seed teachers + availability from the bucket dir.
    Idempotent (skips if unchanged unless force=True)
    """
    try:
        return run_ingestion(db, force=force, bucket_dir=settings.bucket_dir)
    except (FileNotFoundError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))


# ── Helpers ───────────────────────────────────────────────────────────────────

def _requested_slot(body: ReservationRequest) -> tuple[date, str]:
    if body.utc_date and body.utc_time_slot:
        return body.utc_date, body.utc_time_slot
    if body.client_date and body.client_time and body.timezone:
        return slot_from_display(body.client_time, body.client_date,
                                 lookup(body.timezone), is_dst=body.is_dst)
    raise HTTPException(
        status_code=422,
        detail={"code": "VALIDATION_FAILED",
                "message": "Give utc_date + utc_time_slot, or client_date + client_time + timezone"},
    )


def _slot_to_dict(slot: AggregatedTimeSlot) -> dict:
    return {
        "utc_date": slot.utc_date.isoformat(),
        "utc_start_time": slot.utc_start_time,
        "utc_end_time": slot.utc_end_time,
        "client_display": slot.client_display,
        "operations_display": slot.operations_display,
        "client_day_label": slot.client_day_label,
        "teacher_count": slot.teacher_count,
        "teachers": [asdict(t) for t in slot.teachers],
    }


def _zone_to_dict(tz: TimezoneDescriptor, today: date) -> dict:
    data = asdict(tz)
    data["current_offset"] = tz.utcoffset_on(today).total_seconds() / 3600
    return data


def _grid_to_dict(g) -> dict:
    data = asdict(g)
    data["utc_date"] = g.utc_date.isoformat()
    return data


# ── Health check ──────────────────────────────────────────────────────────────

@app.get("/")
def root():
    return {
        "service": "TrialDesk Booking API",
        "version": "1.0.0",
        "endpoints": ["/timezones", "/availability/search", "/availability/search/day",
                      "/bookings", "/teachers/{teacher_id}/availability", "/ingest/run"]
    }
