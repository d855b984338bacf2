"""
Error taxonomy.

Search-side problems (bad zone, bad hour/date/type) are raised before any
query runs. Booking outcomes are NOT exceptions: see
trialdesk.booking.reserve.BookingFailure.
"""
import enum


class TrialDeskError(Exception):
    code = "TRIALDESK_ERROR"


class InvalidTimezone(TrialDeskError):
    code = "INVALID_TIMEZONE"

    def __init__(self, timezone_id: str):
        super().__init__(f"Invalid timezone: {timezone_id}")
        self.timezone_id = timezone_id


class InvalidSearchParameters(TrialDeskError):
    code = "INVALID_SEARCH_PARAMETERS"


class DataStoreUnavailable(TrialDeskError):
    """Transport/DB failure. Retryable, not interpreted further."""
    code = "DATA_STORE_UNAVAILABLE"


class EditRejection(str, enum.Enum):
    SLOT_BOOKED = "SLOT_BOOKED"
    TODAY_LOCKED = "TODAY_LOCKED"
    OFF_GRID = "OFF_GRID"
    UNKNOWN_TEACHER = "UNKNOWN_TEACHER"


class AvailabilityEditError(TrialDeskError):
    code = "AVAILABILITY_EDIT_REJECTED"

    def __init__(self, reason: EditRejection, message: str):
        super().__init__(message)
        self.reason = reason
