"""
Timezone registry, the one table of supported zones.

Fixed offsets drive query arithmetic (converter), the IANA zone drives
display. Egypt is the operations zone and is always present.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from types import MappingProxyType

import pytz

from trialdesk.errors import InvalidTimezone


OPERATIONS_TIMEZONE_ID = "egypt"


@dataclass(frozen=True)
class TimezoneDescriptor:
    id: str
    iana: str
    offset: int            # whole hours, standard time
    label: str
    short_name: str        # "Saudi", "Egypt"

    @property
    def tzinfo(self):
        return pytz.timezone(self.iana)

    def utcoffset_on(self, day: date, hour: int = 12) -> timedelta:
        """True offset (DST included) at local `hour` on `day`."""
        return self.tzinfo.localize(datetime(day.year, day.month, day.day, hour)).utcoffset()


_DESCRIPTORS = (
    TimezoneDescriptor("saudi",   "Asia/Riyadh",  3, "Saudi Arabia (GMT+3)", "Saudi"),
    TimezoneDescriptor("uae",     "Asia/Dubai",   4, "UAE (GMT+4)",          "UAE"),
    TimezoneDescriptor("qatar",   "Asia/Qatar",   3, "Qatar (GMT+3)",        "Qatar"),
    TimezoneDescriptor("kuwait",  "Asia/Kuwait",  3, "Kuwait (GMT+3)",       "Kuwait"),
    TimezoneDescriptor("bahrain", "Asia/Bahrain", 3, "Bahrain (GMT+3)",      "Bahrain"),
    TimezoneDescriptor("oman",    "Asia/Muscat",  4, "Oman (GMT+4)",         "Oman"),
    TimezoneDescriptor(OPERATIONS_TIMEZONE_ID, "Africa/Cairo", 2, "Egypt (GMT+2)", "Egypt"),
)

REGISTRY = MappingProxyType({d.id: d for d in _DESCRIPTORS})

OPERATIONS_TIMEZONE = REGISTRY[OPERATIONS_TIMEZONE_ID]


def lookup(timezone_id: str) -> TimezoneDescriptor:
    """Unknown ids are a hard error; never fall back to a default zone."""
    try:
        return REGISTRY[(timezone_id or "").strip().lower()]
    except KeyError:
        raise InvalidTimezone(timezone_id) from None


def client_timezones() -> list[TimezoneDescriptor]:
    """Zones a client can search in (everything but the operations zone)."""
    return [d for d in _DESCRIPTORS if d.id != OPERATIONS_TIMEZONE_ID]
