"""
Search end-to-end against SQLite: conversion → window → store → grouping
→ display.
"""
from datetime import date

import pytest

from trialdesk.availability.query import build_slot_query
from trialdesk.availability.search import search_all_available_slots, search_available_slots
from trialdesk.availability.store import fetch_slot_rows
from trialdesk.errors import InvalidSearchParameters, InvalidTimezone
from trialdesk.timezones.convert import resolve_utc_query
from trialdesk.timezones.registry import TimezoneDescriptor

JUNE_24 = date(2025, 6, 24)
JUNE_25 = date(2025, 6, 25)

TEACHERS = [
    ("T001", "Amira Hassan", "kids"),
    ("T002", "Omar Fathy", "adult"),
    ("T003", "Laila Mostafa", "mixed"),
    ("T004", "Youssef Adel", "expert"),
    ("T005", "Nour Samir", "kids", "pending"),
]

SLOTS = [
    ("T001", JUNE_24, "10:30:00"),
    ("T001", JUNE_24, "11:00:00"),
    ("T002", JUNE_24, "11:00:00"),
    ("T003", JUNE_24, "11:00:00"),
    ("T004", JUNE_24, "11:00:00", True),     # booked
    ("T005", JUNE_24, "11:00:00"),           # teacher not approved
    ("T003", JUNE_24, "12:30:00"),
    ("T004", JUNE_24, "13:00:00"),           # outside the 10–13 window
    ("T002", JUNE_25, "04:00:00"),
    ("T003", JUNE_24, "16:00:00"),
    ("T004", JUNE_24, "16:00:00"),
]


@pytest.fixture
def seeded(seed):
    seed(TEACHERS, SLOTS)


def _ids(slot):
    return [t.id for t in slot.teachers]


def test_saudi_2pm_mixed_search(db, seeded):
    slots = search_available_slots(db, JUNE_24, "saudi", "mixed", 14)

    assert [s.utc_start_time for s in slots] == ["10:30:00", "11:00:00", "12:30:00"]
    assert _ids(slots[1]) == ["T001", "T003", "T002"]     # by name
    assert all(s.utc_date == JUNE_24 for s in slots)

    eleven = slots[1]
    assert eleven.client_display == "2:00 PM-2:30 PM"
    assert eleven.operations_display == "2:00 PM-2:30 PM (Egypt)"
    assert eleven.utc_end_time == "11:30:00"


def test_concrete_type_matches_itself_and_mixed(db, seeded):
    slots = search_available_slots(db, JUNE_24, "saudi", "kids", 14)
    assert {tid for s in slots for tid in _ids(s)} == {"T001", "T003"}


def test_expert_only_sees_expert_or_mixed(db, seeded):
    slots = search_available_slots(db, JUNE_24, "saudi", "expert", 14)
    assert {tid for s in slots for tid in _ids(s)} == {"T003"}


def test_booked_and_unapproved_never_returned(db, seeded):
    slots = search_available_slots(db, JUNE_24, "saudi", "mixed", 14)
    returned = {tid for s in slots for tid in _ids(s)}
    assert "T004" not in returned
    assert "T005" not in returned


def test_no_match_is_empty_list(db, seeded):
    assert search_available_slots(db, date(2025, 7, 1), "saudi", "mixed", 14) == []


def test_early_morning_search_queries_previous_utc_day(db, seed):
    seed([("T1", "Amira", "kids")], [
        ("T1", date(2025, 6, 23), "22:00:00"),
        ("T1", JUNE_24, "22:00:00"),
    ])
    slots = search_available_slots(db, JUNE_24, "saudi", "kids", 1)
    assert [(s.utc_date, s.utc_start_time) for s in slots] == [(date(2025, 6, 23), "22:00:00")]
    assert slots[0].client_display == "1:00 AM-1:30 AM"


def test_negative_offset_reads_next_utc_day(db, seeded):
    minus_five = TimezoneDescriptor("bogota", "America/Bogota", -5, "Colombia (GMT-5)", "Colombia")
    query = build_slot_query(resolve_utc_query(JUNE_24, 23, minus_five), "mixed")
    rows = fetch_slot_rows(db, query)
    assert query.date == JUNE_25
    assert [(r.teacher_id, r.time_slot) for r in rows] == [("T002", "04:00:00")]


def test_invalid_timezone_raises_before_query(db):
    with pytest.raises(InvalidTimezone):
        search_available_slots(db, JUNE_24, "narnia", "mixed", 14)


@pytest.mark.parametrize("hour", [-1, 24])
def test_invalid_hour_raises(db, hour):
    with pytest.raises(InvalidSearchParameters):
        search_available_slots(db, JUNE_24, "saudi", "mixed", hour)


def test_invalid_teacher_type_raises(db):
    with pytest.raises(InvalidSearchParameters):
        search_available_slots(db, JUNE_24, "saudi", "teens", 14)


def test_whole_day_search(db, seeded):
    slots = search_all_available_slots(db, JUNE_24, "uae", "mixed")
    assert [s.utc_start_time for s in slots] == ["10:30:00", "11:00:00", "12:30:00", "13:00:00", "16:00:00"]
    four_pm = slots[-1]
    assert _ids(four_pm) == ["T003", "T004"]
    assert four_pm.client_display == "8:00 PM-8:30 PM"
    assert four_pm.operations_display == "7:00 PM-7:30 PM (Egypt)"


def test_window_at_utc_midnight_includes_previous_day_hour(db, seed):
    seed([("T1", "Amira", "kids")], [
        ("T1", date(2025, 6, 23), "22:30:00"),   # before the window
        ("T1", date(2025, 6, 23), "23:00:00"),
        ("T1", JUNE_24, "00:30:00"),
    ])
    # Saudi 03:00 → 00:00 UTC, window 23:00 (Jun 23) to 02:00 (Jun 24)
    slots = search_available_slots(db, JUNE_24, "saudi", "kids", 3)
    assert [(s.utc_date, s.utc_start_time) for s in slots] == [
        (date(2025, 6, 23), "23:00:00"),
        (JUNE_24, "00:30:00"),
    ]
    assert [s.client_display for s in slots] == ["2:00 AM-2:30 AM", "3:30 AM-4:00 AM"]


def test_window_at_23_utc_includes_next_day_hour(db, seed):
    seed([("T1", "Amira", "kids")], [
        ("T1", date(2025, 6, 23), "22:00:00"),
        ("T1", JUNE_24, "00:30:00"),
        ("T1", JUNE_24, "01:00:00"),             # after the window
    ])
    # Saudi 02:00 → 23:00 UTC Jun 23, window 22:00 to 01:00 (Jun 24)
    slots = search_available_slots(db, JUNE_24, "saudi", "kids", 2)
    assert [(s.utc_date, s.utc_start_time) for s in slots] == [
        (date(2025, 6, 23), "22:00:00"),
        (JUNE_24, "00:30:00"),
    ]
