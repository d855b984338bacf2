from datetime import date
from itertools import permutations

from trialdesk.availability.aggregate import SlotRow, aggregate_slots
from trialdesk.availability.display import decorate
from trialdesk.timezones.registry import lookup

JUNE_24 = date(2025, 6, 24)


def _row(tid, name, slot, ttype="kids"):
    return SlotRow(teacher_id=tid, teacher_name=name, teacher_type=ttype, time_slot=slot)


ROWS = [
    _row("T2", "Omar", "11:00:00", "adult"),
    _row("T1", "Amira", "10:30:00"),
    _row("T3", "Laila", "11:00:00", "mixed"),
    _row("T1", "Amira", "11:00:00"),
]


def test_empty_input_is_empty_result():
    assert aggregate_slots([], JUNE_24) == []


def test_one_slot_per_distinct_start_sorted():
    slots = aggregate_slots(ROWS, JUNE_24)
    assert [s.utc_start_time for s in slots] == ["10:30:00", "11:00:00"]
    assert [s.teacher_count for s in slots] == [1, 3]


def test_end_time_is_start_plus_thirty_minutes():
    slots = aggregate_slots(ROWS, JUNE_24)
    assert [s.utc_end_time for s in slots] == ["11:00:00", "11:30:00"]
    assert all(s.end_date == JUNE_24 for s in slots)


def test_last_slot_of_day_ends_on_next_day():
    [slot] = aggregate_slots([_row("T1", "Amira", "23:30:00")], JUNE_24)
    assert slot.utc_end_time == "00:00:00"
    assert slot.end_date == date(2025, 6, 25)


def test_grouping_independent_of_input_order():
    expected = [
        (s.utc_start_time, [t.id for t in s.teachers])
        for s in aggregate_slots(ROWS, JUNE_24)
    ]
    for perm in permutations(ROWS):
        got = [(s.utc_start_time, [t.id for t in s.teachers]) for s in aggregate_slots(perm, JUNE_24)]
        assert got == expected


def test_n_identical_rows_make_one_slot_with_n_teachers():
    rows = [_row(f"T{i}", f"Teacher {i:02d}", "16:00:00") for i in range(7)]
    [slot] = aggregate_slots(rows, JUNE_24)
    assert slot.teacher_count == 7
    assert {t.id for t in slot.teachers} == {f"T{i}" for i in range(7)}


def test_distinct_utc_values_never_merge_even_with_equal_display():
    rows = [_row("T1", "Amira", "16:00:00"), _row("T2", "Omar", "16:00")]
    slots = [decorate(s, lookup("saudi")) for s in aggregate_slots(rows, JUNE_24)]
    assert len(slots) == 2
    assert slots[0].client_display == slots[1].client_display
    assert {s.utc_start_time for s in slots} == {"16:00:00", "16:00"}


def test_teacher_details_carried_through():
    slots = aggregate_slots(ROWS, JUNE_24)
    eleven = slots[1]
    assert [(t.name, t.teacher_type) for t in eleven.teachers] == [
        ("Amira", "kids"), ("Laila", "mixed"), ("Omar", "adult"),
    ]


def test_same_start_on_two_dates_stays_two_slots():
    rows = [
        SlotRow("T2", "Omar", "adult", "23:30:00", utc_date=JUNE_24),
        SlotRow("T1", "Amira", "kids", "23:30:00", utc_date=date(2025, 6, 23)),
        SlotRow("T3", "Laila", "mixed", "00:00:00", utc_date=JUNE_24),
    ]
    slots = aggregate_slots(rows)
    assert [(s.utc_date, s.utc_start_time, [t.id for t in s.teachers]) for s in slots] == [
        (date(2025, 6, 23), "23:30:00", ["T1"]),
        (JUNE_24, "00:00:00", ["T3"]),
        (JUNE_24, "23:30:00", ["T2"]),
    ]
    assert slots[0].end_date == JUNE_24 and slots[0].utc_end_time == "00:00:00"
