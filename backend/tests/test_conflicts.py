from __future__ import annotations

import pytest

from core.errors import InvalidDayError, InvalidTimeFormat
from solver.conflicts import WeeklySchedule, first_overlap, overlaps
from solver.time_slots import Day, TimeSlot


def ws(days, start, end):
    return WeeklySchedule(frozenset(Day.parse(d) for d in days), start, end)


@pytest.mark.parametrize(
    "a, b, expected",
    [
        (ws(["Monday"], "09:00", "10:30"), ws(["Monday"], "10:00", "11:00"), True),
        (ws(["Monday"], "09:00", "10:00"), ws(["Monday"], "10:00", "11:00"), False),
        (ws(["Monday"], "09:00", "12:00"), ws(["Monday"], "10:00", "11:00"), True),
        (ws(["Monday", "Wednesday"], "09:00", "10:00"), ws(["Wednesday"], "09:30", "10:30"), True),
    ],
)
def test_overlap_is_symmetric_and_half_open(a, b, expected):
    assert overlaps(a, b) is expected
    assert overlaps(b, a) is expected


def test_disjoint_days_never_overlap_even_with_bad_times():
    # Times are only parsed once the day sets intersect.
    a = WeeklySchedule(frozenset({Day.MONDAY}), "bogus", "10:00")
    b = WeeklySchedule(frozenset({Day.TUESDAY}), "09:00", "10:00")
    assert overlaps(a, b) is False


def test_shared_day_with_malformed_time_raises():
    a = WeeklySchedule(frozenset({Day.MONDAY}), "25:00", "26:00")
    b = ws(["Monday"], "09:00", "10:00")
    with pytest.raises(InvalidTimeFormat):
        overlaps(a, b)


def test_time_slot_and_weekly_schedule_compare():
    slot = TimeSlot(Day.TUESDAY, "11:00", "13:00")
    assert overlaps(slot, ws(["Tue", "Thu"], "12:00", "12:30"))
    assert not overlaps(slot, ws(["Tue"], "13:00", "14:00"))


def test_first_overlap_returns_first_match():
    candidate = ws(["Friday"], "09:00", "11:00")
    others = [ws(["Friday"], "11:00", "12:00"), ws(["Friday"], "10:00", "12:00"), ws(["Friday"], "08:00", "10:00")]
    assert first_overlap(candidate, others) is others[1]
    assert first_overlap(candidate, []) is None


def test_from_json_round_trip_and_missing_schedule():
    parsed = WeeklySchedule.from_json({"days": ["Wednesday", "mon"], "startTime": "09:00", "endTime": "10:15"})
    assert parsed.to_json() == {"days": ["Monday", "Wednesday"], "startTime": "09:00", "endTime": "10:15"}
    assert WeeklySchedule.from_json(None) is None
    assert WeeklySchedule.from_json({}) is None
    assert WeeklySchedule.from_json({"days": [], "startTime": "09:00", "endTime": "10:00"}) is None


def test_from_json_validates_times():
    with pytest.raises(InvalidTimeFormat):
        WeeklySchedule.from_json({"days": ["Monday"], "startTime": "9am", "endTime": "10:00"})


def test_from_json_pads_single_digit_hours():
    parsed = WeeklySchedule.from_json({"days": ["Monday"], "startTime": "9:00", "endTime": "10:30"})
    assert (parsed.start_time, parsed.end_time) == ("09:00", "10:30")
    assert parsed.start_time < "11:00"


def test_from_json_rejects_unknown_day():
    with pytest.raises(InvalidDayError):
        WeeklySchedule.from_json({"days": ["Funday"], "startTime": "09:00", "endTime": "10:00"})
