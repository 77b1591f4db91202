from __future__ import annotations

import uuid
from datetime import datetime, timezone

import pytest

from services.student_schedule import StudentScheduleEntry, build_ical, get_student_schedule


@pytest.fixture()
def timetable(make, student_id):
    room = make.classroom(40, building="Library", room_number="2A")
    prof = make.instructor("Alan", "Turing")
    mw = make.section(
        make.course("CS101", name="Intro to Computing"),
        instructor=prof,
        section_number=1,
        classroom_id=room.id,
        schedule={"days": ["Wednesday", "Monday"], "startTime": "09:00", "endTime": "10:15"},
    )
    tue = make.section(
        make.course("MATH110", name="Calculus"),
        section_number=2,
        classroom_id=room.id,
        schedule={"days": ["Tuesday"], "startTime": "13:00", "endTime": "14:00"},
    )
    tba = make.section(make.course("ART100", name="Drawing"), section_number=1)
    dropped = make.section(
        make.course("HIST100"), schedule={"days": ["Monday"], "startTime": "08:00", "endTime": "09:00"}
    )
    spring = make.section(
        make.course("BIO100"), semester="spring", schedule={"days": ["Monday"], "startTime": "08:00", "endTime": "09:00"}
    )
    for section in (mw, tue, tba):
        make.enrollment(student_id, section)
    make.enrollment(student_id, dropped, status="dropped")
    make.enrollment(student_id, spring)
    return {"mw": mw, "tue": tue, "tba": tba}


def test_schedule_has_one_entry_per_meeting_day(db, student_id, timetable):
    entries = get_student_schedule(db, student_id=student_id, semester="fall", year=2026)

    assert [(e.course_code, e.day, e.start_time) for e in entries] == [
        ("CS101", "Monday", "09:00"),
        ("MATH110", "Tuesday", "13:00"),
        ("CS101", "Wednesday", "09:00"),
        ("ART100", "", ""),
    ]
    first = entries[0]
    assert first.instructor_name == "Alan Turing"
    assert (first.building, first.room_number) == ("Library", "2A")
    assert entries[-1].building is None
    assert not entries[-1].is_scheduled


def test_other_students_see_nothing(db, timetable):
    assert get_student_schedule(db, student_id=uuid.uuid4(), semester="fall", year=2026) == []


def test_ical_has_weekly_event_per_entry(db, student_id, timetable):
    entries = get_student_schedule(db, student_id=student_id, semester="fall", year=2026)
    body = build_ical(entries, semester="fall", year=2026, now=datetime(2026, 8, 1, 12, 0, tzinfo=timezone.utc))

    assert body.startswith("BEGIN:VCALENDAR\r\n")
    assert body.endswith("END:VCALENDAR\r\n")
    assert body.count("BEGIN:VEVENT") == 3
    # Fall 2026 starts on Tuesday, September 1st.
    assert "DTSTART:20260907T090000" in body
    assert "DTSTART:20260901T130000" in body
    assert "DTSTART:20260902T090000" in body
    assert "RRULE:FREQ=WEEKLY;BYDAY=MO;UNTIL=20261231T235959" in body
    assert "DTSTAMP:20260801T120000Z" in body
    assert "SUMMARY:CS101 - Intro to Computing" in body
    assert "LOCATION:Library 2A" in body
    assert "ART100" not in body


def test_ical_escapes_text_and_folds_long_lines():
    entry = StudentScheduleEntry(
        enrollment_id=uuid.uuid4(),
        section_id=uuid.uuid4(),
        course_code="LIT300",
        course_name="Poetry, Prose; and " + "Very Long Titles " * 5,
        section_number=1,
        instructor_name="Emily Dickinson",
        building=None,
        room_number=None,
        day="Friday",
        start_time="15:00",
        end_time="17:00",
    )
    body = build_ical([entry], semester="spring", year=2027)

    assert r"Poetry\, Prose\; and" in body
    assert "LOCATION:TBA" in body
    assert "DTSTART:20270205T150000" in body
    for line in body.split("\r\n"):
        assert len(line.encode("utf-8")) <= 75


def test_single_digit_hours_sort_and_export_as_hh_mm(db, make, student_id):
    late = make.section(make.course("LATE100"), schedule={"days": ["Monday"], "startTime": "11:00", "endTime": "13:00"})
    early = make.section(make.course("EARLY100"), schedule={"days": ["Monday"], "startTime": "9:00", "endTime": "10:30"})
    make.enrollment(student_id, late)
    make.enrollment(student_id, early)

    entries = get_student_schedule(db, student_id=student_id, semester="fall", year=2026)
    assert [(e.course_code, e.start_time) for e in entries] == [("EARLY100", "09:00"), ("LATE100", "11:00")]

    body = build_ical(entries, semester="fall", year=2026)
    assert "DTSTART:20260907T090000" in body
    assert "DTEND:20260907T103000" in body
