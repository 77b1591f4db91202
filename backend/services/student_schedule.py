from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from models.classroom import Classroom
from models.course import Course
from models.course_section import CourseSection
from models.enrollment import Enrollment
from models.instructor import Instructor
from services.terms import normalize_semester, semester_window
from solver.conflicts import WeeklySchedule
from solver.time_slots import Day, to_minutes


@dataclass(frozen=True)
class StudentScheduleEntry:
    enrollment_id: uuid.UUID
    section_id: uuid.UUID
    course_code: str
    course_name: str
    section_number: int
    instructor_name: str
    building: str | None
    room_number: str | None
    # Empty for sections that have not been scheduled yet.
    day: str
    start_time: str
    end_time: str

    @property
    def is_scheduled(self) -> bool:
        return bool(self.day)


def get_student_schedule(
    db: Session,
    *,
    student_id: uuid.UUID,
    semester: str,
    year: int,
) -> list[StudentScheduleEntry]:
    semester = normalize_semester(semester)

    q = (
        select(Enrollment, CourseSection, Course, Instructor, Classroom)
        .join(CourseSection, CourseSection.id == Enrollment.section_id)
        .join(Course, Course.id == CourseSection.course_id)
        .join(Instructor, Instructor.id == CourseSection.instructor_id)
        .outerjoin(Classroom, Classroom.id == CourseSection.classroom_id)
        .where(Enrollment.student_id == student_id)
        .where(Enrollment.status == "enrolled")
        .where(CourseSection.semester == semester)
        .where(CourseSection.year == int(year))
    )

    scheduled: list[StudentScheduleEntry] = []
    unscheduled: list[StudentScheduleEntry] = []
    for enrollment, section, course, instructor, room in db.execute(q).all():
        base = dict(
            enrollment_id=enrollment.id,
            section_id=section.id,
            course_code=course.code,
            course_name=course.name,
            section_number=int(section.section_number),
            instructor_name=instructor.full_name,
            building=room.building if room is not None else None,
            room_number=room.room_number if room is not None else None,
        )
        pattern = WeeklySchedule.from_json(section.schedule_json)
        if pattern is None:
            unscheduled.append(StudentScheduleEntry(day="", start_time="", end_time="", **base))
            continue
        for day in pattern.days:
            scheduled.append(
                StudentScheduleEntry(
                    day=day.value,
                    start_time=pattern.start_time,
                    end_time=pattern.end_time,
                    **base,
                )
            )

    scheduled.sort(key=lambda e: (Day.parse(e.day).order, to_minutes(e.start_time), e.course_code))
    unscheduled.sort(key=lambda e: (e.course_code, e.section_number))
    return scheduled + unscheduled


# --- iCalendar ---------------------------------------------------------------


def _escape(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def _fold(line: str) -> str:
    # Content lines longer than 75 octets continue on lines starting with a space.
    raw = line.encode("utf-8")
    if len(raw) <= 75:
        return line
    parts: list[str] = []
    while raw:
        limit = 75 if not parts else 74
        cut = min(limit, len(raw))
        # Never split inside a multi-byte character.
        while cut < len(raw) and (raw[cut] & 0xC0) == 0x80:
            cut -= 1
        parts.append(raw[:cut].decode("utf-8"))
        raw = raw[cut:]
    return "\r\n ".join(parts)


def _first_occurrence(start: date, day: Day) -> date:
    return start + timedelta(days=(day.order - start.weekday()) % 7)


def _local(d: date, hhmm: str) -> str:
    return f"{d.strftime('%Y%m%d')}T{hhmm.replace(':', '')}00"


def build_ical(
    entries: Iterable[StudentScheduleEntry],
    *,
    semester: str,
    year: int,
    now: datetime | None = None,
) -> str:
    """Render a student's term as an iCalendar document.

    Each scheduled entry becomes one weekly recurring event between the first
    matching weekday of the term and the term's last day. Times are floating
    (campus local time). Unscheduled entries are left out.
    """

    window_start, window_end = semester_window(semester, year)
    stamp = (now or datetime.now(timezone.utc)).astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    until = f"{window_end.strftime('%Y%m%d')}T235959"

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//Campus Scheduling//Student Schedule//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        _fold(f"X-WR-CALNAME:{_escape(f'{semester.capitalize()} {year} Schedule')}"),
    ]

    for e in entries:
        if not e.is_scheduled:
            continue
        day = Day.parse(e.day)
        first = _first_occurrence(window_start, day)
        location = " ".join(p for p in (e.building, e.room_number) if p)
        lines.extend(
            [
                "BEGIN:VEVENT",
                f"UID:{e.section_id}-{day.abbreviation}@campus-scheduling",
                f"DTSTAMP:{stamp}",
                f"DTSTART:{_local(first, e.start_time)}",
                f"DTEND:{_local(first, e.end_time)}",
                f"RRULE:FREQ=WEEKLY;BYDAY={day.abbreviation};UNTIL={until}",
                _fold(f"SUMMARY:{_escape(f'{e.course_code} - {e.course_name}')}"),
                _fold(f"LOCATION:{_escape(location or 'TBA')}"),
                _fold(f"DESCRIPTION:{_escape(f'Section {e.section_number} with {e.instructor_name}')}"),
                "END:VEVENT",
            ]
        )

    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"
