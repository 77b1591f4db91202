from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from models.course import Course
from models.course_section import CourseSection
from models.enrollment import Enrollment
from solver.conflicts import WeeklySchedule, overlaps


@dataclass(frozen=True)
class ConflictingSection:
    section_id: uuid.UUID
    course_code: str
    course_name: str
    schedule: dict[str, Any]


@dataclass(frozen=True)
class ConflictCheckResult:
    has_conflict: bool
    conflicting_sections: list[ConflictingSection] = field(default_factory=list)

    @property
    def course_codes(self) -> list[str]:
        return [c.course_code for c in self.conflicting_sections]


def check_student_conflict(
    db: Session,
    *,
    student_id: uuid.UUID,
    candidate: WeeklySchedule | None,
    semester: str,
    year: int,
    exclude_section_id: uuid.UUID | None = None,
) -> ConflictCheckResult:
    """Compare a candidate meeting pattern with the student's current enrollments in the same term.

    Every clashing section is reported, oldest enrollment first.
    """

    if candidate is None:
        return ConflictCheckResult(has_conflict=False)

    q = (
        select(CourseSection, Course.code, Course.name)
        .select_from(Enrollment)
        .join(CourseSection, CourseSection.id == Enrollment.section_id)
        .join(Course, Course.id == CourseSection.course_id)
        .where(Enrollment.student_id == student_id)
        .where(Enrollment.status == "enrolled")
        .where(CourseSection.semester == semester)
        .where(CourseSection.year == year)
        .order_by(Enrollment.enrollment_date.asc(), Enrollment.created_at.asc())
    )
    if exclude_section_id is not None:
        q = q.where(CourseSection.id != exclude_section_id)

    conflicting: list[ConflictingSection] = []
    for section, course_code, course_name in db.execute(q).all():
        existing = WeeklySchedule.from_json(section.schedule_json)
        if existing is None:
            continue
        if overlaps(existing, candidate):
            conflicting.append(
                ConflictingSection(
                    section_id=section.id,
                    course_code=str(course_code),
                    course_name=str(course_name),
                    schedule=existing.to_json(),
                )
            )

    return ConflictCheckResult(has_conflict=bool(conflicting), conflicting_sections=conflicting)
