from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session

from models.course import Course
from models.course_prerequisite import CoursePrerequisite
from models.course_section import CourseSection
from models.enrollment import PASSING_GRADES, Enrollment


@dataclass(frozen=True)
class MissingPrerequisite:
    course_id: uuid.UUID
    code: str | None
    name: str | None


@dataclass
class PrerequisiteCheck:
    satisfied: bool
    missing: list[MissingPrerequisite] = field(default_factory=list)

    @property
    def missing_codes(self) -> list[str]:
        return [m.code or str(m.course_id) for m in self.missing]


def _has_passed(db: Session, *, student_id: uuid.UUID, course_id: uuid.UUID) -> bool:
    q = (
        select(Enrollment.id)
        .join(CourseSection, CourseSection.id == Enrollment.section_id)
        .where(CourseSection.course_id == course_id)
        .where(Enrollment.student_id == student_id)
        .where(Enrollment.status == "completed")
        .where(Enrollment.letter_grade.in_(PASSING_GRADES))
        .limit(1)
    )
    return db.execute(q).first() is not None


def check_prerequisites(
    db: Session,
    *,
    course_id: uuid.UUID,
    student_id: uuid.UUID,
    visited: set[uuid.UUID] | None = None,
) -> PrerequisiteCheck:
    """Walk the prerequisite graph below `course_id`.

    A prerequisite counts as met when the student completed any section of it
    with a passing letter grade; met prerequisites are then checked for their
    own prerequisites. `visited` makes cycles in the graph terminate.
    """

    visited = set() if visited is None else visited
    if course_id in visited:
        return PrerequisiteCheck(satisfied=True)
    visited.add(course_id)

    rows = db.execute(
        select(CoursePrerequisite.prerequisite_course_id, Course.code, Course.name)
        .join(Course, Course.id == CoursePrerequisite.prerequisite_course_id)
        .where(CoursePrerequisite.course_id == course_id)
        .order_by(Course.code.asc())
    ).all()

    missing: list[MissingPrerequisite] = []
    for prereq_id, code, name in rows:
        if not _has_passed(db, student_id=student_id, course_id=prereq_id):
            missing.append(MissingPrerequisite(course_id=prereq_id, code=code, name=name))
            continue

        nested = check_prerequisites(db, course_id=prereq_id, student_id=student_id, visited=visited)
        for m in nested.missing:
            if m not in missing:
                missing.append(m)

    return PrerequisiteCheck(satisfied=not missing, missing=missing)
