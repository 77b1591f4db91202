from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.errors import (
    AlreadyEnrolledError,
    DropPeriodEndedError,
    EnrollmentNotFoundError,
    InvalidEnrollmentStatusError,
    PrerequisitesNotMetError,
    ScheduleConflictError,
    SectionFullError,
    SectionNotFoundError,
    UnauthorizedEnrollmentError,
)
from models.course import Course
from models.course_section import CourseSection
from models.enrollment import Enrollment
from services.prerequisites import check_prerequisites
from services.schedule_conflicts import check_student_conflict
from services.terms import current_term, normalize_semester
from solver.conflicts import WeeklySchedule, first_overlap


logger = logging.getLogger(__name__)

DEFAULT_DROP_PERIOD = timedelta(weeks=4)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # sqlite hands back naive datetimes; they were written as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class EnrollmentCapacityManager:
    """Seat accounting for course sections.

    Every seat change is a single conditional UPDATE on `course_sections`, so
    concurrent requests for the last seat serialize in the database: exactly
    one wins and the rest get `SectionFullError`.
    """

    def __init__(
        self,
        db: Session,
        *,
        enforce_prerequisites: bool = True,
        drop_period: timedelta = DEFAULT_DROP_PERIOD,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.db = db
        self.enforce_prerequisites = enforce_prerequisites
        self.drop_period = drop_period
        self._now = now

    # --- seat counter -----------------------------------------------------

    def _take_seat(self, section_id: uuid.UUID) -> bool:
        res = self.db.execute(
            update(CourseSection)
            .where(CourseSection.id == section_id)
            .where(CourseSection.enrolled_count < CourseSection.capacity)
            .values(enrolled_count=CourseSection.enrolled_count + 1)
            .execution_options(synchronize_session=False)
        )
        return int(res.rowcount or 0) == 1

    def _release_seat(self, section_id: uuid.UUID) -> None:
        self.db.execute(
            update(CourseSection)
            .where(CourseSection.id == section_id)
            .where(CourseSection.enrolled_count > 0)
            .values(enrolled_count=CourseSection.enrolled_count - 1)
            .execution_options(synchronize_session=False)
        )

    def _live_enrollment(self, student_id: uuid.UUID, section_id: uuid.UUID) -> Enrollment | None:
        return (
            self.db.execute(
                select(Enrollment)
                .where(Enrollment.student_id == student_id)
                .where(Enrollment.section_id == section_id)
                .where(Enrollment.status != "dropped")
                .limit(1)
            )
            .scalars()
            .first()
        )

    def _insert_enrollment(self, section: CourseSection, student_id: uuid.UUID) -> Enrollment:
        """Take a seat and insert the enrollment row, committing both or neither."""
        try:
            if not self._take_seat(section.id):
                self.db.rollback()
                raise SectionFullError(section_id=str(section.id))

            enrollment = Enrollment(
                student_id=student_id,
                section_id=section.id,
                status="enrolled",
                enrollment_date=self._now(),
            )
            self.db.add(enrollment)
            self.db.flush()
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise AlreadyEnrolledError(section_id=str(section.id)) from exc
        except SectionFullError:
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.expire(section, ["enrolled_count"])
        return enrollment

    # --- operations -------------------------------------------------------

    def enroll(self, *, student_id: uuid.UUID, section_id: uuid.UUID) -> Enrollment:
        section = self.db.get(CourseSection, section_id)
        if section is None:
            raise SectionNotFoundError(section_id=str(section_id))

        if self._live_enrollment(student_id, section.id) is not None:
            raise AlreadyEnrolledError(section_id=str(section.id))

        # Optimistic read; the conditional UPDATE below is authoritative.
        if int(section.enrolled_count) >= int(section.capacity):
            raise SectionFullError(section_id=str(section.id))

        prereq = check_prerequisites(self.db, course_id=section.course_id, student_id=student_id)
        if not prereq.satisfied:
            if self.enforce_prerequisites:
                raise PrerequisitesNotMetError(prereq.missing_codes, section_id=str(section.id))
            logger.warning(
                "Prerequisites not met for student %s on section %s (missing %s); enrolling anyway",
                student_id,
                section.id,
                ", ".join(prereq.missing_codes),
            )

        candidate = WeeklySchedule.from_json(section.schedule_json)
        conflict = check_student_conflict(
            self.db,
            student_id=student_id,
            candidate=candidate,
            semester=section.semester,
            year=int(section.year),
            exclude_section_id=section.id,
        )
        if conflict.has_conflict:
            raise ScheduleConflictError(
                conflict.course_codes,
                section_id=str(section.id),
                conflicting_sections=[
                    {
                        "section_id": str(c.section_id),
                        "course_code": c.course_code,
                        "course_name": c.course_name,
                        "schedule": c.schedule,
                    }
                    for c in conflict.conflicting_sections
                ],
            )

        # The reads above opened a transaction; the seat update joins it.
        enrollment = self._insert_enrollment(section, student_id)
        logger.info("Student %s enrolled in section %s", student_id, section.id)
        return enrollment

    def drop(self, *, enrollment_id: uuid.UUID, student_id: uuid.UUID) -> Enrollment:
        enrollment = self.db.get(Enrollment, enrollment_id)
        if enrollment is None:
            raise EnrollmentNotFoundError(enrollment_id=str(enrollment_id))
        if enrollment.student_id != student_id:
            raise UnauthorizedEnrollmentError(enrollment_id=str(enrollment_id))
        if enrollment.status != "enrolled":
            raise InvalidEnrollmentStatusError(enrollment_id=str(enrollment_id), status=enrollment.status)

        enrolled_at = _as_utc(enrollment.enrollment_date)
        deadline = enrolled_at + self.drop_period
        if self._now() > deadline:
            raise DropPeriodEndedError(
                enrollment_id=str(enrollment_id),
                drop_deadline=deadline.isoformat(),
            )

        try:
            enrollment.status = "dropped"
            self.db.flush()
            self._release_seat(enrollment.section_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        section = self.db.get(CourseSection, enrollment.section_id)
        if section is not None:
            self.db.expire(section, ["enrolled_count"])
        logger.info("Student %s dropped enrollment %s", student_id, enrollment_id)
        return enrollment

    def auto_enroll_by_department(
        self,
        *,
        student_id: uuid.UUID,
        department_id: uuid.UUID,
        semester: str | None = None,
        year: int | None = None,
    ) -> list[Enrollment]:
        """Enroll the student in every section of the department they can fit this term.

        Sections already taken, full, or clashing with the student's timetable
        (including sections accepted earlier in this batch) are skipped without
        an error. Prerequisites are not checked here.
        """

        if semester is None or year is None:
            default_semester, default_year = current_term()
            semester = semester or default_semester
            year = year or default_year
        semester = normalize_semester(semester)

        sections = (
            self.db.execute(
                select(CourseSection)
                .join(Course, Course.id == CourseSection.course_id)
                .where(Course.department_id == department_id)
                .where(Course.is_active.is_(True))
                .where(CourseSection.is_active.is_(True))
                .where(CourseSection.semester == semester)
                .where(CourseSection.year == int(year))
                .order_by(Course.code.asc(), CourseSection.section_number.asc())
            )
            .scalars()
            .all()
        )

        accepted: list[Enrollment] = []
        accepted_schedules: list[WeeklySchedule] = []
        for section in sections:
            if self._live_enrollment(student_id, section.id) is not None:
                continue
            if int(section.enrolled_count) >= int(section.capacity):
                continue

            candidate = WeeklySchedule.from_json(section.schedule_json)
            if candidate is not None:
                if first_overlap(candidate, accepted_schedules) is not None:
                    continue
                conflict = check_student_conflict(
                    self.db,
                    student_id=student_id,
                    candidate=candidate,
                    semester=semester,
                    year=int(year),
                    exclude_section_id=section.id,
                )
                if conflict.has_conflict:
                    continue

            try:
                enrollment = self._insert_enrollment(section, student_id)
            except (SectionFullError, AlreadyEnrolledError):
                continue

            accepted.append(enrollment)
            if candidate is not None:
                accepted_schedules.append(candidate)

        logger.info(
            "Auto-enrolled student %s in %s of %s sections (department %s, %s %s)",
            student_id,
            len(accepted),
            len(sections),
            department_id,
            semester,
            year,
        )
        return accepted
