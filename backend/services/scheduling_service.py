from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from core.errors import (
    InputError,
    SearchBudgetExceededError,
    UnsatisfiableConstraintsError,
)
from models.classroom import Classroom
from models.course import Course
from models.course_section import CourseSection
from models.instructor import Instructor
from models.schedule import Schedule
from models.schedule_run import ScheduleRun
from services.terms import normalize_semester
from solver.backtracking import ClassroomInput, ConstraintSolver, SectionInput, SolveResult
from solver.scoring import soft_constraints_score
from solver.time_slots import Day, TimeSlotCatalog, to_minutes


logger = logging.getLogger(__name__)


_term_locks: dict[tuple[str, int], threading.Lock] = {}
_term_locks_guard = threading.Lock()


def _term_lock(semester: str, year: int) -> threading.Lock:
    with _term_locks_guard:
        return _term_locks.setdefault((semester, int(year)), threading.Lock())


@dataclass(frozen=True)
class ScheduledSection:
    section_id: uuid.UUID
    course_code: str
    course_name: str
    section_number: int
    instructor_name: str
    classroom_id: uuid.UUID
    building: str
    room_number: str
    day: str
    start_time: str
    end_time: str
    enrolled_count: int
    capacity: int
    section_capacity: int
    semester: str
    year: int


@dataclass(frozen=True)
class ScheduleMetadata:
    total_sections: int
    scheduled_sections: int
    unscheduled_sections: int
    hard_constraints_satisfied: bool
    soft_constraints_score: int
    generated_at: datetime
    run_id: uuid.UUID
    search_steps: int


@dataclass(frozen=True)
class GeneratedSchedule:
    schedule: list[ScheduledSection]
    metadata: ScheduleMetadata


def _load_sections(db: Session, semester: str, year: int) -> list[tuple[CourseSection, Course, Instructor]]:
    q = (
        select(CourseSection, Course, Instructor)
        .join(Course, Course.id == CourseSection.course_id)
        .join(Instructor, Instructor.id == CourseSection.instructor_id)
        .where(CourseSection.semester == semester)
        .where(CourseSection.year == int(year))
        .where(CourseSection.is_active.is_(True))
        .order_by(Course.code.asc(), CourseSection.section_number.asc())
    )
    return [(s, c, i) for s, c, i in db.execute(q).all()]


def _load_classrooms(db: Session) -> list[Classroom]:
    q = (
        select(Classroom)
        .where(Classroom.is_active.is_(True))
        .order_by(Classroom.building.asc(), Classroom.room_number.asc())
    )
    return list(db.execute(q).scalars().all())


def _mark_failed(db: Session, run_id: uuid.UUID, status: str, message: str) -> None:
    db.rollback()
    run = db.get(ScheduleRun, run_id)
    if run is None:
        return
    run.status = status
    run.notes = message
    db.commit()


def generate_schedule(
    db: Session,
    *,
    semester: str,
    year: int,
    max_steps: int | None = None,
    max_time_seconds: float | None = None,
    catalog: TimeSlotCatalog | None = None,
) -> GeneratedSchedule:
    """Build and persist the timetable for one term.

    The term's previous schedule is replaced in a single transaction, and only
    if the search places every section. Every call leaves a ScheduleRun row
    behind recording how it ended.
    """

    semester = normalize_semester(semester)
    year = int(year)

    with _term_lock(semester, year):
        run = ScheduleRun(
            semester=semester,
            year=year,
            status="CREATED",
            parameters={
                "semester": semester,
                "year": year,
                "max_steps": max_steps,
                "max_time_seconds": max_time_seconds,
            },
        )
        db.add(run)
        db.commit()
        run_id = run.id

        try:
            rows = _load_sections(db, semester, year)
            classrooms = _load_classrooms(db)

            section_inputs = [
                SectionInput(
                    id=s.id,
                    instructor_id=s.instructor_id,
                    enrolled_count=int(s.enrolled_count),
                    capacity=int(s.capacity),
                    label=f"{c.code}-{s.section_number}",
                )
                for s, c, _ in rows
            ]
            classroom_inputs = [
                ClassroomInput(id=r.id, capacity=int(r.capacity), label=f"{r.building} {r.room_number}")
                for r in classrooms
            ]

            solver = ConstraintSolver(catalog, max_steps=max_steps, max_time_seconds=max_time_seconds)
            result = solver.solve(section_inputs, classroom_inputs)
        except InputError as exc:
            _mark_failed(db, run_id, "INPUT_ERROR", exc.message)
            raise
        except UnsatisfiableConstraintsError as exc:
            _mark_failed(db, run_id, "UNSATISFIABLE", exc.message)
            raise
        except SearchBudgetExceededError as exc:
            _mark_failed(db, run_id, "BUDGET_EXCEEDED", exc.message)
            raise
        except Exception as exc:
            logger.exception("Schedule generation failed for %s %s", semester, year)
            _mark_failed(db, run_id, "ERROR", str(exc) or exc.__class__.__name__)
            raise

        sections_by_id = {si.id: si for si in section_inputs}
        score = soft_constraints_score(result.assignments, sections_by_id)

        try:
            _replace_term_schedule(db, run_id, semester, year, rows, result, score)
        except Exception as exc:
            logger.exception("Persisting schedule failed for %s %s", semester, year)
            _mark_failed(db, run_id, "ERROR", str(exc) or exc.__class__.__name__)
            raise

        classrooms_by_id = {r.id: r for r in classrooms}
        entries: list[ScheduledSection] = []
        for section, course, instructor in rows:
            a = result.assignments[section.id]
            room = classrooms_by_id[a.classroom_id]
            entries.append(
                ScheduledSection(
                    section_id=section.id,
                    course_code=course.code,
                    course_name=course.name,
                    section_number=int(section.section_number),
                    instructor_name=instructor.full_name,
                    classroom_id=room.id,
                    building=room.building,
                    room_number=room.room_number,
                    day=a.time_slot.day.value,
                    start_time=a.time_slot.start_time,
                    end_time=a.time_slot.end_time,
                    enrolled_count=int(section.enrolled_count),
                    capacity=int(room.capacity),
                    section_capacity=int(section.capacity),
                    semester=semester,
                    year=year,
                )
            )
        entries.sort(key=lambda e: (Day.parse(e.day).order, to_minutes(e.start_time), e.course_code, e.section_number))

        metadata = ScheduleMetadata(
            total_sections=len(rows),
            scheduled_sections=len(result.assignments),
            unscheduled_sections=len(rows) - len(result.assignments),
            hard_constraints_satisfied=True,
            soft_constraints_score=score,
            generated_at=datetime.now(timezone.utc),
            run_id=run_id,
            search_steps=result.steps,
        )
        logger.info(
            "Generated schedule for %s %s: %s sections, score %s (run %s)",
            semester,
            year,
            metadata.scheduled_sections,
            score,
            run_id,
        )
        return GeneratedSchedule(schedule=entries, metadata=metadata)


def _replace_term_schedule(
    db: Session,
    run_id: uuid.UUID,
    semester: str,
    year: int,
    rows: list[tuple[CourseSection, Course, Instructor]],
    result: SolveResult,
    score: int,
) -> None:
    db.execute(delete(Schedule).where(Schedule.semester == semester).where(Schedule.year == year))

    new_rows: list[Schedule] = []
    for section, _, _ in rows:
        a = result.assignments[section.id]
        slot = a.time_slot
        new_rows.append(
            Schedule(
                run_id=run_id,
                section_id=section.id,
                classroom_id=a.classroom_id,
                day=slot.day.value,
                start_time=slot.start_time,
                end_time=slot.end_time,
                semester=semester,
                year=year,
                is_active=True,
            )
        )
        section.classroom_id = a.classroom_id
        section.schedule_json = {"days": [slot.day.value], "startTime": slot.start_time, "endTime": slot.end_time}
    db.add_all(new_rows)

    run = db.get(ScheduleRun, run_id)
    run.status = "SUCCEEDED"
    run.solver_version = result.solver_version
    run.soft_constraints_score = score
    run.parameters = {**(run.parameters or {}), "stats": result.stats()}
    db.commit()


def list_runs(
    db: Session,
    *,
    semester: str | None = None,
    year: int | None = None,
    limit: int = 50,
) -> list[ScheduleRun]:
    q = select(ScheduleRun)
    if semester is not None:
        q = q.where(ScheduleRun.semester == normalize_semester(semester))
    if year is not None:
        q = q.where(ScheduleRun.year == int(year))
    q = q.order_by(ScheduleRun.created_at.desc()).limit(limit)
    return list(db.execute(q).scalars().all())
