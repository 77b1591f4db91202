from __future__ import annotations

import os

# Settings are read at import time; point them at sqlite before anything imports core.config.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")

import uuid
from datetime import datetime, timezone
from typing import Any

import pytest
from sqlalchemy.orm import Session, sessionmaker

from core.database import build_engine
from models import (
    Base,
    Classroom,
    Course,
    CoursePrerequisite,
    CourseSection,
    Department,
    Enrollment,
    Instructor,
)


@pytest.fixture()
def engine():
    """Fresh in-memory database per test."""
    eng = build_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture()
def file_engine(tmp_path):
    """File-backed database so several connections can race on the same rows."""
    eng = build_engine(f"sqlite+pysqlite:///{tmp_path / 'campus.db'}")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture()
def db(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


class Factory:
    """Small helpers for building campus rows; every call commits."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def _save(self, obj: Any) -> Any:
        self.db.add(obj)
        self.db.commit()
        return obj

    def department(self, code: str | None = None, **kw: Any) -> Department:
        n = self._next()
        code = code or f"D{n}"
        return self._save(Department(code=code, name=kw.pop("name", f"Department {code}"), **kw))

    def course(self, code: str, *, department: Department | None = None, **kw: Any) -> Course:
        department = department or self.department()
        return self._save(
            Course(department_id=department.id, code=code, name=kw.pop("name", f"Course {code}"), **kw)
        )

    def prerequisite(self, course: Course, requires: Course) -> CoursePrerequisite:
        return self._save(CoursePrerequisite(course_id=course.id, prerequisite_course_id=requires.id))

    def instructor(self, first_name: str = "Ada", last_name: str | None = None) -> Instructor:
        return self._save(Instructor(first_name=first_name, last_name=last_name or f"Instructor{self._next()}"))

    def classroom(
        self, capacity: int, *, building: str = "Main", room_number: str | None = None, **kw: Any
    ) -> Classroom:
        return self._save(
            Classroom(building=building, room_number=room_number or str(100 + self._next()), capacity=capacity, **kw)
        )

    def section(
        self,
        course: Course,
        *,
        instructor: Instructor | None = None,
        section_number: int | None = None,
        semester: str = "fall",
        year: int = 2026,
        capacity: int = 30,
        enrolled_count: int = 0,
        schedule: dict[str, Any] | None = None,
        **kw: Any,
    ) -> CourseSection:
        instructor = instructor or self.instructor()
        return self._save(
            CourseSection(
                course_id=course.id,
                section_number=section_number or self._next(),
                semester=semester,
                year=year,
                instructor_id=instructor.id,
                capacity=capacity,
                enrolled_count=enrolled_count,
                schedule_json=schedule,
                **kw,
            )
        )

    def enrollment(
        self,
        student_id: uuid.UUID,
        section: CourseSection,
        *,
        status: str = "enrolled",
        letter_grade: str | None = None,
        enrollment_date: datetime | None = None,
    ) -> Enrollment:
        return self._save(
            Enrollment(
                student_id=student_id,
                section_id=section.id,
                status=status,
                letter_grade=letter_grade,
                enrollment_date=enrollment_date or datetime.now(timezone.utc),
            )
        )


@pytest.fixture()
def make(db) -> Factory:
    return Factory(db)


@pytest.fixture()
def student_id() -> uuid.UUID:
    return uuid.uuid4()
