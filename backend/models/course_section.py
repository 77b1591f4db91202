from __future__ import annotations

import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from models.base import Base, JSON_DOCUMENT


class CourseSection(Base):
    __tablename__ = "course_sections"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    course_id = Column(UUID(as_uuid=True), ForeignKey("courses.id"), nullable=False, index=True)
    section_number = Column(Integer, nullable=False)
    semester = Column(String(10), nullable=False)
    year = Column(Integer, nullable=False)
    instructor_id = Column(UUID(as_uuid=True), ForeignKey("instructors.id"), nullable=False, index=True)
    # Set by the scheduler once the section has been placed.
    classroom_id = Column(UUID(as_uuid=True), ForeignKey("classrooms.id"), nullable=True)
    capacity = Column(Integer, nullable=False, default=30)
    enrolled_count = Column(Integer, nullable=False, default=0)
    # {"days": ["Monday", ...], "startTime": "HH:MM", "endTime": "HH:MM"}
    schedule_json = Column(JSON_DOCUMENT, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("semester in ('fall', 'spring', 'summer')", name="ck_course_sections_semester"),
        CheckConstraint("capacity >= 0", name="ck_course_sections_capacity"),
        CheckConstraint(
            "enrolled_count >= 0 and enrolled_count <= capacity",
            name="ck_course_sections_enrolled_count",
        ),
        UniqueConstraint("course_id", "section_number", "semester", "year", name="uq_course_sections_term_number"),
    )
