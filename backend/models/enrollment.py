from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from models.base import Base


ENROLLMENT_STATUSES = ("enrolled", "completed", "dropped", "failed")
PASSING_GRADES = ("A", "B", "C", "D")


class Enrollment(Base):
    __tablename__ = "enrollments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Students live in the external user service; only the id is stored here.
    student_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    section_id = Column(UUID(as_uuid=True), ForeignKey("course_sections.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="enrolled")
    enrollment_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    letter_grade = Column(String(1), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            "status in ('enrolled', 'completed', 'dropped', 'failed')",
            name="ck_enrollments_status",
        ),
        CheckConstraint(
            "letter_grade is null or letter_grade in ('A', 'B', 'C', 'D', 'F', 'I', 'W')",
            name="ck_enrollments_letter_grade",
        ),
        # At most one live (non-dropped) enrollment per student and section.
        Index(
            "ux_enrollments_student_section_live",
            "student_id",
            "section_id",
            unique=True,
            postgresql_where=text("status <> 'dropped'"),
            sqlite_where=text("status <> 'dropped'"),
        ),
    )
