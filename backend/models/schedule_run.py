from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from models.base import Base, JSON_DOCUMENT


RUN_STATUSES = ("CREATED", "SUCCEEDED", "INPUT_ERROR", "UNSATISFIABLE", "BUDGET_EXCEEDED", "ERROR")


class ScheduleRun(Base):
    __tablename__ = "schedule_runs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    semester = Column(String(10), nullable=False)
    year = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    status = Column(String(20), nullable=False, default="CREATED")
    solver_version = Column(Text, nullable=True)
    parameters = Column(JSON_DOCUMENT, nullable=False, default=dict)
    soft_constraints_score = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status in ('CREATED', 'SUCCEEDED', 'INPUT_ERROR', 'UNSATISFIABLE', 'BUDGET_EXCEEDED', 'ERROR')",
            name="ck_schedule_runs_status",
        ),
    )
