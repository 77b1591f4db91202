from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from services.terms import normalize_semester


class _CamelModel(BaseModel):
    # Field names are snake_case in Python and camelCase on the wire.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class GenerateScheduleRequest(_CamelModel):
    semester: str = Field(min_length=1)
    year: int = Field(ge=2000, le=2100)
    # Optional search budget; falls back to the configured defaults.
    max_steps: int | None = Field(default=None, gt=0)
    max_time_seconds: float | None = Field(default=None, gt=0)

    @field_validator("semester")
    @classmethod
    def _normalize_semester(cls, v: str) -> str:
        return normalize_semester(v)


class ScheduledSectionOut(_CamelModel):
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


class ScheduleMetadataOut(_CamelModel):
    total_sections: int
    scheduled_sections: int
    unscheduled_sections: int
    hard_constraints_satisfied: bool
    soft_constraints_score: int
    generated_at: datetime
    run_id: uuid.UUID
    search_steps: int


class GenerateScheduleResponse(_CamelModel):
    schedule: list[ScheduledSectionOut]
    metadata: ScheduleMetadataOut


class ScheduleRunOut(_CamelModel):
    id: uuid.UUID
    semester: str
    year: int
    created_at: datetime
    status: str
    solver_version: str | None = None
    soft_constraints_score: int | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)
    notes: str | None = None


class ListRunsResponse(_CamelModel):
    runs: list[ScheduleRunOut]


class StudentScheduleEntryOut(_CamelModel):
    enrollment_id: uuid.UUID
    section_id: uuid.UUID
    course_code: str
    course_name: str
    section_number: int
    instructor_name: str
    building: str | None = None
    room_number: str | None = None
    day: str
    start_time: str
    end_time: str


class StudentScheduleResponse(_CamelModel):
    semester: str
    year: int
    entries: list[StudentScheduleEntryOut]
