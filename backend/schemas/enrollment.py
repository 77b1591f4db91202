from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from services.terms import normalize_semester
from solver.time_slots import Day, normalize_time, to_minutes


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class EnrollRequest(_CamelModel):
    section_id: uuid.UUID


class AutoEnrollRequest(_CamelModel):
    department_id: uuid.UUID
    semester: str | None = None
    year: int | None = Field(default=None, ge=2000, le=2100)

    @field_validator("semester")
    @classmethod
    def _normalize_semester(cls, v: str | None) -> str | None:
        return normalize_semester(v) if v else None


class EnrollmentOut(_CamelModel):
    id: uuid.UUID
    student_id: uuid.UUID
    section_id: uuid.UUID
    status: str
    enrollment_date: datetime
    letter_grade: str | None = None


class AutoEnrollResponse(_CamelModel):
    enrolled_count: int
    enrollments: list[EnrollmentOut]


class ConflictCheckRequest(_CamelModel):
    days: list[str] = Field(min_length=1)
    start_time: str
    end_time: str
    semester: str
    year: int = Field(ge=2000, le=2100)

    @field_validator("days")
    @classmethod
    def _normalize_days(cls, v: list[str]) -> list[str]:
        return [Day.parse(d).value for d in v]

    @field_validator("start_time", "end_time")
    @classmethod
    def _validate_time(cls, v: str) -> str:
        return normalize_time(v)

    @field_validator("semester")
    @classmethod
    def _normalize_semester(cls, v: str) -> str:
        return normalize_semester(v)

    @model_validator(mode="after")
    def _check_range(self) -> "ConflictCheckRequest":
        if to_minutes(self.start_time) >= to_minutes(self.end_time):
            raise ValueError("endTime must be after startTime")
        return self


class ConflictingSectionOut(_CamelModel):
    section_id: uuid.UUID
    course_code: str
    course_name: str
    schedule: dict[str, Any]


class ConflictCheckResponse(_CamelModel):
    has_conflict: bool
    conflicting_sections: list[ConflictingSectionOut]
