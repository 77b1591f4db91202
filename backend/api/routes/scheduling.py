from __future__ import annotations

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from api.deps import Principal, require_admin, require_student
from core.config import settings
from core.database import get_db
from schemas.scheduling import (
    GenerateScheduleRequest,
    GenerateScheduleResponse,
    ListRunsResponse,
    ScheduleRunOut,
    StudentScheduleEntryOut,
    StudentScheduleResponse,
)
from services.scheduling_service import generate_schedule, list_runs
from services.student_schedule import build_ical, get_student_schedule
from services.terms import current_term, normalize_semester


logger = logging.getLogger(__name__)


router = APIRouter()


def _resolve_term(semester: str | None, year: int | None) -> tuple[str, int]:
    default_semester, default_year = current_term()
    return normalize_semester(semester or default_semester), int(year or default_year)


@router.post("/generate", response_model=GenerateScheduleResponse)
def generate(
    payload: GenerateScheduleRequest,
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> GenerateScheduleResponse:
    logger.info("Schedule generation for %s %s requested by %s", payload.semester, payload.year, admin.user_id)
    result = generate_schedule(
        db,
        semester=payload.semester,
        year=payload.year,
        max_steps=payload.max_steps or settings.scheduler_max_steps,
        max_time_seconds=payload.max_time_seconds or settings.scheduler_max_time_seconds,
    )
    return GenerateScheduleResponse.model_validate(
        {
            "schedule": [asdict(e) for e in result.schedule],
            "metadata": asdict(result.metadata),
        }
    )


@router.get("/runs", response_model=ListRunsResponse)
def runs(
    semester: str | None = Query(default=None),
    year: int | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> ListRunsResponse:
    rows = list_runs(db, semester=semester, year=year, limit=limit)
    return ListRunsResponse(runs=[ScheduleRunOut.model_validate(r) for r in rows])


@router.get("/my-schedule", response_model=StudentScheduleResponse)
def my_schedule(
    semester: str | None = Query(default=None),
    year: int | None = Query(default=None),
    student: Principal = Depends(require_student),
    db: Session = Depends(get_db),
) -> StudentScheduleResponse:
    semester, year = _resolve_term(semester, year)
    entries = get_student_schedule(db, student_id=student.user_id, semester=semester, year=year)
    return StudentScheduleResponse(
        semester=semester,
        year=year,
        entries=[StudentScheduleEntryOut.model_validate(e) for e in entries],
    )


@router.get("/my-schedule/ical")
def my_schedule_ical(
    semester: str | None = Query(default=None),
    year: int | None = Query(default=None),
    student: Principal = Depends(require_student),
    db: Session = Depends(get_db),
) -> Response:
    semester, year = _resolve_term(semester, year)
    entries = get_student_schedule(db, student_id=student.user_id, semester=semester, year=year)
    body = build_ical(entries, semester=semester, year=year)
    return Response(
        content=body,
        media_type="text/calendar; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="schedule-{semester}-{year}.ics"'},
    )
