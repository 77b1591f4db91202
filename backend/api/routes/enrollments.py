from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.deps import Principal, get_enrollment_manager, require_student
from core.database import get_db
from schemas.enrollment import (
    AutoEnrollRequest,
    AutoEnrollResponse,
    ConflictCheckRequest,
    ConflictCheckResponse,
    ConflictingSectionOut,
    EnrollmentOut,
    EnrollRequest,
)
from services.enrollment_service import EnrollmentCapacityManager
from services.schedule_conflicts import check_student_conflict
from solver.conflicts import WeeklySchedule


logger = logging.getLogger(__name__)


router = APIRouter()


@router.post("", response_model=EnrollmentOut, status_code=201)
def enroll(
    payload: EnrollRequest,
    student: Principal = Depends(require_student),
    manager: EnrollmentCapacityManager = Depends(get_enrollment_manager),
) -> EnrollmentOut:
    enrollment = manager.enroll(student_id=student.user_id, section_id=payload.section_id)
    return EnrollmentOut.model_validate(enrollment)


@router.delete("/{enrollment_id}", response_model=EnrollmentOut)
def drop(
    enrollment_id: uuid.UUID,
    student: Principal = Depends(require_student),
    manager: EnrollmentCapacityManager = Depends(get_enrollment_manager),
) -> EnrollmentOut:
    enrollment = manager.drop(enrollment_id=enrollment_id, student_id=student.user_id)
    return EnrollmentOut.model_validate(enrollment)


@router.post("/auto", response_model=AutoEnrollResponse)
def auto_enroll(
    payload: AutoEnrollRequest,
    student: Principal = Depends(require_student),
    manager: EnrollmentCapacityManager = Depends(get_enrollment_manager),
) -> AutoEnrollResponse:
    enrollments = manager.auto_enroll_by_department(
        student_id=student.user_id,
        department_id=payload.department_id,
        semester=payload.semester,
        year=payload.year,
    )
    logger.info(
        "Auto-enroll for student %s in department %s placed %s sections",
        student.user_id,
        payload.department_id,
        len(enrollments),
    )
    return AutoEnrollResponse(
        enrolled_count=len(enrollments),
        enrollments=[EnrollmentOut.model_validate(e) for e in enrollments],
    )


@router.post("/conflict-check", response_model=ConflictCheckResponse)
def conflict_check(
    payload: ConflictCheckRequest,
    student: Principal = Depends(require_student),
    db: Session = Depends(get_db),
) -> ConflictCheckResponse:
    candidate = WeeklySchedule.from_json(
        {"days": payload.days, "startTime": payload.start_time, "endTime": payload.end_time}
    )
    result = check_student_conflict(
        db,
        student_id=student.user_id,
        candidate=candidate,
        semester=payload.semester,
        year=payload.year,
    )
    return ConflictCheckResponse(
        has_conflict=result.has_conflict,
        conflicting_sections=[
            ConflictingSectionOut(
                section_id=c.section_id,
                course_code=c.course_code,
                course_name=c.course_name,
                schedule=c.schedule,
            )
            for c in result.conflicting_sections
        ],
    )
