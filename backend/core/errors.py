from __future__ import annotations

from typing import Any


class CampusError(Exception):
    """Base class for domain errors raised by the scheduler and enrollment services.

    `code` is a stable machine-readable identifier, `status_code` is the HTTP
    status the API layer maps the error to, and `details` carries whatever the
    caller needs to render a precise message.
    """

    code = "CAMPUS_ERROR"
    status_code = 400
    default_message = "Request could not be completed."

    def __init__(self, message: str | None = None, **details: Any) -> None:
        self.message = message or self.default_message
        self.details: dict[str, Any] = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class InvalidTimeFormat(ValueError):
    """Raised for a time string that is not H:MM / HH:MM within 00:00-23:59."""

    code = "INVALID_TIME_FORMAT"

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Invalid time format: {value!r} (expected HH:MM)")


# --- Scheduling -------------------------------------------------------------


class SchedulingError(CampusError):
    code = "SCHEDULING_ERROR"


class InputError(SchedulingError):
    code = "INPUT_ERROR"
    status_code = 404


class NoSectionsError(InputError):
    code = "NO_SECTIONS"
    default_message = "No sections found for this semester"


class NoClassroomsError(InputError):
    code = "NO_CLASSROOMS"
    default_message = "No classrooms available"


class UnsatisfiableConstraintsError(SchedulingError):
    code = "UNSATISFIABLE_CONSTRAINTS"
    status_code = 409
    default_message = "Unable to generate schedule - constraints cannot be satisfied"


class SearchBudgetExceededError(SchedulingError):
    code = "SEARCH_BUDGET_EXCEEDED"
    status_code = 503
    default_message = "Schedule search stopped before finishing; retry with a larger budget"


# --- Enrollment -------------------------------------------------------------


class EnrollmentError(CampusError):
    code = "ENROLLMENT_ERROR"


class SectionNotFoundError(EnrollmentError):
    code = "SECTION_NOT_FOUND"
    status_code = 404
    default_message = "Section not found"


class EnrollmentNotFoundError(EnrollmentError):
    code = "ENROLLMENT_NOT_FOUND"
    status_code = 404
    default_message = "Enrollment not found"


class UnauthorizedEnrollmentError(EnrollmentError):
    code = "NOT_AUTHORIZED"
    status_code = 403
    default_message = "Enrollment belongs to another student"


class AlreadyEnrolledError(EnrollmentError):
    code = "ALREADY_ENROLLED"
    status_code = 409
    default_message = "You are already enrolled in this section"


class SectionFullError(EnrollmentError):
    code = "SECTION_FULL"
    status_code = 409
    default_message = "Section is full"


class PrerequisitesNotMetError(EnrollmentError):
    code = "PREREQUISITES_NOT_MET"
    status_code = 400

    def __init__(self, missing_codes: list[str], **details: Any) -> None:
        super().__init__(
            f"Prerequisites not met. Missing: {', '.join(missing_codes)}",
            missing_codes=list(missing_codes),
            **details,
        )


class ScheduleConflictError(EnrollmentError):
    code = "SCHEDULE_CONFLICT"
    status_code = 409

    def __init__(self, conflicting_codes: list[str], **details: Any) -> None:
        super().__init__(
            f"Schedule conflict detected with: {', '.join(conflicting_codes)}",
            conflicting_codes=list(conflicting_codes),
            **details,
        )


class InvalidEnrollmentStatusError(EnrollmentError):
    code = "INVALID_ENROLLMENT_STATUS"
    status_code = 400
    default_message = "Can only drop enrolled courses"


class DropPeriodEndedError(EnrollmentError):
    code = "DROP_PERIOD_ENDED"
    status_code = 400
    default_message = "Drop period has ended"


class InvalidSemesterError(CampusError, ValueError):
    code = "INVALID_SEMESTER"
    status_code = 422
    default_message = "Semester must be 'fall', 'spring', or 'summer'"


class InvalidDayError(CampusError, ValueError):
    code = "INVALID_DAY"
    status_code = 422
    default_message = "Unknown day of the week"
