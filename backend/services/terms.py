from __future__ import annotations

from datetime import date

from core.config import SEMESTERS, settings
from core.errors import InvalidSemesterError


def normalize_semester(value: str) -> str:
    v = (value or "").strip().lower()
    if v not in SEMESTERS:
        raise InvalidSemesterError(semester=value)
    return v


def term_for_date(today: date) -> tuple[str, int]:
    """Feb-May spring, Jun-Aug summer, Sep-Dec fall; January still belongs to last fall."""
    if today.month == 1:
        return "fall", today.year - 1
    if today.month <= 5:
        return "spring", today.year
    if today.month <= 8:
        return "summer", today.year
    return "fall", today.year


def current_term(today: date | None = None) -> tuple[str, int]:
    if settings.current_semester and settings.current_year:
        return settings.current_semester, int(settings.current_year)
    return term_for_date(today or date.today())


def semester_window(semester: str, year: int) -> tuple[date, date]:
    semester = normalize_semester(semester)
    if semester == "fall":
        return date(year, 9, 1), date(year, 12, 31)
    if semester == "spring":
        return date(year, 2, 1), date(year, 6, 30)
    return date(year, 6, 1), date(year, 8, 31)
