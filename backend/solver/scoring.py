from __future__ import annotations

from collections import defaultdict
from typing import Hashable, Mapping

from solver.backtracking import Assignment, SectionInput
from solver.time_slots import Day


WORKING_DAYS = 5
PREFERRED_START = "09:00"


def instructor_days(
    assignments: Mapping[Hashable, Assignment],
    sections_by_id: Mapping[Hashable, SectionInput],
) -> dict[Hashable, set[Day]]:
    days: dict[Hashable, set[Day]] = defaultdict(set)
    for section_id, a in assignments.items():
        days[sections_by_id[section_id].instructor_id].add(a.time_slot.day)
    return days


def soft_constraints_score(
    assignments: Mapping[Hashable, Assignment],
    sections_by_id: Mapping[Hashable, SectionInput],
    *,
    working_days: int = WORKING_DAYS,
    preferred_start: str = PREFERRED_START,
) -> int:
    """Score a finished schedule 0-100 on day spread and morning starts.

    Per assignment: up to 50 points for how many distinct days the section's
    instructor teaches on, plus 50 for a preferred-start slot (25 otherwise).
    The result is the rounded mean. It never influences which schedule is chosen.
    """

    if not assignments:
        return 0

    days_by_instructor = instructor_days(assignments, sections_by_id)
    total = 0.0
    for section_id, a in assignments.items():
        used = days_by_instructor[sections_by_id[section_id].instructor_id]
        distribution = (len(used) / working_days) * 50
        preference = 50 if a.time_slot.start_time == preferred_start else 25
        total += distribution + preference

    # Half-up rounding; Python's round() would send 62.5 to 62.
    return int(total / len(assignments) + 0.5)
