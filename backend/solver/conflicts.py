from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Protocol

from solver.time_slots import Day, normalize_time, to_minutes


class HasSchedule(Protocol):
    days: Any
    start_time: str
    end_time: str


@dataclass(frozen=True)
class WeeklySchedule:
    """Recurring meeting pattern: a set of weekdays sharing one time range."""

    days: frozenset[Day]
    start_time: str
    end_time: str

    @classmethod
    def from_json(cls, payload: dict[str, Any] | None) -> "WeeklySchedule | None":
        """Parse a section's `schedule_json`; None when the section is unscheduled."""
        if not payload:
            return None
        start = payload.get("startTime")
        end = payload.get("endTime")
        days = payload.get("days") or []
        if not start or not end or not days:
            return None
        # Stored times may be H:MM; comparisons and sorting expect HH:MM.
        return cls(frozenset(Day.parse(d) for d in days), normalize_time(start), normalize_time(end))

    def to_json(self) -> dict[str, Any]:
        return {
            "days": [d.value for d in sorted(self.days, key=lambda d: d.order)],
            "startTime": self.start_time,
            "endTime": self.end_time,
        }


def _days_of(schedule: HasSchedule) -> set[Day]:
    return {Day.parse(d) for d in (schedule.days or ())}


def overlaps(a: HasSchedule, b: HasSchedule) -> bool:
    if not (_days_of(a) & _days_of(b)):
        return False

    start_a, end_a = to_minutes(a.start_time), to_minutes(a.end_time)
    start_b, end_b = to_minutes(b.start_time), to_minutes(b.end_time)
    # Half-open ranges: back-to-back classes (end == start) do not clash.
    return start_a < end_b and start_b < end_a


def first_overlap(candidate: HasSchedule, others: Iterable[HasSchedule]) -> HasSchedule | None:
    for other in others:
        if overlaps(candidate, other):
            return other
    return None
