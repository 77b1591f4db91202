from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator

from core.errors import InvalidDayError, InvalidTimeFormat


_TIME_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


class Day(str, Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @property
    def order(self) -> int:
        return _DAY_ORDER[self]

    @property
    def abbreviation(self) -> str:
        return self.value[:2].upper()

    @classmethod
    def parse(cls, value: "str | Day") -> "Day":
        """Accept "Monday", "monday", "MON" or "Mon"."""
        if isinstance(value, Day):
            return value
        key = str(value or "").strip().lower()
        for day in cls:
            if key == day.value.lower() or key == day.value[:3].lower():
                return day
        raise InvalidDayError(f"Unknown day: {value!r}", value=str(value))


_DAY_ORDER = {day: idx for idx, day in enumerate(Day)}

WEEKDAYS: tuple[Day, ...] = (Day.MONDAY, Day.TUESDAY, Day.WEDNESDAY, Day.THURSDAY, Day.FRIDAY)


def to_minutes(value: str) -> int:
    if not isinstance(value, str):
        raise InvalidTimeFormat(value)
    m = _TIME_RE.match(value.strip())
    if m is None:
        raise InvalidTimeFormat(value)
    return int(m.group(1)) * 60 + int(m.group(2))


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(value: str) -> str:
    """Canonical zero-padded HH:MM, so "9:00" becomes "09:00"."""
    return format_minutes(to_minutes(value))


@dataclass(frozen=True)
class TimeSlot:
    day: Day
    start_time: str
    end_time: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "day", Day.parse(self.day))
        object.__setattr__(self, "start_time", normalize_time(self.start_time))
        object.__setattr__(self, "end_time", normalize_time(self.end_time))

    @property
    def days(self) -> frozenset[Day]:
        return frozenset((self.day,))

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return to_minutes(self.end_time)

    def label(self) -> str:
        return f"{self.day.value} {self.start_time}-{self.end_time}"


@dataclass(frozen=True)
class TimeSlotCatalog:
    """Fixed, ordered set of weekly teaching slots the scheduler may use."""

    slots: tuple[TimeSlot, ...]

    def __post_init__(self) -> None:
        for slot in self.slots:
            if to_minutes(slot.start_time) >= to_minutes(slot.end_time):
                raise ValueError(f"Slot ends before it starts: {slot.label()}")

    @classmethod
    def build(
        cls,
        *,
        days: Iterable[Day] = WEEKDAYS,
        first_start: str = "09:00",
        last_end: str = "17:00",
        block_minutes: int = 120,
    ) -> "TimeSlotCatalog":
        start = to_minutes(first_start)
        end = to_minutes(last_end)
        if block_minutes <= 0:
            raise ValueError("block_minutes must be positive")

        slots: list[TimeSlot] = []
        for day in days:
            cur = start
            while cur + block_minutes <= end:
                slots.append(TimeSlot(Day.parse(day), format_minutes(cur), format_minutes(cur + block_minutes)))
                cur += block_minutes
        return cls(tuple(slots))

    @classmethod
    def default(cls) -> "TimeSlotCatalog":
        return DEFAULT_CATALOG

    def all_slots(self) -> tuple[TimeSlot, ...]:
        return self.slots

    @property
    def days(self) -> tuple[Day, ...]:
        seen: list[Day] = []
        for slot in self.slots:
            if slot.day not in seen:
                seen.append(slot.day)
        return tuple(seen)

    def __iter__(self) -> Iterator[TimeSlot]:
        return iter(self.slots)

    def __len__(self) -> int:
        return len(self.slots)


# Mon-Fri, 09:00-17:00, four 2-hour blocks per day.
DEFAULT_CATALOG = TimeSlotCatalog.build()
