from __future__ import annotations

import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Hashable, Mapping, Sequence

from core.errors import (
    NoClassroomsError,
    NoSectionsError,
    SearchBudgetExceededError,
    UnsatisfiableConstraintsError,
)
from solver.conflicts import overlaps
from solver.diagnostics import run_infeasibility_analysis, summarize_diagnostics
from solver.time_slots import Day, TimeSlot, TimeSlotCatalog


logger = logging.getLogger(__name__)

SOLVER_VERSION = "csp-backtracking-v1"

# How often (in tested candidates) the wall-clock budget is checked.
_CLOCK_CHECK_EVERY = 256


@dataclass(frozen=True)
class SectionInput:
    id: Hashable
    instructor_id: Hashable
    enrolled_count: int
    capacity: int = 0
    label: str = ""


@dataclass(frozen=True)
class ClassroomInput:
    id: Hashable
    capacity: int
    label: str = ""


@dataclass(frozen=True)
class Assignment:
    section_id: Hashable
    classroom_id: Hashable
    time_slot: TimeSlot


@dataclass(frozen=True)
class SolveResult:
    assignments: Mapping[Hashable, Assignment]
    steps: int
    backtracks: int
    elapsed_seconds: float
    solver_version: str = SOLVER_VERSION

    def stats(self) -> dict[str, Any]:
        return {
            "steps": self.steps,
            "backtracks": self.backtracks,
            "elapsed_seconds": round(self.elapsed_seconds, 4),
            "solver_version": self.solver_version,
        }


@dataclass
class _Occupancy:
    """Slots already taken, indexed by (owner, day) so checks only compare same-day slots."""

    by_instructor: dict[tuple[Hashable, Day], list[TimeSlot]] = field(default_factory=lambda: defaultdict(list))
    by_classroom: dict[tuple[Hashable, Day], list[TimeSlot]] = field(default_factory=lambda: defaultdict(list))

    def is_free(self, section: SectionInput, classroom: ClassroomInput, slot: TimeSlot) -> bool:
        for taken in self.by_instructor.get((section.instructor_id, slot.day), ()):
            if overlaps(taken, slot):
                return False
        for taken in self.by_classroom.get((classroom.id, slot.day), ()):
            if overlaps(taken, slot):
                return False
        return True

    def place(self, section: SectionInput, classroom: ClassroomInput, slot: TimeSlot) -> None:
        self.by_instructor[(section.instructor_id, slot.day)].append(slot)
        self.by_classroom[(classroom.id, slot.day)].append(slot)

    def remove(self, section: SectionInput, classroom: ClassroomInput, slot: TimeSlot) -> None:
        self.by_instructor[(section.instructor_id, slot.day)].remove(slot)
        self.by_classroom[(classroom.id, slot.day)].remove(slot)


class ConstraintSolver:
    """Assigns every section a (classroom, time slot) pair by depth-first backtracking.

    Sections are placed in input order. For each section, classrooms are tried
    largest-capacity-first and slots in catalog order; the first consistent
    candidate is committed and the search descends. When a section has no
    consistent candidate left, the previous placement is undone and its next
    candidate is tried. There is no forward checking and no value-ordering
    heuristic beyond the fixed catalog order, so results are deterministic for
    a given input order.

    The search runs on an explicit frame stack so it can stop cleanly when the
    optional step or wall-clock budget runs out.
    """

    def __init__(
        self,
        catalog: TimeSlotCatalog | None = None,
        *,
        max_steps: int | None = None,
        max_time_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.catalog = catalog or TimeSlotCatalog.default()
        self.max_steps = max_steps
        self.max_time_seconds = max_time_seconds
        self._clock = clock

    def solve(self, sections: Sequence[SectionInput], classrooms: Sequence[ClassroomInput]) -> SolveResult:
        if not sections:
            raise NoSectionsError()
        if not classrooms:
            raise NoClassroomsError()

        section_ids = [s.id for s in sections]
        if len(set(section_ids)) != len(section_ids):
            raise ValueError("Duplicate section ids in scheduling input")

        # Static value order: largest rooms first (stable for equal capacities).
        rooms = sorted(classrooms, key=lambda c: -int(c.capacity))
        slots = self.catalog.all_slots()
        n_slots = len(slots)
        n_options = len(rooms) * n_slots

        logger.info(
            "Starting scheduling: %s sections, %s classrooms, %s slots",
            len(sections),
            len(rooms),
            n_slots,
        )

        started = self._clock()
        steps = 0
        backtracks = 0
        occupancy = _Occupancy()
        chosen: list[tuple[ClassroomInput, TimeSlot]] = []
        # next_option[d] = index of the next (room, slot) candidate to try for sections[d].
        next_option: list[int] = [0]

        while len(chosen) < len(sections):
            depth = len(chosen)
            section = sections[depth]
            i = next_option[depth]
            placed = False

            while i < n_options:
                room = rooms[i // n_slots]
                steps += 1
                self._check_budget(steps, started)

                if int(room.capacity) < int(section.enrolled_count):
                    # Capacity fails for every slot of this room; jump to the next room.
                    i = (i // n_slots + 1) * n_slots
                    continue

                slot = slots[i % n_slots]
                i += 1
                if occupancy.is_free(section, room, slot):
                    occupancy.place(section, room, slot)
                    chosen.append((room, slot))
                    next_option[depth] = i
                    next_option.append(0)
                    placed = True
                    break

            if placed:
                continue

            # No candidate left for this section: undo the previous placement.
            next_option.pop()
            if not chosen:
                elapsed = self._clock() - started
                diagnostics = run_infeasibility_analysis(sections, classrooms, self.catalog)
                logger.warning(
                    "Scheduling unsatisfiable after %s steps (%s backtracks): %s",
                    steps,
                    backtracks,
                    summarize_diagnostics(diagnostics),
                )
                raise UnsatisfiableConstraintsError(
                    steps=steps,
                    backtracks=backtracks,
                    elapsed_seconds=round(elapsed, 4),
                    diagnostics=diagnostics,
                )
            prev_room, prev_slot = chosen.pop()
            occupancy.remove(sections[len(chosen)], prev_room, prev_slot)
            backtracks += 1

        elapsed = self._clock() - started
        assignments = {
            section.id: Assignment(section_id=section.id, classroom_id=room.id, time_slot=slot)
            for section, (room, slot) in zip(sections, chosen)
        }
        logger.info(
            "Scheduling finished: %s sections placed in %s steps (%s backtracks, %.3fs)",
            len(assignments),
            steps,
            backtracks,
            elapsed,
        )
        return SolveResult(
            assignments=MappingProxyType(assignments),
            steps=steps,
            backtracks=backtracks,
            elapsed_seconds=elapsed,
        )

    def _check_budget(self, steps: int, started: float) -> None:
        if self.max_steps is not None and steps > self.max_steps:
            raise SearchBudgetExceededError(
                steps=steps - 1,
                max_steps=self.max_steps,
                elapsed_seconds=round(self._clock() - started, 4),
            )
        if self.max_time_seconds is not None and steps % _CLOCK_CHECK_EVERY == 0:
            elapsed = self._clock() - started
            if elapsed > self.max_time_seconds:
                raise SearchBudgetExceededError(
                    steps=steps,
                    max_time_seconds=self.max_time_seconds,
                    elapsed_seconds=round(elapsed, 4),
                )
