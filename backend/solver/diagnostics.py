from __future__ import annotations

from collections import Counter
from enum import Enum
from typing import TYPE_CHECKING, Any, Sequence

from solver.time_slots import TimeSlotCatalog

if TYPE_CHECKING:
    from solver.backtracking import ClassroomInput, SectionInput


class DiagnosticType(str, Enum):
    SECTION_EXCEEDS_ROOM_CAPACITY = "SECTION_EXCEEDS_ROOM_CAPACITY"
    INSTRUCTOR_OVERLOADED = "INSTRUCTOR_OVERLOADED"
    ROOM_SLOT_SHORTAGE = "ROOM_SLOT_SHORTAGE"
    DIAGNOSTICS_INCONCLUSIVE = "DIAGNOSTICS_INCONCLUSIVE"


def summarize_diagnostics(diagnostics: list[dict[str, Any]]) -> str:
    blocking = [d for d in diagnostics if d.get("type") != DiagnosticType.DIAGNOSTICS_INCONCLUSIVE.value]
    n = len(blocking)
    if n <= 0:
        return "No blocking conflicts detected by diagnostics checks."
    if n == 1:
        return "1 blocking conflict detected."
    return f"{n} blocking conflicts detected."


def _diag(*, dtype: DiagnosticType, explanation: str, **payload: Any) -> dict[str, Any]:
    return {"type": dtype.value, **payload, "explanation": explanation}


def run_infeasibility_analysis(
    sections: Sequence["SectionInput"],
    classrooms: Sequence["ClassroomInput"],
    catalog: TimeSlotCatalog,
) -> list[dict[str, Any]]:
    """Explain why a scheduling run has no solution, where a cheap counting argument can.

    These are necessary conditions only. When none fire, the run failed on the
    combination of constraints and a DIAGNOSTICS_INCONCLUSIVE entry is returned.
    """

    out: list[dict[str, Any]] = []
    n_slots = len(catalog)
    max_capacity = max((int(c.capacity) for c in classrooms), default=0)

    # A section no room can hold can never be placed.
    for s in sections:
        if int(s.enrolled_count) > max_capacity:
            out.append(
                _diag(
                    dtype=DiagnosticType.SECTION_EXCEEDS_ROOM_CAPACITY,
                    section_id=str(s.id),
                    section=s.label or str(s.id),
                    enrolled_count=int(s.enrolled_count),
                    largest_room_capacity=max_capacity,
                    explanation=(
                        f"Section {s.label or s.id} has {int(s.enrolled_count)} enrolled students "
                        f"but the largest classroom seats {max_capacity}."
                    ),
                )
            )

    # Every catalog slot is disjoint from the others in the default layout, so an
    # instructor can teach at most one section per slot.
    load = Counter(s.instructor_id for s in sections)
    for instructor_id, count in sorted(load.items(), key=lambda kv: str(kv[0])):
        if count > n_slots:
            out.append(
                _diag(
                    dtype=DiagnosticType.INSTRUCTOR_OVERLOADED,
                    instructor_id=str(instructor_id),
                    sections=count,
                    available_slots=n_slots,
                    explanation=(
                        f"Instructor {instructor_id} teaches {count} sections but only "
                        f"{n_slots} weekly slots exist."
                    ),
                )
            )

    # Sections needing at least `threshold` seats compete for rooms of at least that size.
    for threshold in sorted({int(s.enrolled_count) for s in sections if int(s.enrolled_count) <= max_capacity}):
        needing = sum(1 for s in sections if int(s.enrolled_count) >= threshold)
        rooms_ok = sum(1 for c in classrooms if int(c.capacity) >= threshold)
        room_slots = rooms_ok * n_slots
        if needing > room_slots:
            out.append(
                _diag(
                    dtype=DiagnosticType.ROOM_SLOT_SHORTAGE,
                    min_capacity=threshold,
                    sections=needing,
                    room_slots=room_slots,
                    explanation=(
                        f"{needing} sections need a room seating at least {threshold}, "
                        f"but only {room_slots} such room-slots exist."
                    ),
                )
            )
            # Larger thresholds only repeat the same shortage.
            break

    if not out:
        out.append(
            _diag(
                dtype=DiagnosticType.DIAGNOSTICS_INCONCLUSIVE,
                explanation="No single capacity or load limit explains the failure; the combination of constraints does.",
            )
        )
    return out
