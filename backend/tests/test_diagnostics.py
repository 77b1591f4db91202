from __future__ import annotations

from solver.backtracking import ClassroomInput, SectionInput
from solver.diagnostics import DiagnosticType, run_infeasibility_analysis, summarize_diagnostics
from solver.time_slots import Day, TimeSlotCatalog


CATALOG = TimeSlotCatalog.build(days=[Day.MONDAY], first_start="09:00", last_end="13:00")


def _types(diagnostics):
    return [d["type"] for d in diagnostics]


def test_reports_section_too_large_for_every_room():
    out = run_infeasibility_analysis(
        [SectionInput(id="s", instructor_id="i", enrolled_count=90, label="CS101-1")],
        [ClassroomInput(id="r", capacity=50)],
        CATALOG,
    )
    assert _types(out) == [DiagnosticType.SECTION_EXCEEDS_ROOM_CAPACITY.value]
    assert out[0]["largest_room_capacity"] == 50
    assert "CS101-1" in out[0]["explanation"]


def test_reports_room_slot_shortage():
    sections = [SectionInput(id=f"s{n}", instructor_id=f"i{n}", enrolled_count=40) for n in range(3)]
    rooms = [ClassroomInput(id="big", capacity=45), ClassroomInput(id="small", capacity=10)]
    out = run_infeasibility_analysis(sections, rooms, CATALOG)

    shortage = [d for d in out if d["type"] == DiagnosticType.ROOM_SLOT_SHORTAGE.value]
    assert shortage == [
        {
            "type": "ROOM_SLOT_SHORTAGE",
            "min_capacity": 40,
            "sections": 3,
            "room_slots": 2,
            "explanation": shortage[0]["explanation"],
        }
    ]


def test_inconclusive_when_no_counting_argument_applies():
    sections = [SectionInput(id="s", instructor_id="i", enrolled_count=5)]
    out = run_infeasibility_analysis(sections, [ClassroomInput(id="r", capacity=10)], CATALOG)
    assert _types(out) == [DiagnosticType.DIAGNOSTICS_INCONCLUSIVE.value]
    assert summarize_diagnostics(out) == "No blocking conflicts detected by diagnostics checks."


def test_summary_counts_blocking_entries():
    assert summarize_diagnostics([{"type": "INSTRUCTOR_OVERLOADED"}]) == "1 blocking conflict detected."
    assert summarize_diagnostics([{"type": "A"}, {"type": "B"}]) == "2 blocking conflicts detected."
