from __future__ import annotations

import itertools

import pytest

from core.errors import NoClassroomsError, NoSectionsError, SearchBudgetExceededError, UnsatisfiableConstraintsError
from solver.backtracking import ClassroomInput, ConstraintSolver, SectionInput
from solver.conflicts import overlaps
from solver.time_slots import Day, TimeSlot, TimeSlotCatalog


def assert_no_double_booking(result, sections, classrooms):
    by_section = {s.id: s for s in sections}
    items = list(result.assignments.values())
    for a, b in itertools.combinations(items, 2):
        same_room = a.classroom_id == b.classroom_id
        same_instructor = by_section[a.section_id].instructor_id == by_section[b.section_id].instructor_id
        if same_room or same_instructor:
            assert not overlaps(a.time_slot, b.time_slot), (a, b)


def assert_capacity_respected(result, sections, classrooms):
    by_section = {s.id: s for s in sections}
    by_room = {c.id: c for c in classrooms}
    for a in result.assignments.values():
        assert by_room[a.classroom_id].capacity >= by_section[a.section_id].enrolled_count


def scenario_a(third_enrolled):
    sections = [
        SectionInput(id="s1", instructor_id="i1", enrolled_count=40, capacity=40),
        SectionInput(id="s2", instructor_id="i1", enrolled_count=20, capacity=20),
        SectionInput(id="s3", instructor_id="i1", enrolled_count=third_enrolled, capacity=60),
    ]
    classrooms = [ClassroomInput(id="r30", capacity=30), ClassroomInput(id="r50", capacity=50)]
    return sections, classrooms


def test_scenario_a_places_all_sections_when_largest_room_fits():
    sections, classrooms = scenario_a(50)
    result = ConstraintSolver().solve(sections, classrooms)

    assert set(result.assignments) == {"s1", "s2", "s3"}
    assert result.assignments["s3"].classroom_id == "r50"
    assert_no_double_booking(result, sections, classrooms)
    assert_capacity_respected(result, sections, classrooms)


def test_scenario_a_fails_when_a_section_fits_no_room():
    sections, classrooms = scenario_a(55)
    with pytest.raises(UnsatisfiableConstraintsError) as excinfo:
        ConstraintSolver().solve(sections, classrooms)

    err = excinfo.value
    assert err.status_code == 409
    assert err.message == "Unable to generate schedule - constraints cannot be satisfied"
    types = {d["type"] for d in err.details["diagnostics"]}
    assert "SECTION_EXCEEDS_ROOM_CAPACITY" in types
    assert err.details["steps"] > 0


def test_first_fit_uses_largest_room_and_first_slot():
    sections = [SectionInput(id="only", instructor_id="i", enrolled_count=10)]
    classrooms = [ClassroomInput(id="small", capacity=20), ClassroomInput(id="big", capacity=80)]
    result = ConstraintSolver().solve(sections, classrooms)

    a = result.assignments["only"]
    assert a.classroom_id == "big"
    assert a.time_slot == TimeSlot(Day.MONDAY, "09:00", "11:00")
    assert result.backtracks == 0


def test_equal_capacity_rooms_keep_input_order():
    sections = [SectionInput(id="s", instructor_id="i", enrolled_count=10)]
    classrooms = [ClassroomInput(id="first", capacity=40), ClassroomInput(id="second", capacity=40)]
    result = ConstraintSolver().solve(sections, classrooms)
    assert result.assignments["s"].classroom_id == "first"


def test_backtracks_out_of_greedy_dead_end():
    catalog = TimeSlotCatalog(
        (TimeSlot(Day.MONDAY, "09:00", "11:00"), TimeSlot(Day.MONDAY, "11:00", "13:00"))
    )
    sections = [
        SectionInput(id="a", instructor_id="i1", enrolled_count=5),
        SectionInput(id="b", instructor_id="i2", enrolled_count=40),
        SectionInput(id="c", instructor_id="i3", enrolled_count=40),
    ]
    classrooms = [ClassroomInput(id="big", capacity=50), ClassroomInput(id="small", capacity=10)]

    result = ConstraintSolver(catalog).solve(sections, classrooms)

    assert result.assignments["a"].classroom_id == "small"
    assert {result.assignments["b"].classroom_id, result.assignments["c"].classroom_id} == {"big"}
    assert result.backtracks > 0
    assert_no_double_booking(result, sections, classrooms)
    assert_capacity_respected(result, sections, classrooms)


def test_many_sections_respect_hard_constraints():
    sections = [
        SectionInput(id=f"s{n}", instructor_id=f"i{n % 3}", enrolled_count=10 + (n * 7) % 35)
        for n in range(15)
    ]
    classrooms = [
        ClassroomInput(id="r1", capacity=45),
        ClassroomInput(id="r2", capacity=25),
        ClassroomInput(id="r3", capacity=60),
    ]
    result = ConstraintSolver().solve(sections, classrooms)

    assert len(result.assignments) == len(sections)
    assert_no_double_booking(result, sections, classrooms)
    assert_capacity_respected(result, sections, classrooms)


def test_custom_catalog_limits_instructor_load():
    catalog = TimeSlotCatalog.build(days=[Day.MONDAY], first_start="09:00", last_end="13:00", block_minutes=120)
    sections = [SectionInput(id=f"s{n}", instructor_id="busy", enrolled_count=5) for n in range(3)]
    classrooms = [ClassroomInput(id="r1", capacity=30), ClassroomInput(id="r2", capacity=30)]

    with pytest.raises(UnsatisfiableConstraintsError) as excinfo:
        ConstraintSolver(catalog).solve(sections, classrooms)

    overloaded = [d for d in excinfo.value.details["diagnostics"] if d["type"] == "INSTRUCTOR_OVERLOADED"]
    assert overloaded and overloaded[0]["sections"] == 3


def test_step_budget_stops_search():
    sections = [
        SectionInput(id="s1", instructor_id="i", enrolled_count=5),
        SectionInput(id="s2", instructor_id="i", enrolled_count=5),
    ]
    classrooms = [ClassroomInput(id="r", capacity=30)]

    with pytest.raises(SearchBudgetExceededError) as excinfo:
        ConstraintSolver(max_steps=1).solve(sections, classrooms)

    assert excinfo.value.status_code == 503
    assert excinfo.value.details["max_steps"] == 1


def test_time_budget_is_distinct_from_unsatisfiable():
    sections, classrooms = scenario_a(55)
    # The first reading starts the clock; every later one is far past the budget.
    clock = itertools.chain([0.0], itertools.repeat(100.0)).__next__

    with pytest.raises(SearchBudgetExceededError) as excinfo:
        ConstraintSolver(max_time_seconds=1.0, clock=clock).solve(sections, classrooms)

    assert excinfo.value.details["max_time_seconds"] == 1.0


def test_generous_budget_does_not_interfere():
    sections, classrooms = scenario_a(50)
    result = ConstraintSolver(max_steps=10_000, max_time_seconds=60).solve(sections, classrooms)
    assert len(result.assignments) == 3
    assert result.stats()["steps"] == result.steps


def test_input_errors():
    rooms = [ClassroomInput(id="r", capacity=10)]
    with pytest.raises(NoSectionsError):
        ConstraintSolver().solve([], rooms)
    with pytest.raises(NoClassroomsError):
        ConstraintSolver().solve([SectionInput(id="s", instructor_id="i", enrolled_count=1)], [])


def test_duplicate_section_ids_rejected():
    s = SectionInput(id="dup", instructor_id="i", enrolled_count=1)
    with pytest.raises(ValueError):
        ConstraintSolver().solve([s, s], [ClassroomInput(id="r", capacity=10)])


def test_result_assignments_are_read_only():
    result = ConstraintSolver().solve(
        [SectionInput(id="s", instructor_id="i", enrolled_count=1)],
        [ClassroomInput(id="r", capacity=10)],
    )
    with pytest.raises(TypeError):
        result.assignments["other"] = result.assignments["s"]
