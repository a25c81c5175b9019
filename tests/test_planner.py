import pytest

from hall_allocator.errors import InsufficientCapacity
from hall_allocator.models import Distribution
from hall_allocator.planner import check_capacity, plan


def assert_conserved(halls, levels, distributions):
    for level_id, count in levels:
        rows = [d for d in distributions if d.level_id == level_id]
        assert sum(d.allocated_count for d in rows) == count

        # ranges appear in hall order and tile 0..count-1
        cursor = 0
        for d in rows:
            assert d.start_index == cursor
            assert d.end_index - d.start_index + 1 == d.allocated_count
            cursor = d.end_index + 1
        assert cursor == count

    for hall_id, capacity in halls:
        assert sum(d.allocated_count for d in distributions if d.hall_id == hall_id) <= capacity


def test_remainder_goes_to_first_hall():
    distributions = plan([("A", 10), ("B", 10)], [("L", 15)])

    assert distributions == [
        Distribution("A", "L", 8, 0, 7),
        Distribution("B", "L", 7, 8, 14),
    ]


def test_hall_order_decides_remainder():
    distributions = plan([("B", 10), ("A", 10)], [("L", 15)])

    assert [(d.hall_id, d.allocated_count) for d in distributions] == [("B", 8), ("A", 7)]


def test_remainder_skips_full_halls():
    distributions = plan([("A", 5), ("B", 5)], [("L1", 3), ("L2", 7)])

    assert distributions == [
        Distribution("A", "L1", 2, 0, 1),
        Distribution("B", "L1", 1, 2, 2),
        Distribution("A", "L2", 3, 0, 2),
        Distribution("B", "L2", 4, 3, 6),
    ]


def test_insufficient_capacity():
    with pytest.raises(InsufficientCapacity) as excinfo:
        plan([("A", 20), ("B", 20)], [("L1", 25), ("L2", 20)])

    assert excinfo.value.total_capacity == 40
    assert excinfo.value.total_students == 45
    assert str(excinfo.value) == "Insufficient capacity: 40 seats for 45 students"


def test_check_capacity_totals():
    assert check_capacity([("A", 30), ("B", 12)], [("L", 40)]) == (42, 40)


@pytest.mark.parametrize("halls, levels", [
    ([("A", 7), ("B", 5), ("C", 3), ("D", 11)], [("L1", 9), ("L2", 4), ("L3", 0), ("L4", 13)]),
    ([("A", 60), ("B", 45), ("C", 45)], [("L1", 37), ("L2", 52), ("L3", 19)]),
    ([("A", 1), ("B", 1), ("C", 1)], [("L1", 1), ("L2", 1), ("L3", 1)]),
    ([("A", 100)], [("L1", 33), ("L2", 33)]),
])
def test_conservation_and_partition(halls, levels):
    distributions = plan(halls, levels)

    assert_conserved(halls, levels, distributions)
    assert all(d.allocated_count > 0 for d in distributions)


def test_empty_inputs():
    assert plan([], []) == []
    assert plan([("A", 5)], []) == []
    assert plan([("A", 5)], [("L", 0)]) == []


def test_zero_students_without_halls():
    assert plan([], [("L", 0)]) == []


def test_no_halls_with_students_fails():
    with pytest.raises(InsufficientCapacity):
        plan([], [("L", 1)])


def test_plan_is_deterministic():
    halls = [("A", 13), ("B", 17), ("C", 9)]
    levels = [("L1", 11), ("L2", 14), ("L3", 8)]

    assert plan(halls, levels, exam_id=3) == plan(halls, levels, exam_id=3)


def test_exam_id_is_carried():
    distributions = plan([("A", 10)], [("L", 4)], exam_id=42)

    assert [d.exam_id for d in distributions] == [42]
    assert distributions[0].as_dict()["exam_id"] == 42
