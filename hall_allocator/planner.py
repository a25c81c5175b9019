"""Distribution planner.

Splits every level's ordered roster across the halls of an exam in
proportion to hall capacity. The result is one ``Distribution`` per
(level, hall) cell with a non-zero count, carrying the contiguous slice
``[start_index, end_index]`` of the level's roster that goes to that hall.

Halls and levels are processed in the order they are given. That order
decides who gets the rounding remainders (the first hall with spare room
takes them), so callers must pass a stable order to get reproducible plans.
"""
import logging

from .errors import InsufficientCapacity
from .models import Distribution

LOG = logging.getLogger(__name__)


def check_capacity(hall_capacities, level_sizes):
    """Return ``(total_capacity, total_students)`` or raise InsufficientCapacity."""
    total_capacity = sum(capacity for _, capacity in hall_capacities)
    total_students = sum(count for _, count in level_sizes)

    if total_capacity < total_students:
        raise InsufficientCapacity(total_capacity, total_students)

    return total_capacity, total_students


def plan(hall_capacities, level_sizes, exam_id=None):
    """Plan how many students of each level sit in each hall.

    hall_capacities: ordered list of ``(hall_id, capacity)``
    level_sizes: ordered list of ``(level_id, student_count)``
    Returns Distribution rows grouped by level, halls in the given order.
    """
    hall_capacities = list(hall_capacities)
    level_sizes = list(level_sizes)

    total_capacity, total_students = check_capacity(hall_capacities, level_sizes)
    LOG.debug("planning %d students into %d seats over %d halls",
              total_students, total_capacity, len(hall_capacities))

    hall_allocated_total = {hall_id: 0 for hall_id, _ in hall_capacities}
    # level_id -> hall_id -> count
    allocation_plan = {}

    # proportional share, floored
    for level_id, student_count in level_sizes:
        counts = {}
        for hall_id, capacity in hall_capacities:
            if total_capacity:
                count = student_count * capacity // total_capacity
            else:
                count = 0
            counts[hall_id] = count
            hall_allocated_total[hall_id] += count
        allocation_plan[level_id] = counts

    # remainders go to the first halls with spare seats
    for level_id, student_count in level_sizes:
        counts = allocation_plan[level_id]
        allocated_so_far = sum(counts.values())
        remaining = student_count - allocated_so_far

        for hall_id, capacity in hall_capacities:
            if remaining <= 0:
                break

            spare = capacity - hall_allocated_total[hall_id]
            if spare > 0:
                to_add = min(remaining, spare)
                counts[hall_id] += to_add
                hall_allocated_total[hall_id] += to_add
                remaining -= to_add

    distributions = []
    for level_id, _ in level_sizes:
        cursor = 0
        counts = allocation_plan[level_id]

        for hall_id, _ in hall_capacities:
            count = counts[hall_id]
            if count <= 0:
                continue

            distributions.append(
                Distribution(
                    hall_id = hall_id,
                    level_id = level_id,
                    allocated_count = count,
                    start_index = cursor,
                    end_index = cursor + count - 1,
                    exam_id = exam_id,
                )
            )
            cursor += count

    return distributions
