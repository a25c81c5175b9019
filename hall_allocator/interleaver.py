"""Seating interleaver.

Turns the planner's per-hall slices into numbered seats. Each slice of a
level's roster routed to a hall is a lane; lanes are merged round-robin so
neighbouring seats alternate between levels (and usually departments).
"""
from .models import SeatAssignment


def round_robin(lanes):
    """Yield items from ``lanes`` one per lane per round until all run out."""
    lanes = [lane for lane in lanes if lane]
    pointers = [0] * len(lanes)
    exhausted = 0

    while exhausted < len(lanes):
        for i, lane in enumerate(lanes):
            if pointers[i] < len(lane):
                yield lane[pointers[i]]
                pointers[i] += 1

                if pointers[i] >= len(lane):
                    exhausted += 1


def hall_lanes(hall_id, distributions, rosters):
    lanes = []
    for dist in distributions:
        if dist.hall_id != hall_id or dist.allocated_count <= 0:
            continue

        roster = rosters[dist.level_id]
        students = list(roster[dist.start_index:dist.end_index + 1])
        if students:
            lanes.append(students)

    return lanes


def interleave(exam_id, hall_ids, distributions, rosters):
    """Assign seat numbers hall by hall.

    hall_ids: halls in exam order
    distributions: planner rows; their order decides lane order within a hall
    rosters: level_id -> ordered list of student ids
    """
    distributions = list(distributions)
    seat_assignments = []

    for hall_id in hall_ids:
        lanes = hall_lanes(hall_id, distributions, rosters)

        for seat_number, student_id in enumerate(round_robin(lanes), start = 1):
            seat_assignments.append(
                SeatAssignment(
                    hall_id = hall_id,
                    student_id = student_id,
                    seat_number = seat_number,
                    exam_id = exam_id,
                )
            )

    return seat_assignments
