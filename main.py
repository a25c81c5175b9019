from hall_allocator.config import configure_logging
from hall_allocator.interleaver import interleave
from hall_allocator.models import HallCapacity, LevelRoster
from hall_allocator.planner import plan


configure_logging()

halls = [
    HallCapacity("LT1", 12),
    HallCapacity("LT2", 8),
]

levels = [
    LevelRoster("CSC 200", [f"CSC/{n:03d}" for n in range(1, 8)]),
    LevelRoster("MTH 300", [f"MTH/{n:03d}" for n in range(1, 7)]),
    LevelRoster("PHY 100", [f"PHY/{n:03d}" for n in range(1, 6)]),
]


distributions = plan(
    [(h.hall_id, h.capacity) for h in halls],
    [(l.level_id, l.size) for l in levels],
)

print("\n--- Distribution ---")
for d in distributions:
    print(f"{d.level_id} -> {d.hall_id} | {d.allocated_count} students [{d.start_index}..{d.end_index}]")


seats = interleave(
    "demo",
    [h.hall_id for h in halls],
    distributions,
    {l.level_id: l.student_ids for l in levels},
)

print("\n--- Seat Allocation ---")
for s in seats:
    print(f"{s.student_id} -> Hall {s.hall_id} | Seat {s.seat_number}")
