from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass(frozen=True)
class HallCapacity:
    hall_id: Any
    capacity: int


@dataclass(frozen=True)
class LevelRoster:
    level_id: Any
    # ascending roster order; index ranges are only meaningful against it
    student_ids: List[Any] = field(default_factory=list)

    @property
    def size(self):
        return len(self.student_ids)


@dataclass(frozen=True)
class Distribution:
    hall_id: Any
    level_id: Any
    allocated_count: int
    start_index: int
    end_index: int
    exam_id: Optional[Any] = None

    def as_dict(self):
        return {
            "exam_id": self.exam_id,
            "hall_id": self.hall_id,
            "level_id": self.level_id,
            "allocated_count": self.allocated_count,
            "start_index": self.start_index,
            "end_index": self.end_index,
        }


@dataclass(frozen=True)
class SeatAssignment:
    hall_id: Any
    student_id: Any
    seat_number: int
    exam_id: Optional[Any] = None

    def as_dict(self):
        return {
            "exam_id": self.exam_id,
            "hall_id": self.hall_id,
            "student_id": self.student_id,
            "seat_number": self.seat_number,
        }
