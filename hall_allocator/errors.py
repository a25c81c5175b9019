class AllocationError(Exception):
    """Base class for failures raised by the allocation engine."""


class ExamNotFound(AllocationError):
    def __init__(self, exam_id):
        self.exam_id = exam_id
        super().__init__(f"Exam not found: {exam_id}")


class StudentNotFound(AllocationError):
    def __init__(self, matric_no):
        self.matric_no = matric_no
        super().__init__(f"Student not found: {matric_no}")


class InsufficientCapacity(AllocationError):
    """Total hall capacity is smaller than the number of candidates."""

    def __init__(self, total_capacity, total_students):
        self.total_capacity = total_capacity
        self.total_students = total_students
        super().__init__(
            f"Insufficient capacity: {total_capacity} seats for {total_students} students"
        )


class StaleDistribution(AllocationError):
    """Stored distribution no longer matches the level rosters."""

    def __init__(self, exam_id, detail):
        self.exam_id = exam_id
        super().__init__(f"Distribution for exam {exam_id} is out of date ({detail}); regenerate it first")
