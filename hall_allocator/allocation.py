"""Runs the planner and interleaver against the database.

Each stage loads everything it needs, validates, and only then replaces
the exam's previous rows inside a single transaction. A failure before the
commit leaves the earlier allocation in place.
"""
import logging
from contextlib import contextmanager

from sqlalchemy import and_, func

from .db_models import (
    ExamDB, ExamHallDB, ExamLevelDB, ExamDistributionDB, SeatAssignmentDB, StudentDB, HallDB,
)
from .errors import ExamNotFound, InsufficientCapacity, StaleDistribution, StudentNotFound
from .interleaver import interleave
from .models import Distribution, HallCapacity, LevelRoster
from .planner import plan

LOG = logging.getLogger(__name__)


@contextmanager
def transaction(db):
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def load_exam(db, exam_id):
    exam = db.query(ExamDB).filter(ExamDB.id == exam_id).first()
    if not exam:
        raise ExamNotFound(exam_id)
    return exam


def exam_halls(db, exam):
    rows = (
        db.query(ExamHallDB, HallDB)
        .join(HallDB, ExamHallDB.hall_id == HallDB.id)
        .filter(ExamHallDB.exam_id == exam.id)
        .order_by(ExamHallDB.position, ExamHallDB.id)
        .all()
    )
    return [HallCapacity(hall.id, hall.capacity) for _, hall in rows]


def level_roster(db, level_id):
    students = (
        db.query(StudentDB.id)
        .filter(StudentDB.level_id == level_id)
        .order_by(StudentDB.matric_no, StudentDB.id)
        .all()
    )
    return [student_id for (student_id,) in students]


def exam_rosters(db, exam):
    exam_levels = (
        db.query(ExamLevelDB)
        .filter(ExamLevelDB.exam_id == exam.id)
        .order_by(ExamLevelDB.position, ExamLevelDB.id)
        .all()
    )
    return [LevelRoster(el.level_id, level_roster(db, el.level_id)) for el in exam_levels]


def stored_distributions(db, exam_id):
    """Distribution rows in level order, then hall order."""
    rows = (
        db.query(ExamDistributionDB)
        .join(ExamLevelDB, and_(
            ExamLevelDB.exam_id == ExamDistributionDB.exam_id,
            ExamLevelDB.level_id == ExamDistributionDB.level_id,
        ))
        .join(ExamHallDB, and_(
            ExamHallDB.exam_id == ExamDistributionDB.exam_id,
            ExamHallDB.hall_id == ExamDistributionDB.hall_id,
        ))
        .filter(ExamDistributionDB.exam_id == exam_id)
        .order_by(ExamLevelDB.position, ExamHallDB.position)
        .all()
    )
    return [
        Distribution(
            hall_id = r.hall_id,
            level_id = r.level_id,
            allocated_count = r.allocated_count,
            start_index = r.start_index,
            end_index = r.end_index,
            exam_id = r.exam_id,
        )
        for r in rows
    ]


def stored_seats(db, exam_id):
    rows = (
        db.query(SeatAssignmentDB)
        .join(ExamHallDB, and_(
            ExamHallDB.exam_id == SeatAssignmentDB.exam_id,
            ExamHallDB.hall_id == SeatAssignmentDB.hall_id,
        ))
        .filter(SeatAssignmentDB.exam_id == exam_id)
        .order_by(ExamHallDB.position, SeatAssignmentDB.seat_number)
        .all()
    )
    return rows


def check_distributions(exam_id, distributions, rosters):
    planned = {}
    for dist in distributions:
        roster = rosters.get(dist.level_id)
        if roster is None:
            raise StaleDistribution(exam_id, f"level {dist.level_id} is no longer part of the exam")
        if dist.end_index >= len(roster):
            raise StaleDistribution(exam_id, f"level {dist.level_id} has only {len(roster)} students")
        planned[dist.level_id] = planned.get(dist.level_id, 0) + dist.allocated_count

    for level_id, roster in rosters.items():
        if planned.get(level_id, 0) != len(roster):
            raise StaleDistribution(
                exam_id, f"level {level_id} has {len(roster)} students, {planned.get(level_id, 0)} planned"
            )


def generate_exam_distribution(db, exam_id):
    exam = load_exam(db, exam_id)
    halls = exam_halls(db, exam)
    levels = exam_rosters(db, exam)

    try:
        distributions = plan(
            [(h.hall_id, h.capacity) for h in halls],
            [(l.level_id, l.size) for l in levels],
            exam_id = exam.id,
        )
    except InsufficientCapacity as e:
        LOG.warning("exam %s: %s", exam.id, e)
        raise

    with transaction(db):
        db.query(ExamDistributionDB).filter(ExamDistributionDB.exam_id == exam.id).delete(
            synchronize_session = False
        )
        db.add_all([ExamDistributionDB(**d.as_dict()) for d in distributions])

    LOG.info("exam %s: %d distribution rows over %d halls", exam.id, len(distributions), len(halls))
    return distributions


def generate_seating_arrangement(db, exam_id):
    exam = load_exam(db, exam_id)
    halls = exam_halls(db, exam)
    rosters = {l.level_id: l.student_ids for l in exam_rosters(db, exam)}
    distributions = stored_distributions(db, exam.id)

    check_distributions(exam.id, distributions, rosters)

    seats = interleave(exam.id, [h.hall_id for h in halls], distributions, rosters)

    with transaction(db):
        db.query(SeatAssignmentDB).filter(SeatAssignmentDB.exam_id == exam.id).delete(
            synchronize_session = False
        )
        db.add_all([SeatAssignmentDB(**s.as_dict()) for s in seats])

    LOG.info("exam %s: %d seats assigned", exam.id, len(seats))
    return seats


def generate_allocation(db, exam_id):
    distributions = generate_exam_distribution(db, exam_id)
    seats = generate_seating_arrangement(db, exam_id)
    return distributions, seats


def delete_exam(db, exam_id):
    exam = load_exam(db, exam_id)
    with transaction(db):
        db.delete(exam)
    LOG.info("exam %s deleted", exam_id)


def find_seat_allocations(db, real_matric):
    student = db.query(StudentDB).filter(StudentDB.real_matric == real_matric).first()
    if not student:
        raise StudentNotFound(real_matric)

    rows = (
        db.query(SeatAssignmentDB, ExamDB, HallDB)
        .join(ExamDB, SeatAssignmentDB.exam_id == ExamDB.id)
        .join(HallDB, SeatAssignmentDB.hall_id == HallDB.id)
        .filter(SeatAssignmentDB.student_id == student.id)
        .order_by(ExamDB.exam_date, ExamDB.id)
        .all()
    )
    return student, rows


def hall_exam_count(db, hall_id):
    return db.query(ExamHallDB).filter(ExamHallDB.hall_id == hall_id).count()


def level_exam_count(db, level_ids):
    return db.query(ExamLevelDB).filter(ExamLevelDB.level_id.in_(list(level_ids))).count()


def level_is_allocated(db, level_id):
    return db.query(ExamDistributionDB).filter(ExamDistributionDB.level_id == level_id).count() > 0


def hall_allocated_peak(db, hall_id):
    """Largest number of students planned into the hall by any one exam."""
    totals = (
        db.query(func.sum(ExamDistributionDB.allocated_count))
        .filter(ExamDistributionDB.hall_id == hall_id)
        .group_by(ExamDistributionDB.exam_id)
        .all()
    )
    return max((total for (total,) in totals), default=0)
