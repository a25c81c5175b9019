from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship

from .database import Base


class HallDB(Base):
    __tablename__ = "halls"
    __table_args__ = (CheckConstraint("capacity > 0", name="ck_hall_capacity_positive"),)

    id = Column(Integer, primary_key = True, index = True)
    name = Column(String, nullable = False)
    code = Column(String, unique = True, index = True, nullable = False)
    capacity = Column(Integer, nullable = False)


class DepartmentDB(Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)

    levels = relationship("LevelDB", back_populates="department", cascade="all, delete")


class LevelDB(Base):
    __tablename__ = "levels"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)

    # prefix of the full matric number, e.g. "CSC/2021/"
    matric_format = Column(String, nullable=False, default="")

    department_id = Column(Integer, ForeignKey("departments.id", ondelete="CASCADE"), nullable=False)
    department = relationship("DepartmentDB", back_populates="levels")

    students = relationship("StudentDB", back_populates="level", cascade="all, delete")


class StudentDB(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key = True, index = True)
    matric_no = Column(String, nullable = False)
    real_matric = Column(String, unique = True, index = True, nullable = False)
    name = Column(String, nullable = False)

    level_id = Column(Integer, ForeignKey("levels.id", ondelete="CASCADE"), nullable=False)
    level = relationship("LevelDB", back_populates="students")


class ExamDB(Base):
    __tablename__ = "exams"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    exam_date = Column(String, nullable=True)

    exam_halls = relationship(
        "ExamHallDB", back_populates="exam", cascade="all, delete-orphan",
        order_by="ExamHallDB.position",
    )
    exam_levels = relationship(
        "ExamLevelDB", back_populates="exam", cascade="all, delete-orphan",
        order_by="ExamLevelDB.position",
    )
    distributions = relationship("ExamDistributionDB", back_populates="exam", cascade="all, delete-orphan")
    seat_assignments = relationship("SeatAssignmentDB", back_populates="exam", cascade="all, delete-orphan")


class ExamHallDB(Base):
    __tablename__ = "exam_halls"
    __table_args__ = (UniqueConstraint("exam_id", "hall_id", name="uq_exam_hall"),)

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False)
    hall_id = Column(Integer, ForeignKey("halls.id"), nullable=False)

    # iteration order of halls within the exam
    position = Column(Integer, nullable=False)

    exam = relationship("ExamDB", back_populates="exam_halls")
    hall = relationship("HallDB")


class ExamLevelDB(Base):
    __tablename__ = "exam_levels"
    __table_args__ = (UniqueConstraint("exam_id", "level_id", name="uq_exam_level"),)

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False)
    level_id = Column(Integer, ForeignKey("levels.id"), nullable=False)

    # iteration order of levels within the exam
    position = Column(Integer, nullable=False)

    exam = relationship("ExamDB", back_populates="exam_levels")
    level = relationship("LevelDB")


class ExamDistributionDB(Base):
    __tablename__ = "exam_distributions"

    id = Column(Integer, primary_key=True, index=True)

    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    hall_id = Column(Integer, ForeignKey("halls.id"), nullable=False)
    level_id = Column(Integer, ForeignKey("levels.id"), nullable=False)

    allocated_count = Column(Integer, nullable=False)
    start_index = Column(Integer, nullable=False)
    end_index = Column(Integer, nullable=False)

    exam = relationship("ExamDB", back_populates="distributions")
    hall = relationship("HallDB")
    level = relationship("LevelDB")


class SeatAssignmentDB(Base):
    __tablename__ = "seat_assignments"
    __table_args__ = (
        UniqueConstraint("exam_id", "hall_id", "seat_number", name="uq_exam_hall_seat"),
        UniqueConstraint("exam_id", "student_id", name="uq_exam_student"),
    )

    id = Column(Integer, primary_key=True, index=True)

    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    hall_id = Column(Integer, ForeignKey("halls.id"), nullable=False)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    seat_number = Column(Integer, nullable=False)

    exam = relationship("ExamDB", back_populates="seat_assignments")
    hall = relationship("HallDB")
    student = relationship("StudentDB")
