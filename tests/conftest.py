import os

os.environ.setdefault("SEAT_ALLOCATOR_DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hall_allocator import db_models
from hall_allocator.database import Base, get_db, make_engine
from hall_allocator.main_api import app


@pytest.fixture
def db_engine():
    test_engine = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def add_level(db, department, name, size, prefix=None):
    level = db_models.LevelDB(name=name, department=department, matric_format=prefix or f"{name}/")
    db.add(level)
    db.flush()
    for n in range(1, size + 1):
        matric_no = f"{n:04d}"
        db.add(db_models.StudentDB(
            matric_no=matric_no,
            real_matric=f"{level.matric_format}0{matric_no}",
            name=f"{name} student {n}",
            level_id=level.id,
        ))
    db.flush()
    return level


@pytest.fixture
def make_exam(db):
    """Build an exam from ``[(code, capacity)]`` halls and ``[(name, size)]`` levels."""
    def _make(halls, levels, title="Harmattan Semester Exam"):
        department = db_models.DepartmentDB(name=f"Dept for {title}")
        db.add(department)

        hall_rows = []
        for code, capacity in halls:
            hall = db_models.HallDB(name=f"Hall {code}", code=code, capacity=capacity)
            db.add(hall)
            hall_rows.append(hall)
        db.flush()

        level_rows = [add_level(db, department, name, size) for name, size in levels]

        exam = db_models.ExamDB(title=title, exam_date="2026-11-02")
        exam.exam_halls = [db_models.ExamHallDB(hall_id=h.id, position=i) for i, h in enumerate(hall_rows)]
        exam.exam_levels = [db_models.ExamLevelDB(level_id=l.id, position=i) for i, l in enumerate(level_rows)]
        db.add(exam)
        db.commit()
        return exam, hall_rows, level_rows

    return _make
