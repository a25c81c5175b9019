import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .allocation import (
    delete_exam, find_seat_allocations, generate_allocation, generate_exam_distribution,
    generate_seating_arrangement, hall_allocated_peak, hall_exam_count, level_exam_count,
    level_is_allocated, load_exam, stored_distributions, stored_seats,
)
from .config import configure_logging
from .database import Base, engine, get_db
from .db_models import (
    HallDB, DepartmentDB, LevelDB, StudentDB, ExamDB, ExamHallDB, ExamLevelDB,
)
from .errors import ExamNotFound, InsufficientCapacity, StaleDistribution, StudentNotFound

LOG = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    configure_logging()
    yield


app = FastAPI(title = "Exam Hall Allocator API", lifespan = lifespan)

Base.metadata.create_all(bind = engine)


def run_engine(step, db, exam_id):
    try:
        return step(db, exam_id)
    except ExamNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InsufficientCapacity as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StaleDistribution as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.get("/")
def root():
    return {"message": "Exam Hall Allocator API is running !"}


@app.get("/db-status")
def db_status(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        return {"online": True}
    except SQLAlchemyError as e:
        LOG.error("database check failed: %s", e)
        return {"online": False, "error": str(e)}


# ---------- halls ----------

class HallCreate(BaseModel):
    name: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)
    capacity: int = Field(..., gt=0)


def hall_json(h):
    return {"id": h.id, "name": h.name, "code": h.code, "capacity": h.capacity}


@app.get("/halls")
def get_halls(db: Session = Depends(get_db)):
    return [hall_json(h) for h in db.query(HallDB).order_by(HallDB.name).all()]


@app.post("/halls")
def create_hall(req: HallCreate, db: Session = Depends(get_db)):
    existing = db.query(HallDB).filter(HallDB.code == req.code).first()
    if existing:
        raise HTTPException(status_code=400, detail=f"Hall {req.code} already exists")

    hall = HallDB(name=req.name, code=req.code, capacity=req.capacity)
    db.add(hall)
    db.commit()
    db.refresh(hall)
    return hall_json(hall)


class HallUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    code: Optional[str] = Field(None, min_length=1)
    capacity: Optional[int] = Field(None, gt=0)


def get_hall_or_404(db, hall_id):
    hall = db.query(HallDB).filter(HallDB.id == hall_id).first()
    if not hall:
        raise HTTPException(status_code=404, detail="Hall not found")
    return hall


@app.put("/halls/{hall_id}")
def update_hall(hall_id: int, req: HallUpdate, db: Session = Depends(get_db)):
    hall = get_hall_or_404(db, hall_id)

    if req.code is not None and req.code != hall.code:
        existing = db.query(HallDB).filter(HallDB.code == req.code).first()
        if existing:
            raise HTTPException(status_code=400, detail=f"Hall {req.code} already exists")

    # a planned exam must still fit after the change
    if req.capacity is not None:
        planned = hall_allocated_peak(db, hall.id)
        if req.capacity < planned:
            raise HTTPException(
                status_code=409,
                detail=f"Hall {hall.code} already has {planned} students planned; capacity cannot drop to {req.capacity}"
            )

    for key, value in req.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(hall, key, value)

    db.commit()
    db.refresh(hall)
    return hall_json(hall)


@app.delete("/halls/{hall_id}")
def delete_hall(hall_id: int, db: Session = Depends(get_db)):
    hall = get_hall_or_404(db, hall_id)

    if hall_exam_count(db, hall.id):
        raise HTTPException(status_code=409, detail=f"Hall {hall.code} is used by an exam; delete the exam first")

    db.delete(hall)
    db.commit()
    return {"message": "Hall deleted", "id": hall_id}


# ---------- departments, levels, students ----------

class DepartmentCreate(BaseModel):
    name: str = Field(..., min_length=1)


class LevelCreate(BaseModel):
    name: str = Field(..., min_length=1)
    department_id: int
    matric_format: str = ""


class StudentIn(BaseModel):
    matric_no: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)


@app.get("/departments")
def get_departments(db: Session = Depends(get_db)):
    departments = db.query(DepartmentDB).order_by(DepartmentDB.name).all()
    return [
        {
            "id": d.id,
            "name": d.name,
            "levels": [
                {"id": l.id, "name": l.name, "students": len(l.students)}
                for l in sorted(d.levels, key=lambda l: l.name)
            ],
        }
        for d in departments
    ]


@app.post("/departments")
def create_department(req: DepartmentCreate, db: Session = Depends(get_db)):
    existing = db.query(DepartmentDB).filter(DepartmentDB.name == req.name).first()
    if existing:
        raise HTTPException(status_code=400, detail=f"Department {req.name} already exists")

    department = DepartmentDB(name=req.name)
    db.add(department)
    db.commit()
    db.refresh(department)
    return {"id": department.id, "name": department.name}


@app.get("/departments/{department_id}/levels")
def get_levels(department_id: int, db: Session = Depends(get_db)):
    levels = db.query(LevelDB).filter(LevelDB.department_id == department_id).order_by(LevelDB.name).all()
    return [
        {"id": l.id, "name": l.name, "matric_format": l.matric_format, "students": len(l.students)}
        for l in levels
    ]


@app.post("/levels")
def create_level(req: LevelCreate, db: Session = Depends(get_db)):
    department = db.query(DepartmentDB).filter(DepartmentDB.id == req.department_id).first()
    if not department:
        raise HTTPException(status_code=404, detail="Department not found")

    level = LevelDB(name=req.name, department_id=department.id, matric_format=req.matric_format)
    db.add(level)
    db.commit()
    db.refresh(level)
    return {"id": level.id, "name": level.name, "department_id": level.department_id}


@app.post("/levels/{level_id}/students")
def add_students(level_id: int, students: List[StudentIn], db: Session = Depends(get_db)):
    level = db.query(LevelDB).filter(LevelDB.id == level_id).first()
    if not level:
        raise HTTPException(status_code=404, detail="Level not found")

    inserted = 0
    skipped = 0
    seen = set()

    for s in students:
        real_matric = f"{level.matric_format}0{s.matric_no}"

        existing = db.query(StudentDB).filter(StudentDB.real_matric == real_matric).first()
        if existing or real_matric in seen:
            skipped += 1
            continue

        seen.add(real_matric)
        db.add(StudentDB(matric_no=s.matric_no, real_matric=real_matric, name=s.name, level_id=level.id))
        inserted += 1

    db.commit()

    return {
        "message": "Student import completed",
        "inserted": inserted,
        "skipped_duplicates": skipped
    }


@app.get("/levels/{level_id}/students")
def get_students(level_id: int, db: Session = Depends(get_db)):
    students = (
        db.query(StudentDB)
        .filter(StudentDB.level_id == level_id)
        .order_by(StudentDB.matric_no, StudentDB.id)
        .all()
    )
    return [
        {"id": s.id, "matric_no": s.matric_no, "real_matric": s.real_matric, "name": s.name}
        for s in students
    ]


class LevelUpdate(BaseModel):
    name: str = Field(..., min_length=1)


class StudentUpdate(BaseModel):
    matric_no: Optional[str] = Field(None, min_length=1)
    name: Optional[str] = Field(None, min_length=1)


@app.put("/departments/{department_id}")
def update_department(department_id: int, req: DepartmentCreate, db: Session = Depends(get_db)):
    department = db.query(DepartmentDB).filter(DepartmentDB.id == department_id).first()
    if not department:
        raise HTTPException(status_code=404, detail="Department not found")

    existing = db.query(DepartmentDB).filter(DepartmentDB.name == req.name, DepartmentDB.id != department.id).first()
    if existing:
        raise HTTPException(status_code=400, detail=f"Department {req.name} already exists")

    department.name = req.name
    db.commit()
    return {"id": department.id, "name": department.name}


@app.delete("/departments/{department_id}")
def delete_department(department_id: int, db: Session = Depends(get_db)):
    department = db.query(DepartmentDB).filter(DepartmentDB.id == department_id).first()
    if not department:
        raise HTTPException(status_code=404, detail="Department not found")

    if level_exam_count(db, [l.id for l in department.levels]):
        raise HTTPException(
            status_code=409, detail=f"Department {department.name} has levels sitting an exam; delete the exam first"
        )

    db.delete(department)
    db.commit()
    return {"message": "Department deleted", "id": department_id}


def get_level_or_404(db, level_id):
    level = db.query(LevelDB).filter(LevelDB.id == level_id).first()
    if not level:
        raise HTTPException(status_code=404, detail="Level not found")
    return level


@app.put("/levels/{level_id}")
def update_level(level_id: int, req: LevelUpdate, db: Session = Depends(get_db)):
    level = get_level_or_404(db, level_id)
    level.name = req.name
    db.commit()
    return {"id": level.id, "name": level.name, "department_id": level.department_id}


@app.delete("/levels/{level_id}")
def delete_level(level_id: int, db: Session = Depends(get_db)):
    level = get_level_or_404(db, level_id)

    if level_exam_count(db, [level.id]):
        raise HTTPException(status_code=409, detail=f"Level {level.name} is sitting an exam; delete the exam first")

    db.delete(level)
    db.commit()
    return {"message": "Level deleted", "id": level_id}


def get_student_or_404(db, student_id):
    student = db.query(StudentDB).filter(StudentDB.id == student_id).first()
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    return student


@app.put("/students/{student_id}")
def update_student(student_id: int, req: StudentUpdate, db: Session = Depends(get_db)):
    student = get_student_or_404(db, student_id)

    if req.matric_no is not None and req.matric_no != student.matric_no:
        # matric numbers fix roster order, which planned ranges point into
        if level_is_allocated(db, student.level_id):
            raise HTTPException(
                status_code=409, detail="Level already has a distribution; matric number cannot change"
            )

        real_matric = f"{student.level.matric_format}0{req.matric_no}"
        existing = db.query(StudentDB).filter(StudentDB.real_matric == real_matric).first()
        if existing:
            raise HTTPException(status_code=400, detail=f"Student {real_matric} already exists")

        student.matric_no = req.matric_no
        student.real_matric = real_matric

    if req.name is not None:
        student.name = req.name

    db.commit()
    return {"id": student.id, "matric_no": student.matric_no, "real_matric": student.real_matric, "name": student.name}


@app.delete("/students/{student_id}")
def delete_student(student_id: int, db: Session = Depends(get_db)):
    student = get_student_or_404(db, student_id)

    if level_is_allocated(db, student.level_id):
        raise HTTPException(status_code=409, detail="Level already has a distribution; delete the exam first")

    db.delete(student)
    db.commit()
    return {"message": "Student deleted", "id": student_id}


# ---------- exams ----------

class ExamCreate(BaseModel):
    title: str = Field(..., min_length=1)
    exam_date: str = Field(..., min_length=1)
    hall_ids: List[int] = Field(..., min_length=1)
    level_ids: List[int] = Field(..., min_length=1)


def exam_json(exam):
    return {
        "id": exam.id,
        "title": exam.title,
        "exam_date": exam.exam_date,
        "halls": [
            {"id": eh.hall.id, "code": eh.hall.code, "capacity": eh.hall.capacity, "position": eh.position}
            for eh in exam.exam_halls
        ],
        "levels": [
            {"id": el.level.id, "name": el.level.name, "position": el.position}
            for el in exam.exam_levels
        ],
        "seats_assigned": len(exam.seat_assignments),
    }


@app.post("/exams")
def create_exam(req: ExamCreate, db: Session = Depends(get_db)):
    if len(set(req.hall_ids)) != len(req.hall_ids) or len(set(req.level_ids)) != len(req.level_ids):
        raise HTTPException(status_code=400, detail="Halls and levels may only be listed once")

    found_halls = db.query(HallDB).filter(HallDB.id.in_(req.hall_ids)).count()
    found_levels = db.query(LevelDB).filter(LevelDB.id.in_(req.level_ids)).count()
    if found_halls != len(req.hall_ids) or found_levels != len(req.level_ids):
        raise HTTPException(status_code=404, detail="Unknown hall or level")

    exam = ExamDB(title=req.title, exam_date=req.exam_date)
    exam.exam_halls = [ExamHallDB(hall_id=h, position=i) for i, h in enumerate(req.hall_ids)]
    exam.exam_levels = [ExamLevelDB(level_id=l, position=i) for i, l in enumerate(req.level_ids)]

    db.add(exam)
    db.commit()
    db.refresh(exam)
    return exam_json(exam)


@app.get("/exams")
def get_exams(db: Session = Depends(get_db)):
    exams = db.query(ExamDB).order_by(ExamDB.exam_date.desc(), ExamDB.id.desc()).all()
    return [exam_json(e) for e in exams]


@app.get("/exams/{exam_id}")
def get_exam(exam_id: int, db: Session = Depends(get_db)):
    exam = run_engine(load_exam, db, exam_id)
    return exam_json(exam)


@app.delete("/exams/{exam_id}")
def remove_exam(exam_id: int, db: Session = Depends(get_db)):
    run_engine(delete_exam, db, exam_id)
    return {"message": "Exam deleted", "id": exam_id}


@app.post("/exams/{exam_id}/distribution")
def create_distribution(exam_id: int, db: Session = Depends(get_db)):
    distributions = run_engine(generate_exam_distribution, db, exam_id)
    return {
        "message": "Distribution generated",
        "exam_id": exam_id,
        "distributions": [d.as_dict() for d in distributions]
    }


@app.post("/exams/{exam_id}/seating")
def create_seating(exam_id: int, db: Session = Depends(get_db)):
    seats = run_engine(generate_seating_arrangement, db, exam_id)
    return {"message": "Seating generated", "exam_id": exam_id, "seats_assigned": len(seats)}


@app.post("/exams/{exam_id}/allocate")
def allocate_exam(exam_id: int, db: Session = Depends(get_db)):
    distributions, seats = run_engine(generate_allocation, db, exam_id)
    return {
        "message": "Allocation completed",
        "exam_id": exam_id,
        "distributions": len(distributions),
        "seats_assigned": len(seats)
    }


@app.get("/exams/{exam_id}/distributions")
def get_distributions(exam_id: int, db: Session = Depends(get_db)):
    run_engine(load_exam, db, exam_id)
    return [d.as_dict() for d in stored_distributions(db, exam_id)]


@app.get("/exams/{exam_id}/seats")
def get_seats(exam_id: int, db: Session = Depends(get_db)):
    run_engine(load_exam, db, exam_id)
    return [
        {
            "hall_id": s.hall_id,
            "hall_code": s.hall.code,
            "seat_number": s.seat_number,
            "student_id": s.student_id,
            "real_matric": s.student.real_matric,
            "name": s.student.name,
            "level": s.student.level.name,
            "department": s.student.level.department.name,
        }
        for s in stored_seats(db, exam_id)
    ]


@app.get("/public/seat-lookup")
def seat_lookup(matric_no: str, db: Session = Depends(get_db)):
    try:
        student, rows = find_seat_allocations(db, matric_no)
    except StudentNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {
        "real_matric": student.real_matric,
        "name": student.name,
        "level": student.level.name,
        "department": student.level.department.name,
        "seats": [
            {
                "exam_id": exam.id,
                "exam_title": exam.title,
                "exam_date": exam.exam_date,
                "hall_code": hall.code,
                "hall_name": hall.name,
                "seat_number": seat.seat_number,
            }
            for seat, exam, hall in rows
        ]
    }


@app.get("/stats")
def dashboard_stats(db: Session = Depends(get_db)):
    return {
        "halls": db.query(HallDB).count(),
        "departments": db.query(DepartmentDB).count(),
        "students": db.query(StudentDB).count(),
        "exams": db.query(ExamDB).count(),
    }
