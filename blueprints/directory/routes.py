from __future__ import annotations
import logging
from typing import Any, Type

from flask import Blueprint, request
from flask_login import login_required
from pydantic import BaseModel
from sqlalchemy import Select, func, or_, select
from werkzeug.security import generate_password_hash

from blueprints.auth.routes import admin_required, current_principal
from blueprints.core.responses import created, ok
from blueprints.core.validation import json_body, page_args
from errors import InvalidState, NotFound
from extensions import db
from models import Student, Subject, Teacher
from repositories import (
    CourseGroupRepository, EnrollmentRepository, GroupRequestRepository,
)
from .schemas import (
    StudentIn, StudentOut, StudentUpdate,
    SubjectIn, SubjectOut, SubjectUpdate,
    TeacherIn, TeacherOut, TeacherUpdate,
)

log = logging.getLogger(__name__)

api_bp = Blueprint("directory_api", __name__)


# ----------------------- Helpers -----------------------
def _paginate(stmt: Select, serializer: Type[BaseModel], *, page: int, per_page: int) -> dict:
    total = db.session.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0
    rows = db.session.scalars(stmt.offset((page - 1) * per_page).limit(per_page)).all()
    items = [serializer.model_validate(r, from_attributes=True).model_dump(mode="json") for r in rows]
    return {"items": items, "meta": {"page": page, "per_page": per_page, "total": total}}


def _search_filter(model, q: str):
    fields_map = {
        Student: [Student.name, Student.email, Student.major],
        Teacher: [Teacher.name, Teacher.email],
        Subject: [Subject.name, Subject.major],
    }
    term = f"%{q.strip()}%"
    return or_(*(col.like(term) for col in fields_map[model]))


def _get_or_404(model, obj_id: int):
    obj = db.session.get(model, obj_id)
    if obj is None:
        raise NotFound(model.__name__, obj_id)
    return obj


def _dump(serializer: Type[BaseModel], obj) -> dict[str, Any]:
    return serializer.model_validate(obj, from_attributes=True).model_dump(mode="json")


def _apply(obj, changes: dict) -> None:
    password = changes.pop("password", None)
    if password:
        obj.password_hash = generate_password_hash(password)
    for k, v in changes.items():
        setattr(obj, k, v)


# ----------------------- Students -----------------------
@api_bp.get("/admin/students")
@admin_required
def students_list():
    page, per_page = page_args()
    stmt = select(Student)
    q = request.args.get("q", "")
    if q:
        stmt = stmt.where(_search_filter(Student, q))
    if request.args.get("major"):
        stmt = stmt.where(Student.major == request.args["major"])
    return ok(_paginate(stmt.order_by(Student.name.asc(), Student.id), StudentOut, page=page, per_page=per_page))


@api_bp.get("/admin/students/<int:student_id>")
@admin_required
def students_get(student_id: int):
    return ok(_dump(StudentOut, _get_or_404(Student, student_id)))


@api_bp.post("/admin/students")
@admin_required
def students_create():
    data = json_body(StudentIn)
    obj = Student(name=data.name, email=data.email, major=data.major,
                  password_hash=generate_password_hash(data.password))
    db.session.add(obj)
    db.session.commit()
    log.info("student %s created", obj.id)
    return created(_dump(StudentOut, obj), location=f"/api/v1/admin/students/{obj.id}")


@api_bp.put("/admin/students/<int:student_id>")
@admin_required
def students_update(student_id: int):
    obj = _get_or_404(Student, student_id)
    data = json_body(StudentUpdate)
    _apply(obj, data.model_dump(exclude_unset=True, exclude_none=True))
    db.session.commit()
    return ok(_dump(StudentOut, obj))


@api_bp.delete("/admin/students/<int:student_id>")
@admin_required
def students_delete(student_id: int):
    obj = _get_or_404(Student, student_id)
    if EnrollmentRepository().count_by_student(student_id) or GroupRequestRepository().count_by_student(student_id):
        raise InvalidState("Student has enrollments or group requests", student_id=student_id)
    db.session.delete(obj)
    db.session.commit()
    log.info("student %s deleted by admin %s", student_id, current_principal().user_id)
    return ok(None, message="Student deleted")


# ----------------------- Teachers -----------------------
@api_bp.get("/admin/teachers")
@admin_required
def teachers_list():
    page, per_page = page_args()
    stmt = select(Teacher)
    q = request.args.get("q", "")
    if q:
        stmt = stmt.where(_search_filter(Teacher, q))
    return ok(_paginate(stmt.order_by(Teacher.name.asc(), Teacher.id), TeacherOut, page=page, per_page=per_page))


@api_bp.get("/admin/teachers/<int:teacher_id>")
@admin_required
def teachers_get(teacher_id: int):
    return ok(_dump(TeacherOut, _get_or_404(Teacher, teacher_id)))


@api_bp.post("/admin/teachers")
@admin_required
def teachers_create():
    data = json_body(TeacherIn)
    obj = Teacher(name=data.name, email=data.email, password_hash=generate_password_hash(data.password))
    db.session.add(obj)
    db.session.commit()
    log.info("teacher %s created", obj.id)
    return created(_dump(TeacherOut, obj), location=f"/api/v1/admin/teachers/{obj.id}")


@api_bp.put("/admin/teachers/<int:teacher_id>")
@admin_required
def teachers_update(teacher_id: int):
    obj = _get_or_404(Teacher, teacher_id)
    data = json_body(TeacherUpdate)
    _apply(obj, data.model_dump(exclude_unset=True, exclude_none=True))
    db.session.commit()
    return ok(_dump(TeacherOut, obj))


@api_bp.delete("/admin/teachers/<int:teacher_id>")
@admin_required
def teachers_delete(teacher_id: int):
    obj = _get_or_404(Teacher, teacher_id)
    if CourseGroupRepository().count_by_teacher(teacher_id):
        raise InvalidState("Teacher is assigned to groups", teacher_id=teacher_id)
    db.session.delete(obj)
    db.session.commit()
    log.info("teacher %s deleted", teacher_id)
    return ok(None, message="Teacher deleted")


# ----------------------- Subjects -----------------------
@api_bp.get("/subjects")
@login_required
def subjects_list():
    page, per_page = page_args()
    stmt = select(Subject)
    q = request.args.get("q", "")
    if q:
        stmt = stmt.where(_search_filter(Subject, q))
    if request.args.get("major"):
        stmt = stmt.where(Subject.major == request.args["major"])
    course_year = request.args.get("course_year", type=int)
    if course_year:
        stmt = stmt.where(Subject.course_year == course_year)
    stmt = stmt.order_by(Subject.course_year.asc(), Subject.name.asc())
    return ok(_paginate(stmt, SubjectOut, page=page, per_page=per_page))


@api_bp.get("/subjects/<int:subject_id>")
@login_required
def subjects_get(subject_id: int):
    return ok(_dump(SubjectOut, _get_or_404(Subject, subject_id)))


@api_bp.post("/admin/subjects")
@admin_required
def subjects_create():
    data = json_body(SubjectIn)
    obj = Subject(**data.model_dump())
    db.session.add(obj)
    db.session.commit()
    log.info("subject %s created", obj.id)
    return created(_dump(SubjectOut, obj), location=f"/api/v1/subjects/{obj.id}")


@api_bp.put("/admin/subjects/<int:subject_id>")
@admin_required
def subjects_update(subject_id: int):
    obj = _get_or_404(Subject, subject_id)
    data = json_body(SubjectUpdate)
    _apply(obj, data.model_dump(exclude_unset=True, exclude_none=True))
    db.session.commit()
    return ok(_dump(SubjectOut, obj))


@api_bp.delete("/admin/subjects/<int:subject_id>")
@admin_required
def subjects_delete(subject_id: int):
    obj = _get_or_404(Subject, subject_id)
    if CourseGroupRepository().count_by_subject(subject_id) or GroupRequestRepository().count_by_subject(subject_id):
        raise InvalidState("Subject has groups or group requests", subject_id=subject_id)
    db.session.delete(obj)
    db.session.commit()
    log.info("subject %s deleted", subject_id)
    return ok(None, message="Subject deleted")
