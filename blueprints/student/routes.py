# blueprints/student/routes.py
from __future__ import annotations
import logging

from flask import Blueprint
from werkzeug.security import check_password_hash, generate_password_hash

from blueprints.auth.routes import current_principal, student_required
from blueprints.core.responses import ok
from blueprints.core.validation import json_body
from blueprints.courses.services import list_groups
from blueprints.directory.schemas import PasswordChange, ProfileUpdate
from blueprints.enrollments.services import student_stats
from errors import NotFound, ValidationFailed
from extensions import db
from repositories import GroupRequestRepository, StudentRepository, SubjectRepository

log = logging.getLogger(__name__)

api_bp = Blueprint("student_api", __name__)


def _me():
    student = StudentRepository().get(current_principal().user_id)
    if student is None:
        raise NotFound("Student", current_principal().user_id)
    return student


def _profile(s) -> dict:
    return {"id": s.id, "name": s.name, "email": s.email, "major": s.major,
            "created_at": s.created_at.isoformat(timespec="seconds")}


@api_bp.get("/students/me")
@student_required
def profile():
    return ok(_profile(_me()))


@api_bp.put("/students/me")
@student_required
def update_profile():
    student = _me()
    data = json_body(ProfileUpdate)
    for k, v in data.model_dump(exclude_none=True).items():
        setattr(student, k, v)
    db.session.commit()
    return ok(_profile(student), message="Profile updated")


@api_bp.post("/students/me/password")
@student_required
def change_password():
    student = _me()
    data = json_body(PasswordChange)
    if not check_password_hash(student.password_hash, data.current_password):
        raise ValidationFailed([{"field": "current_password", "code": "invalid",
                                 "message": "current password is incorrect"}])
    student.password_hash = generate_password_hash(data.new_password)
    db.session.commit()
    log.info("student %s changed password", student.id)
    return ok(None, message="Password changed")


@api_bp.get("/students/me/subjects")
@student_required
def my_subjects():
    student = _me()
    pending = GroupRequestRepository()
    return ok([
        {"id": s.id, "name": s.name, "major": s.major, "course_year": s.course_year,
         "has_pending_request": pending.exists_pending(student.id, s.id)}
        for s in SubjectRepository().list_by_major(student.major)
    ])


@api_bp.get("/students/me/groups")
@student_required
def my_available_groups():
    """Активные группы со свободными местами по предметам своей специальности."""
    student = _me()
    return ok([g for g in list_groups(available=True) if g["major"] == student.major])


@api_bp.get("/students/me/stats")
@student_required
def my_stats():
    principal = current_principal()
    return ok(student_stats(principal, principal.user_id))
