# blueprints/courses/routes.py
from __future__ import annotations
from flask import Blueprint, request
from flask_login import login_required

from blueprints.auth.routes import admin_required, current_principal
from blueprints.core.responses import created, ok
from blueprints.core.validation import json_body
from errors import ValidationFailed
from models import CourseGroupStatus
from . import services
from .schemas import GroupIn, GroupStatusIn, SessionIn, SessionUpdateIn, TeacherAssignIn

api_bp = Blueprint("courses_api", __name__)


# ---- groups ----
@api_bp.get("/groups")
@login_required
def list_groups():
    raw = request.args.get("status")
    try:
        status = CourseGroupStatus(raw.upper()) if raw else None
    except ValueError as ex:
        raise ValidationFailed([{"field": "status", "code": "enum",
                                 "message": f"unknown group status {raw!r}"}]) from ex
    available = request.args.get("available", "").lower() in ("1", "true", "yes")
    return ok(services.list_groups(status=status, subject_id=request.args.get("subject_id", type=int),
                                   available=available))


@api_bp.get("/groups/<int:group_id>")
@login_required
def get_group(group_id: int):
    return ok(services.get_group(group_id))


@api_bp.get("/groups/<int:group_id>/sessions")
@login_required
def group_sessions(group_id: int):
    return ok(services.list_sessions_by_group(current_principal(), group_id))


@api_bp.get("/teachers/<int:teacher_id>/sessions")
@login_required
def teacher_sessions(teacher_id: int):
    return ok(services.list_sessions_by_teacher(current_principal(), teacher_id))


@api_bp.get("/teachers/<int:teacher_id>/groups")
@login_required
def teacher_groups(teacher_id: int):
    return ok(services.list_by_teacher(current_principal(), teacher_id))


# ---- admin: groups ----
@api_bp.post("/admin/groups")
@admin_required
def create_group():
    data = json_body(GroupIn)
    out = services.create_group(current_principal(), subject_id=data.subject_id, price=data.price,
                                teacher_id=data.teacher_id, type_=data.type,
                                max_capacity=data.max_capacity, status=data.status)
    return created(out, location=f"/api/v1/groups/{out['id']}", message="Group created")


@api_bp.get("/admin/groups/unassigned")
@admin_required
def unassigned_groups():
    return ok(services.list_unassigned(current_principal()))


@api_bp.patch("/admin/groups/<int:group_id>/status")
@admin_required
def update_group_status(group_id: int):
    data = json_body(GroupStatusIn)
    return ok(services.update_group_status(current_principal(), group_id, data.status),
              message="Group status updated")


@api_bp.patch("/admin/groups/<int:group_id>/teacher")
@admin_required
def assign_teacher(group_id: int):
    data = json_body(TeacherAssignIn)
    return ok(services.assign_teacher(current_principal(), group_id, data.teacher_id),
              message="Teacher assigned")


@api_bp.delete("/admin/groups/<int:group_id>")
@admin_required
def delete_group(group_id: int):
    services.delete_group(current_principal(), group_id)
    return ok(None, message="Group deleted")


# ---- admin: sessions ----
@api_bp.post("/admin/sessions")
@admin_required
def create_session():
    data = json_body(SessionIn)
    out = services.create_session(current_principal(), **data.model_dump())
    return created(out, message="Session created")


@api_bp.put("/admin/sessions/<int:session_id>")
@admin_required
def update_session(session_id: int):
    data = json_body(SessionUpdateIn)
    out = services.update_session(current_principal(), session_id, **data.model_dump(exclude_unset=True))
    return ok(out, message="Session updated")


@api_bp.delete("/admin/sessions/<int:session_id>")
@admin_required
def delete_session(session_id: int):
    services.delete_session(current_principal(), session_id)
    return ok(None, message="Session deleted")
