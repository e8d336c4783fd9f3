# blueprints/teacher/routes.py
from __future__ import annotations
from flask import Blueprint

from blueprints.auth.routes import current_principal, roles_required, teacher_required
from blueprints.core.responses import ok
from blueprints.courses.services import list_by_teacher
from security import Role
from . import services as svc

api_bp = Blueprint("teacher_api", __name__)

# строго TEACHER: у админа нет «своих» групп
teacher_only_required = roles_required(Role.TEACHER)


@api_bp.get("/teacher/me/groups")
@teacher_only_required
def my_groups():
    principal = current_principal()
    return ok(list_by_teacher(principal, principal.user_id))


@api_bp.get("/teacher/me/schedule")
@teacher_only_required
def my_schedule():
    return ok(svc.weekly_schedule(current_principal().user_id))


@api_bp.get("/teacher/groups/<int:group_id>/students")
@teacher_required
def group_students(group_id: int):
    return ok(svc.group_students(current_principal(), group_id))
