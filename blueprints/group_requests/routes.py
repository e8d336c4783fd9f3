# blueprints/group_requests/routes.py
from __future__ import annotations
from flask import Blueprint, request
from flask_login import login_required

from blueprints.auth.routes import admin_required, current_principal, student_required
from blueprints.core.responses import created, ok
from blueprints.core.validation import json_body, validate_payload
from . import services
from .schemas import GroupRequestIn, SearchArgs, StatusIn

api_bp = Blueprint("group_requests_api", __name__)


@api_bp.post("/group-requests")
@login_required
def create_request():
    data = json_body(GroupRequestIn)
    principal = current_principal()
    student_id = data.student_id if principal.is_admin and data.student_id else principal.user_id
    out = services.create_request(principal, student_id=student_id,
                                  subject_id=data.subject_id, comment=data.comment)
    return created(out, location=f"/api/v1/group-requests/{out['id']}", message="Request submitted")


@api_bp.get("/group-requests/mine")
@student_required
def my_requests():
    return ok(services.list_mine(current_principal()))


@api_bp.get("/group-requests/can-request/<int:subject_id>")
@student_required
def can_request(subject_id: int):
    principal = current_principal()
    allowed = services.can_request(principal, student_id=principal.user_id, subject_id=subject_id)
    return ok({"subject_id": subject_id, "can_request": allowed})


# ---- admin ----
@api_bp.get("/admin/group-requests")
@admin_required
def admin_search():
    args = {k: v for k, v in request.args.items() if v != ""}
    if "status" in args:
        args["status"] = args["status"].upper()
    filters = validate_payload(SearchArgs, args)
    return ok(services.search(current_principal(), **filters.model_dump()))


@api_bp.get("/admin/group-requests/pending")
@admin_required
def admin_pending():
    return ok(services.list_pending(current_principal()))


@api_bp.patch("/admin/group-requests/<int:request_id>/status")
@admin_required
def admin_update_status(request_id: int):
    data = json_body(StatusIn)
    out = services.update_status(current_principal(), request_id=request_id,
                                 new_status=data.status, comment=data.admin_comment)
    return ok(out, message="Request status updated")


@api_bp.delete("/admin/group-requests/<int:request_id>")
@admin_required
def admin_delete(request_id: int):
    services.delete_request(current_principal(), request_id)
    return ok(None, message="Request deleted")


@api_bp.get("/admin/group-requests/stats/<int:subject_id>")
@admin_required
def admin_stats(subject_id: int):
    return ok(services.stats_by_subject(current_principal(), subject_id))


@api_bp.get("/admin/group-requests/demand")
@admin_required
def admin_demand():
    limit = min(100, max(1, request.args.get("limit", 10, type=int)))
    return ok(services.demand_ranking(current_principal(), limit))


@api_bp.get("/admin/subjects/<int:subject_id>/group-requests")
@admin_required
def admin_by_subject(subject_id: int):
    return ok(services.list_by_subject(current_principal(), subject_id))


@api_bp.get("/admin/students/<int:student_id>/group-requests")
@admin_required
def admin_by_student(student_id: int):
    return ok(services.list_by_student(current_principal(), student_id))


@api_bp.get("/admin/group-requests/pending-counts")
@admin_required
def admin_pending_counts():
    return ok(services.pending_counts_by_subject(current_principal()))
