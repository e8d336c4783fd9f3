# blueprints/enrollments/routes.py
from __future__ import annotations
from flask import Blueprint, request
from flask_login import login_required

from blueprints.auth.routes import admin_required, current_principal, student_required
from blueprints.core.responses import created, ok
from blueprints.core.validation import json_body, page_args, validate_payload
from errors import ValidationFailed
from models import PaymentStatus
from . import services
from .schemas import EnrollIn, ForceDeleteIn, PaymentIn

api_bp = Blueprint("enrollments_api", __name__)


@api_bp.post("/enrollments")
@login_required
def enroll():
    data = json_body(EnrollIn)
    principal = current_principal()
    student_id = data.student_id if principal.is_admin and data.student_id else principal.user_id
    out = services.enroll(principal, student_id=student_id, course_group_id=data.course_group_id)
    return created(out, location=f"/api/v1/enrollments/{out['id']}", message="Enrolled")


@api_bp.get("/enrollments/mine")
@student_required
def my_enrollments():
    principal = current_principal()
    return ok(services.list_by_student(principal, principal.user_id))


@api_bp.get("/enrollments/<int:enrollment_id>")
@login_required
def get_enrollment(enrollment_id: int):
    return ok(services.get_enrollment(current_principal(), enrollment_id))


@api_bp.delete("/enrollments/<int:enrollment_id>")
@login_required
def cancel_enrollment(enrollment_id: int):
    services.cancel(current_principal(), enrollment_id)
    return ok(None, message="Enrollment cancelled")


@api_bp.get("/enrollments/can-enroll/<int:group_id>")
@student_required
def can_enroll(group_id: int):
    principal = current_principal()
    allowed = services.can_enroll(principal, student_id=principal.user_id, course_group_id=group_id)
    return ok({"course_group_id": group_id, "can_enroll": allowed})


@api_bp.get("/groups/<int:group_id>/enrollments")
@login_required
def group_enrollments(group_id: int):
    return ok(services.list_by_group(current_principal(), group_id))


# ---- admin ----
@api_bp.get("/admin/enrollments")
@admin_required
def admin_list():
    page, per_page = page_args()
    raw = request.args.get("payment_status")
    try:
        status = PaymentStatus(raw.upper()) if raw else None
    except ValueError as ex:
        raise ValidationFailed([{"field": "payment_status", "code": "enum",
                                 "message": f"unknown payment status {raw!r}"}]) from ex
    return ok(services.list_all(current_principal(), page=page, per_page=per_page, payment_status=status))


@api_bp.patch("/admin/enrollments/<int:enrollment_id>/payment")
@admin_required
def admin_update_payment(enrollment_id: int):
    data = json_body(PaymentIn)
    out = services.update_payment_status(current_principal(), enrollment_id=enrollment_id,
                                         new_status=data.payment_status)
    return ok(out, message="Payment status updated")


@api_bp.delete("/admin/enrollments/<int:enrollment_id>")
@admin_required
def admin_force_delete(enrollment_id: int):
    data = validate_payload(ForceDeleteIn, request.get_json(silent=True) or {})
    services.force_delete(current_principal(), enrollment_id, data.reason)
    return ok(None, message="Enrollment deleted")


@api_bp.get("/admin/students/<int:student_id>/enrollments")
@admin_required
def admin_student_enrollments(student_id: int):
    return ok(services.list_by_student(current_principal(), student_id))
