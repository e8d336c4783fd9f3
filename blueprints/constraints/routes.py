# blueprints/constraints/routes.py
from dataclasses import asdict

from flask import Blueprint, request, jsonify

from blueprints.auth.routes import admin_required
from .services import run_all_checks

api_bp = Blueprint("constraints_api", __name__)


@api_bp.post("/admin/constraints/check")
@admin_required
def constraints_check():
    payload = request.get_json(silent=True) or {}
    ok, errors = run_all_checks(payload)
    norm = [asdict(e) for e in errors]
    if ok:
        return jsonify({"ok": True, "errors": []}), 200
    if any(e.code == "BAD_REQUEST" for e in errors):
        return jsonify({"ok": False, "errors": norm}), 400
    # бизнес-конфликты: 409
    return jsonify({"ok": False, "errors": norm}), 409
