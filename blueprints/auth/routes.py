# blueprints/auth/routes.py
from __future__ import annotations
import logging
from functools import wraps
from typing import Callable

from flask import Blueprint, abort, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf

from blueprints.core.responses import error_response, ok
from blueprints.core.validation import validate_payload
from extensions import csrf, login_manager
from security import Principal, Role
from . import services
from .schemas import LoginIn

log = logging.getLogger(__name__)

api_bp = Blueprint("auth_api", __name__)


@login_manager.user_loader
def load_user(uid: str):
    return services.load_account(uid)


def current_principal() -> Principal:
    return Principal(role=current_user.role, user_id=current_user.id)


# ---------- декораторы ролей ----------
def roles_required(*roles: Role):
    def decorator(fn: Callable):
        @wraps(fn)
        @login_required
        def wrapper(*args, **kwargs):
            if getattr(current_user, "role", None) not in roles:
                log.warning("role %s denied for %s", getattr(current_user, "role", None), request.path)
                abort(403)
            return fn(*args, **kwargs)
        return wrapper
    return decorator


admin_required = roles_required(Role.ADMIN)
student_required = roles_required(Role.STUDENT)
# админу можно смотреть как преподавателю
teacher_required = roles_required(Role.TEACHER, Role.ADMIN)


# ---------- 401 ----------
@login_manager.unauthorized_handler
def _unauth():
    return error_response("UNAUTHORIZED", "Authentication required", 401)


def _rl_key(email: str) -> str:
    ip = request.headers.get("X-Forwarded-For", request.remote_addr or "0.0.0.0").split(",")[0].strip()
    return f"{ip}|{(email or '').lower()}"


def _account_out(account) -> dict:
    return {"id": account.id, "email": account.email, "name": account.name, "role": account.role.value}


# ---------- API ----------
@api_bp.get("/csrf")
def api_csrf():
    token = generate_csrf()
    resp = jsonify({"ok": True, "data": {"csrf": token}})
    resp.set_cookie("csrf_token", token, samesite="Lax", httponly=False, path="/")
    return resp


@api_bp.post("/auth/login")
@csrf.exempt
def api_login():
    payload = request.get_json(silent=True)
    if payload is None:
        payload = request.form.to_dict()
    data = validate_payload(LoginIn, payload)
    email, password = data.email, data.password

    key = _rl_key(email)
    if not services.rate_limit_hit(key):
        log.warning("login rate limit hit for %s", key)
        return error_response("TOO_MANY_REQUESTS", "Too many login attempts", 429)

    account = services.authenticate(email, password)
    if account is None:
        return error_response("INVALID_CREDENTIALS", "Invalid email or password", 401)

    services.rate_limit_reset(key)
    services.open_session(account)
    login_user(account, remember=False)
    log.info("login %s:%s", account.role.value, account.id)
    return ok(_account_out(account))


@api_bp.post("/auth/logout")
@login_required
def api_logout():
    services.close_session(getattr(current_user, "session_token", None))
    logout_user()
    return ok(None, message="Logged out")


@api_bp.get("/auth/me")
@login_required
def api_me():
    return ok(_account_out(current_user))
