"""Единый формат ответов API.

Успех: ``{"ok": true, "data": ..., "message"?: ...}``.
Ошибка: ``{"ok": false, "error": CODE, "message": ..., "details"?: ..., "path": ...}``.
"""
from __future__ import annotations
import logging
from typing import Any, Optional

from flask import jsonify, request
from flask_wtf.csrf import CSRFError
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from errors import DomainError
from extensions import db

from . import bp

log = logging.getLogger(__name__)

_HTTP_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    415: "UNSUPPORTED_MEDIA_TYPE",
    429: "TOO_MANY_REQUESTS",
}


def ok(data: Any = None, message: Optional[str] = None, status: int = 200):
    body = {"ok": True, "data": data}
    if message:
        body["message"] = message
    return jsonify(body), status


def created(data: Any, location: Optional[str] = None, message: Optional[str] = None):
    resp, _ = ok(data, message)
    resp.status_code = 201
    if location:
        resp.headers["Location"] = location
    return resp


def error_response(code: str, message: str, status: int, details: Any = None):
    body = {"ok": False, "error": code, "message": message}
    if details:
        body["details"] = details
    body["path"] = request.path
    return jsonify(body), status


@bp.app_errorhandler(DomainError)
def _domain_error(e: DomainError):
    db.session.rollback()
    payload = e.to_dict()
    return error_response(payload["error"], payload["message"], e.http_status, payload.get("details"))


@bp.app_errorhandler(IntegrityError)
def _integrity_error(e: IntegrityError):
    # нарушения уникальности, которые сервис не предусмотрел
    db.session.rollback()
    log.warning("integrity error on %s: %s", request.path, getattr(e, "orig", e))
    return error_response("UNIQUE_CONSTRAINT", "Unique constraint violation", 409)


@bp.app_errorhandler(CSRFError)
def _csrf_error(e: CSRFError):
    return error_response("CSRF_ERROR", e.description or "CSRF token missing or invalid", 400)


@bp.app_errorhandler(HTTPException)
def _http_error(e: HTTPException):
    status = e.code or 500
    code = _HTTP_CODES.get(status, "HTTP_ERROR")
    return error_response(code, e.description or e.name, status)


@bp.app_errorhandler(Exception)
def _unexpected(e: Exception):
    db.session.rollback()
    log.exception("unhandled error on %s %s", request.method, request.path)
    return error_response("INTERNAL_ERROR", "Internal server error", 500)
