from __future__ import annotations
import json, logging, time
from datetime import datetime, UTC
from uuid import uuid4

from flask import g, request
from werkzeug.wrappers.response import Response

from . import bp, api_bp
from .responses import ok

REQUEST_ID_HEADER = "X-Request-ID"


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in ("event", "path", "method", "status", "duration_ms", "request_id"):
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _setup_structured_logging(app):
    # хендлер на root, чтобы логи сервисов (logging.getLogger(__name__)) шли туда же
    root = logging.getLogger()
    has_json = any(
        isinstance(h, logging.StreamHandler)
        and isinstance(getattr(h, "formatter", None), JSONFormatter)
        for h in root.handlers
    )
    if not has_json:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        root.addHandler(handler)
    root.setLevel(app.config.get("LOG_LEVEL", "INFO"))


@bp.before_app_request
def _start_timer_and_request_id():
    g._req_start = time.perf_counter()
    g.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex


@bp.after_app_request
def _log_request(response: Response):
    start = getattr(g, "_req_start", None)
    duration_ms = int((time.perf_counter() - start) * 1000) if start is not None else None
    request_id = getattr(g, "request_id", None)
    if request_id:
        response.headers[REQUEST_ID_HEADER] = request_id
    extra = {
        "event": "http_request",
        "path": request.path,
        "method": request.method,
        "status": response.status_code,
        "duration_ms": duration_ms,
        "request_id": request_id,
    }
    logging.getLogger("http").info("request handled", extra=extra)
    return response


@bp.record_once
def _on_register(state):
    _setup_structured_logging(state.app)


@api_bp.get("/health")
def health():
    return ok({
        "status": "ok",
        "ts": datetime.now(UTC).isoformat(timespec="seconds").replace("+00:00", "Z"),
    })
