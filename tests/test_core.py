from __future__ import annotations
import logging
import re

from app import create_app
from blueprints.core.routes import JSONFormatter


def test_health_ok(client):
    rv = client.get("/api/v1/health")
    assert rv.status_code == 200
    js = rv.get_json()
    assert js["ok"] is True
    assert js["data"]["status"] == "ok"


def test_request_id_generated_and_echoed(client):
    rv = client.get("/api/v1/health")
    assert re.fullmatch(r"[0-9a-f]{32}", rv.headers["X-Request-ID"])

    rv2 = client.get("/api/v1/health", headers={"X-Request-ID": "abc-123"})
    assert rv2.headers["X-Request-ID"] == "abc-123"


def test_unknown_api_path_renders_error_body(client):
    rv = client.get("/api/v1/nope")
    assert rv.status_code == 404
    js = rv.get_json()
    assert js == {"ok": False, "error": "NOT_FOUND", "message": js["message"], "path": "/api/v1/nope"}


def test_method_not_allowed(client):
    rv = client.delete("/api/v1/health")
    assert rv.status_code == 405
    assert rv.get_json()["error"] == "METHOD_NOT_ALLOWED"


def test_unauthenticated_is_401(client):
    rv = client.get("/api/v1/enrollments/mine")
    assert rv.status_code == 401
    assert rv.get_json()["error"] == "UNAUTHORIZED"


def test_unexpected_error_is_generic_500():
    app = create_app("test")

    def boom():
        raise RuntimeError("secret internals")

    app.add_url_rule("/api/v1/boom", view_func=boom)
    rv = app.test_client().get("/api/v1/boom")
    assert rv.status_code == 500
    js = rv.get_json()
    assert js["error"] == "INTERNAL_ERROR"
    assert "secret" not in js["message"]


def test_json_formatter_includes_request_fields():
    rec = logging.LogRecord("http", logging.INFO, __file__, 1, "request handled", None, None)
    rec.path = "/api/v1/health"
    rec.status = 200
    rec.request_id = "r1"
    out = JSONFormatter().format(rec)
    assert '"path": "/api/v1/health"' in out
    assert '"request_id": "r1"' in out
    assert '"level": "INFO"' in out
