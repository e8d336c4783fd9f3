from __future__ import annotations
import pytest

from conftest import PASSWORD, login


@pytest.fixture()
def users(make):
    return {
        "admin": make.admin(email="admin@example.com"),
        "teacher": make.teacher(email="teacher@example.com"),
        "student": make.student(email="student@example.com"),
    }


def test_login_and_me(client, users):
    r = login(client, "student@example.com")
    assert r.get_json()["data"]["role"] == "STUDENT"

    me = client.get("/api/v1/auth/me")
    assert me.status_code == 200
    assert me.get_json()["data"] == {"id": users["student"], "email": "student@example.com",
                                     "name": me.get_json()["data"]["name"], "role": "STUDENT"}


def test_login_email_is_case_insensitive(client, users):
    r = client.post("/api/v1/auth/login", json={"email": "  Teacher@Example.com ", "password": PASSWORD})
    assert r.status_code == 200
    assert r.get_json()["data"]["role"] == "TEACHER"


def test_invalid_credentials(client, users):
    r = client.post("/api/v1/auth/login", json={"email": "admin@example.com", "password": "wrong"})
    assert r.status_code == 401
    assert r.get_json()["error"] == "INVALID_CREDENTIALS"


def test_missing_credentials(client):
    r = client.post("/api/v1/auth/login", json={"email": ""})
    assert r.status_code == 400
    assert r.get_json()["error"] == "VALIDATION_ERROR"


def test_login_body_must_be_object(client, users):
    r = client.post("/api/v1/auth/login", json=["a"])
    assert r.status_code == 400
    assert r.get_json()["error"] == "VALIDATION_ERROR"

    r = client.post("/api/v1/auth/login", json={"email": 42, "password": PASSWORD})
    assert r.status_code == 400
    assert r.get_json()["error"] == "VALIDATION_ERROR"


def test_login_with_form_body(client, users):
    r = client.post("/api/v1/auth/login", data={"email": "admin@example.com", "password": PASSWORD})
    assert r.status_code == 200
    assert r.get_json()["data"]["role"] == "ADMIN"


def test_rate_limit_login(app, client):
    app.config.update(AUTH_RL_MAX=3, AUTH_RL_WINDOW=60)
    for _ in range(3):
        r = client.post("/api/v1/auth/login", json={"email": "x@example.com", "password": "wrong"})
        assert r.status_code == 401
    r2 = client.post("/api/v1/auth/login", json={"email": "x@example.com", "password": "wrong"})
    assert r2.status_code == 429
    assert r2.get_json()["error"] == "TOO_MANY_REQUESTS"


def test_role_forbidden(client, users):
    login(client, "teacher@example.com")
    r = client.get("/api/v1/admin/students")
    assert r.status_code == 403
    assert r.get_json()["error"] == "FORBIDDEN"


def test_logout(client, users):
    login(client, "admin@example.com")
    assert client.post("/api/v1/auth/logout").status_code == 200
    assert client.get("/api/v1/auth/me").status_code == 401


def test_single_session_policy_evicts_older_login(app, users):
    app.config.update(MAX_SESSIONS_PER_USER=1)
    first = app.test_client()
    second = app.test_client()
    login(first, "student@example.com")
    assert first.get("/api/v1/auth/me").status_code == 200

    login(second, "student@example.com")
    assert second.get("/api/v1/auth/me").status_code == 200
    assert first.get("/api/v1/auth/me").status_code == 401


def test_sessions_unlimited_when_disabled(app, users):
    app.config.update(MAX_SESSIONS_PER_USER=0)
    first = app.test_client()
    second = app.test_client()
    login(first, "student@example.com")
    login(second, "student@example.com")
    assert first.get("/api/v1/auth/me").status_code == 200
    assert second.get("/api/v1/auth/me").status_code == 200


def test_csrf_required_on_mutating_calls(app, client, users, make):
    app.config.update(WTF_CSRF_ENABLED=True)
    subject_id = make.subject(major="CS")
    login(client, "student@example.com")  # логин освобождён от CSRF

    r = client.post("/api/v1/group-requests", json={"subject_id": subject_id})
    assert r.status_code == 400
    assert r.get_json()["error"] == "CSRF_ERROR"

    token = client.get("/api/v1/csrf").get_json()["data"]["csrf"]
    r2 = client.post("/api/v1/group-requests", json={"subject_id": subject_id},
                     headers={"X-CSRFToken": token})
    assert r2.status_code == 201
