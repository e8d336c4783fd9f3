from __future__ import annotations
import pytest

from conftest import PASSWORD, login_client


@pytest.fixture()
def me(app, make):
    make.student(email="me@example.com", major="CS", name="Me")
    return login_client(app, "me@example.com")


def test_profile_read_and_update(me):
    r = me.get("/api/v1/students/me")
    assert r.status_code == 200
    assert r.get_json()["data"]["name"] == "Me"

    r = me.put("/api/v1/students/me", json={"name": "Renamed"})
    assert r.status_code == 200
    assert r.get_json()["data"]["name"] == "Renamed"
    assert r.get_json()["data"]["major"] == "CS"


def test_change_password(app, me):
    bad = me.post("/api/v1/students/me/password", json={"current_password": "wrong", "new_password": "newsecret"})
    assert bad.status_code == 400
    assert bad.get_json()["details"]["errors"][0]["field"] == "current_password"

    r = me.post("/api/v1/students/me/password", json={"current_password": PASSWORD, "new_password": "newsecret"})
    assert r.status_code == 200

    fresh = app.test_client()
    assert fresh.post("/api/v1/auth/login", json={"email": "me@example.com", "password": "newsecret"}).status_code == 200


def test_subjects_of_own_major(me, make):
    cs = make.subject(name="Compilers", major="CS", course_year=3)
    make.subject(name="Accounting", major="Economics")
    rows = me.get("/api/v1/students/me/subjects").get_json()["data"]
    assert [(r["id"], r["has_pending_request"]) for r in rows] == [(cs, False)]


def test_available_groups_of_own_major(me, make):
    cs = make.group(make.subject(major="CS"))
    make.group(make.subject(major="Economics"))
    rows = me.get("/api/v1/students/me/groups").get_json()["data"]
    assert [g["id"] for g in rows] == [cs]


def test_teacher_cannot_use_student_endpoints(app, make):
    make.teacher(email="t@example.com")
    c = login_client(app, "t@example.com")
    assert c.get("/api/v1/students/me").status_code == 403
