from __future__ import annotations
import pytest

from conftest import login_client
from models import DayOfWeek


@pytest.fixture()
def teacher_world(make):
    tid = make.teacher(email="t@example.com")
    subj = make.subject(name="Algorithms")
    g1 = make.group(subj, teacher_id=tid)
    g2 = make.group(subj, teacher_id=tid)
    make.session(g1, DayOfWeek.WEDNESDAY, "09:00", "10:30", classroom="A-1")
    make.session(g1, DayOfWeek.MONDAY, "09:00", "10:30", classroom="A-1")
    make.session(g2, DayOfWeek.MONDAY, "12:00", "14:00", classroom="B-2")
    make.enrollment(make.student(), g1)
    return {"teacher": tid, "g1": g1, "g2": g2}


def test_weekly_schedule(app, teacher_world):
    c = login_client(app, "t@example.com")
    r = c.get("/api/v1/teacher/me/schedule")
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["counts"] == {"teaching_days": 2, "hours": 5.0, "sessions": 3}
    assert data["days"] == ["MONDAY", "WEDNESDAY"]
    assert [(l["day_of_week"], l["start"]) for l in data["lessons"]] == [
        ("MONDAY", "09:00"), ("MONDAY", "12:00"), ("WEDNESDAY", "09:00"),
    ]
    assert data["lessons"][0]["enrolled"] == 1
    assert data["lessons"][0]["subject"] == "Algorithms"


def test_my_groups(app, teacher_world):
    c = login_client(app, "t@example.com")
    groups = c.get("/api/v1/teacher/me/groups").get_json()["data"]
    assert {g["id"] for g in groups} == {teacher_world["g1"], teacher_world["g2"]}
    assert all(g["sessions"] for g in groups)


def test_group_students_only_for_own_group(app, make, teacher_world):
    c = login_client(app, "t@example.com")
    rows = c.get(f"/api/v1/teacher/groups/{teacher_world['g1']}/students").get_json()["data"]
    assert len(rows) == 1 and rows[0]["payment_status"] == "PENDING"

    foreign = make.group(make.subject())
    assert c.get(f"/api/v1/teacher/groups/{foreign}/students").status_code == 403


def test_admin_is_not_a_teacher_for_me_endpoints(as_admin, teacher_world):
    assert as_admin.get("/api/v1/teacher/me/schedule").status_code == 403
    # но чужие группы админ видит
    assert as_admin.get(f"/api/v1/teacher/groups/{teacher_world['g1']}/students").status_code == 200


def test_other_teacher_groups_forbidden(app, make, teacher_world):
    make.teacher(email="other@example.com")
    c = login_client(app, "other@example.com")
    assert c.get(f"/api/v1/teachers/{teacher_world['teacher']}/groups").status_code == 403
