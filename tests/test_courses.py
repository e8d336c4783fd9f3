from __future__ import annotations
import pytest

from conftest import login_client
from extensions import db
from models import CourseGroupStatus, DayOfWeek, GroupSession


@pytest.fixture()
def subject(make):
    return make.subject(major="CS")


def _status(admin, gid, status):
    return admin.patch(f"/api/v1/admin/groups/{gid}/status", json={"status": status})


def test_create_group_defaults(as_admin, subject):
    r = as_admin.post("/api/v1/admin/groups", json={"subject_id": subject, "price": "199.90"})
    assert r.status_code == 201
    data = r.get_json()["data"]
    assert data["status"] == "PLANNED"
    assert data["type"] == "REGULAR"
    assert data["max_capacity"] == 30
    assert data["price"] == "199.90"
    assert r.headers["Location"] == f"/api/v1/groups/{data['id']}"


def test_create_group_validation(as_admin, subject):
    r = as_admin.post("/api/v1/admin/groups", json={"subject_id": subject, "price": 0})
    assert r.status_code == 400
    errors = r.get_json()["details"]["errors"]
    assert errors[0]["field"] == "price"

    r2 = as_admin.post("/api/v1/admin/groups", json={"subject_id": 9999, "price": 10})
    assert r2.status_code == 404


def test_group_status_transitions(as_admin, make, subject):
    gid = make.group(subject, status=CourseGroupStatus.PLANNED)
    assert _status(as_admin, gid, "ACTIVE").status_code == 200
    back = _status(as_admin, gid, "PLANNED")
    assert back.status_code == 422
    assert back.get_json()["error"] == "INVALID_TRANSITION"
    assert _status(as_admin, gid, "CLOSED").status_code == 200
    assert _status(as_admin, gid, "ACTIVE").status_code == 422


def test_assign_teacher_once(as_admin, make, subject):
    gid = make.group(subject)
    t1, t2 = make.teacher(), make.teacher()
    r = as_admin.patch(f"/api/v1/admin/groups/{gid}/teacher", json={"teacher_id": t1})
    assert r.status_code == 200
    assert r.get_json()["data"]["teacher_id"] == t1
    r2 = as_admin.patch(f"/api/v1/admin/groups/{gid}/teacher", json={"teacher_id": t2})
    assert r2.status_code == 400
    assert r2.get_json()["error"] == "INVALID_STATE"


def test_unassigned_groups(as_admin, make, subject):
    free = make.group(subject)
    make.group(subject, teacher_id=make.teacher())
    data = as_admin.get("/api/v1/admin/groups/unassigned").get_json()["data"]
    assert [g["id"] for g in data] == [free]


def test_delete_group(app, as_admin, make, subject):
    busy = make.group(subject)
    make.enrollment(make.student(), busy)
    r = as_admin.delete(f"/api/v1/admin/groups/{busy}")
    assert r.status_code == 400

    empty = make.group(subject)
    make.session(empty, DayOfWeek.MONDAY, "09:00", "10:00")
    assert as_admin.delete(f"/api/v1/admin/groups/{empty}").status_code == 200
    with app.app_context():
        assert db.session.query(GroupSession).filter_by(course_group_id=empty).count() == 0


def test_list_groups_filters(app, make, subject):
    make.student(email="s@example.com")
    full = make.group(subject, max_capacity=1)
    make.enrollment(make.student(), full)
    open_ = make.group(subject)
    make.group(subject, status=CourseGroupStatus.PLANNED)
    c = login_client(app, "s@example.com")

    active = c.get("/api/v1/groups?status=active").get_json()["data"]
    assert {g["id"] for g in active} == {full, open_}

    available = c.get("/api/v1/groups?available=true").get_json()["data"]
    assert [g["id"] for g in available] == [open_]
    assert available[0]["available_seats"] == 30

    detail = c.get(f"/api/v1/groups/{full}").get_json()["data"]
    assert detail["enrolled"] == 1 and detail["available_seats"] == 0

    assert c.get("/api/v1/groups?status=bogus").status_code == 400


# ---- sessions ----
def _session(admin, gid, start="09:00", end="10:30", day="TUESDAY", classroom="A-1"):
    return admin.post("/api/v1/admin/sessions", json={
        "course_group_id": gid, "day_of_week": day, "start_time": start,
        "end_time": end, "classroom": classroom,
    })


def test_session_duration_limits(as_admin, make, subject):
    gid = make.group(subject)
    short = _session(as_admin, gid, "09:00", "09:15")
    assert short.status_code == 400
    assert short.get_json()["error"] == "VALIDATION_ERROR"
    assert _session(as_admin, gid, "09:00", "14:00").status_code == 400
    assert _session(as_admin, gid, "10:00", "09:00").status_code == 400
    assert _session(as_admin, gid, "09:00", "10:30").status_code == 201


def test_closed_group_rejects_session_changes(as_admin, make, subject):
    gid = make.group(subject)
    sid = make.session(gid, DayOfWeek.MONDAY, "09:00", "10:00")
    _status(as_admin, gid, "CLOSED")
    r = _session(as_admin, gid)
    assert r.status_code == 400
    assert r.get_json()["error"] == "INVALID_STATE"
    assert as_admin.put(f"/api/v1/admin/sessions/{sid}", json={"classroom": "Z"}).status_code == 400
    assert as_admin.delete(f"/api/v1/admin/sessions/{sid}").status_code == 400


def test_update_session_checks_conflicts(as_admin, make, subject):
    g1, g2 = make.group(subject), make.group(subject)
    make.session(g1, DayOfWeek.MONDAY, "09:00", "10:00", classroom="R1")
    sid = make.session(g2, DayOfWeek.MONDAY, "10:00", "11:00", classroom="R1")

    moved = as_admin.put(f"/api/v1/admin/sessions/{sid}", json={"start_time": "09:30", "end_time": "10:30"})
    assert moved.status_code == 409
    assert moved.get_json()["error"] == "CLASSROOM_CONFLICT"

    ok = as_admin.put(f"/api/v1/admin/sessions/{sid}", json={"classroom": "R2", "start_time": "09:30",
                                                            "end_time": "10:30"})
    assert ok.status_code == 200
    assert ok.get_json()["data"]["classroom"] == "R2"


def test_session_listing_permissions(app, as_admin, make, subject):
    tid = make.teacher(email="t@example.com")
    gid = make.group(subject, teacher_id=tid)
    make.session(gid, DayOfWeek.WEDNESDAY, "12:00", "13:00")
    make.session(gid, DayOfWeek.MONDAY, "12:00", "13:00")
    make.student(email="s@example.com")

    teacher = login_client(app, "t@example.com")
    rows = teacher.get(f"/api/v1/groups/{gid}/sessions").get_json()["data"]
    assert [r["day_of_week"] for r in rows] == ["MONDAY", "WEDNESDAY"]
    assert len(teacher.get(f"/api/v1/teachers/{tid}/sessions").get_json()["data"]) == 2

    student = login_client(app, "s@example.com")
    assert student.get(f"/api/v1/groups/{gid}/sessions").status_code == 403
    assert student.get(f"/api/v1/teachers/{tid}/sessions").status_code == 403
    assert as_admin.get(f"/api/v1/groups/{gid}/sessions").status_code == 200
