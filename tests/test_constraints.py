from __future__ import annotations
from datetime import time

import pytest

from blueprints.constraints.services import (
    SessionSlot, has_student_conflict, intervals_overlap, validate_new_session,
)
from errors import ClassroomConflict, GroupScheduleConflict, TeacherConflict
from extensions import db
from models import CourseGroup, DayOfWeek, PaymentStatus

MON = DayOfWeek.MONDAY


def t(s: str) -> time:
    return time.fromisoformat(s)


@pytest.mark.parametrize("a,b,expected", [
    (("09:00", "10:00"), ("10:00", "11:00"), False),  # касание границ
    (("09:00", "10:00"), ("09:30", "10:30"), True),
    (("09:00", "12:00"), ("10:00", "11:00"), True),   # вложенный
    (("09:00", "10:00"), ("11:00", "12:00"), False),
    (("09:00", "10:00"), ("09:00", "10:00"), True),
])
def test_overlap_is_half_open_and_symmetric(a, b, expected):
    assert intervals_overlap(t(a[0]), t(a[1]), t(b[0]), t(b[1])) is expected
    assert intervals_overlap(t(b[0]), t(b[1]), t(a[0]), t(a[1])) is expected


@pytest.fixture()
def two_groups(make):
    teacher = make.teacher()
    subj = make.subject()
    g1 = make.group(subj, teacher_id=teacher)
    g2 = make.group(subj, teacher_id=teacher)
    make.session(g1, MON, "10:00", "11:00", classroom="A-1")
    return {"teacher": teacher, "subject": subj, "g1": g1, "g2": g2}


def _slot(app, group_id, start, end, classroom=None, day=MON):
    with app.app_context():
        group = db.session.get(CourseGroup, group_id)
        return SessionSlot.for_group(group, day, t(start), t(end), classroom)


def test_teacher_conflict_scenario(app, two_groups):
    slot = _slot(app, two_groups["g2"], "10:30", "11:30")
    with app.app_context():
        with pytest.raises(TeacherConflict) as ei:
            validate_new_session(slot)
    assert ei.value.details["teacher_id"] == two_groups["teacher"]


def test_adjacent_session_is_free(app, two_groups):
    slot = _slot(app, two_groups["g2"], "11:00", "12:00", classroom="A-1")
    with app.app_context():
        validate_new_session(slot)  # не бросает


def test_classroom_conflict_with_other_teacher(app, make, two_groups):
    other = make.group(two_groups["subject"], teacher_id=make.teacher())
    slot = _slot(app, other, "09:30", "10:30", classroom="A-1")
    with app.app_context():
        with pytest.raises(ClassroomConflict):
            validate_new_session(slot)


def test_classroom_checked_before_teacher(app, two_groups):
    slot = _slot(app, two_groups["g2"], "10:30", "11:30", classroom="A-1")
    with app.app_context():
        with pytest.raises(ClassroomConflict):
            validate_new_session(slot)


def test_group_overlapping_itself(app, two_groups):
    slot = _slot(app, two_groups["g1"], "10:30", "11:30", classroom="B-2")
    with app.app_context():
        with pytest.raises(GroupScheduleConflict):
            validate_new_session(slot)


def test_other_day_is_free(app, two_groups):
    slot = _slot(app, two_groups["g2"], "10:00", "11:00", classroom="A-1", day=DayOfWeek.TUESDAY)
    with app.app_context():
        validate_new_session(slot)


def test_exclude_session_allows_moving_itself(app, make, two_groups):
    sid = make.session(two_groups["g2"], DayOfWeek.FRIDAY, "08:00", "09:00", classroom="C-3")
    slot = _slot(app, two_groups["g2"], "08:30", "09:30", classroom="C-3", day=DayOfWeek.FRIDAY)
    with app.app_context():
        validate_new_session(slot, exclude_session_id=sid)


def test_student_conflict_only_counts_paid(app, make, two_groups):
    st = make.student()
    e = make.enrollment(st, two_groups["g1"], payment_status=PaymentStatus.PENDING)
    other = make.group(two_groups["subject"])
    slot = _slot(app, other, "10:30", "11:30")
    with app.app_context():
        assert has_student_conflict(st, slot) is False

    with app.app_context():
        from models import Enrollment
        db.session.get(Enrollment, e).payment_status = PaymentStatus.PAID
        db.session.commit()
        assert has_student_conflict(st, slot) is True


# ---- API ----
def test_create_session_api_reports_teacher_conflict(as_admin, two_groups):
    r = as_admin.post("/api/v1/admin/sessions", json={
        "course_group_id": two_groups["g2"], "day_of_week": "monday",
        "start_time": "10:30", "end_time": "11:30",
    })
    assert r.status_code == 409
    assert r.get_json()["error"] == "TEACHER_CONFLICT"


def test_check_endpoint_dry_run(as_admin, two_groups):
    busy = as_admin.post("/api/v1/admin/constraints/check", json={
        "course_group_id": two_groups["g2"], "day_of_week": "MONDAY",
        "start_time": "10:15", "end_time": "11:15", "classroom": "A-1",
    })
    assert busy.status_code == 409
    codes = {e["code"] for e in busy.get_json()["errors"]}
    assert codes == {"CLASSROOM_CONFLICT", "TEACHER_CONFLICT"}

    free = as_admin.post("/api/v1/admin/constraints/check", json={
        "course_group_id": two_groups["g2"], "day_of_week": "MONDAY",
        "start_time": "11:00", "end_time": "12:00", "classroom": "A-1",
    })
    assert free.status_code == 200
    assert free.get_json() == {"ok": True, "errors": []}


def test_check_endpoint_bad_request(as_admin):
    r = as_admin.post("/api/v1/admin/constraints/check", json={"day_of_week": "MONDAY"})
    assert r.status_code == 400
    assert r.get_json()["errors"][0]["code"] == "BAD_REQUEST"


@pytest.mark.parametrize("extra", [
    {"teacher_id": "abc"},
    {"student_id": "x"},
    {"classroom": 5},
])
def test_check_endpoint_rejects_malformed_fields(as_admin, two_groups, extra):
    r = as_admin.post("/api/v1/admin/constraints/check", json={
        "course_group_id": two_groups["g2"], "day_of_week": "MONDAY",
        "start_time": "10:00", "end_time": "11:00", **extra,
    })
    assert r.status_code == 400
    assert r.get_json()["errors"][0]["code"] == "BAD_REQUEST"


def test_check_endpoint_rejects_non_object_body(as_admin):
    r = as_admin.post("/api/v1/admin/constraints/check", json=["course_group_id"])
    assert r.status_code == 400
    assert r.get_json()["ok"] is False


def test_assigning_busy_teacher_is_conflict(as_admin, make, two_groups):
    g3 = make.group(two_groups["subject"])
    make.session(g3, MON, "10:30", "11:30", classroom="D-4")
    r = as_admin.patch(f"/api/v1/admin/groups/{g3}/teacher", json={"teacher_id": two_groups["teacher"]})
    assert r.status_code == 409
    assert r.get_json()["error"] == "TEACHER_CONFLICT"
