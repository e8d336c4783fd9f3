# blueprints/courses/services.py
from __future__ import annotations
import logging
from dataclasses import dataclass, asdict, field
from datetime import time
from decimal import Decimal
from typing import Optional

from flask import current_app

from blueprints.constraints.services import SessionSlot, validate_new_session, validate_teacher_assignment
from errors import Forbidden, InvalidState, InvalidTransition, NotFound, ValidationFailed
from extensions import db
from models import (
    CourseGroup, CourseGroupStatus, CourseGroupType, DayOfWeek, GroupSession,
)
from repositories import (
    CourseGroupRepository, EnrollmentRepository, GroupSessionRepository,
    SubjectRepository, TeacherRepository,
)
from security import Principal, require_admin

log = logging.getLogger(__name__)


@dataclass
class SessionOut:
    id: int
    course_group_id: int
    day_of_week: str
    start_time: str
    end_time: str
    classroom: Optional[str]


@dataclass
class GroupOut:
    id: int
    subject_id: int
    subject_name: str
    major: str
    teacher_id: Optional[int]
    teacher_name: Optional[str]
    status: str
    type: str
    price: str
    max_capacity: int
    enrolled: int
    available_seats: int
    sessions: list = field(default_factory=list)


def _fmt(t: time) -> str:
    return f"{t.hour:02d}:{t.minute:02d}"


def session_out(s: GroupSession) -> dict:
    return asdict(SessionOut(s.id, s.course_group_id, s.day_of_week.value,
                             _fmt(s.start_time), _fmt(s.end_time), s.classroom))


def group_out(g: CourseGroup, with_sessions: bool = False) -> dict:
    enrolled = EnrollmentRepository().count_by_group(g.id)
    out = GroupOut(
        id=g.id,
        subject_id=g.subject_id,
        subject_name=g.subject.name,
        major=g.subject.major,
        teacher_id=g.teacher_id,
        teacher_name=g.teacher.name if g.teacher else None,
        status=g.status.value,
        type=g.type.value,
        price=str(g.price),
        max_capacity=g.max_capacity,
        enrolled=enrolled,
        available_seats=max(0, g.max_capacity - enrolled),
    )
    if with_sessions:
        out.sessions = [session_out(s) for s in sorted(g.sessions, key=lambda s: (s.day_of_week.index, s.start_time))]
    return asdict(out)


def _get_group(group_id: int) -> CourseGroup:
    group = CourseGroupRepository().get(group_id)
    if group is None:
        raise NotFound("CourseGroup", group_id)
    return group


def _get_session(session_id: int) -> GroupSession:
    s = GroupSessionRepository().get(session_id)
    if s is None:
        raise NotFound("GroupSession", session_id)
    return s


# ---------- groups ----------
def list_groups(*, status: Optional[CourseGroupStatus] = None, subject_id: Optional[int] = None,
                available: bool = False) -> list[dict]:
    if available:
        status = CourseGroupStatus.ACTIVE
    rows = [group_out(g) for g in CourseGroupRepository().list_filtered(status=status, subject_id=subject_id)]
    if available:
        rows = [r for r in rows if r["available_seats"] > 0]
    return rows


def get_group(group_id: int) -> dict:
    return group_out(_get_group(group_id), with_sessions=True)


def list_unassigned(principal: Principal) -> list[dict]:
    require_admin(principal)
    return [group_out(g) for g in CourseGroupRepository().list_filtered(unassigned=True)]


def list_by_teacher(principal: Principal, teacher_id: int) -> list[dict]:
    if not principal.is_admin and not (principal.is_teacher and principal.user_id == teacher_id):
        raise Forbidden("Cannot view groups of another teacher")
    if not TeacherRepository().exists(teacher_id):
        raise NotFound("Teacher", teacher_id)
    return [group_out(g, with_sessions=True) for g in CourseGroupRepository().list_filtered(teacher_id=teacher_id)]


def create_group(principal: Principal, *, subject_id: int, price: Decimal,
                 teacher_id: Optional[int] = None,
                 type_: CourseGroupType = CourseGroupType.REGULAR,
                 max_capacity: Optional[int] = None,
                 status: CourseGroupStatus = CourseGroupStatus.PLANNED) -> dict:
    require_admin(principal)
    if not SubjectRepository().exists(subject_id):
        raise NotFound("Subject", subject_id)
    if teacher_id is not None and not TeacherRepository().exists(teacher_id):
        raise NotFound("Teacher", teacher_id)
    if status == CourseGroupStatus.CLOSED:
        raise InvalidState("A group cannot be created closed")
    group = CourseGroup(
        subject_id=subject_id, teacher_id=teacher_id, type=type_, price=price, status=status,
        max_capacity=max_capacity or current_app.config.get("DEFAULT_GROUP_CAPACITY", 30),
    )
    CourseGroupRepository().add(group)
    db.session.commit()
    log.info("group %s created for subject %s", group.id, subject_id)
    return group_out(group, with_sessions=True)


def update_group_status(principal: Principal, group_id: int, new_status: CourseGroupStatus) -> dict:
    """PLANNED -> ACTIVE -> CLOSED; PLANNED -> CLOSED допустим, назад нельзя."""
    require_admin(principal)
    group = _get_group(group_id)
    current = group.status
    if current == new_status:
        return group_out(group)
    if current == CourseGroupStatus.CLOSED or (
            current == CourseGroupStatus.ACTIVE and new_status == CourseGroupStatus.PLANNED):
        raise InvalidTransition(f"Cannot change group status from {current.value} to {new_status.value}",
                                current=current.value, requested=new_status.value)
    group.status = new_status
    db.session.commit()
    log.info("group %s status %s -> %s", group_id, current.value, new_status.value)
    return group_out(group)


def assign_teacher(principal: Principal, group_id: int, teacher_id: int) -> dict:
    require_admin(principal)
    group = _get_group(group_id)
    if group.teacher_id is not None:
        raise InvalidState("Group already has a teacher", course_group_id=group_id, teacher_id=group.teacher_id)
    if not TeacherRepository().exists(teacher_id):
        raise NotFound("Teacher", teacher_id)
    validate_teacher_assignment(group, teacher_id)
    group.teacher_id = teacher_id
    db.session.commit()
    log.info("teacher %s assigned to group %s", teacher_id, group_id)
    return group_out(group)


def delete_group(principal: Principal, group_id: int) -> None:
    require_admin(principal)
    group = _get_group(group_id)
    if EnrollmentRepository().count_by_group(group_id):
        raise InvalidState("Group has enrollments", course_group_id=group_id)
    CourseGroupRepository().delete(group)
    db.session.commit()
    log.info("group %s deleted", group_id)


# ---------- sessions ----------
def _minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def _validate_range(start: time, end: time) -> None:
    if end <= start:
        raise ValidationFailed([{"field": "end_time", "code": "time_range",
                                 "message": "end_time must be > start_time"}])
    lo = int(current_app.config.get("SESSION_MIN_MINUTES", 30))
    hi = int(current_app.config.get("SESSION_MAX_MINUTES", 240))
    duration = _minutes(end) - _minutes(start)
    if duration < lo or duration > hi:
        raise ValidationFailed([{"field": "end_time", "code": "duration",
                                 "message": f"session must last between {lo} and {hi} minutes"}])


def _ensure_open(group: CourseGroup) -> None:
    if group.status == CourseGroupStatus.CLOSED:
        raise InvalidState("Sessions of a closed group cannot be changed", course_group_id=group.id)


def create_session(principal: Principal, *, course_group_id: int, day_of_week: DayOfWeek,
                   start_time: time, end_time: time, classroom: Optional[str] = None) -> dict:
    require_admin(principal)
    group = _get_group(course_group_id)
    _ensure_open(group)
    _validate_range(start_time, end_time)
    validate_new_session(SessionSlot.for_group(group, day_of_week, start_time, end_time, classroom))
    s = GroupSession(course_group_id=group.id, day_of_week=day_of_week,
                     start_time=start_time, end_time=end_time, classroom=classroom or None)
    GroupSessionRepository().add(s)
    db.session.commit()
    log.info("session %s created for group %s", s.id, group.id)
    return session_out(s)


def update_session(principal: Principal, session_id: int, *,
                   day_of_week: Optional[DayOfWeek] = None,
                   start_time: Optional[time] = None,
                   end_time: Optional[time] = None,
                   classroom: Optional[str] = None) -> dict:
    require_admin(principal)
    s = _get_session(session_id)
    group = s.course_group
    _ensure_open(group)
    day = day_of_week or s.day_of_week
    start = start_time or s.start_time
    end = end_time or s.end_time
    room = s.classroom if classroom is None else (classroom or None)
    _validate_range(start, end)
    changed = (day, start, end, room) != (s.day_of_week, s.start_time, s.end_time, s.classroom)
    if changed:
        validate_new_session(SessionSlot.for_group(group, day, start, end, room), exclude_session_id=s.id)
    s.day_of_week, s.start_time, s.end_time, s.classroom = day, start, end, room
    db.session.commit()
    log.info("session %s updated", session_id)
    return session_out(s)


def delete_session(principal: Principal, session_id: int) -> None:
    require_admin(principal)
    s = _get_session(session_id)
    _ensure_open(s.course_group)
    GroupSessionRepository().delete(s)
    db.session.commit()
    log.info("session %s deleted", session_id)


def list_sessions_by_group(principal: Principal, group_id: int) -> list[dict]:
    group = _get_group(group_id)
    if not principal.is_admin and not (principal.is_teacher and group.teacher_id == principal.user_id):
        raise Forbidden("Only the group's teacher or an administrator can view its sessions")
    rows = GroupSessionRepository().list_by_group(group_id)
    return [session_out(s) for s in sorted(rows, key=lambda s: (s.day_of_week.index, s.start_time))]


def list_sessions_by_teacher(principal: Principal, teacher_id: int) -> list[dict]:
    if not principal.is_admin and not (principal.is_teacher and principal.user_id == teacher_id):
        raise Forbidden("Cannot view sessions of another teacher")
    if not TeacherRepository().exists(teacher_id):
        raise NotFound("Teacher", teacher_id)
    rows = GroupSessionRepository().list_by_teacher(teacher_id)
    return [session_out(s) for s in sorted(rows, key=lambda s: (s.day_of_week.index, s.start_time))]
