# blueprints/group_requests/services.py
"""Заявки студентов на открытие группы по предмету.

Жизненный цикл: PENDING -> APPROVED | REJECTED, оба конечные.
На пару (student, subject) допускается одна PENDING-заявка.
"""
from __future__ import annotations
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from errors import (
    DomainError, DuplicateRequest, InvalidState, InvalidTransition, MajorMismatch, NotFound,
)
from extensions import db
from models import GroupRequest, RequestStatus, Student, Subject, utcnow
from repositories import GroupRequestRepository, StudentRepository, SubjectRepository
from security import Principal, require_admin, require_self_or_admin

log = logging.getLogger(__name__)

RESOLVED_STATUSES = (RequestStatus.APPROVED, RequestStatus.REJECTED)

LOCK_STRIPES = 64
_pair_locks = [threading.Lock() for _ in range(LOCK_STRIPES)]


@contextmanager
def _pair_lock(student_id: int, subject_id: int):
    with _pair_locks[hash((student_id, subject_id)) % LOCK_STRIPES]:
        yield


@dataclass
class GroupRequestOut:
    id: int
    student_id: int
    student_name: str
    subject_id: int
    subject_name: str
    request_date: str
    status: str
    comment: Optional[str]
    admin_comment: Optional[str]
    resolved_at: Optional[str]


def to_out(r: GroupRequest) -> dict:
    return asdict(GroupRequestOut(
        id=r.id,
        student_id=r.student_id,
        student_name=r.student.name,
        subject_id=r.subject_id,
        subject_name=r.subject.name,
        request_date=r.request_date.isoformat(timespec="seconds"),
        status=r.status.value,
        comment=r.comment,
        admin_comment=r.admin_comment,
        resolved_at=r.resolved_at.isoformat(timespec="seconds") if r.resolved_at else None,
    ))


def _get_student(student_id: int) -> Student:
    student = StudentRepository().get(student_id)
    if student is None:
        raise NotFound("Student", student_id)
    return student


def _get_subject(subject_id: int) -> Subject:
    subject = SubjectRepository().get(subject_id)
    if subject is None:
        raise NotFound("Subject", subject_id)
    return subject


def _get_request(request_id: int) -> GroupRequest:
    req = GroupRequestRepository().get(request_id)
    if req is None:
        raise NotFound("GroupRequest", request_id)
    return req


def _check_major(student: Student, subject: Subject) -> None:
    if current_app.config.get("ENFORCE_MAJOR_MATCH", True) and student.major != subject.major:
        raise MajorMismatch(student_major=student.major, subject_major=subject.major)


def create_request(principal: Principal, *, student_id: int, subject_id: int,
                   comment: Optional[str] = None) -> dict:
    require_self_or_admin(principal, student_id)
    repo = GroupRequestRepository()
    # снимок REPEATABLE READ должен начаться под локом
    db.session.commit()
    with _pair_lock(student_id, subject_id):
        try:
            # строка студента сериализует его заявки между процессами
            student = StudentRepository().get_for_update(student_id)
            if student is None:
                raise NotFound("Student", student_id)
            subject = _get_subject(subject_id)
            _check_major(student, subject)
            if repo.exists_pending(student_id, subject_id):
                raise DuplicateRequest(student_id=student_id, subject_id=subject_id)
            req = GroupRequest(student_id=student_id, subject_id=subject_id, comment=comment,
                               request_date=utcnow(), status=RequestStatus.PENDING)
            repo.add(req)
            db.session.commit()
        except IntegrityError as ex:
            # частичный уникальный индекс на PENDING
            db.session.rollback()
            raise DuplicateRequest(student_id=student_id, subject_id=subject_id) from ex
        except DomainError:
            db.session.rollback()
            raise

    pending = repo.count_by_subject(subject_id, RequestStatus.PENDING)
    log.info("group request %s created by student %s for subject %s (%s pending)",
             req.id, student_id, subject_id, pending)
    return {**to_out(req), "pending_for_subject": pending}


def can_request(principal: Principal, *, student_id: int, subject_id: int) -> bool:
    require_self_or_admin(principal, student_id)
    student = _get_student(student_id)
    subject = _get_subject(subject_id)
    if current_app.config.get("ENFORCE_MAJOR_MATCH", True) and student.major != subject.major:
        return False
    return not GroupRequestRepository().exists_pending(student_id, subject_id)


def update_status(principal: Principal, *, request_id: int, new_status: RequestStatus,
                  comment: Optional[str] = None) -> dict:
    require_admin(principal)
    req = _get_request(request_id)
    if req.status != RequestStatus.PENDING or new_status not in RESOLVED_STATUSES:
        raise InvalidTransition(
            f"Cannot change request status from {req.status.value} to {new_status.value}",
            current=req.status.value, requested=new_status.value,
        )
    req.status = new_status
    req.admin_comment = comment
    req.resolved_at = utcnow()
    db.session.commit()
    log.info("group request %s -> %s by admin %s", request_id, new_status.value, principal.user_id)
    return to_out(req)


def delete_request(principal: Principal, request_id: int) -> None:
    """Удалять можно отклонённые заявки и заявки старше срока хранения."""
    require_admin(principal)
    req = _get_request(request_id)
    days = int(current_app.config.get("GROUP_REQUEST_RETENTION_DAYS", 180))
    expired = req.request_date < utcnow() - timedelta(days=days)
    if req.status != RequestStatus.REJECTED and not expired:
        raise InvalidState("Only rejected or expired requests can be deleted",
                           status=req.status.value, retention_days=days)
    GroupRequestRepository().delete(req)
    db.session.commit()
    log.info("group request %s deleted by admin %s", request_id, principal.user_id)


# ---- read side ----
def stats_by_subject(principal: Principal, subject_id: int) -> dict:
    require_admin(principal)
    _get_subject(subject_id)
    counts = GroupRequestRepository().status_counts_for_subject(subject_id)
    return {
        "subject_id": subject_id,
        "total": sum(counts.values()),
        "pending": counts.get(RequestStatus.PENDING, 0),
        "approved": counts.get(RequestStatus.APPROVED, 0),
        "rejected": counts.get(RequestStatus.REJECTED, 0),
    }


def pending_counts_by_subject(principal: Principal) -> list[dict]:
    require_admin(principal)
    return [
        {"subject_id": s.id, "subject_name": s.name, "major": s.major, "pending": n}
        for s, n in GroupRequestRepository().pending_counts_by_subject()
    ]


def demand_ranking(principal: Principal, limit: int = 10) -> list[dict]:
    """Предметы по убыванию числа PENDING-заявок, при равенстве по имени."""
    rows = pending_counts_by_subject(principal)[:max(0, limit)]
    return [{"rank": i, **row} for i, row in enumerate(rows, start=1)]


def list_by_student(principal: Principal, student_id: int) -> list[dict]:
    require_self_or_admin(principal, student_id)
    _get_student(student_id)
    return [to_out(r) for r in GroupRequestRepository().search(student_id=student_id)]


def list_mine(principal: Principal) -> list[dict]:
    return list_by_student(principal, principal.user_id)


def list_by_subject(principal: Principal, subject_id: int) -> list[dict]:
    require_admin(principal)
    _get_subject(subject_id)
    return [to_out(r) for r in GroupRequestRepository().search(subject_id=subject_id)]


def list_pending(principal: Principal) -> list[dict]:
    require_admin(principal)
    return [to_out(r) for r in GroupRequestRepository().search(status=RequestStatus.PENDING)]


def search(principal: Principal, *, status: Optional[RequestStatus] = None,
           student_id: Optional[int] = None, subject_id: Optional[int] = None,
           date_from: Optional[datetime] = None, date_to: Optional[datetime] = None) -> list[dict]:
    require_admin(principal)
    rows = GroupRequestRepository().search(status=status, student_id=student_id, subject_id=subject_id,
                                           date_from=date_from, date_to=date_to)
    return [to_out(r) for r in rows]
