# blueprints/enrollments/services.py
"""Запись студентов в группы.

Проверка «занято мест < max_capacity» и вставка выполняются под локом группы
(в процессе) и под ``SELECT ... FOR UPDATE`` строки группы (между процессами,
где диалект это умеет). Уникальный индекс (student, group) остаётся последним
рубежом против дублей: IntegrityError превращается в DuplicateEnrollment.

Транзакция, открытая до лока (user_loader уже читал аккаунт), закрывается
перед его захватом: под REPEATABLE READ снимок должен начинаться под локом.
Первым под локом идёт блокирующее чтение строки группы.
"""
from __future__ import annotations
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, asdict
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from blueprints.constraints.services import SessionSlot, has_student_conflict
from errors import (
    DomainError, DuplicateEnrollment, Forbidden, GroupFull, GroupNotActive,
    InvalidState, MajorMismatch, NotFound, StudentScheduleConflict,
)
from extensions import db
from models import CourseGroup, CourseGroupStatus, Enrollment, PaymentStatus, Student, utcnow
from repositories import CourseGroupRepository, EnrollmentRepository, StudentRepository
from security import Principal, require_admin, require_self_or_admin

log = logging.getLogger(__name__)

# фиксированный пул: разные группы могут делить лок, память не растёт
LOCK_STRIPES = 64
_group_locks = [threading.Lock() for _ in range(LOCK_STRIPES)]


@contextmanager
def group_lock(course_group_id: int):
    with _group_locks[hash(course_group_id) % LOCK_STRIPES]:
        yield


@dataclass
class EnrollmentOut:
    id: int
    student_id: int
    student_name: str
    course_group_id: int
    subject_id: int
    subject_name: str
    enrollment_date: str
    payment_status: str


def to_out(e: Enrollment) -> dict:
    group = e.course_group
    return asdict(EnrollmentOut(
        id=e.id,
        student_id=e.student_id,
        student_name=e.student.name,
        course_group_id=e.course_group_id,
        subject_id=group.subject_id,
        subject_name=group.subject.name,
        enrollment_date=e.enrollment_date.isoformat(timespec="seconds"),
        payment_status=e.payment_status.value,
    ))


def _get_student(student_id: int) -> Student:
    student = StudentRepository().get(student_id)
    if student is None:
        raise NotFound("Student", student_id)
    return student


def _get_enrollment(enrollment_id: int) -> Enrollment:
    enrollment = EnrollmentRepository().get(enrollment_id)
    if enrollment is None:
        raise NotFound("Enrollment", enrollment_id)
    return enrollment


def _check_can_enroll(student: Student, group: CourseGroup) -> None:
    """Все бизнес-проверки записи. Порядок важен: он определяет, какая ошибка видна клиенту."""
    enrollments = EnrollmentRepository()
    if group.status != CourseGroupStatus.ACTIVE:
        raise GroupNotActive(course_group_id=group.id, status=group.status.value)
    if enrollments.exists_for(student.id, group.id):
        raise DuplicateEnrollment(student_id=student.id, course_group_id=group.id)
    taken = enrollments.count_by_group(group.id)
    if taken >= group.max_capacity:
        raise GroupFull(course_group_id=group.id, max_capacity=group.max_capacity)
    if current_app.config.get("ENFORCE_MAJOR_MATCH", True) and group.subject.major != student.major:
        raise MajorMismatch(student_major=student.major, subject_major=group.subject.major)
    for s in group.sessions:
        if has_student_conflict(student.id, SessionSlot.from_session(s)):
            raise StudentScheduleConflict(course_group_id=group.id, session_id=s.id)


def enroll(principal: Principal, *, student_id: int, course_group_id: int) -> dict:
    require_self_or_admin(principal, student_id)
    db.session.commit()
    with group_lock(course_group_id):
        try:
            group = CourseGroupRepository().get_for_update(course_group_id)
            student = _get_student(student_id)
            if group is None:
                raise NotFound("CourseGroup", course_group_id)
            _check_can_enroll(student, group)

            enrollment = Enrollment(student_id=student.id, course_group_id=group.id,
                                    enrollment_date=utcnow(), payment_status=PaymentStatus.PENDING)
            EnrollmentRepository().add(enrollment)
            db.session.commit()
        except IntegrityError as ex:
            db.session.rollback()
            raise DuplicateEnrollment(student_id=student_id, course_group_id=course_group_id) from ex
        except DomainError:
            db.session.rollback()
            raise
    log.info("student %s enrolled in group %s", student_id, course_group_id)
    return to_out(enrollment)


def can_enroll(principal: Principal, *, student_id: int, course_group_id: int) -> bool:
    require_self_or_admin(principal, student_id)
    student = _get_student(student_id)
    group = CourseGroupRepository().get(course_group_id)
    if group is None:
        raise NotFound("CourseGroup", course_group_id)
    try:
        _check_can_enroll(student, group)
    except DomainError:
        return False
    return True


def update_payment_status(principal: Principal, *, enrollment_id: int, new_status: PaymentStatus) -> dict:
    """Перезаписывает статус оплаты без ограничений на переход."""
    require_admin(principal)
    enrollment = _get_enrollment(enrollment_id)
    old = enrollment.payment_status
    enrollment.payment_status = new_status
    db.session.commit()
    log.info("enrollment %s payment %s -> %s", enrollment_id, old.value, new_status.value)
    return to_out(enrollment)


def get_enrollment(principal: Principal, enrollment_id: int) -> dict:
    enrollment = _get_enrollment(enrollment_id)
    require_self_or_admin(principal, enrollment.student_id)
    return to_out(enrollment)


def list_by_student(principal: Principal, student_id: int) -> list[dict]:
    require_self_or_admin(principal, student_id)
    _get_student(student_id)
    return [to_out(e) for e in EnrollmentRepository().list_by_student(student_id)]


def list_by_group(principal: Principal, course_group_id: int) -> list[dict]:
    group = CourseGroupRepository().get(course_group_id)
    if group is None:
        raise NotFound("CourseGroup", course_group_id)
    if not principal.is_admin and not (principal.is_teacher and group.teacher_id == principal.user_id):
        log.warning("%s:%s denied enrollments of group %s", principal.role.value, principal.user_id, course_group_id)
        raise Forbidden("Only the group's teacher or an administrator can view its enrollments")
    return [to_out(e) for e in EnrollmentRepository().list_by_group(course_group_id)]


def list_all(principal: Principal, *, page: int, per_page: int,
             payment_status: Optional[PaymentStatus] = None) -> dict:
    require_admin(principal)
    rows, total = EnrollmentRepository().page(page=page, per_page=per_page, payment_status=payment_status)
    return {"items": [to_out(e) for e in rows],
            "meta": {"page": page, "per_page": per_page, "total": total}}


def cancel(principal: Principal, enrollment_id: int) -> None:
    """Отмена записи владельцем или админом: оплаченные и в закрытых группах не отменяются."""
    enrollment = _get_enrollment(enrollment_id)
    require_self_or_admin(principal, enrollment.student_id)
    if enrollment.payment_status == PaymentStatus.PAID:
        raise InvalidState("Paid enrollments cannot be cancelled", enrollment_id=enrollment_id)
    if enrollment.course_group.status == CourseGroupStatus.CLOSED:
        raise InvalidState("Enrollments of closed groups cannot be cancelled", enrollment_id=enrollment_id)
    EnrollmentRepository().delete(enrollment)
    db.session.commit()
    log.info("enrollment %s cancelled by %s:%s", enrollment_id, principal.role.value, principal.user_id)


def force_delete(principal: Principal, enrollment_id: int, reason: Optional[str] = None) -> None:
    require_admin(principal)
    enrollment = _get_enrollment(enrollment_id)
    EnrollmentRepository().delete(enrollment)
    db.session.commit()
    log.warning("enrollment %s force-deleted by admin %s, reason: %s",
                enrollment_id, principal.user_id, reason or "-")


def student_stats(principal: Principal, student_id: int) -> dict:
    require_self_or_admin(principal, student_id)
    _get_student(student_id)
    rows = EnrollmentRepository().list_by_student(student_id)
    return {
        "total": len(rows),
        "active": sum(1 for e in rows if e.course_group.status == CourseGroupStatus.ACTIVE),
        "paid": sum(1 for e in rows if e.payment_status == PaymentStatus.PAID),
        "pending": sum(1 for e in rows if e.payment_status == PaymentStatus.PENDING),
    }
