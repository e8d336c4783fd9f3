"""Аутентифицированный субъект, который роуты передают в сервисы."""
from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum

from errors import Forbidden

log = logging.getLogger(__name__)


class Role(str, Enum):
    STUDENT = "STUDENT"
    TEACHER = "TEACHER"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class Principal:
    role: Role
    user_id: int

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_student(self) -> bool:
        return self.role is Role.STUDENT

    @property
    def is_teacher(self) -> bool:
        return self.role is Role.TEACHER


def require_admin(principal: Principal) -> None:
    if not principal.is_admin:
        log.warning("admin operation denied for %s:%s", principal.role.value, principal.user_id)
        raise Forbidden("Administrator role required")


def require_self_or_admin(principal: Principal, student_id: int) -> None:
    """Студент имеет доступ только к своим данным, админ ко всем."""
    if principal.is_admin:
        return
    if principal.is_student and principal.user_id == student_id:
        return
    log.warning("student %s tried to access data of student %s", principal.user_id, student_id)
    raise Forbidden("Cannot access another student's data")
