"""Доменные ошибки сервисного слоя.

Каждая ошибка несёт машинный код, HTTP-статус и необязательные детали.
Роуты их не перехватывают: единый обработчик в blueprints/core/responses.py
превращает их в JSON-ответ.
"""
from __future__ import annotations
from typing import Any, Optional


class DomainError(Exception):
    code = "DOMAIN_ERROR"
    http_status = 400
    default_message = "Request cannot be processed"

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details = details or None
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"error": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class NotFound(DomainError):
    code = "NOT_FOUND"
    http_status = 404
    default_message = "Resource not found"

    def __init__(self, entity: str, entity_id: Any = None, message: Optional[str] = None):
        msg = message or (f"{entity} {entity_id} not found" if entity_id is not None else f"{entity} not found")
        super().__init__(msg, entity=entity, id=entity_id)


class Forbidden(DomainError):
    code = "FORBIDDEN"
    http_status = 403
    default_message = "Operation not permitted"


class ValidationFailed(DomainError):
    code = "VALIDATION_ERROR"
    http_status = 400
    default_message = "Invalid input"

    def __init__(self, errors: list[dict], message: Optional[str] = None):
        self.errors = errors
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message, "details": {"errors": self.errors}}


# ---- enrollments ----
class DuplicateEnrollment(DomainError):
    code = "DUPLICATE_ENROLLMENT"
    http_status = 409
    default_message = "Student is already enrolled in this group"


class GroupFull(DomainError):
    code = "GROUP_FULL"
    http_status = 409
    default_message = "Group has reached its maximum capacity"


class GroupNotActive(DomainError):
    code = "GROUP_NOT_ACTIVE"
    http_status = 400
    default_message = "Only active groups accept enrollments"


class MajorMismatch(DomainError):
    code = "MAJOR_MISMATCH"
    http_status = 400
    default_message = "Subject does not belong to the student's major"


# ---- group requests ----
class DuplicateRequest(DomainError):
    code = "DUPLICATE_REQUEST"
    http_status = 409
    default_message = "A pending request for this subject already exists"


class InvalidTransition(DomainError):
    code = "INVALID_TRANSITION"
    http_status = 422
    default_message = "Status transition is not allowed"


class InvalidState(DomainError):
    code = "INVALID_STATE"
    http_status = 400
    default_message = "Entity is not in a state that allows this operation"


# ---- schedule ----
class ClassroomConflict(DomainError):
    code = "CLASSROOM_CONFLICT"
    http_status = 409
    default_message = "Classroom is already booked at that time"


class TeacherConflict(DomainError):
    code = "TEACHER_CONFLICT"
    http_status = 409
    default_message = "Teacher already has a session at that time"


class GroupScheduleConflict(DomainError):
    code = "GROUP_SCHEDULE_CONFLICT"
    http_status = 409
    default_message = "Group already has a session at that time"


class StudentScheduleConflict(DomainError):
    code = "STUDENT_SCHEDULE_CONFLICT"
    http_status = 409
    default_message = "Group sessions overlap with the student's paid schedule"
