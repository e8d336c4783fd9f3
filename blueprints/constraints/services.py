# blueprints/constraints/services.py
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import time
from typing import Iterable, Optional

from errors import ClassroomConflict, TeacherConflict, GroupScheduleConflict, NotFound
from models import CourseGroup, DayOfWeek, GroupSession
from repositories import CourseGroupRepository, GroupSessionRepository

log = logging.getLogger(__name__)


@dataclass
class CheckError:
    code: str
    details: dict


@dataclass
class SessionSlot:
    """Кандидат в расписание: ещё не сохранённая (или изменяемая) сессия."""
    course_group_id: int
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    classroom: Optional[str] = None
    teacher_id: Optional[int] = None

    @classmethod
    def for_group(cls, group: CourseGroup, day: DayOfWeek, start: time, end: time,
                  classroom: Optional[str] = None) -> "SessionSlot":
        return cls(group.id, day, start, end, classroom or None, group.teacher_id)

    @classmethod
    def from_session(cls, s: GroupSession) -> "SessionSlot":
        return cls(s.course_group_id, s.day_of_week, s.start_time, s.end_time,
                   s.classroom, s.course_group.teacher_id if s.course_group else None)


def intervals_overlap(s1: time, e1: time, s2: time, e2: time) -> bool:
    """Полуоткрытые интервалы [s1,e1) и [s2,e2): касание границ не конфликт."""
    return s1 < e2 and s2 < e1


def _overlapping(slot: SessionSlot, sessions: Iterable[GroupSession],
                 exclude_session_id: Optional[int]) -> list[GroupSession]:
    return [
        s for s in sessions
        if s.id != exclude_session_id
        and s.day_of_week == slot.day_of_week
        and intervals_overlap(slot.start_time, slot.end_time, s.start_time, s.end_time)
    ]


def _details(slot: SessionSlot, hit: GroupSession) -> dict:
    return {
        "session_id": hit.id,
        "course_group_id": hit.course_group_id,
        "day_of_week": hit.day_of_week.value,
        "start_time": hit.start_time.strftime("%H:%M"),
        "end_time": hit.end_time.strftime("%H:%M"),
    }


def check_classroom(slot: SessionSlot, exclude_session_id: Optional[int] = None) -> list[CheckError]:
    if not slot.classroom:
        return []
    sessions = GroupSessionRepository().list_by_classroom_and_day(slot.classroom, slot.day_of_week)
    return [CheckError("CLASSROOM_CONFLICT", {**_details(slot, s), "classroom": slot.classroom})
            for s in _overlapping(slot, sessions, exclude_session_id)]


def check_teacher(slot: SessionSlot, exclude_session_id: Optional[int] = None) -> list[CheckError]:
    if not slot.teacher_id:
        return []
    sessions = GroupSessionRepository().list_by_teacher(slot.teacher_id, slot.day_of_week)
    # пересечения внутри той же группы ловит check_group
    sessions = [s for s in sessions if s.course_group_id != slot.course_group_id]
    return [CheckError("TEACHER_CONFLICT", {**_details(slot, s), "teacher_id": slot.teacher_id})
            for s in _overlapping(slot, sessions, exclude_session_id)]


def check_group(slot: SessionSlot, exclude_session_id: Optional[int] = None) -> list[CheckError]:
    sessions = GroupSessionRepository().list_by_group(slot.course_group_id)
    return [CheckError("GROUP_SCHEDULE_CONFLICT", _details(slot, s))
            for s in _overlapping(slot, sessions, exclude_session_id)]


def validate_new_session(slot: SessionSlot, exclude_session_id: Optional[int] = None) -> None:
    """Бросает ClassroomConflict / TeacherConflict / GroupScheduleConflict, иначе ничего не делает."""
    for check, exc in ((check_classroom, ClassroomConflict),
                       (check_teacher, TeacherConflict),
                       (check_group, GroupScheduleConflict)):
        errors = check(slot, exclude_session_id)
        if errors:
            log.info("session conflict %s for group %s", errors[0].code, slot.course_group_id)
            raise exc(**errors[0].details)


def has_student_conflict(student_id: int, candidate: SessionSlot) -> bool:
    """Пересекается ли кандидат с оплаченными занятиями студента в тот же день."""
    paid = GroupSessionRepository().list_paid_for_student(student_id, candidate.day_of_week)
    paid = [s for s in paid if s.course_group_id != candidate.course_group_id]
    return bool(_overlapping(candidate, paid, None))


def validate_teacher_assignment(group: CourseGroup, teacher_id: int) -> None:
    """Назначение преподавателя не должно давать пересечений с его другими группами."""
    for s in group.sessions:
        slot = SessionSlot(group.id, s.day_of_week, s.start_time, s.end_time, s.classroom, teacher_id)
        errors = check_teacher(slot)
        if errors:
            raise TeacherConflict(**errors[0].details)


def _parse_time(raw) -> time:
    if isinstance(raw, time):
        return raw
    return time.fromisoformat(str(raw))


def run_all_checks(payload: dict) -> tuple[bool, list[CheckError]]:
    """Пробная проверка слота: все правила сразу, без записи в БД."""
    if not isinstance(payload, dict):
        return False, [CheckError(code="BAD_REQUEST", details={"reason": "JSON object expected"})]
    required = ["course_group_id", "day_of_week", "start_time", "end_time"]
    missing = [k for k in required if k not in payload]
    if missing:
        return False, [CheckError(code="BAD_REQUEST", details={"missing": missing})]

    try:
        group_id = int(payload["course_group_id"])
        day = DayOfWeek(str(payload["day_of_week"]).upper())
        start = _parse_time(payload["start_time"])
        end = _parse_time(payload["end_time"])
        exclude = payload.get("exclude_session_id")
        exclude = int(exclude) if exclude is not None else None
        student_id = payload.get("student_id")
        student_id = int(student_id) if student_id is not None else None
        teacher_id = payload.get("teacher_id")
        teacher_id = int(teacher_id) if teacher_id is not None else None
        classroom = payload.get("classroom")
        if classroom is not None and not isinstance(classroom, str):
            raise TypeError("classroom must be a string")
    except (TypeError, ValueError) as e:
        return False, [CheckError(code="BAD_REQUEST", details={"reason": f"parse_error: {e}"})]

    if end <= start:
        return False, [CheckError(code="BAD_REQUEST", details={"reason": "end_time must be > start_time"})]

    group = CourseGroupRepository().get(group_id)
    if group is None:
        raise NotFound("CourseGroup", group_id)

    slot = SessionSlot.for_group(group, day, start, end, classroom)
    if teacher_id is not None:
        slot.teacher_id = teacher_id

    errors: list[CheckError] = []
    errors += check_classroom(slot, exclude)
    errors += check_teacher(slot, exclude)
    errors += check_group(slot, exclude)
    if student_id is not None and has_student_conflict(student_id, slot):
        errors.append(CheckError(code="STUDENT_SCHEDULE_CONFLICT", details={"student_id": student_id}))

    return not errors, errors
