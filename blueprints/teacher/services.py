# blueprints/teacher/services.py
from __future__ import annotations
from dataclasses import dataclass, asdict
from datetime import time
from typing import Dict, List, Optional

from errors import Forbidden, NotFound
from models import DayOfWeek
from repositories import CourseGroupRepository, EnrollmentRepository, GroupSessionRepository, TeacherRepository
from security import Principal


@dataclass
class LessonOut:
    session_id: int
    course_group_id: int
    day_of_week: str
    start: str
    end: str
    subject: str
    classroom: Optional[str]
    enrolled: int
    duration_hours: float


def _fmt(t: time) -> str:
    return f"{t.hour:02d}:{t.minute:02d}"


def _duration_hours(start: time, end: time) -> float:
    minutes = (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)
    return round(minutes / 60.0, 2)


def weekly_schedule(teacher_id: int) -> Dict:
    """Недельное расписание преподавателя: занятия по дням и итоговые счётчики."""
    if not TeacherRepository().exists(teacher_id):
        raise NotFound("Teacher", teacher_id)
    enrollments = EnrollmentRepository()
    enrolled_cache: dict[int, int] = {}

    lessons: List[LessonOut] = []
    days: set[DayOfWeek] = set()
    total_hours = 0.0
    for s in GroupSessionRepository().list_by_teacher(teacher_id):
        gid = s.course_group_id
        if gid not in enrolled_cache:
            enrolled_cache[gid] = enrollments.count_by_group(gid)
        dur = _duration_hours(s.start_time, s.end_time)
        total_hours += dur
        days.add(s.day_of_week)
        lessons.append(LessonOut(
            session_id=s.id,
            course_group_id=gid,
            day_of_week=s.day_of_week.value,
            start=_fmt(s.start_time),
            end=_fmt(s.end_time),
            subject=s.course_group.subject.name,
            classroom=s.classroom,
            enrolled=enrolled_cache[gid],
            duration_hours=dur,
        ))

    lessons.sort(key=lambda x: (DayOfWeek(x.day_of_week).index, x.start))
    return {
        "teacher_id": teacher_id,
        "counts": {
            "teaching_days": len(days),
            "hours": round(total_hours, 2),
            "sessions": len(lessons),
        },
        "days": [d.value for d in sorted(days, key=lambda d: d.index)],
        "lessons": [asdict(l) for l in lessons],
    }


def group_students(principal: Principal, group_id: int) -> List[Dict]:
    """Студенты своей группы (для админа любой)."""
    group = CourseGroupRepository().get(group_id)
    if group is None:
        raise NotFound("CourseGroup", group_id)
    if not principal.is_admin and group.teacher_id != principal.user_id:
        raise Forbidden("Not your group")
    return [
        {"student_id": e.student_id, "name": e.student.name, "email": e.student.email,
         "payment_status": e.payment_status.value}
        for e in EnrollmentRepository().list_by_group(group_id)
    ]
