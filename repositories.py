"""Репозитории: узкий интерфейс к БД для сервисного слоя.

Каждый репозиторий отвечает за одну сущность и выставляет только те
фильтры, которые реально нужны сервисам. Коммит делает вызывающий сервис.
"""
from __future__ import annotations
from datetime import datetime
from typing import Generic, Optional, Sequence, TypeVar

from sqlalchemy import select, func, exists
from sqlalchemy.orm import Session, joinedload

from extensions import db
from models import (
    Student, Teacher, Admin, Subject, CourseGroup, GroupSession, Enrollment,
    GroupRequest, LoginSession, CourseGroupStatus, DayOfWeek, PaymentStatus,
    RequestStatus,
)

M = TypeVar("M")


class BaseRepository(Generic[M]):
    model: type[M]

    def __init__(self, session: Optional[Session] = None):
        self.session = session or db.session

    def get(self, id_: int) -> Optional[M]:
        return self.session.get(self.model, id_)

    def exists(self, id_: int) -> bool:
        stmt = select(exists().where(self.model.id == id_))
        return bool(self.session.scalar(stmt))

    def add(self, obj: M) -> M:
        self.session.add(obj)
        return obj

    def delete(self, obj: M) -> None:
        self.session.delete(obj)


class StudentRepository(BaseRepository[Student]):
    model = Student

    def get_by_email(self, email: str) -> Optional[Student]:
        return self.session.scalar(select(Student).where(Student.email == email))

    def get_for_update(self, id_: int) -> Optional[Student]:
        return self.session.scalar(select(Student).where(Student.id == id_).with_for_update())


class TeacherRepository(BaseRepository[Teacher]):
    model = Teacher

    def get_by_email(self, email: str) -> Optional[Teacher]:
        return self.session.scalar(select(Teacher).where(Teacher.email == email))


class AdminRepository(BaseRepository[Admin]):
    model = Admin

    def get_by_email(self, email: str) -> Optional[Admin]:
        return self.session.scalar(select(Admin).where(Admin.email == email))


class SubjectRepository(BaseRepository[Subject]):
    model = Subject

    def list_by_major(self, major: str) -> Sequence[Subject]:
        stmt = select(Subject).where(Subject.major == major).order_by(Subject.course_year, Subject.name)
        return self.session.scalars(stmt).all()


class CourseGroupRepository(BaseRepository[CourseGroup]):
    model = CourseGroup

    def get_for_update(self, id_: int) -> Optional[CourseGroup]:
        # FOR UPDATE там, где диалект его поддерживает (SQLite просто игнорирует)
        stmt = select(CourseGroup).where(CourseGroup.id == id_).with_for_update()
        return self.session.scalar(stmt)

    def list_filtered(self, *, status: Optional[CourseGroupStatus] = None,
                      subject_id: Optional[int] = None,
                      teacher_id: Optional[int] = None,
                      unassigned: bool = False) -> Sequence[CourseGroup]:
        stmt = select(CourseGroup).options(joinedload(CourseGroup.subject), joinedload(CourseGroup.teacher))
        if status is not None:
            stmt = stmt.where(CourseGroup.status == status)
        if subject_id is not None:
            stmt = stmt.where(CourseGroup.subject_id == subject_id)
        if teacher_id is not None:
            stmt = stmt.where(CourseGroup.teacher_id == teacher_id)
        if unassigned:
            stmt = stmt.where(CourseGroup.teacher_id.is_(None))
        return self.session.scalars(stmt.order_by(CourseGroup.id)).all()

    def count_by_subject(self, subject_id: int) -> int:
        stmt = select(func.count(CourseGroup.id)).where(CourseGroup.subject_id == subject_id)
        return self.session.scalar(stmt) or 0

    def count_by_teacher(self, teacher_id: int) -> int:
        stmt = select(func.count(CourseGroup.id)).where(CourseGroup.teacher_id == teacher_id)
        return self.session.scalar(stmt) or 0


class GroupSessionRepository(BaseRepository[GroupSession]):
    model = GroupSession

    def list_by_group(self, course_group_id: int) -> Sequence[GroupSession]:
        stmt = (select(GroupSession)
                .where(GroupSession.course_group_id == course_group_id)
                .order_by(GroupSession.day_of_week, GroupSession.start_time))
        return self.session.scalars(stmt).all()

    def list_by_classroom_and_day(self, classroom: str, day: DayOfWeek) -> Sequence[GroupSession]:
        stmt = select(GroupSession).where(GroupSession.classroom == classroom,
                                          GroupSession.day_of_week == day)
        return self.session.scalars(stmt).all()

    def list_by_teacher(self, teacher_id: int, day: Optional[DayOfWeek] = None) -> Sequence[GroupSession]:
        stmt = (select(GroupSession)
                .join(CourseGroup, CourseGroup.id == GroupSession.course_group_id)
                .where(CourseGroup.teacher_id == teacher_id))
        if day is not None:
            stmt = stmt.where(GroupSession.day_of_week == day)
        return self.session.scalars(stmt.order_by(GroupSession.start_time)).all()

    def list_paid_for_student(self, student_id: int, day: Optional[DayOfWeek] = None) -> Sequence[GroupSession]:
        """Сессии всех групп, где у студента оплаченная запись."""
        stmt = (select(GroupSession)
                .join(Enrollment, Enrollment.course_group_id == GroupSession.course_group_id)
                .where(Enrollment.student_id == student_id,
                       Enrollment.payment_status == PaymentStatus.PAID))
        if day is not None:
            stmt = stmt.where(GroupSession.day_of_week == day)
        return self.session.scalars(stmt).all()


class EnrollmentRepository(BaseRepository[Enrollment]):
    model = Enrollment

    def exists_for(self, student_id: int, course_group_id: int) -> bool:
        stmt = select(exists().where(Enrollment.student_id == student_id,
                                     Enrollment.course_group_id == course_group_id))
        return bool(self.session.scalar(stmt))

    def count_by_group(self, course_group_id: int) -> int:
        stmt = select(func.count(Enrollment.id)).where(Enrollment.course_group_id == course_group_id)
        return self.session.scalar(stmt) or 0

    def count_by_student(self, student_id: int) -> int:
        stmt = select(func.count(Enrollment.id)).where(Enrollment.student_id == student_id)
        return self.session.scalar(stmt) or 0

    def list_by_student(self, student_id: int) -> Sequence[Enrollment]:
        stmt = (select(Enrollment)
                .where(Enrollment.student_id == student_id)
                .order_by(Enrollment.enrollment_date, Enrollment.id))
        return self.session.scalars(stmt).all()

    def list_by_group(self, course_group_id: int) -> Sequence[Enrollment]:
        stmt = (select(Enrollment)
                .where(Enrollment.course_group_id == course_group_id)
                .order_by(Enrollment.enrollment_date, Enrollment.id))
        return self.session.scalars(stmt).all()

    def page(self, *, page: int, per_page: int,
             payment_status: Optional[PaymentStatus] = None) -> tuple[Sequence[Enrollment], int]:
        stmt = select(Enrollment)
        count_stmt = select(func.count(Enrollment.id))
        if payment_status is not None:
            stmt = stmt.where(Enrollment.payment_status == payment_status)
            count_stmt = count_stmt.where(Enrollment.payment_status == payment_status)
        total = self.session.scalar(count_stmt) or 0
        rows = self.session.scalars(
            stmt.order_by(Enrollment.id.desc()).offset((page - 1) * per_page).limit(per_page)
        ).all()
        return rows, total


class GroupRequestRepository(BaseRepository[GroupRequest]):
    model = GroupRequest

    def exists_pending(self, student_id: int, subject_id: int) -> bool:
        stmt = select(exists().where(GroupRequest.student_id == student_id,
                                     GroupRequest.subject_id == subject_id,
                                     GroupRequest.status == RequestStatus.PENDING))
        return bool(self.session.scalar(stmt))

    def count_by_subject(self, subject_id: int, status: Optional[RequestStatus] = None) -> int:
        stmt = select(func.count(GroupRequest.id)).where(GroupRequest.subject_id == subject_id)
        if status is not None:
            stmt = stmt.where(GroupRequest.status == status)
        return self.session.scalar(stmt) or 0

    def count_by_student(self, student_id: int) -> int:
        stmt = select(func.count(GroupRequest.id)).where(GroupRequest.student_id == student_id)
        return self.session.scalar(stmt) or 0

    def status_counts_for_subject(self, subject_id: int) -> dict[RequestStatus, int]:
        stmt = (select(GroupRequest.status, func.count(GroupRequest.id))
                .where(GroupRequest.subject_id == subject_id)
                .group_by(GroupRequest.status))
        return {status: cnt for status, cnt in self.session.execute(stmt).all()}

    def pending_counts_by_subject(self) -> list[tuple[Subject, int]]:
        cnt = func.count(GroupRequest.id).label("pending")
        stmt = (select(Subject, cnt)
                .join(GroupRequest, GroupRequest.subject_id == Subject.id)
                .where(GroupRequest.status == RequestStatus.PENDING)
                .group_by(Subject.id)
                .order_by(cnt.desc(), Subject.name.asc()))
        return [(subj, n) for subj, n in self.session.execute(stmt).all()]

    def search(self, *, status: Optional[RequestStatus] = None,
               student_id: Optional[int] = None,
               subject_id: Optional[int] = None,
               date_from: Optional[datetime] = None,
               date_to: Optional[datetime] = None) -> Sequence[GroupRequest]:
        stmt = select(GroupRequest)
        if status is not None:
            stmt = stmt.where(GroupRequest.status == status)
        if student_id is not None:
            stmt = stmt.where(GroupRequest.student_id == student_id)
        if subject_id is not None:
            stmt = stmt.where(GroupRequest.subject_id == subject_id)
        if date_from is not None:
            stmt = stmt.where(GroupRequest.request_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(GroupRequest.request_date <= date_to)
        return self.session.scalars(stmt.order_by(GroupRequest.request_date.desc(), GroupRequest.id.desc())).all()


class LoginSessionRepository(BaseRepository[LoginSession]):
    model = LoginSession

    def get_by_token(self, token: str) -> Optional[LoginSession]:
        return self.session.scalar(select(LoginSession).where(LoginSession.token == token))

    def list_for_account(self, role: str, account_id: int) -> Sequence[LoginSession]:
        stmt = (select(LoginSession)
                .where(LoginSession.account_role == role, LoginSession.account_id == account_id)
                .order_by(LoginSession.created_at, LoginSession.id))
        return self.session.scalars(stmt).all()
