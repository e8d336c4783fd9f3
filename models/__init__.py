from datetime import datetime, time, UTC
from decimal import Decimal
from enum import Enum as PyEnum

from flask_login import UserMixin
from sqlalchemy import (
    Enum, ForeignKey, UniqueConstraint, Index, CheckConstraint, DateTime, Time,
    Integer, String, Text, Numeric, text
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from extensions import db
from security import Role


def utcnow() -> datetime:
    # naive UTC, как и раньше хранилось в БД
    return datetime.now(UTC).replace(tzinfo=None)


# ---------- Enums ----------
class CourseGroupStatus(PyEnum):
    PLANNED = "PLANNED"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class CourseGroupType(PyEnum):
    REGULAR = "REGULAR"
    INTENSIVE = "INTENSIVE"


class PaymentStatus(PyEnum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"


class RequestStatus(PyEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class DayOfWeek(PyEnum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @property
    def index(self) -> int:
        # 0=Mon .. 6=Sun
        return list(DayOfWeek).index(self)


# ---------- Accounts ----------
class AccountMixin(UserMixin):
    """Общая часть Student/Teacher/Admin для Flask-Login.

    Идентификатор в сессии имеет вид ``ROLE:id`` или ``ROLE:id:token``,
    когда включено ограничение числа сессий (см. LoginSession).
    """
    role = None  # Role, задаётся в подклассе
    session_token = None

    def get_id(self) -> str:
        base = f"{self.role.value}:{self.id}"
        return f"{base}:{self.session_token}" if self.session_token else base


class Student(AccountMixin, db.Model):
    role = Role.STUDENT

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(150), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    major: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    enrollments = relationship("Enrollment", back_populates="student")
    group_requests = relationship("GroupRequest", back_populates="student")

    def __repr__(self):
        return f"<Student {self.email}>"


class Teacher(AccountMixin, db.Model):
    role = Role.TEACHER

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(150), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    course_groups = relationship("CourseGroup", back_populates="teacher")

    def __repr__(self):
        return f"<Teacher {self.name}>"


class Admin(AccountMixin, db.Model):
    role = Role.ADMIN

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(150), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<Admin {self.email}>"


class LoginSession(db.Model):
    """Активные входы пользователя (политика MAX_SESSIONS_PER_USER)."""
    id: Mapped[int] = mapped_column(primary_key=True)
    account_role: Mapped[str] = mapped_column(String(16), nullable=False)
    account_id: Mapped[int] = mapped_column(Integer, nullable=False)
    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_login_session_account", "account_role", "account_id"),
    )


# ---------- Catalogue ----------
class Subject(db.Model):
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    major: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    course_year: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    course_groups = relationship("CourseGroup", back_populates="subject")
    group_requests = relationship("GroupRequest", back_populates="subject")

    __table_args__ = (
        UniqueConstraint("name", "major", name="uq_subject_name_major"),
    )

    def __repr__(self):
        return f"<Subject {self.name} ({self.major})>"


class CourseGroup(db.Model):
    id: Mapped[int] = mapped_column(primary_key=True)
    subject_id: Mapped[int] = mapped_column(ForeignKey("subject.id", ondelete="RESTRICT"), nullable=False, index=True)
    teacher_id: Mapped[int | None] = mapped_column(ForeignKey("teacher.id", ondelete="SET NULL"), nullable=True, index=True)
    status: Mapped[CourseGroupStatus] = mapped_column(
        Enum(CourseGroupStatus, name="course_group_status"), nullable=False, default=CourseGroupStatus.PLANNED)
    type: Mapped[CourseGroupType] = mapped_column(
        Enum(CourseGroupType, name="course_group_type"), nullable=False, default=CourseGroupType.REGULAR)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    max_capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    subject = relationship("Subject", back_populates="course_groups")
    teacher = relationship("Teacher", back_populates="course_groups")
    sessions = relationship("GroupSession", back_populates="course_group",
                            cascade="all, delete-orphan", order_by="GroupSession.start_time")
    enrollments = relationship("Enrollment", back_populates="course_group")

    __table_args__ = (
        CheckConstraint("max_capacity >= 1", name="ck_course_group_capacity"),
        CheckConstraint("price > 0", name="ck_course_group_price"),
        Index("ix_course_group_status_capacity", "status", "max_capacity"),
    )

    def __repr__(self):
        return f"<CourseGroup {self.id} {self.status.value}>"


class GroupSession(db.Model):
    id: Mapped[int] = mapped_column(primary_key=True)
    course_group_id: Mapped[int] = mapped_column(ForeignKey("course_group.id", ondelete="CASCADE"), nullable=False)
    day_of_week: Mapped[DayOfWeek] = mapped_column(Enum(DayOfWeek, name="day_of_week"), nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    classroom: Mapped[str | None] = mapped_column(String(50))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    course_group = relationship("CourseGroup", back_populates="sessions")

    __table_args__ = (
        UniqueConstraint("course_group_id", "day_of_week", "start_time", name="uq_session_group_day_start"),
        CheckConstraint("start_time < end_time", name="ck_session_time_range"),
        Index("ix_session_classroom_day", "classroom", "day_of_week"),
    )


# ---------- Enrollment / requests ----------
class Enrollment(db.Model):
    id: Mapped[int] = mapped_column(primary_key=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("student.id", ondelete="RESTRICT"), nullable=False, index=True)
    course_group_id: Mapped[int] = mapped_column(ForeignKey("course_group.id", ondelete="RESTRICT"), nullable=False, index=True)
    enrollment_date: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status"), nullable=False, default=PaymentStatus.PENDING)

    student = relationship("Student", back_populates="enrollments")
    course_group = relationship("CourseGroup", back_populates="enrollments")

    __table_args__ = (
        UniqueConstraint("student_id", "course_group_id", name="uq_enrollment_student_group"),
    )


class GroupRequest(db.Model):
    id: Mapped[int] = mapped_column(primary_key=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("student.id", ondelete="RESTRICT"), nullable=False, index=True)
    subject_id: Mapped[int] = mapped_column(ForeignKey("subject.id", ondelete="RESTRICT"), nullable=False, index=True)
    request_date: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    status: Mapped[RequestStatus] = mapped_column(
        Enum(RequestStatus, name="request_status"), nullable=False, default=RequestStatus.PENDING)
    comment: Mapped[str | None] = mapped_column(Text)
    admin_comment: Mapped[str | None] = mapped_column(Text)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime)

    student = relationship("Student", back_populates="group_requests")
    subject = relationship("Subject", back_populates="group_requests")

    __table_args__ = (
        # одна PENDING-заявка на пару (student, subject); частичные индексы есть не везде
        Index("uq_group_request_pending", "student_id", "subject_id", unique=True,
              sqlite_where=text("status = 'PENDING'"),
              postgresql_where=text("status = 'PENDING'")).ddl_if(dialect=("sqlite", "postgresql")),
        Index("ix_group_request_status", "status"),
    )


ACCOUNT_MODELS = {Role.STUDENT: Student, Role.TEACHER: Teacher, Role.ADMIN: Admin}
