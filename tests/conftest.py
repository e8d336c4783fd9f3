from __future__ import annotations
from datetime import time
from decimal import Decimal

import pytest
from werkzeug.security import generate_password_hash

from app import create_app
from blueprints.auth.services import _login_attempts
from extensions import db
from models import (
    Admin, CourseGroup, CourseGroupStatus, DayOfWeek, Enrollment, GroupSession,
    PaymentStatus, Student, Subject, Teacher,
)

PASSWORD = "secret123"
# хэш один на всю сессию тестов: scrypt небыстрый
_PWD_HASH = generate_password_hash(PASSWORD)


class Factory:
    """Создание тестовых данных; каждый метод возвращает id новой записи."""

    def __init__(self, app):
        self.app = app
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def _save(self, obj) -> int:
        with self.app.app_context():
            db.session.add(obj)
            db.session.commit()
            return obj.id

    def admin(self, email: str | None = None) -> int:
        n = self._next()
        return self._save(Admin(name=f"Admin {n}", email=email or f"admin{n}@example.com", password_hash=_PWD_HASH))

    def teacher(self, email: str | None = None, name: str | None = None) -> int:
        n = self._next()
        return self._save(Teacher(name=name or f"Teacher {n}", email=email or f"teacher{n}@example.com",
                                  password_hash=_PWD_HASH))

    def student(self, email: str | None = None, major: str = "CS", name: str | None = None) -> int:
        n = self._next()
        return self._save(Student(name=name or f"Student {n}", email=email or f"student{n}@example.com",
                                  major=major, password_hash=_PWD_HASH))

    def subject(self, name: str | None = None, major: str = "CS", course_year: int = 1) -> int:
        n = self._next()
        return self._save(Subject(name=name or f"Subject {n}", major=major, course_year=course_year))

    def group(self, subject_id: int, teacher_id: int | None = None,
              status: CourseGroupStatus = CourseGroupStatus.ACTIVE, max_capacity: int = 30,
              price: str = "100.00") -> int:
        return self._save(CourseGroup(subject_id=subject_id, teacher_id=teacher_id, status=status,
                                      max_capacity=max_capacity, price=Decimal(price)))

    def session(self, group_id: int, day: DayOfWeek, start: str, end: str, classroom: str | None = None) -> int:
        return self._save(GroupSession(course_group_id=group_id, day_of_week=day,
                                       start_time=time.fromisoformat(start), end_time=time.fromisoformat(end),
                                       classroom=classroom))

    def enrollment(self, student_id: int, group_id: int,
                   payment_status: PaymentStatus = PaymentStatus.PENDING) -> int:
        return self._save(Enrollment(student_id=student_id, course_group_id=group_id,
                                     payment_status=payment_status))


@pytest.fixture()
def app():
    app = create_app("test")
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
    _login_attempts.clear()


@pytest.fixture()
def make(app):
    return Factory(app)


@pytest.fixture()
def client(app):
    return app.test_client()


def login(client, email: str, password: str = PASSWORD):
    r = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.get_json()
    return r


@pytest.fixture()
def as_admin(app, make):
    """Клиент, залогиненный администратором."""
    make.admin(email="root@example.com")
    c = app.test_client()
    login(c, "root@example.com")
    return c


def login_client(app, email: str):
    c = app.test_client()
    login(c, email)
    return c


@pytest.fixture()
def file_app(tmp_path):
    """Приложение на файловой SQLite: общая БД для нескольких потоков."""
    app = create_app("test", {"SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'app.db'}"})
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()
        db.engine.dispose()
