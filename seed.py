"""
Idempotent seed-скрипт.
Запуск:
  python seed.py --reset         # дропнуть и пересоздать БД + демо-данные + admin
  python seed.py --ensure-admin  # создать только администратора admin@example.com (без сидов)
  python seed.py                 # мягкое наполнение недостающих данных (idempotent)
"""
from datetime import time
from decimal import Decimal
import argparse

from werkzeug.security import generate_password_hash

from app import create_app
from extensions import db
from models import (
    Admin, CourseGroup, CourseGroupStatus, CourseGroupType, DayOfWeek, GroupSession,
    Student, Subject, Teacher,
)

DEMO_PASSWORD = "password"
ADMIN_EMAIL = "admin@example.com"


def get_or_create(model, defaults=None, **by):
    """Идемпотентное создание по уникальным ключам."""
    inst = db.session.query(model).filter_by(**by).first()
    if inst:
        return inst, False
    data = dict(defaults or {})
    data.update(by)
    inst = model(**data)
    db.session.add(inst)
    db.session.flush()
    return inst, True


def seed_directory() -> dict:
    """Предметы, преподаватели, студенты двух специальностей."""
    ids = {}
    pwd = generate_password_hash(DEMO_PASSWORD)

    for name, major, year in [
        ("Algorithms", "Computer Science", 1),
        ("Databases", "Computer Science", 2),
        ("Operating Systems", "Computer Science", 2),
        ("Microeconomics", "Economics", 1),
    ]:
        s, _ = get_or_create(Subject, defaults={"course_year": year}, name=name, major=major)
        ids[f"subject:{name}"] = s.id

    for name, email in [("Ada Lovelace", "ada@example.com"), ("Alan Turing", "alan@example.com")]:
        t, _ = get_or_create(Teacher, defaults={"name": name, "password_hash": pwd}, email=email)
        ids[f"teacher:{email}"] = t.id

    for name, email, major in [
        ("Ivan Petrov", "ivan@example.com", "Computer Science"),
        ("Maria Ivanova", "maria@example.com", "Computer Science"),
        ("John Smith", "john@example.com", "Economics"),
    ]:
        st, _ = get_or_create(Student, defaults={"name": name, "password_hash": pwd, "major": major}, email=email)
        ids[f"student:{email}"] = st.id

    db.session.commit()
    return ids


def seed_groups(ids: dict) -> None:
    """По группе на предмет, одна активная с расписанием."""
    if db.session.query(CourseGroup).count():
        return
    algo = CourseGroup(subject_id=ids["subject:Algorithms"], teacher_id=ids["teacher:ada@example.com"],
                       status=CourseGroupStatus.ACTIVE, type=CourseGroupType.REGULAR,
                       price=Decimal("150.00"), max_capacity=20)
    dbs = CourseGroup(subject_id=ids["subject:Databases"], teacher_id=ids["teacher:alan@example.com"],
                      status=CourseGroupStatus.ACTIVE, type=CourseGroupType.INTENSIVE,
                      price=Decimal("220.00"), max_capacity=12)
    econ = CourseGroup(subject_id=ids["subject:Microeconomics"], status=CourseGroupStatus.PLANNED,
                       price=Decimal("120.00"), max_capacity=25)
    db.session.add_all([algo, dbs, econ])
    db.session.flush()
    db.session.add_all([
        GroupSession(course_group_id=algo.id, day_of_week=DayOfWeek.MONDAY,
                     start_time=time(9, 0), end_time=time(10, 30), classroom="A-101"),
        GroupSession(course_group_id=algo.id, day_of_week=DayOfWeek.WEDNESDAY,
                     start_time=time(9, 0), end_time=time(10, 30), classroom="A-101"),
        GroupSession(course_group_id=dbs.id, day_of_week=DayOfWeek.MONDAY,
                     start_time=time(11, 0), end_time=time(13, 0), classroom="B-204"),
    ])
    db.session.commit()


def ensure_admin() -> bool:
    if db.session.query(Admin).filter_by(email=ADMIN_EMAIL).first():
        return False
    db.session.add(Admin(name="Administrator", email=ADMIN_EMAIL,
                         password_hash=generate_password_hash("admin")))
    db.session.commit()
    return True


# ---- main ----
def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--reset", action="store_true", help="drop + create + full seed (demo)")
    parser.add_argument("--ensure-admin", action="store_true", help="create only the admin account")
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        if args.reset:
            db.drop_all()
            db.create_all()
            seed_groups(seed_directory())
            ensure_admin()
            print("[seed] reset+seed complete")
            return

        if args.ensure_admin:
            db.create_all()
            created = ensure_admin()
            print("Admin created." if created else "Admin already exists.")
            return

        # режим по умолчанию: мягкое наполнение недостающих данных
        db.create_all()
        seed_groups(seed_directory())
        ensure_admin()
        print("[seed] soft seed complete")


if __name__ == "__main__":
    main()
