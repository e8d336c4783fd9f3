from __future__ import annotations
import os
from flask import Flask
from sqlalchemy import inspect
from werkzeug.security import generate_password_hash

from config import config_map
from extensions import csrf, db, login_manager, migrate


def _seed_from_config(app: Flask) -> None:
    """Создать учётки из DEFAULT_USERS, если их ещё нет."""
    if not app.config.get("SEED_TEST_DATA"):
        return
    with app.app_context():
        # таблиц может ещё не быть (до alembic upgrade)
        if not inspect(db.engine).has_table("admin"):
            return

        from models import ACCOUNT_MODELS  # локальный импорт, чтобы избежать циклов
        from security import Role
        created = 0
        for u in app.config.get("DEFAULT_USERS", []):
            model = ACCOUNT_MODELS[Role(u["role"])]
            email = u["email"].strip().lower()
            if db.session.query(model).filter_by(email=email).first():
                continue
            fields = {"name": u.get("name") or email, "email": email,
                      "password_hash": generate_password_hash(u["password"])}
            if model.role is Role.STUDENT:
                fields["major"] = u.get("major", "General")
            db.session.add(model(**fields))
            created += 1
        if created:
            db.session.commit()
            app.logger.info("seeded %s default accounts", created)


def register_blueprints(app: Flask) -> None:
    from blueprints.core import bp as core_bp, api_bp as core_api_bp
    from blueprints.auth.routes import api_bp as auth_api_bp
    from blueprints.directory.routes import api_bp as directory_api_bp
    from blueprints.student.routes import api_bp as student_api_bp
    from blueprints.teacher.routes import api_bp as teacher_api_bp
    from blueprints.courses.routes import api_bp as courses_api_bp
    from blueprints.constraints.routes import api_bp as constraints_api_bp
    from blueprints.enrollments.routes import api_bp as enrollments_api_bp
    from blueprints.group_requests.routes import api_bp as group_requests_api_bp

    # core: логирование запросов и обработчики ошибок
    app.register_blueprint(core_bp)
    for bp in (core_api_bp, auth_api_bp, directory_api_bp, student_api_bp, teacher_api_bp,
               courses_api_bp, constraints_api_bp, enrollments_api_bp, group_requests_api_bp):
        app.register_blueprint(bp, url_prefix="/api/v1")


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    cfg_name = config_name or os.getenv("FLASK_CONFIG", "default")
    app.config.from_object(config_map[cfg_name])
    # движок создаётся в db.init_app, поэтому URI и прочее подменяем до него
    if overrides:
        app.config.update(overrides)

    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError:
        pass
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    register_blueprints(app)
    _seed_from_config(app)
    return app
