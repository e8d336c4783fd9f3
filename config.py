from __future__ import annotations
import os
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    BASE_DIR = Path(__file__).resolve().parent
    # SQLite file in project directory
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'app.db'}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # CSRF: API clients send the token in a header
    WTF_CSRF_TIME_LIMIT = None
    WTF_CSRF_HEADERS = ["X-CSRFToken", "X-CSRF-Token"]

    # auth
    AUTH_RL_MAX = int(os.getenv("AUTH_RL_MAX", "5"))
    AUTH_RL_WINDOW = int(os.getenv("AUTH_RL_WINDOW", "300"))  # 5 минут
    # 0 = без ограничения числа одновременных сессий
    MAX_SESSIONS_PER_USER = int(os.getenv("MAX_SESSIONS_PER_USER", "1"))

    # business rules
    DEFAULT_GROUP_CAPACITY = int(os.getenv("DEFAULT_GROUP_CAPACITY", "30"))
    GROUP_REQUEST_RETENTION_DAYS = int(os.getenv("GROUP_REQUEST_RETENTION_DAYS", "180"))
    ENFORCE_MAJOR_MATCH = _env_bool("ENFORCE_MAJOR_MATCH", True)
    SESSION_MIN_MINUTES = int(os.getenv("SESSION_MIN_MINUTES", "30"))
    SESSION_MAX_MINUTES = int(os.getenv("SESSION_MAX_MINUTES", "240"))

    SEED_TEST_DATA = False
    DEFAULT_USERS: list[dict] = []


class DevConfig(BaseConfig):
    DEBUG = True
    SEED_TEST_DATA = True
    DEFAULT_USERS = [
        {"email": "admin@example.com", "password": "pass", "role": "ADMIN", "name": "Admin"},
    ]


class TestConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"check_same_thread": False}}
    WTF_CSRF_ENABLED = False
    SEED_TEST_DATA = False
    MAX_SESSIONS_PER_USER = 0


class ProdConfig(BaseConfig):
    DEBUG = False
    SEED_TEST_DATA = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": int(os.getenv("DB_POOL_SIZE", "10")),
        "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", "5")),
        "pool_timeout": int(os.getenv("DB_POOL_TIMEOUT", "10")),
    }


config_map = {
    "dev": DevConfig,
    "test": TestConfig,
    "prod": ProdConfig,
    "default": DevConfig,
}
