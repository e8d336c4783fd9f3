"""Вход по email/паролю и политика числа одновременных сессий."""
from __future__ import annotations
import logging
import secrets
import threading
import time
from typing import Optional

from flask import current_app
from werkzeug.security import check_password_hash

from extensions import db
from models import ACCOUNT_MODELS, LoginSession
from repositories import (
    AdminRepository, TeacherRepository, StudentRepository, LoginSessionRepository,
)
from security import Role

log = logging.getLogger(__name__)

DEFAULT_RL_MAX = 5
DEFAULT_RL_WIN = 300  # 5 минут
_login_attempts: dict[str, list[float]] = {}  # ключ: ip|email -> [timestamps]
_rl_lock = threading.Lock()


def rate_limit_hit(key: str) -> bool:
    """Учесть попытку входа; False, если лимит попыток в окне исчерпан."""
    now = time.time()
    win = current_app.config.get("AUTH_RL_WINDOW", DEFAULT_RL_WIN)
    mx = current_app.config.get("AUTH_RL_MAX", DEFAULT_RL_MAX)
    with _rl_lock:
        bucket = _login_attempts.setdefault(key, [])
        cutoff = now - win
        while bucket and bucket[0] < cutoff:
            bucket.pop(0)
        if len(bucket) >= mx:
            return False
        bucket.append(now)
        return True


def rate_limit_reset(key: str) -> None:
    with _rl_lock:
        _login_attempts.pop(key, None)


def authenticate(email: str, password: str):
    # email уникален в пределах роли; проверяем от старшей роли к младшей
    for repo in (AdminRepository(), TeacherRepository(), StudentRepository()):
        account = repo.get_by_email(email)
        if account and account.password_hash and check_password_hash(account.password_hash, password):
            return account
    return None


def _max_sessions() -> int:
    return int(current_app.config.get("MAX_SESSIONS_PER_USER", 0) or 0)


def open_session(account) -> Optional[str]:
    """Зарегистрировать вход. Лишние (самые старые) сессии аккаунта вытесняются."""
    limit = _max_sessions()
    if limit <= 0:
        return None
    repo = LoginSessionRepository()
    token = secrets.token_hex(16)
    repo.add(LoginSession(account_role=account.role.value, account_id=account.id, token=token))
    db.session.flush()
    sessions = list(repo.list_for_account(account.role.value, account.id))
    for stale in sessions[:-limit]:
        log.info("evicting login session of %s:%s", account.role.value, account.id)
        repo.delete(stale)
    db.session.commit()
    account.session_token = token
    return token


def close_session(token: Optional[str]) -> None:
    if not token:
        return
    repo = LoginSessionRepository()
    row = repo.get_by_token(token)
    if row is not None:
        repo.delete(row)
        db.session.commit()


def load_account(uid: str):
    """Разобрать идентификатор ``ROLE:id[:token]`` из сессии Flask-Login."""
    parts = (uid or "").split(":")
    if len(parts) not in (2, 3):
        return None
    try:
        role = Role(parts[0])
        account_id = int(parts[1])
    except ValueError:
        return None
    account = db.session.get(ACCOUNT_MODELS[role], account_id)
    if account is None:
        return None
    token = parts[2] if len(parts) == 3 else None
    if _max_sessions() > 0:
        row = LoginSessionRepository().get_by_token(token) if token else None
        if row is None or row.account_role != role.value or row.account_id != account_id:
            return None
    account.session_token = token
    return account
