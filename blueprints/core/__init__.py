from flask import Blueprint

bp = Blueprint("core", __name__)
api_bp = Blueprint("core_api", __name__)
# импортируем, чтобы зарегистрировались маршруты и обработчики
from . import routes, responses  # noqa: E402,F401
