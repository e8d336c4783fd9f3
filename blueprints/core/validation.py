from __future__ import annotations
from typing import Any, Type, TypeVar

from flask import request
from pydantic import BaseModel, ValidationError

from errors import ValidationFailed

S = TypeVar("S", bound=BaseModel)


def _errors_from(ve: ValidationError) -> list[dict]:
    out = []
    for e in ve.errors():
        field = ".".join(str(p) for p in e.get("loc", ())) or None
        out.append({"field": field, "code": e.get("type", "invalid"), "message": e.get("msg", "")})
    return out


def validate_payload(schema: Type[S], payload: Any) -> S:
    """Провалидировать payload схемой, ошибки собираются в ValidationFailed."""
    if not isinstance(payload, dict):
        raise ValidationFailed([{"field": None, "code": "invalid_body", "message": "JSON object expected"}])
    try:
        return schema.model_validate(payload)
    except ValidationError as ve:
        raise ValidationFailed(_errors_from(ve)) from ve


def json_body(schema: Type[S]) -> S:
    return validate_payload(schema, request.get_json(silent=True))


def page_args(default_per_page: int = 20) -> tuple[int, int]:
    try:
        page = max(1, int(request.args.get("page", 1)))
        per_page = min(100, max(1, int(request.args.get("per_page", default_per_page))))
    except ValueError as ex:
        raise ValidationFailed([{"field": "page", "code": "int_parsing", "message": "page and per_page must be integers"}]) from ex
    return page, per_page
