"""
Request validation glue.

Turns pydantic error lists into short human-readable messages and renders
them as ``{"message": <first>, "errors": [...]}`` with status 400.
"""
import logging
from typing import Any, Iterable, List, Type, TypeVar

import pydantic
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from errors import ValidationError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=pydantic.BaseModel)


def _label(loc: Iterable[Any]) -> str:
    names = [str(part) for part in loc if isinstance(part, str) and part != "body"]
    if not names:
        return "Request body"
    return names[-1].replace("_", " ").capitalize()


def error_message(err: dict) -> str:
    kind = err.get("type", "")
    ctx = err.get("ctx") or {}
    label = _label(err.get("loc", ()))
    if kind == "missing":
        return f"{label} is required"
    if kind == "string_too_short":
        if ctx.get("min_length", 0) <= 1:
            return f"{label} is required"
        return f"{label} must be at least {ctx['min_length']} characters long"
    if kind == "value_error" and "error" in ctx:
        return str(ctx["error"])
    return f"{label}: {err.get('msg', 'is invalid')}"


def error_messages(errors: Iterable[dict]) -> List[str]:
    return [error_message(e) for e in errors]


def validate_body(schema: Type[M], payload: Any) -> M:
    """Parse ``payload`` with ``schema`` or raise ValidationError."""
    try:
        return schema.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ValidationError(error_messages(e.errors()))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    messages = error_messages(exc.errors())
    logger.debug("Validation failed on %s: %s", request.url.path, messages)
    return JSONResponse(
        status_code=400,
        content={"message": messages[0] if messages else "Validation failed", "errors": messages},
    )
