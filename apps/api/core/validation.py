"""
Request body validation.

Handlers take the raw JSON body and validate it themselves, after the
resource lookup and permission checks. Failures become a 400
VALIDATION_ERROR carrying per-field messages:

    {"field_errors": {"title": ["String should have at least 3 characters"]}}
"""
import json
from typing import Any, Dict, Iterable, List, Type, TypeVar

from fastapi import Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from core.exceptions import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

# Location prefixes FastAPI adds that mean nothing to API clients.
_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


def _field_name(loc: Iterable[Any]) -> str:
    parts = [str(p) for p in loc]
    if parts and parts[0] in _LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(parts) or "_root"


def _clean_message(msg: str) -> str:
    # pydantic prefixes messages raised from our own validators.
    return msg[len("Value error, "):] if msg.startswith("Value error, ") else msg


def format_field_errors(errors: Iterable[Dict[str, Any]]) -> Dict[str, List[str]]:
    field_errors: Dict[str, List[str]] = {}
    for err in errors:
        name = _field_name(err.get("loc", ()))
        field_errors.setdefault(name, []).append(_clean_message(str(err.get("msg", "Invalid value"))))
    return field_errors


def parse_body(model: Type[ModelT], payload: Any, message: str = "Invalid request body") -> ModelT:
    """Validate a decoded JSON body against `model` or raise ValidationError."""
    if not isinstance(payload, dict):
        raise ValidationError(
            message,
            details={"field_errors": {"_root": ["Request body must be a JSON object"]}},
        )
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(
            message,
            details={"field_errors": format_field_errors(e.errors(include_url=False))},
        )


async def read_json_body(request: Request) -> Any:
    """Decode the raw body as JSON. An empty body reads as None."""
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        raise ValidationError(
            "Malformed JSON body",
            details={"field_errors": {"_root": ["Request body is not valid JSON"]}},
        )
