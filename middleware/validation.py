"""
Request-body sanitization and schema validation for route handlers.

`validated_body(operation, Model)` is a FastAPI dependency: it decodes the JSON
body, sanitizes it, validates it against the operation's registered schema and
hands the handler a typed model. Schema failures raise InputValidationError,
which is rendered as a 400 before the handler runs.
"""
import json
import logging
from typing import Any, Callable, Dict, Type, TypeVar

from fastapi import Request
from pydantic import BaseModel, ValidationError

from utils.exceptions import InputValidationError, SaakraError
from utils.input_sanitization import sanitize
from utils.validation import validate
from utils.validation_schemas import lookup

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


async def read_json_body(request: Request) -> Dict[str, Any]:
    """Decode the request body as a JSON object; an empty body is an empty object."""
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        payload = json.loads(raw, parse_constant=_reject_constant)
    except (ValueError, UnicodeDecodeError) as e:
        raise SaakraError("Invalid JSON body", status_code=400, details={"reason": str(e)})
    if not isinstance(payload, dict):
        raise SaakraError("Request body must be a JSON object", status_code=400)
    return payload


def check_payload(operation: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Sanitize then validate a decoded body; returns the sanitized body."""
    cleaned = sanitize(payload)
    schema = lookup(operation)
    if schema is None:
        logger.debug(f"🔍 [VALIDATION] No schema registered for {operation}, skipping")
        return cleaned

    errors = validate(schema, cleaned)
    if errors:
        raise InputValidationError(errors, operation=operation)
    return cleaned


def _model_errors(exc: ValidationError) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for error in exc.errors():
        field = str(error["loc"][0]) if error.get("loc") else "body"
        errors.setdefault(field, f"{field} {error['msg']}")
    return errors


def validated_body(operation: str, model: Type[ModelT]) -> Callable[[Request], Any]:
    """Build a dependency yielding `model` parsed from a sanitized, validated body."""

    async def dependency(request: Request) -> ModelT:
        cleaned = check_payload(operation, await read_json_body(request))
        try:
            return model.model_validate(cleaned)
        except ValidationError as e:
            raise InputValidationError(_model_errors(e), operation=operation)

    return dependency
