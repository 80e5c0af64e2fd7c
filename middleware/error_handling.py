"""
Error normalization boundary.

Every exception that escapes a route is converted here, exactly once, into a
uniform JSON error response. Classification order (first match wins):

1. Domain errors (SaakraError) keep their own status, message and details.
2. Errors from the managed backend map to 400 with the upstream message/code.
3. Errors whose message mentions "Validation error" map to 400.
4. Everything else is a 500 whose message is hidden outside development.
"""
import logging
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from utils.exceptions import InputValidationError, SaakraError

logger = logging.getLogger(__name__)

UPSTREAM_ERROR_MESSAGE = "Supabase operation failed"
GENERIC_ERROR_MESSAGE = "An error occurred"
VALIDATION_ERROR_MARKER = "Validation error"

# Class names raised by the supabase client stack (postgrest, auth, storage) and our own wrapper.
UPSTREAM_ERROR_KINDS = frozenset({
    "APIError",
    "AuthError",
    "StorageException",
    "UpstreamServiceError",
})


class ErrorKind(str, Enum):
    """Classification outcome of the normalizer."""
    DOMAIN = "domain"
    UPSTREAM = "upstream"
    VALIDATION = "validation"
    INTERNAL = "internal"


@dataclass(frozen=True)
class NormalizedError:
    """Uniform representation of a failed request."""
    kind: ErrorKind
    status_code: int
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_response_body(self) -> Dict[str, Any]:
        """JSON body sent to the client for this error."""
        if self.kind == ErrorKind.DOMAIN:
            return {
                "error": self.message,
                "details": self.details,
                "timestamp": self.timestamp.isoformat(),
            }
        if self.kind == ErrorKind.UPSTREAM:
            return {
                "error": self.message,
                "message": self.details.get("message"),
                "code": self.details.get("code"),
            }
        if self.kind == ErrorKind.VALIDATION:
            return {"error": VALIDATION_ERROR_MARKER, "message": self.message}
        return {
            "error": "Internal server error",
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


def is_upstream_error(error: BaseException) -> bool:
    """True when any class in the error's hierarchy is a known upstream error kind."""
    return any(cls.__name__ in UPSTREAM_ERROR_KINDS for cls in type(error).__mro__)


def _error_message(error: BaseException) -> str:
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(error)


def normalize_error(
    error: BaseException,
    is_development: bool = False,
    request: Optional[Request] = None,
) -> NormalizedError:
    """Classify an exception and log it; returns the normalized shape."""
    _log_error(error, request)

    if isinstance(error, SaakraError):
        return NormalizedError(
            kind=ErrorKind.DOMAIN,
            status_code=error.status_code,
            message=error.message,
            details=error.details,
            timestamp=error.timestamp,
        )

    if is_upstream_error(error):
        return NormalizedError(
            kind=ErrorKind.UPSTREAM,
            status_code=status.HTTP_400_BAD_REQUEST,
            message=UPSTREAM_ERROR_MESSAGE,
            details={
                "message": _error_message(error),
                "code": getattr(error, "code", None),
            },
        )

    message = _error_message(error)
    if VALIDATION_ERROR_MARKER in message:
        return NormalizedError(
            kind=ErrorKind.VALIDATION,
            status_code=status.HTTP_400_BAD_REQUEST,
            message=message,
        )

    return NormalizedError(
        kind=ErrorKind.INTERNAL,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message=message if is_development else GENERIC_ERROR_MESSAGE,
    )


def _log_error(error: BaseException, request: Optional[Request]) -> None:
    error_details = {
        "message": str(error),
        "exception_type": type(error).__name__,
        "stack": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
        "path": request.url.path if request is not None else None,
        "method": request.method if request is not None else None,
    }
    logger.error(
        f"❌ [ERROR-HANDLER] {error_details['method']} {error_details['path']}: {error_details['message']}",
        extra={
            "error_details": error_details,
            "path": error_details["path"],
            "method": error_details["method"],
            "request_id": getattr(request.state, "request_id", None) if request is not None else None,
        },
    )


def error_response(normalized: NormalizedError) -> JSONResponse:
    return JSONResponse(status_code=normalized.status_code, content=normalized.to_response_body())


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Single catch-all boundary that normalizes unhandled exceptions."""

    def __init__(self, app: ASGIApp, is_development: bool = False):
        super().__init__(app)
        self.is_development = is_development

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            return error_response(normalize_error(exc, self.is_development, request))


async def input_validation_exception_handler(request: Request, exc: InputValidationError) -> JSONResponse:
    """Render a schema failure; short-circuits before any handler and bypasses the normalizer."""
    logger.info(
        f"🔍 [VALIDATION] {request.method} {request.url.path} rejected: {sorted(exc.validation_errors)}",
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": VALIDATION_ERROR_MARKER, "validationErrors": exc.validation_errors},
    )
