"""
Custom exceptions for the Saakra Learning backend.

SaakraError and its subclasses are domain errors: the raising code chooses the
HTTP status and detail payload and both reach the client unchanged.
"""
from typing import Any, Dict, Optional
from datetime import datetime, timezone
from enum import Enum


class ErrorCategory(Enum):
    """Error categorization used in structured error logs."""
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    BUSINESS_LOGIC = "business_logic"
    EXTERNAL_SERVICE = "external_service"
    SYSTEM = "system"


class SaakraError(Exception):
    """Base exception for all Saakra-specific errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
        category: ErrorCategory = ErrorCategory.SYSTEM,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.category = category
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
            "category": self.category.value,
            "timestamp": self.timestamp.isoformat(),
            "exception_type": self.__class__.__name__,
        }


class AuthenticationError(SaakraError):
    """Raised when a request needs an authenticated user and has none."""

    def __init__(self, message: str = "Authentication required", **kwargs):
        kwargs.setdefault("category", ErrorCategory.AUTHENTICATION)
        super().__init__(message, status_code=401, **kwargs)


class PermissionDeniedError(SaakraError):
    """Raised when the authenticated user's role is not allowed."""

    def __init__(self, message: str = "Access denied", **kwargs):
        kwargs.setdefault("category", ErrorCategory.AUTHORIZATION)
        super().__init__(message, status_code=403, **kwargs)


class NotFoundError(SaakraError):
    """Raised when a requested resource does not exist."""

    def __init__(
        self,
        message: str,
        resource_id: Optional[str] = None,
        resource_type: Optional[str] = None,
        **kwargs
    ):
        kwargs.setdefault("category", ErrorCategory.NOT_FOUND)
        details = kwargs.pop("details", None) or {}
        if resource_id is not None:
            details.setdefault("resource_id", resource_id)
        if resource_type is not None:
            details.setdefault("resource_type", resource_type)
        super().__init__(message, status_code=404, details=details, **kwargs)

        self.resource_id = resource_id
        self.resource_type = resource_type


class EligibilityError(SaakraError):
    """Raised when a certificate is requested for a user who does not qualify."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("category", ErrorCategory.BUSINESS_LOGIC)
        super().__init__(message, status_code=400, **kwargs)


class UpstreamServiceError(Exception):
    """
    Failure reported by the managed auth/database backend.

    Classified by kind rather than as a SaakraError; rendered as 400 with the
    upstream message and code.
    """

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class InputValidationError(Exception):
    """Raised when a request body fails its schema; rendered as a 400 validation response."""

    def __init__(self, validation_errors: Dict[str, str], operation: Optional[str] = None):
        super().__init__("Validation error")
        self.validation_errors = dict(validation_errors)
        self.operation = operation
