"""
Middleware package for FastAPI application.
"""
from .auth import AuthMiddleware, get_current_user, get_current_user_id, require_roles
from .error_handling import ErrorHandlingMiddleware, normalize_error
from .rate_limiting import RateLimitMiddleware, SlidingWindowRateLimiter
from .request_tracking import RequestTrackingMiddleware

__all__ = [
    "AuthMiddleware",
    "ErrorHandlingMiddleware",
    "RateLimitMiddleware",
    "RequestTrackingMiddleware",
    "SlidingWindowRateLimiter",
    "get_current_user",
    "get_current_user_id",
    "normalize_error",
    "require_roles",
]
