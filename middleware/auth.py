"""
Authentication context middleware.

Bearer tokens are handed to a token verifier (Supabase Auth by default); the
resolved user id and role are stored on request.state for the rate limiter,
request logging and the role dependencies below. Invalid or missing tokens
leave the request anonymous; routes that need a user enforce it themselves.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from fastapi import Request, Response
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from utils.exceptions import AuthenticationError, PermissionDeniedError

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "student"


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity resolved from a bearer token."""
    id: str
    role: str = DEFAULT_ROLE
    email: Optional[str] = None


# token -> user, or None when the token is not valid
TokenVerifier = Callable[[str], Optional[AuthenticatedUser]]


def _role_from_metadata(user: Any) -> str:
    for attr in ("app_metadata", "user_metadata"):
        metadata = getattr(user, attr, None) or {}
        role = metadata.get("role") if isinstance(metadata, dict) else None
        if role:
            return str(role)
    return DEFAULT_ROLE


class SupabaseTokenVerifier:
    """Verifies access tokens against Supabase Auth."""

    def __init__(self, client_provider: Optional[Callable[[], Any]] = None):
        if client_provider is None:
            from database import get_supabase_client
            client_provider = get_supabase_client
        self.client_provider = client_provider

    def __call__(self, token: str) -> Optional[AuthenticatedUser]:
        response = self.client_provider().auth.get_user(token)
        user = getattr(response, "user", None)
        if user is None or not getattr(user, "id", None):
            return None
        return AuthenticatedUser(
            id=str(user.id),
            role=_role_from_metadata(user),
            email=getattr(user, "email", None),
        )


def _bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


class AuthMiddleware(BaseHTTPMiddleware):
    """Attach user context to the request when a valid bearer token is present."""

    def __init__(self, app: ASGIApp, verifier: Optional[TokenVerifier] = None):
        super().__init__(app)
        self.verifier = verifier if verifier is not None else SupabaseTokenVerifier()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.user = None
        request.state.user_id = None
        request.state.user_role = None

        token = _bearer_token(request)
        if token:
            try:
                user = await run_in_threadpool(self.verifier, token)
            except Exception as e:
                # Silent fail - let dependencies handle auth requirements
                logger.debug(f"🔐 [AUTH-MIDDLEWARE] Token validation failed for {request.method} {request.url.path}: {e}")
                user = None

            if user is not None:
                request.state.user = user
                request.state.user_id = user.id
                request.state.user_role = user.role

        return await call_next(request)


def get_current_user(request: Request) -> AuthenticatedUser:
    """FastAPI dependency: the authenticated user, 401 when anonymous."""
    user = getattr(request.state, "user", None)
    if user is None:
        raise AuthenticationError()
    return user


def get_current_user_id(request: Request) -> str:
    """FastAPI dependency: the authenticated user's id, 401 when anonymous."""
    return get_current_user(request).id


def ensure_self_or_roles(user: AuthenticatedUser, owner_id: str, *roles: str) -> None:
    """Allow access to another user's records only for the given roles."""
    if user.id != owner_id and user.role not in roles:
        raise PermissionDeniedError(
            "Access denied - not your record",
            details={"required_roles": sorted(roles), "role": user.role},
        )


def require_roles(*roles: str) -> Callable[[Request], AuthenticatedUser]:
    """Dependency factory allowing only users whose role is in `roles`."""
    allowed = frozenset(roles)

    def dependency(request: Request) -> AuthenticatedUser:
        user = get_current_user(request)
        if user.role not in allowed:
            logger.warning(
                f"🚫 [AUTH] Role {user.role} denied for {request.method} {request.url.path}",
                extra={"user_id": user.id, "path": request.url.path, "method": request.method},
            )
            raise PermissionDeniedError(
                "Access denied - role mismatch",
                details={"required_roles": sorted(allowed), "role": user.role},
            )
        return user

    return dependency
