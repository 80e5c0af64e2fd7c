"""
Saakra Learning API entry point.

Middleware runs outermost first: CORS, request tracking, the error boundary,
authentication context, then the rate limiter. Request bodies are sanitized
and validated by route dependencies before any handler executes.
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import Settings, settings as default_settings
from database import get_optional_supabase_client
from middleware.auth import AuthMiddleware, TokenVerifier
from middleware.error_handling import ErrorHandlingMiddleware, input_validation_exception_handler
from middleware.rate_limiting import (
    RateLimitMiddleware,
    SlidingWindowRateLimiter,
    WindowStore,
    build_window_store,
)
from middleware.request_tracking import RequestTrackingMiddleware
from repositories.audit_log_repository import AuditLogRepository
from routers import assessments, certificates, progress
from services.audit_logger import AuditLogger
from utils.exceptions import InputValidationError
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    app_settings: Settings = app.state.settings
    logger.info(f"🚀 [STARTUP] {app_settings.app_name} v{app_settings.app_version} ({app_settings.environment})")
    yield
    logger.info("👋 [SHUTDOWN] Application stopped")


def build_audit_logger(app_settings: Settings) -> AuditLogger:
    """Audit logger with the audit_logs table as sink when persistence is enabled."""
    if not app_settings.audit_log_persist:
        return AuditLogger()

    client = get_optional_supabase_client()
    if client is None:
        logger.warning("⚠️ [AUDIT] Persistence enabled but Supabase unavailable, logging only")
        return AuditLogger()
    return AuditLogger(sink=AuditLogRepository(client))


def create_app(
    settings: Optional[Settings] = None,
    token_verifier: Optional[TokenVerifier] = None,
    window_store: Optional[WindowStore] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> FastAPI:
    """Build the application; the arguments replace the configured collaborators."""
    app_settings = settings or default_settings
    setup_logging(app_settings.log_level, json_output=app_settings.log_json)

    app = FastAPI(
        title=app_settings.app_name,
        version=app_settings.app_version,
        description="Saakra Learning backend API",
        lifespan=lifespan,
        docs_url=None if app_settings.is_production() else "/docs",
        redoc_url=None if app_settings.is_production() else "/redoc",
    )
    app.state.settings = app_settings
    app.state.audit_logger = audit_logger or build_audit_logger(app_settings)

    # Added innermost first; each add_middleware call wraps the previous ones.
    if app_settings.rate_limit_enabled:
        store = window_store or build_window_store(
            app_settings.redis_url,
            window_ms=app_settings.rate_limit_window_ms,
            timeout=app_settings.redis_timeout,
        )
        limiter = SlidingWindowRateLimiter(
            store=store,
            window_ms=app_settings.rate_limit_window_ms,
            max_requests=app_settings.rate_limit_max_requests,
        )
        app.state.rate_limiter = limiter
        app.add_middleware(RateLimitMiddleware, limiter=limiter)
        logger.info(
            f"✅ [MW] Rate limiting: {app_settings.rate_limit_max_requests} requests "
            f"per {app_settings.rate_limit_window_ms}ms"
        )
    else:
        app.state.rate_limiter = None
        logger.warning("⚠️ [MW] Rate limiting disabled")

    app.add_middleware(AuthMiddleware, verifier=token_verifier)
    app.add_middleware(ErrorHandlingMiddleware, is_development=app_settings.is_development())
    app.add_middleware(RequestTrackingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After", "X-RateLimit-Limit", "X-RateLimit-Remaining"],
    )

    app.add_exception_handler(InputValidationError, input_validation_exception_handler)

    app.include_router(progress.router, prefix="/api/progress")
    app.include_router(assessments.router, prefix="/api/assessments")
    app.include_router(certificates.router, prefix="/api/certificates")

    @app.get("/health")
    async def health():
        """Simple health check - must always work."""
        return {"status": "healthy", "timestamp": time.time()}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=default_settings.debug)
