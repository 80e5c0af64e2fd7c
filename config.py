"""
Configuration management for the Saakra Learning backend.
Centralized configuration with environment variables and optional .env file.
"""
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Environment
    environment: str = Field(default="production", validation_alias="ENVIRONMENT")
    debug: bool = Field(default=False, validation_alias="DEBUG")

    # Application configuration
    app_name: str = Field(default="Saakra Learning API", validation_alias="APP_NAME")
    app_version: str = Field(default="1.0.0", validation_alias="APP_VERSION")

    # Supabase configuration
    supabase_url: str = Field(..., validation_alias="SUPABASE_URL")
    supabase_anon_key: str = Field(..., validation_alias="SUPABASE_ANON_KEY")
    supabase_service_role_key: Optional[str] = Field(None, validation_alias="SUPABASE_SERVICE_ROLE_KEY")

    # CORS configuration
    cors_origins: list = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:5173",
        ],
        validation_alias="ALLOWED_ORIGINS"
    )

    # Rate limiting
    rate_limit_enabled: bool = Field(default=True, validation_alias="RATE_LIMIT_ENABLED")
    rate_limit_window_ms: int = Field(default=60000, gt=0, validation_alias="RATE_LIMIT_WINDOW_MS")
    rate_limit_max_requests: int = Field(default=100, gt=0, validation_alias="RATE_LIMIT_MAX_REQUESTS")

    # Redis configuration (optional, shares rate-limit windows across instances)
    redis_url: Optional[str] = Field(default=None, validation_alias="REDIS_URL")
    redis_timeout: int = Field(default=5, validation_alias="REDIS_TIMEOUT")

    # Logging
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_json: bool = Field(default=False, validation_alias="LOG_JSON")
    audit_log_persist: bool = Field(default=False, validation_alias="AUDIT_LOG_PERSIST")

    # Learning rules
    certificate_validity_days: int = Field(default=365, gt=0, validation_alias="CERTIFICATE_VALIDITY_DAYS")
    default_passing_score: int = Field(default=50, ge=0, le=100, validation_alias="DEFAULT_PASSING_SCORE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra environment variables
    )

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def is_development(self) -> bool:
        """Check if running in development environment; governs error verbosity."""
        return self.environment.lower() in ["development", "dev", "local"]

    @property
    def service_key(self) -> str:
        """Key used for server-side Supabase operations (falls back to the anon key)."""
        return self.supabase_service_role_key or self.supabase_anon_key


# Global settings instance
settings = Settings()
