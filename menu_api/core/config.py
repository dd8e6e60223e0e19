"""
Application Configuration Module

Centralizes all configuration using environment variables with Pydantic Settings.

Four values are required and have no default; the process refuses to start
without them:
    - MONGODB_URI: document database connection string
    - JWT_SECRET: signing secret for bearer tokens
    - FRONTEND_URL: origin allowed to make cross-origin requests
    - ENV_MODE: deployment mode (development/staging/production)

The STORAGE_BACKEND variable selects the document store implementation
(MongoDB or the in-memory store used for local runs and tests), and
RATE_LIMIT_BACKEND selects where rate limiter counters live.

Usage:
    from menu_api.core.config import get_settings

    settings = get_settings()
    if settings.is_development:
        # Expose error details
"""

import logging
import sys
from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentMode(str, Enum):
    """
    Application environment modes.

    Attributes:
        DEVELOPMENT: Local work, error details returned to clients
        PRODUCTION: Live environment, error details suppressed
        STAGING: Pre-production, behaves like production
    """
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"


class StorageBackend(str, Enum):
    """Document store implementations."""
    MONGO = "mongo"
    MEMORY = "memory"


class RateLimitBackend(str, Enum):
    """Where rate limiter counters are kept."""
    MEMORY = "memory"
    REDIS = "redis"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Secrets (JWT_SECRET, credentials inside MONGODB_URI) should NEVER be
    committed to version control.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # REQUIRED
    # ==========================================================================

    env_mode: EnvironmentMode = Field(
        ...,
        description="Application environment mode"
    )
    mongodb_uri: str = Field(
        ...,
        description="MongoDB connection URL"
    )
    jwt_secret: str = Field(
        ...,
        description="Secret used to sign bearer tokens"
    )
    frontend_url: str = Field(
        ...,
        description="Origin allowed by CORS"
    )

    # ==========================================================================
    # APPLICATION
    # ==========================================================================

    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )
    app_name: str = Field(
        default="Menu Ordering API",
        description="Application display name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=3000,
        description="API server port"
    )

    # ==========================================================================
    # DATABASE
    # ==========================================================================

    storage_backend: StorageBackend = Field(
        default=StorageBackend.MONGO,
        description="Document store implementation"
    )
    mongodb_database: str = Field(
        default="menu_ordering",
        description="Database name used when the URI does not name one"
    )
    db_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Overall deadline for a guarded database operation"
    )
    db_max_retries: int = Field(
        default=2,
        ge=1,
        description="Attempts made for a guarded database operation"
    )
    db_retry_base_delay: float = Field(
        default=0.5,
        ge=0,
        description="Base delay in seconds for exponential backoff"
    )

    # ==========================================================================
    # AUTHENTICATION
    # ==========================================================================

    jwt_algorithm: str = Field(
        default="HS256",
        description="Token signing algorithm"
    )
    jwt_expire_days: int = Field(
        default=7,
        ge=1,
        description="Token lifetime in days"
    )
    jwt_leeway_seconds: int = Field(
        default=0,
        ge=0,
        description="Clock skew tolerated when checking issued-at"
    )
    bcrypt_rounds: int = Field(
        default=12,
        ge=4,
        le=31,
        description="bcrypt cost factor"
    )

    # ==========================================================================
    # REQUEST GUARDS
    # ==========================================================================

    rate_limit_backend: RateLimitBackend = Field(
        default=RateLimitBackend.MEMORY,
        description="Rate limiter counter storage"
    )
    rate_limit_max_requests: int = Field(
        default=100,
        ge=1,
        description="Requests allowed per client per window"
    )
    rate_limit_window_seconds: int = Field(
        default=15 * 60,
        ge=1,
        description="Sliding window length in seconds"
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for shared rate limit counters"
    )
    max_body_bytes: int = Field(
        default=1024 * 1024,
        ge=1,
        description="Largest accepted request body"
    )

    # ==========================================================================
    # VALIDATORS
    # ==========================================================================

    @field_validator("env_mode", mode="before")
    @classmethod
    def validate_env_mode(cls, v: str) -> EnvironmentMode:
        """Convert string to EnvironmentMode enum."""
        if isinstance(v, EnvironmentMode):
            return v
        try:
            return EnvironmentMode(str(v).strip().lower())
        except ValueError:
            valid = [e.value for e in EnvironmentMode]
            raise ValueError(f"Invalid env_mode. Must be one of: {valid}")

    @field_validator("mongodb_uri", "jwt_secret", "frontend_url")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env_mode == EnvironmentMode.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env_mode == EnvironmentMode.PRODUCTION

    @property
    def is_staging(self) -> bool:
        """Check if running in staging mode."""
        return self.env_mode == EnvironmentMode.STAGING

    @property
    def expose_error_details(self) -> bool:
        """Whether error messages and stacks may be returned to clients."""
        return self.is_development or self.debug


REQUIRED_ENV_VARS = ("MONGODB_URI", "JWT_SECRET", "FRONTEND_URL", "ENV_MODE")


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are loaded only once and stay
    consistent across the application lifecycle.

    Raises:
        pydantic.ValidationError: If a required value is missing or invalid
    """
    return Settings()


def missing_settings(error: ValidationError) -> list[str]:
    """Environment variable names reported missing by a settings error."""
    missing = []
    for item in error.errors():
        if item.get("type") == "missing" and item.get("loc"):
            missing.append(str(item["loc"][0]).upper())
    return missing


def require_settings() -> Settings:
    """
    Load settings or stop the process.

    Called once at application import. Missing or invalid required values
    are logged and the process exits with status 1.
    """
    try:
        return get_settings()
    except ValidationError as e:
        logger = logging.getLogger("menu_api")
        missing = missing_settings(e)
        if missing:
            logger.critical(f"Missing required environment variables: {', '.join(missing)}")
        else:
            logger.critical(f"Invalid configuration: {e}")
        logger.critical("Please check your .env file")
        raise SystemExit(1)


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(level: int = logging.INFO, debug: Optional[bool] = None) -> logging.Logger:
    """
    Configure application-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        debug: Force debug logging; read from settings when omitted

    Returns:
        Configured application logger
    """
    if debug is None:
        debug = get_settings().debug

    if debug:
        level = logging.DEBUG

    log_format = "%(asctime)s │ %(levelname)-8s │ %(name)-25s │ %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.WARNING)

    return logging.getLogger("menu_api")
