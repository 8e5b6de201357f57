"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

Everything here is read once at process start. Window length and tier tables
are validated when the gate components are built (see
``admission_gate.core.app_factory``) so a bad value fails startup with a
ConfigurationError instead of surfacing at request time.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first.
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=False)


DEFAULT_TIER_QUOTAS: dict[str, int] = {
    "free": 10,
    "premium": 100,
    "enterprise": 1000,
}


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    BaseSettings reads its fields from the environment; static type checkers
    still treat required fields as constructor arguments, hence the ignore.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_store_settings() -> "StoreSettings":
    return StoreSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class AppSettings(BaseSettings):
    """Rate limiting policy and HTTP boundary behaviour."""

    window_seconds: int = Field(
        60,
        description="Fixed window length in seconds (must be positive)",
    )
    tier_quotas: dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_TIER_QUOTAS),
        description="JSON object mapping tier name to requests allowed per window",
    )
    tier_credentials: dict[str, str] = Field(
        default_factory=dict,
        description="JSON object mapping caller credential to tier name",
    )
    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-credential rate limiting",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers on decided responses",
    )
    debug_endpoints: bool = Field(
        False,
        description="Expose read-only /debug/counters introspection",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class StoreSettings(BaseSettings):
    """Shared counting store configuration."""

    backend: str = Field(
        "redis",
        description="Counter store backend: redis (shared) or memory (single instance)",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL",
    )
    key_prefix: str = Field(
        "rl:",
        description="Namespace prefix for counter keys",
    )
    timeout_seconds: float = Field(
        0.25,
        description="Deadline for one counter round-trip before failing open",
        gt=0,
    )
    connect_timeout_seconds: float = Field(
        1.0,
        description="Socket connect timeout for the Redis client",
        gt=0,
    )
    max_retries: int = Field(
        10,
        description="Upper bound on reconnect attempts; trimmed to fit STORE_TIMEOUT_SECONDS",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="json or plain")
    output: str = Field("stdout", description="stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(0, description="Rotate file logs at this size (0 disables)")
    backup_count: int = Field(5, description="Rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    store: StoreSettings = Field(default_factory=_build_store_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
