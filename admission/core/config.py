"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


DEFAULT_REJECTION_MESSAGE = "Too many requests from this IP, please try again later."

FIFTEEN_MINUTES_MS = 15 * 60 * 1000
ONE_MINUTE_MS = 60 * 1000


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Static type checkers treat BaseSettings fields as constructor arguments,
    which is not how BaseSettings is intended to be used.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


def _build_admission_settings() -> "AdmissionSettings":
    return AdmissionSettings()  # type: ignore[call-arg]


class RuleSettings(BaseModel):
    """One admission rule as supplied through configuration."""

    name: str = Field(..., min_length=1, description="Unique rule identifier")
    scope_pattern: str = Field(
        "",
        description="Path prefix the rule applies to (empty matches every path)",
    )
    window_ms: int = Field(..., gt=0, description="Fixed window size in milliseconds")
    max_requests: int = Field(..., gt=0, description="Requests admitted per key per window")
    rejection_message: str = Field(
        DEFAULT_REJECTION_MESSAGE,
        description="Message returned to throttled callers",
    )


def _default_rules() -> list[RuleSettings]:
    return [
        RuleSettings(
            name="auth-login",
            scope_pattern="/api/v1/auth/login",
            window_ms=FIFTEEN_MINUTES_MS,
            max_requests=5,
        ),
        RuleSettings(
            name="auth-register",
            scope_pattern="/api/v1/auth/register",
            window_ms=FIFTEEN_MINUTES_MS,
            max_requests=5,
        ),
        RuleSettings(
            name="payment",
            scope_pattern="/api/v1/payment/",
            window_ms=ONE_MINUTE_MS,
            max_requests=3,
        ),
        RuleSettings(
            name="api",
            scope_pattern="/api/v1/",
            window_ms=ONE_MINUTE_MS,
            max_requests=60,
        ),
    ]


def _default_catch_all() -> RuleSettings:
    return RuleSettings(name="default", window_ms=FIFTEEN_MINUTES_MS, max_requests=100)


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    title: str = Field(
        "Storefront Admission API",
        description="Title shown in the OpenAPI docs",
    )
    host: str = Field("127.0.0.1", description="Bind address for the uvicorn server")
    port: int = Field(8000, description="Bind port for the uvicorn server", ge=1, le=65535)
    forwarded_allow_ips: str | None = Field(
        None,
        description=(
            "Comma-separated proxy addresses trusted for X-Forwarded-For; unset falls "
            "back to uvicorn (FORWARDED_ALLOW_IPS env, else 127.0.0.1)"
        ),
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Number of rotated log files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header carrying the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class AdmissionSettings(BaseSettings):
    """Rate limiting / admission control configuration."""

    enabled: bool = Field(
        True,
        description="Enable admission control for non-exempt paths",
    )
    include_headers: bool = Field(
        True,
        description="Include RateLimit-* headers on admitted and throttled responses",
    )
    shard_count: int = Field(
        64,
        description="Number of independently locked counter shards",
        ge=1,
    )
    sweep_interval_seconds: float = Field(
        60.0,
        description="Interval between stale-counter sweeps",
        gt=0,
    )
    sweep_age_factor: float = Field(
        2.0,
        description="Counters older than this many rule windows are swept",
        ge=1,
    )
    exempt_paths: str = Field(
        "/health",
        description="Comma-separated paths that bypass admission control",
    )
    user_id_header: str | None = Field(
        None,
        description="Optional header whose value is combined with the client IP in the key",
    )
    rules: list[RuleSettings] = Field(
        default_factory=_default_rules,
        description="Scoped rules (JSON list), matched by longest prefix",
    )
    default_rule: RuleSettings = Field(
        default_factory=_default_catch_all,
        description="Catch-all rule used when no scoped rule matches (JSON object)",
    )

    model_config = SettingsConfigDict(
        env_prefix="ADMISSION_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)
    admission: AdmissionSettings = Field(default_factory=_build_admission_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
