"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import AliasChoices, Field
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


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    session_ttl_hours: int = Field(
        24,
        description="Lifetime of a login bearer token in hours",
        ge=1,
    )
    bcrypt_rounds: int = Field(
        12,
        description="bcrypt cost factor used when hashing passwords",
        ge=4,
        le=16,
    )
    token_ttl_days: int = Field(
        30,
        description="Days a public order link stays valid after creation",
        ge=1,
    )
    order_number_max_retries: int = Field(
        5,
        description="Regeneration attempts when an order number collides",
        ge=0,
    )
    default_page_size: int = Field(
        10,
        description="Default page size for order listings",
        ge=1,
    )
    max_page_size: int = Field(
        100,
        description="Upper bound accepted for the `limit` query parameter",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class DatabaseSettings(BaseSettings):
    """Relational store configuration."""

    url: str = Field(
        "sqlite:///./orders.db",
        description="SQLAlchemy database URL",
    )
    echo: bool = Field(
        False,
        description="Log every SQL statement (development only)",
    )

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Thresholds for the named in-memory rate limiters.

    Each limiter has a window, a maximum number of requests inside that
    window and an optional block duration (0 disables blocking).
    """

    enabled: bool = Field(True, description="Enable rate limiting")
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )
    sweep_interval_seconds: int = Field(
        300,
        description="How often expired limiter entries are purged",
        ge=1,
    )

    api_window_seconds: int = Field(60, ge=1)
    api_max_requests: int = Field(100, ge=1)
    api_block_seconds: int = Field(0, ge=0)

    auth_window_seconds: int = Field(60, ge=1)
    auth_max_requests: int = Field(5, ge=1)
    auth_block_seconds: int = Field(30 * 60, ge=0)

    signup_window_seconds: int = Field(60, ge=1)
    signup_max_requests: int = Field(3, ge=1)
    signup_block_seconds: int = Field(60 * 60, ge=0)

    verify_window_seconds: int = Field(60, ge=1)
    verify_max_requests: int = Field(5, ge=1)
    verify_block_seconds: int = Field(30 * 60, ge=0)

    order_create_window_seconds: int = Field(60, ge=1)
    order_create_max_requests: int = Field(20, ge=1)
    order_create_block_seconds: int = Field(0, ge=0)

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class HolidaySettings(BaseSettings):
    """Public holiday API (data.go.kr special-day service) configuration."""

    api_key: str | None = Field(
        None,
        description="data.go.kr service key; when unset the endpoint returns fallback data",
        validation_alias=AliasChoices("HOLIDAY_API_KEY", "PUBLIC_DATA_API_KEY"),
    )
    base_url: str = Field(
        "http://apis.data.go.kr/B090041/openapi/service/SpcdeInfoService/getRestDeInfo",
        description="Rest-day lookup endpoint",
    )
    timeout_seconds: float = Field(10.0, description="Request timeout in seconds")
    cache_ttl_seconds: int = Field(
        24 * 60 * 60,
        description="How long a year/month lookup stays cached",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="HOLIDAY_",
        case_sensitive=False,
        populate_by_name=True,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="'json' or 'plain'")
    output: str = Field("stdout", description="'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(10 * 1024 * 1024, description="Rotate after this size (0 disables)")
    backup_count: int = Field(5, description="Rotated files to keep")
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
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    db: DatabaseSettings = Field(default_factory=DatabaseSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    holidays: HolidaySettings = Field(default_factory=HolidaySettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
