"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - Settings are read once per process and never mutated afterwards
    - get_settings() is cached (lru_cache) — single instance per process
    - Invalid configuration surfaces as SettingsLoadError (fatal at startup)

Design Decisions:
    - Legacy env names (NODE_ENV, ORIGIN, CREDENTIALS) accepted through
      AliasChoices next to the explicit names
    - List-valued settings stored as comma-separated strings, split by properties
"""

import json
from functools import lru_cache

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ACCESS_LOG_FORMATS = ("combined", "common", "dev", "short", "tiny")


class SettingsLoadError(RuntimeError):
    """Raised when runtime settings cannot be loaded or validated."""


def _split_list(raw: str) -> list[str]:
    raw = raw.strip()
    if not raw:
        return []
    if raw.startswith("["):
        return [str(item).strip() for item in json.loads(raw) if str(item).strip()]
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=False, extra="ignore",
        populate_by_name=True,
    )

    # Runtime
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("environment", "node_env"),
    )
    host: str = "0.0.0.0"
    port: int = Field(default=2016, ge=1, le=65535)
    app_version: str = "UnknownVersion"
    api_prefix: str = "/v3"

    # Database
    database_url: str = "postgresql+asyncpg://streamgate:streamgate@db:5432/streamgate"

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting platforms hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10
    storage_connect_retries: int = Field(default=5, ge=0)
    storage_connect_base_delay_ms: int = Field(default=500, ge=0)
    storage_connect_max_delay_ms: int = Field(default=10_000, ge=0)
    storage_connect_deadline_seconds: float = Field(default=60.0, gt=0)

    # HTTP middleware
    access_log_format: str = "combined"
    cors_origins: str = Field(
        default="http://localhost:3000",
        validation_alias=AliasChoices("cors_origins", "origin"),
    )
    cors_credentials: bool = Field(
        default=True,
        validation_alias=AliasChoices("cors_credentials", "credentials"),
    )
    hpp_whitelist: str = ""
    gzip_minimum_size: int = Field(default=1024, ge=0)
    body_limit_bytes: int = Field(default=100 * 1024, gt=0)

    # Background jobs
    migrations_enabled: bool = True
    migration_max_retries: int = Field(default=2, ge=0)
    stream_enabled: bool = True
    stream_url: str = "http://localhost:9000/stream"
    stream_source_name: str = "tln"
    stream_read_timeout_seconds: float = Field(default=300.0, gt=0)
    stream_restart_base_delay_ms: int = Field(default=1000, ge=0)
    stream_restart_max_delay_ms: int = Field(default=60_000, ge=0)
    event_hub_queue_size: int = Field(default=100, ge=1)

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("access_log_format")
    @classmethod
    def check_access_log_format(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ACCESS_LOG_FORMATS:
            raise ValueError(
                f"access_log_format must be one of {', '.join(ACCESS_LOG_FORMATS)}",
            )
        return v

    @field_validator("api_prefix")
    @classmethod
    def check_api_prefix(cls, v: str) -> str:
        if not v.startswith("/") or v.endswith("/"):
            raise ValueError("api_prefix must start with '/' and must not end with '/'")
        return v

    @field_validator("cors_origins", "hpp_whitelist")
    @classmethod
    def check_list_setting(cls, v: str) -> str:
        try:
            _split_list(v)
        except json.JSONDecodeError as e:
            raise ValueError(f"must be a comma-separated list or a JSON list: {e.msg}")
        return v

    @property
    def allowed_origins(self) -> list[str]:
        return _split_list(self.cors_origins)

    @property
    def hpp_whitelisted_params(self) -> tuple[str, ...]:
        return tuple(_split_list(self.hpp_whitelist))


def load_settings(**overrides) -> Settings:
    """Build settings, mapping validation failures to SettingsLoadError."""
    try:
        return Settings(**overrides)
    except ValidationError as error:
        raise SettingsLoadError(
            f"Startup configuration validation failed. Details: {error}",
        ) from error


@lru_cache
def get_settings() -> Settings:
    return load_settings()
