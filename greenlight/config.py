from typing import Final

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DB_TIMEOUT_SECONDS,
    DEFAULT_PORT,
    LIMITER_BURST,
    LIMITER_IDLE_SECONDS,
    LIMITER_RPS,
    LIMITER_SWEEP_INTERVAL,
)
from .domain.constants import DEFAULT_LANGUAGE


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env files."""

    # Server configuration
    debug: bool = Field(default=True, description="Enable debug mode")
    env: str = Field(
        default="development",
        description="Operating environment (development|staging|production)",
    )
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, description="Server port")

    # Database configuration
    database_url: str = Field(
        default="sqlite:///./greenlight.db", description="Database connection URL"
    )
    db_timeout_seconds: float = Field(
        default=DB_TIMEOUT_SECONDS,
        gt=0,
        description="Upper bound for a single blocking database call",
    )
    atomic_translatable_inserts: bool = Field(
        default=True,
        description="Create parent row and first translation in one transaction",
    )

    # Application configuration
    app_name: str = Field(default="Greenlight", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    default_language: str = Field(
        default=DEFAULT_LANGUAGE, description="Language used without Accept-Language"
    )

    # Rate limiter configuration
    limiter_enabled: bool = Field(default=True, description="Enable rate limiting")
    limiter_rps: float = Field(
        default=LIMITER_RPS, gt=0, description="Token refill rate per second"
    )
    limiter_burst: int = Field(
        default=LIMITER_BURST, ge=1, description="Token bucket capacity"
    )
    limiter_idle_seconds: float = Field(
        default=LIMITER_IDLE_SECONDS,
        gt=0,
        description="Forget clients idle for longer than this",
    )
    limiter_sweep_interval: float = Field(
        default=LIMITER_SWEEP_INTERVAL,
        gt=0,
        description="Seconds between idle client sweeps",
    )
    trusted_proxies: list[str] = Field(
        default_factory=list,
        description="Peer addresses allowed to set X-Forwarded-For / X-Real-IP",
    )

    # Token configuration
    activation_token_ttl_hours: int = Field(default=72, ge=1)
    authentication_token_ttl_hours: int = Field(default=24, ge=1)

    # Logging configuration
    log_to_file: bool = Field(
        default=False, description="Force logging to file even in debug mode"
    )

    # Pydantic Settings configuration
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env == "production"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_sqlite(self) -> bool:
        """Check whether the configured store is SQLite."""
        return self.database_url.startswith("sqlite")


# Global settings instance
settings: Final = Settings()
