"""AJaaS Configuration - environment-driven settings."""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Settings(BaseSettings):
    """Runtime settings, read from the environment and an optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = "AJaaS Scheduler"

    # Logging
    log_level: str = "INFO"
    log_format: Literal["structured", "dev"] = "dev"

    # Storage: postgres:// URLs select the pooled backend, anything else is SQLite
    database_url: str = Field(
        default=":memory:",
        validation_alias=AliasChoices("DATABASE_URL", "DB_PATH"),
    )
    data_encryption_key: str = ""
    db_pool_size: int = 10
    db_pool_timeout: float = 5.0

    # Scheduler
    schedule_poll_interval_seconds: float = 60.0
    revocation_retention_seconds: int = 30 * 24 * 60 * 60
    revocation_cleanup_cadence_seconds: float = 6 * 60 * 60

    # Email delivery (console delivery is used when smtp_host is empty)
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_secure: bool = False
    smtp_user: str = ""
    smtp_pass: str = ""
    smtp_from: str = "ajaas@localhost"

    # Webhook delivery
    webhook_timeout_seconds: float = 10.0

    # Messages
    tough_love_enabled: bool = True

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"LOG_LEVEL must be one of {', '.join(sorted(VALID_LOG_LEVELS))}, got {v!r}"
            )
        return level

    @field_validator(
        "schedule_poll_interval_seconds",
        "revocation_retention_seconds",
        "revocation_cleanup_cadence_seconds",
        "db_pool_timeout",
        "webhook_timeout_seconds",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
