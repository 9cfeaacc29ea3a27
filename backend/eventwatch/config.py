"""Configuration management for the event watcher."""

from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings

# Level names uvicorn and logging both accept, plus common aliases
LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
LOG_LEVEL_ALIASES = {"WARN": "WARNING", "FATAL": "CRITICAL"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Chat sink
    webhook_url: str = Field(
        default="", validation_alias=AliasChoices("webhook_url", "slack_webhook_url")
    )
    webhook_timeout_seconds: int = 10

    # Console links in notifications
    console_base_url: str = Field(
        default="",
        validation_alias=AliasChoices("console_base_url", "openshift_console_url"),
    )

    # Cluster access (empty = in-cluster service account)
    kubeconfig_path: str = ""
    watch_timeout_seconds: int = 0

    # Dedup and reconnect
    dedup_ttl_seconds: float = 120.0
    reconnect_backoff_seconds: float = 5.0
    reconnect_backoff_max_seconds: float = 60.0

    # App
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        level = LOG_LEVEL_ALIASES.get(level, level)
        if level not in LOG_LEVELS:
            raise ValueError(
                f"Unknown log level {value!r}, expected one of {sorted(LOG_LEVELS)}"
            )
        return level

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
