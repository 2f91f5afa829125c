"""Application configuration settings."""
from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Environments where schema bootstrap and an unsigned callback endpoint are tolerated.
DEV_ENVS = {"dev", "local", "test"}


class Settings(BaseSettings):
    """Environment configuration for the Pi callback receiver."""

    app_env: str = Field(default="dev", validation_alias=AliasChoices("APP_ENV", "NODE_ENV"))
    database_url: str | None = None
    pi_callback_secret: str | None = None

    STORE_TIMEOUT_SECONDS: float = 3.0
    MAX_BODY_BYTES: int = 100 * 1024
    CORS_ORIGIN: str = "*"
    RATE_LIMIT: str = "60/minute"
    RATE_LIMIT_ENABLED: bool = True
    STATIC_DIR: str = "static"
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: str | None = None
    PROMETHEUS_ENABLED: bool = True
    ALLOW_DB_CREATE_ALL: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("pi_callback_secret", "database_url", "SENTRY_DSN")
    @classmethod
    def _strip_empty(cls, value: str | None) -> str | None:
        """Normalise blank values to ``None`` so "set but empty" means unset."""

        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGIN.split(",") if origin.strip()]

    @property
    def is_dev(self) -> bool:
        return self.app_env.lower() in DEV_ENVS


class AppInfo(BaseModel):
    name: str = "picallback"
    version: str = "0.1.0"


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()


__all__ = ["DEV_ENVS", "Settings", "AppInfo", "get_settings"]
