from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    portal_username: str = Field(..., alias="BTW_USERNAME")
    portal_password: str = Field(..., alias="BTW_PASSWORD")
    portal_base_url: str = Field(
        default="https://portal.biotechware.com", alias="PORTAL_BASE_URL"
    )
    portal_timeout_seconds: float = Field(
        default=30.0, alias="PORTAL_TIMEOUT_SECONDS", ge=1.0, le=300.0
    )
    portal_max_parallel_requests: int = Field(
        default=10, alias="PORTAL_MAX_PARALLEL_REQUESTS", ge=1, le=50
    )
    telegram_bot_token: str | None = Field(default=None, alias="TG_TOKEN_RESUMES")
    telegram_chat_id: str | None = Field(default=None, alias="TG_CHAT_ID_RESUMES")
    timezone: str = Field(default="Europe/Rome", alias="TIMEZONE")
    tax_rate: float = Field(default=0.2, alias="TAX_RATE", ge=0.0, le=1.0)

    # Scheduling
    billing_report_interval_hours: int = Field(
        default=3, alias="BILLING_REPORT_INTERVAL_HOURS", ge=1
    )
    unreported_check_interval_minutes: int = Field(
        default=30, alias="UNREPORTED_CHECK_INTERVAL_MINUTES", ge=1
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("portal_base_url", mode="before")
    @classmethod
    def normalize_portal_base_url(cls, value: str) -> str:
        return str(value).rstrip("/")

    @field_validator("telegram_bot_token", "telegram_chat_id", mode="before")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return str(value).strip().upper() or "INFO"

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]


__all__ = ["Settings", "get_settings"]
