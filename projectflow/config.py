"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./projectflow.db",
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    secret_key: str = Field(
        default="change-me",
        description="Secret key used to verify the JWT tokens issued by the auth service",
        min_length=1,
    )
    app_timezone: str = Field(
        default="UTC",
        description="Timezone used to store and present timestamps",
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Origins allowed to call the API from a browser",
    )
    log_level: str = Field(default="INFO", description="Root logging level")
    sendgrid_api_key: str | None = Field(
        default=None,
        description="SendGrid API key used for sending notification emails via the REST API",
    )
    sendgrid_sender: str | None = Field(
        default=None,
        description="Email address that will appear as the sender of notification emails",
        min_length=3,
    )
    push_gateway_url: str | None = Field(
        default=None,
        description="HTTP endpoint of the push gateway; push delivery is disabled when unset",
    )
    push_gateway_token: str | None = Field(
        default=None,
        description="Bearer token presented to the push gateway",
    )
    channel_send_timeout_seconds: float = Field(
        default=10.0,
        description="Upper bound for a single channel delivery attempt",
        gt=0,
    )
    bulk_concurrency_limit: int = Field(
        default=10,
        description="Maximum number of recipients processed concurrently during fan-out",
        gt=0,
    )
    notification_retention_days: int = Field(
        default=30,
        description="Default age in days after which notifications are purged",
        ge=0,
    )
    notification_retention_policy: str = Field(
        default="all",
        description="Which expired notifications are purged: 'all' or 'read_only'",
        pattern=r"^(all|read_only)$",
    )
    scheduled_batch_size: int = Field(
        default=50,
        description="Maximum number of pending notifications delivered per sweep",
        gt=0,
    )

    @model_validator(mode="after")
    def _validate_sendgrid_pair(self) -> "Settings":
        if bool(self.sendgrid_api_key) ^ bool(self.sendgrid_sender):
            raise ValueError(
                "SENDGRID_API_KEY and SENDGRID_SENDER must both be provided to enable email"
            )
        if self.sendgrid_sender and "@" not in self.sendgrid_sender:
            raise ValueError("SENDGRID_SENDER must be a valid email address")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
