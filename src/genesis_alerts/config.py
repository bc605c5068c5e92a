"""Configuration management service with Pydantic Settings.

This module provides centralized configuration management for the
Genesis alert dispatcher, loading and validating environment variables
at startup.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TelegramSettings(BaseSettings):
    """Telegram notification settings."""

    model_config = SettingsConfigDict(env_prefix="TELEGRAM_")

    bot_token: SecretStr | None = Field(
        default=None,
        alias="TELEGRAM_BOT_TOKEN",
        description="Telegram bot token",
    )
    chat_id: str | None = Field(
        default=None,
        alias="TELEGRAM_CHAT_ID",
        description="Telegram chat ID for alerts",
    )

    @property
    def enabled(self) -> bool:
        """Check if Telegram notifications are enabled."""
        return self.bot_token is not None and self.chat_id is not None


class WebhookSettings(BaseSettings):
    """HTTP webhook notification settings."""

    model_config = SettingsConfigDict(env_prefix="WEBHOOK_")

    url: str | None = Field(
        default=None,
        alias="WEBHOOK_URL",
        description="Endpoint receiving alert payloads",
    )
    secret: SecretStr | None = Field(
        default=None,
        alias="WEBHOOK_SECRET",
        description="Shared secret for HMAC request signing",
    )
    timeout: float = Field(
        default=10.0,
        alias="WEBHOOK_TIMEOUT",
        description="HTTP timeout in seconds",
        gt=0,
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        """Validate webhook URL format."""
        if v is None:
            return v
        if not v.startswith(("http://", "https://")):
            raise ValueError("WEBHOOK_URL must be an HTTP(S) endpoint")
        return v

    @property
    def enabled(self) -> bool:
        """Check if webhook notifications are enabled."""
        return self.url is not None


class ConsoleSettings(BaseSettings):
    """Console output settings."""

    model_config = SettingsConfigDict(env_prefix="CONSOLE_")

    enabled: bool = Field(
        default=True,
        alias="CONSOLE_ENABLED",
        description="Print alerts to stdout",
    )


class RetrySettings(BaseSettings):
    """Per-channel retry settings."""

    model_config = SettingsConfigDict(env_prefix="RETRY_")

    max_retries: int = Field(
        default=3,
        alias="RETRY_MAX_RETRIES",
        description="Retries after the initial delivery attempt",
        ge=0,
    )
    base_delay: float = Field(
        default=1.0,
        alias="RETRY_BASE_DELAY",
        description="Delay in seconds before the first retry",
        ge=0,
    )
    max_delay: float = Field(
        default=30.0,
        alias="RETRY_MAX_DELAY",
        description="Upper bound in seconds for a single retry delay",
        ge=0,
    )

    @model_validator(mode="after")
    def validate_delays(self) -> RetrySettings:
        """Ensure the delay cap is not below the base delay."""
        if self.max_delay < self.base_delay:
            raise ValueError("RETRY_MAX_DELAY must be >= RETRY_BASE_DELAY")
        return self


class DispatcherSettings(BaseSettings):
    """Dispatcher settings."""

    model_config = SettingsConfigDict(env_prefix="")

    max_idempotency_cache: int = Field(
        default=10000,
        alias="MAX_IDEMPOTENCY_CACHE",
        description="Number of dispatched alert keys remembered for deduplication",
        ge=1,
    )


class Settings(BaseSettings):
    """Main application settings.

    Loads configuration from environment variables with support for
    .env files via python-dotenv.

    Example:
        ```python
        from genesis_alerts.config import get_settings

        settings = get_settings()
        print(settings.retry.max_retries)
        print(settings.log_level)
        ```
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Nested configuration groups
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)
    console: ConsoleSettings = Field(default_factory=ConsoleSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    dispatcher: DispatcherSettings = Field(default_factory=DispatcherSettings)

    # Application settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )
    dry_run: bool = Field(
        default=False,
        alias="DRY_RUN",
        description="Only print alerts to the console",
    )

    def get_logging_level(self) -> int:
        """Get the numeric logging level."""
        level: int = getattr(logging, self.log_level)
        return level

    def redacted_summary(self) -> dict[str, str]:
        """Get a summary of settings with secrets redacted.

        Returns:
            Dictionary of settings with sensitive values masked.
        """
        return {
            "telegram_enabled": str(self.telegram.enabled),
            "telegram_bot_token": "(set)" if self.telegram.bot_token else "(not set)",
            "telegram_chat_id": self.telegram.chat_id or "(not set)",
            "webhook_enabled": str(self.webhook.enabled),
            "webhook_url": self._redact_url(self.webhook.url) if self.webhook.url else "(not set)",
            "webhook_secret": "(set)" if self.webhook.secret else "(not set)",
            "console_enabled": str(self.console.enabled),
            "retry_max_retries": str(self.retry.max_retries),
            "retry_base_delay": str(self.retry.base_delay),
            "retry_max_delay": str(self.retry.max_delay),
            "max_idempotency_cache": str(self.dispatcher.max_idempotency_cache),
            "log_level": self.log_level,
            "dry_run": str(self.dry_run),
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact password from URL if present."""
        if "@" in url and "://" in url:
            protocol_end = url.index("://") + 3
            at_pos = url.index("@")
            creds_part = url[protocol_end:at_pos]
            if ":" in creds_part:
                username = creds_part.split(":")[0]
                return f"{url[:protocol_end]}{username}:***@{url[at_pos + 1 :]}"
        return url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Uses LRU cache to ensure settings are loaded only once and
    reused across the application.

    Returns:
        The Settings instance.

    Raises:
        ValidationError: If environment variables have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
