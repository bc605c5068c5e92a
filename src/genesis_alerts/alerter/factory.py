"""Builds channels and the dispatcher from application settings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from genesis_alerts.alerter.channels import ConsoleChannel, TelegramChannel, WebhookChannel
from genesis_alerts.alerter.dispatcher import AlertChannel, NotificationDispatcher
from genesis_alerts.alerter.retry import RetryEngine

if TYPE_CHECKING:
    from genesis_alerts.config import Settings

logger = logging.getLogger(__name__)


def create_channels(settings: Settings, *, dry_run: bool = False) -> dict[str, AlertChannel]:
    """Create every known channel, enabled or not.

    In dry-run mode only the console channel is enabled.

    Args:
        settings: Application settings.
        dry_run: Disable all channels except the console.

    Returns:
        Channels keyed by name.
    """
    telegram_token = settings.telegram.bot_token
    webhook_secret = settings.webhook.secret

    channels: dict[str, AlertChannel] = {
        "console": ConsoleChannel(enabled=settings.console.enabled or dry_run),
        "telegram": TelegramChannel(
            telegram_token.get_secret_value() if telegram_token else None,
            settings.telegram.chat_id,
        ),
        "webhook": WebhookChannel(
            settings.webhook.url,
            secret=webhook_secret.get_secret_value() if webhook_secret else None,
            timeout=settings.webhook.timeout,
        ),
    }

    if dry_run:
        for name, channel in channels.items():
            if name != "console" and channel.enabled:
                logger.info(f"Dry run: disabling {name} channel")
                channel.enabled = False

    return channels


def create_dispatcher(settings: Settings, *, dry_run: bool = False) -> NotificationDispatcher:
    """Create a dispatcher wired with channels and a retry engine from settings."""
    retry_engine = RetryEngine(
        max_retries=settings.retry.max_retries,
        base_delay=settings.retry.base_delay,
        max_delay=settings.retry.max_delay,
    )
    return NotificationDispatcher(
        create_channels(settings, dry_run=dry_run),
        retry_engine=retry_engine,
        max_idempotency_cache=settings.dispatcher.max_idempotency_cache,
    )
