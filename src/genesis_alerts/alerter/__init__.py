"""Alerting layer - Multi-channel notification delivery."""

from genesis_alerts.alerter.channels.console import ConsoleChannel
from genesis_alerts.alerter.channels.errors import ChannelError, ChannelNotConfiguredError
from genesis_alerts.alerter.channels.telegram import TelegramChannel
from genesis_alerts.alerter.channels.webhook import WebhookChannel
from genesis_alerts.alerter.dispatcher import AlertChannel, NotificationDispatcher
from genesis_alerts.alerter.idempotency import (
    IdempotencyCache,
    IdempotencyKeyError,
    generate_idempotency_key,
)
from genesis_alerts.alerter.models import (
    Alert,
    AlertEvent,
    AlertType,
    ChannelOutcome,
    ChannelTestResult,
    DispatchResult,
)
from genesis_alerts.alerter.retry import (
    DeadLetterEntry,
    DeadLetterQueue,
    RetryEngine,
    RetryOutcome,
)

__all__ = [
    "Alert",
    "AlertChannel",
    "AlertEvent",
    "AlertType",
    "ChannelError",
    "ChannelNotConfiguredError",
    "ChannelOutcome",
    "ChannelTestResult",
    "ConsoleChannel",
    "DeadLetterEntry",
    "DeadLetterQueue",
    "DispatchResult",
    "IdempotencyCache",
    "IdempotencyKeyError",
    "NotificationDispatcher",
    "RetryEngine",
    "RetryOutcome",
    "TelegramChannel",
    "WebhookChannel",
    "generate_idempotency_key",
]
