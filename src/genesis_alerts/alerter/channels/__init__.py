"""Alert channel implementations for various transports."""

from genesis_alerts.alerter.channels.console import ConsoleChannel
from genesis_alerts.alerter.channels.errors import ChannelError, ChannelNotConfiguredError
from genesis_alerts.alerter.channels.telegram import TelegramChannel
from genesis_alerts.alerter.channels.webhook import WebhookChannel

__all__ = [
    "ChannelError",
    "ChannelNotConfiguredError",
    "ConsoleChannel",
    "TelegramChannel",
    "WebhookChannel",
]
