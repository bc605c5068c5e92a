"""Telegram Bot API channel implementation."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import httpx

from genesis_alerts.alerter.channels.errors import ChannelError, ChannelNotConfiguredError
from genesis_alerts.alerter.models import ChannelTestResult

if TYPE_CHECKING:
    from genesis_alerts.alerter.models import Alert

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org/bot{token}/{method}"


class TelegramChannel:
    """Telegram Bot API channel for sending alerts.

    The channel is enabled only when both the bot token and the chat ID are
    present. Delivery failures raise ``ChannelError``; retrying is left to
    the dispatcher's retry engine.
    """

    def __init__(
        self,
        bot_token: str | None,
        chat_id: str | None,
        *,
        rate_limit_per_minute: int = 20,
        timeout: float = 10.0,
    ) -> None:
        """Initialize Telegram channel.

        Args:
            bot_token: Telegram bot token.
            chat_id: Target chat/channel ID.
            rate_limit_per_minute: Maximum messages per minute.
            timeout: HTTP request timeout in seconds.
        """
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.rate_limit_per_minute = rate_limit_per_minute
        self.timeout = timeout
        self.name = "telegram"
        self.enabled = bool(bot_token and chat_id)

        # Rate limiting state
        self._request_times: list[float] = []
        self._lock = asyncio.Lock()

        if self.enabled:
            logger.info("Telegram channel initialized")
        else:
            logger.info("Telegram channel disabled (missing credentials)")

    def _api_url(self, method: str) -> str:
        return TELEGRAM_API_BASE.format(token=self.bot_token, method=method)

    async def _wait_for_rate_limit(self) -> None:
        """Wait if rate limit is exceeded."""
        async with self._lock:
            now = asyncio.get_running_loop().time()
            # Remove requests older than 1 minute
            self._request_times = [t for t in self._request_times if now - t < 60]

            if len(self._request_times) >= self.rate_limit_per_minute:
                wait_time = 60 - (now - self._request_times[0])
                if wait_time > 0:
                    logger.debug(f"Telegram rate limit hit, waiting {wait_time:.2f}s")
                    await asyncio.sleep(wait_time)

            self._request_times.append(asyncio.get_running_loop().time())

    async def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Call a Bot API method and return its ``result`` field."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self._api_url(method), json=payload)
                body = response.json()
        except httpx.TimeoutException as e:
            raise ChannelError(self.name, f"Telegram API timeout: {e}") from e
        except httpx.HTTPError as e:
            raise ChannelError(self.name, f"Telegram API error: {e}") from e
        except ValueError as e:
            raise ChannelError(self.name, f"Invalid Telegram API response: {e}") from e

        if not body.get("ok"):
            error_code = body.get("error_code", 0)
            description = body.get("description", "Unknown error")
            if error_code == 429:
                retry_after = body.get("parameters", {}).get("retry_after")
                logger.warning(f"Telegram rate limited, retry after {retry_after}s")
            raise ChannelError(self.name, f"Telegram API error: {error_code} - {description}")

        result: dict[str, Any] = body.get("result") or {}
        return result

    async def send(self, alert: Alert) -> dict[str, Any]:
        """Send alert to the Telegram chat.

        Args:
            alert: Alert to deliver.

        Returns:
            Delivery details including the Telegram message ID.

        Raises:
            ChannelNotConfiguredError: If credentials are missing.
            ChannelError: If the Bot API rejects the message or is unreachable.
        """
        if not self.enabled:
            raise ChannelNotConfiguredError(self.name)

        await self._wait_for_rate_limit()

        result = await self._call(
            "sendMessage",
            {
                "chat_id": self.chat_id,
                "text": alert.summary(),
                "disable_web_page_preview": False,
            },
        )
        logger.info("Telegram alert delivered successfully")
        return {
            "channel": self.name,
            "message_id": result.get("message_id"),
            "timestamp": datetime.now(UTC).isoformat(),
        }

    async def test(self) -> ChannelTestResult:
        """Check the bot token with ``getMe``."""
        if not self.enabled:
            return ChannelTestResult(success=False, error="Not configured")

        try:
            await self._call("getMe", {})
        except ChannelError as e:
            return ChannelTestResult(success=False, error=str(e))
        return ChannelTestResult(success=True)
