"""HTTP webhook channel implementation."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import httpx

from genesis_alerts import __version__
from genesis_alerts.alerter.channels.errors import ChannelError, ChannelNotConfiguredError
from genesis_alerts.alerter.models import ChannelTestResult

if TYPE_CHECKING:
    from genesis_alerts.alerter.models import Alert

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Genesis-Signature"
USER_AGENT = f"Genesis-Alert-System/{__version__}"


def sign_payload(body: bytes, secret: str) -> str:
    """Return the hex HMAC-SHA256 signature of a request body."""
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


class WebhookChannel:
    """Posts alerts as JSON to an HTTP endpoint.

    When a secret is configured, each request carries an HMAC-SHA256
    signature of the exact body bytes in the ``X-Genesis-Signature`` header.
    """

    def __init__(
        self,
        url: str | None,
        *,
        secret: str | None = None,
        timeout: float = 10.0,
        test_timeout: float = 5.0,
    ) -> None:
        """Initialize webhook channel.

        Args:
            url: Endpoint receiving the alerts.
            secret: Shared secret for request signing.
            timeout: HTTP timeout for alert delivery in seconds.
            test_timeout: HTTP timeout for connectivity checks in seconds.
        """
        self.url = url
        self.secret = secret
        self.timeout = timeout
        self.test_timeout = test_timeout
        self.name = "webhook"
        self.enabled = bool(url)

        if self.enabled:
            logger.info(f"Webhook channel initialized: {url}")
        else:
            logger.info("Webhook channel disabled (no URL configured)")

    def _build_request(self, payload: dict[str, Any]) -> tuple[bytes, dict[str, str]]:
        body = json.dumps(payload, separators=(",", ":")).encode()
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }
        if self.secret:
            headers[SIGNATURE_HEADER] = sign_payload(body, self.secret)
        return body, headers

    async def _post(self, payload: dict[str, Any], timeout: float) -> httpx.Response:
        if self.url is None:
            raise ChannelNotConfiguredError(self.name)
        body, headers = self._build_request(payload)

        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.post(self.url, content=body, headers=headers)
        except httpx.TimeoutException as e:
            raise ChannelError(self.name, f"Webhook timeout: {e}") from e
        except httpx.HTTPError as e:
            raise ChannelError(self.name, f"Webhook error: {e}") from e

        if not 200 <= response.status_code < 300:
            raise ChannelError(
                self.name, f"Webhook failed: {response.status_code} {response.text}"
            )
        return response

    async def send(self, alert: Alert) -> dict[str, Any]:
        """Send alert to the webhook.

        Args:
            alert: Alert to deliver.

        Returns:
            Delivery details including the HTTP status code.

        Raises:
            ChannelNotConfiguredError: If no URL is configured.
            ChannelError: On transport errors or non-2xx responses.
        """
        if not self.enabled:
            raise ChannelNotConfiguredError(self.name)

        response = await self._post(alert.to_dict(), self.timeout)
        logger.info("Webhook alert delivered successfully")
        return {
            "channel": self.name,
            "status": response.status_code,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    async def test(self) -> ChannelTestResult:
        """Post a test payload to the endpoint."""
        if not self.enabled:
            return ChannelTestResult(success=False, error="Not configured")

        payload = {
            "type": "test",
            "message": "Genesis Alert System - Connection Test",
            "timestamp": int(time.time()),
        }
        try:
            await self._post(payload, self.test_timeout)
        except ChannelError as e:
            return ChannelTestResult(success=False, error=str(e))
        return ChannelTestResult(success=True)
