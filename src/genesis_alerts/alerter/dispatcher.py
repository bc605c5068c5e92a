"""Notification dispatcher for multi-channel delivery."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

from genesis_alerts.alerter.idempotency import (
    DEFAULT_MAX_IDEMPOTENCY_CACHE,
    IdempotencyCache,
    generate_idempotency_key,
)
from genesis_alerts.alerter.models import ChannelOutcome, ChannelTestResult, DispatchResult
from genesis_alerts.alerter.retry import RetryEngine

if TYPE_CHECKING:
    from genesis_alerts.alerter.models import Alert
    from genesis_alerts.alerter.retry import DeadLetterEntry

logger = logging.getLogger(__name__)


class AlertChannel(Protocol):
    """Protocol for alert delivery channels."""

    name: str
    enabled: bool

    async def send(self, alert: Alert) -> dict[str, Any]:
        """Deliver the alert. Raises on failure."""
        ...

    async def test(self) -> ChannelTestResult:
        """Lightweight connectivity/credential check."""
        ...


class NotificationDispatcher:
    """Dispatcher for sending alerts to multiple channels.

    Every enabled channel receives the alert concurrently, each through the
    retry engine, so one failing channel never holds up or fails the others.
    Logically identical alerts are delivered once per process: the alert's
    idempotency key is marked as seen after every dispatch, including
    dispatches where all channels failed.
    """

    def __init__(
        self,
        channels: Mapping[str, AlertChannel],
        *,
        retry_engine: RetryEngine | None = None,
        idempotency_cache: IdempotencyCache | None = None,
        max_idempotency_cache: int = DEFAULT_MAX_IDEMPOTENCY_CACHE,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            channels: Channels keyed by name. The names are fixed for the
                lifetime of the dispatcher.
            retry_engine: Engine used for per-channel retries.
            idempotency_cache: Cache of already dispatched keys.
            max_idempotency_cache: Cache size when no cache is supplied.
        """
        self.channels: dict[str, AlertChannel] = dict(channels)
        self.retry_engine = retry_engine if retry_engine is not None else RetryEngine()
        self.idempotency_cache = (
            idempotency_cache
            if idempotency_cache is not None
            else IdempotencyCache(max_idempotency_cache)
        )

        # Keys whose dispatch is still awaiting channel results
        self._in_flight: set[str] = set()

    @property
    def channel_names(self) -> list[str]:
        """Names of all configured channels."""
        return list(self.channels)

    @property
    def enabled_channels(self) -> dict[str, AlertChannel]:
        """Configured channels that are enabled."""
        return {name: ch for name, ch in self.channels.items() if ch.enabled}

    def is_duplicate(self, alert: Alert) -> bool:
        """Return True if a dispatch of this alert would be served from the cache."""
        key = generate_idempotency_key(alert)
        return self.idempotency_cache.has(key) or key in self._in_flight

    async def _send_to_channel(
        self, name: str, channel: AlertChannel, alert: Alert
    ) -> tuple[str, ChannelOutcome]:
        """Send alert to a single channel through the retry engine."""
        outcome = await self.retry_engine.execute_with_retry(
            lambda: channel.send(alert),
            {"channel": name, "alert_id": alert.id},
        )

        if outcome.success:
            return (
                name,
                ChannelOutcome(success=True, data=outcome.result, attempts=outcome.attempts),
            )

        logger.error(f"Delivery to {name} failed for alert {alert.id}: {outcome.error}")
        return (
            name,
            ChannelOutcome(success=False, error=str(outcome.error), attempts=outcome.attempts),
        )

    async def dispatch(self, alert: Alert) -> DispatchResult:
        """Dispatch alert to all enabled channels concurrently.

        Args:
            alert: Alert to deliver.

        Returns:
            DispatchResult with per-channel outcomes, or a cached result if
            the alert was already dispatched. An alert whose key is still
            being dispatched by a concurrent call is also reported as cached,
            without waiting for that call to finish.

        Raises:
            IdempotencyKeyError: If the alert has no identity to key on.
        """
        idempotency_key = generate_idempotency_key(alert)

        if self.idempotency_cache.has(idempotency_key) or idempotency_key in self._in_flight:
            logger.debug(f"Duplicate alert {alert.id} ({idempotency_key}), skipping")
            return DispatchResult(
                alert_id=alert.id,
                idempotency_key=idempotency_key,
                cached=True,
            )

        enabled = self.enabled_channels
        if not enabled:
            logger.warning("No enabled channels configured for dispatch")

        self._in_flight.add(idempotency_key)
        try:
            tasks = [self._send_to_channel(name, ch, alert) for name, ch in enabled.items()]
            results = await asyncio.gather(*tasks)
        finally:
            self._in_flight.discard(idempotency_key)

        # Marked even when every channel failed
        self.idempotency_cache.mark_seen(idempotency_key)

        result = DispatchResult(
            alert_id=alert.id,
            idempotency_key=idempotency_key,
            channels=dict(results),
        )

        logger.info(
            f"Dispatch of {alert.id} complete: "
            f"{result.success_count}/{len(result.channels)} succeeded"
        )

        return result

    async def dispatch_batch(self, alerts: list[Alert]) -> list[DispatchResult]:
        """Dispatch multiple alerts sequentially.

        Args:
            alerts: Alerts to send.

        Returns:
            List of DispatchResult for each alert.
        """
        results = []
        for alert in alerts:
            result = await self.dispatch(alert)
            results.append(result)
        return results

    async def _test_channel(
        self, name: str, channel: AlertChannel
    ) -> tuple[str, ChannelTestResult]:
        try:
            return (name, await channel.test())
        except Exception as e:
            return (name, ChannelTestResult(success=False, error=str(e)))

    async def test_channels(self) -> dict[str, ChannelTestResult]:
        """Run the connectivity check of every enabled channel.

        Disabled channels are reported as skipped.

        Returns:
            Test result per channel name, in configuration order.
        """
        tasks = [self._test_channel(name, ch) for name, ch in self.enabled_channels.items()]
        tested = dict(await asyncio.gather(*tasks))

        report: dict[str, ChannelTestResult] = {}
        for name in self.channels:
            result = tested.get(name, ChannelTestResult(success=False, skipped=True))
            report[name] = result

            if result.skipped:
                logger.info(f"Channel {name}: skipped (disabled)")
            elif result.success:
                logger.info(f"Channel {name}: passed")
            else:
                logger.warning(f"Channel {name}: failed - {result.error}")

        return report

    def get_dead_letter_queue(self) -> list[DeadLetterEntry]:
        """Return a snapshot of deliveries that exhausted their retries."""
        return self.retry_engine.get_dead_letter_queue()

    def clear_dead_letter_queue(self) -> list[DeadLetterEntry]:
        """Clear the dead letter queue, returning the removed entries."""
        return self.retry_engine.clear_dead_letter_queue()
