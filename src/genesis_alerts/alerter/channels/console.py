"""Console channel implementation."""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TextIO

from genesis_alerts.alerter.channels.errors import ChannelNotConfiguredError
from genesis_alerts.alerter.models import ChannelTestResult

if TYPE_CHECKING:
    from genesis_alerts.alerter.models import Alert

logger = logging.getLogger(__name__)


class ConsoleChannel:
    """Writes alerts to a text stream, stdout by default."""

    def __init__(self, *, enabled: bool = True, stream: TextIO | None = None) -> None:
        """Initialize console channel.

        Args:
            enabled: Whether the channel takes part in dispatch.
            stream: Stream to write to. Resolved at send time when None so
                redirected stdout is honoured.
        """
        self.enabled = enabled
        self.name = "console"
        self._stream = stream
        self.sent_count = 0

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    async def send(self, alert: Alert) -> dict[str, Any]:
        """Print the alert summary.

        Raises:
            ChannelNotConfiguredError: If the channel is disabled.
        """
        if not self.enabled:
            raise ChannelNotConfiguredError(self.name)

        self.sent_count += 1
        print(f"#{self.sent_count} {alert.summary()}", file=self.stream, flush=True)
        return {
            "channel": self.name,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    async def test(self) -> ChannelTestResult:
        """Console output needs no connectivity."""
        if not self.enabled:
            return ChannelTestResult(success=False, error="Not configured")
        return ChannelTestResult(success=True)
