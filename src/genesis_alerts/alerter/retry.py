"""Retry engine with exponential backoff and a dead letter queue."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

logger = logging.getLogger(__name__)

# Constants
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0
DEFAULT_MAX_DELAY = 30.0


@dataclass(frozen=True)
class RetryOutcome:
    """Result of running an operation through the retry engine.

    Attributes:
        success: Whether any attempt succeeded.
        result: Return value of the successful attempt.
        error: Last exception raised when every attempt failed.
        attempts: Number of attempts made.
    """

    success: bool
    attempts: int
    result: Any = None
    error: Exception | None = None


@dataclass(frozen=True)
class DeadLetterEntry:
    """An operation that exhausted its retries.

    Attributes:
        context: Caller-supplied description of the operation (read-only).
        error: Message of the last error.
        error_type: Class name of the last error.
        attempts: Number of attempts made.
        timestamp: When the operation was given up on.
    """

    context: Mapping[str, Any]
    error: str
    error_type: str
    attempts: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "context": dict(self.context),
            "error": self.error,
            "error_type": self.error_type,
            "attempts": self.attempts,
            "timestamp": self.timestamp.isoformat(),
        }


class DeadLetterQueue:
    """Append-only, in-memory record of permanently failed operations."""

    def __init__(self) -> None:
        self._entries: list[DeadLetterEntry] = []

    def append(self, entry: DeadLetterEntry) -> None:
        """Add an entry to the end of the queue."""
        self._entries.append(entry)

    def snapshot(self) -> list[DeadLetterEntry]:
        """Return a copy of the entries, oldest first."""
        return list(self._entries)

    def clear(self) -> list[DeadLetterEntry]:
        """Empty the queue and return what was removed."""
        cleared, self._entries = self._entries, []
        return cleared

    def __len__(self) -> int:
        return len(self._entries)


class RetryEngine:
    """Runs async operations with bounded exponential backoff.

    Each engine owns its own dead letter queue. Operations that still fail
    after ``max_retries + 1`` attempts are recorded there.
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY,
        max_delay: float = DEFAULT_MAX_DELAY,
        *,
        dead_letter_queue: DeadLetterQueue | None = None,
    ) -> None:
        """Initialize the retry engine.

        Args:
            max_retries: Retries after the initial attempt.
            base_delay: Delay in seconds before the first retry (doubles each retry).
            max_delay: Upper bound in seconds for any single delay.
            dead_letter_queue: Queue to record exhausted operations in.

        Raises:
            ValueError: If any setting is negative.
        """
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if base_delay < 0 or max_delay < 0:
            raise ValueError("delays must be non-negative")

        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._dead_letters = (
            dead_letter_queue if dead_letter_queue is not None else DeadLetterQueue()
        )

    @property
    def max_attempts(self) -> int:
        """Total attempts per operation, including the first one."""
        return self.max_retries + 1

    def calculate_delay(self, attempt: int) -> float:
        """Return the backoff delay after the given 0-indexed attempt."""
        return min(self.base_delay * (2**attempt), self.max_delay)

    async def _sleep(self, delay: float) -> None:
        await asyncio.sleep(delay)

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[Any]],
        context: Mapping[str, Any] | None = None,
    ) -> RetryOutcome:
        """Run an operation until it succeeds or attempts run out.

        Args:
            operation: Zero-argument coroutine factory; a new coroutine is
                created for every attempt.
            context: Description stored with the dead letter entry.

        Returns:
            RetryOutcome describing the final attempt.
        """
        context = dict(context or {})
        attempt = 0

        while True:
            try:
                result = await operation()
            except Exception as e:
                if attempt == self.max_retries:
                    last_error = e
                    break

                delay = self.calculate_delay(attempt)
                logger.warning(
                    "Attempt %d/%d failed for %s: %s. Retrying in %.1f seconds...",
                    attempt + 1,
                    self.max_attempts,
                    context or "operation",
                    e,
                    delay,
                )
                await self._sleep(delay)
                attempt += 1
            else:
                return RetryOutcome(success=True, result=result, attempts=attempt + 1)

        self._dead_letters.append(
            DeadLetterEntry(
                context=MappingProxyType(context),
                error=str(last_error),
                error_type=type(last_error).__name__,
                attempts=self.max_attempts,
            )
        )
        logger.error(
            "All %d attempts failed for %s, moved to dead letter queue: %s",
            self.max_attempts,
            context or "operation",
            last_error,
        )
        return RetryOutcome(success=False, error=last_error, attempts=self.max_attempts)

    def get_dead_letter_queue(self) -> list[DeadLetterEntry]:
        """Return a snapshot of the dead letter queue."""
        return self._dead_letters.snapshot()

    def clear_dead_letter_queue(self) -> list[DeadLetterEntry]:
        """Empty the dead letter queue and return the cleared entries."""
        cleared = self._dead_letters.clear()
        if cleared:
            logger.info(f"Cleared {len(cleared)} dead letter entries")
        return cleared
