"""Idempotency keys and the in-memory seen-key cache.

Logically identical alerts (same rule, same event or same aggregated block
window) map to the same key, so a second dispatch of the same alert can be
recognised and skipped. The cache lives for the lifetime of the process.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from genesis_alerts.alerter.models import Alert

logger = logging.getLogger(__name__)

DEFAULT_MAX_IDEMPOTENCY_CACHE = 10000


class IdempotencyKeyError(ValueError):
    """Raised when an alert lacks the fields needed to derive its key."""


def generate_idempotency_key(alert: Alert) -> str:
    """Derive the idempotency key from the alert's semantic identity.

    Only identity fields participate; ``alert.id`` and timestamps do not.

    Args:
        alert: Alert to derive the key for.

    Returns:
        ``agg:<rule>:<from_block>:<to_block>:<event_count>`` for aggregated
        alerts, ``single:<rule>:<event_id>`` otherwise.

    Raises:
        IdempotencyKeyError: If a single alert has no event identifier, or an
            aggregated alert is missing its block range or event count.
    """
    if alert.is_aggregated:
        if None in (alert.from_block, alert.to_block, alert.event_count):
            raise IdempotencyKeyError(
                f"Aggregated alert {alert.id} needs from_block, to_block and event_count"
            )
        return (
            f"agg:{alert.rule_name}:{alert.from_block}:"
            f"{alert.to_block}:{alert.event_count}"
        )

    if alert.event is not None and alert.event.event_id:
        event_id = alert.event.event_id
    else:
        event_id = alert.event_id

    if not event_id:
        raise IdempotencyKeyError(f"Alert {alert.id} has no event_id to derive a key from")

    return f"single:{alert.rule_name}:{event_id}"


class IdempotencyCache:
    """Bounded set of dispatched idempotency keys.

    Keys are kept in insertion order. When a new key pushes the size past
    ``max_size``, the older keys are dropped in one batch so that only the
    newest ``max_size // 2`` remain.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_IDEMPOTENCY_CACHE) -> None:
        """Initialize the cache.

        Args:
            max_size: Number of keys allowed before eviction kicks in.

        Raises:
            ValueError: If max_size is smaller than 1.
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._keys: OrderedDict[str, None] = OrderedDict()

    def has(self, key: str) -> bool:
        """Return True if the key has been marked as seen."""
        return key in self._keys

    def mark_seen(self, key: str) -> None:
        """Record a key, evicting the older half if the cache overflows."""
        if key in self._keys:
            return
        self._keys[key] = None

        if len(self._keys) > self.max_size:
            self._evict()

    def _evict(self) -> None:
        keep = self.max_size // 2
        dropped = len(self._keys) - keep
        while len(self._keys) > keep:
            self._keys.popitem(last=False)
        logger.info(f"Idempotency cache evicted {dropped} keys, {keep} retained")

    def keys(self) -> list[str]:
        """Return the cached keys, oldest first."""
        return list(self._keys)

    def clear(self) -> None:
        """Forget all keys."""
        self._keys.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._keys))
