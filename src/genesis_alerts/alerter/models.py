"""Data models for the alerter module."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class AlertType(str, Enum):
    """Kind of alert produced by the rule engine."""

    SINGLE = "single"
    AGGREGATED = "aggregated"


@dataclass(frozen=True)
class AlertEvent:
    """On-chain event that triggered a single alert.

    Attributes:
        event_id: Stable identifier of the decoded event, if known.
        event_name: Decoded event name (e.g. Transfer).
        contract_address: Emitting contract.
        block_number: Block the event was included in.
        tx_hash: Transaction hash.
    """

    event_id: str | None = None
    event_name: str | None = None
    contract_address: str | None = None
    block_number: int | None = None
    tx_hash: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "event_id": self.event_id,
            "event_name": self.event_name,
            "contract_address": self.contract_address,
            "block_number": self.block_number,
            "tx_hash": self.tx_hash,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AlertEvent:
        """Deserialize from dictionary."""
        event_id = data.get("event_id")
        return cls(
            event_id=str(event_id) if event_id is not None else None,
            event_name=data.get("event_name"),
            contract_address=data.get("contract_address"),
            block_number=data.get("block_number"),
            tx_hash=data.get("tx_hash"),
        )


@dataclass(frozen=True)
class Alert:
    """An alert to be delivered to notification channels.

    Alerts are immutable value objects created by the event source. Single
    alerts carry the triggering ``event`` (or a bare ``event_id``), aggregated
    alerts carry the block range and number of events they summarize.

    Attributes:
        id: Opaque alert identifier.
        alert_type: Single or aggregated.
        rule_name: Name of the rule that fired.
        event: Triggering event for single alerts.
        event_id: Fallback event identifier when no event object is attached.
        from_block: First block covered by an aggregated alert.
        to_block: Last block covered by an aggregated alert.
        event_count: Number of events summarized by an aggregated alert.
        severity: Rule severity (low, medium, high, critical).
        chain: Chain slug the alert originates from.
        message: Optional free-form message from the rule.
        created_at: When the alert was created.
    """

    id: str
    alert_type: AlertType
    rule_name: str
    event: AlertEvent | None = None
    event_id: str | None = None
    from_block: int | None = None
    to_block: int | None = None
    event_count: int | None = None
    severity: str | None = None
    chain: str | None = None
    message: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_aggregated(self) -> bool:
        """Return True for aggregated alerts."""
        return self.alert_type is AlertType.AGGREGATED

    def summary(self) -> str:
        """Return a one-line human-readable description of the alert."""
        severity = f"[{self.severity.upper()}] " if self.severity else ""
        chain = f" on {self.chain}" if self.chain else ""

        if self.is_aggregated:
            blocks = f"{self.from_block}"
            if self.to_block != self.from_block:
                blocks += f"-{self.to_block}"
            text = f"{severity}{self.rule_name}: {self.event_count} events{chain}, blocks {blocks}"
        else:
            event_id = self.event.event_id if self.event and self.event.event_id else self.event_id
            text = f"{severity}{self.rule_name}: event {event_id}{chain}"
            if self.event and self.event.block_number is not None:
                text += f", block {self.event.block_number}"

        if self.message:
            text += f" - {self.message}"
        return text

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary (also used as the webhook payload)."""
        data: dict[str, Any] = {
            "id": self.id,
            "alert_type": self.alert_type.value,
            "rule_name": self.rule_name,
            "severity": self.severity,
            "chain": self.chain,
            "message": self.message,
            "created_at": self.created_at.isoformat(),
        }
        if self.is_aggregated:
            data["from_block"] = self.from_block
            data["to_block"] = self.to_block
            data["event_count"] = self.event_count
        else:
            data["event_id"] = self.event_id
            data["event"] = self.event.to_dict() if self.event else None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Alert:
        """Deserialize from dictionary.

        Raises:
            KeyError: If ``id`` or ``rule_name`` is missing.
            ValueError: If ``alert_type`` is not a known type.
        """
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        elif isinstance(created_at, int | float):
            created_at = datetime.fromtimestamp(created_at, UTC)
        elif created_at is None:
            created_at = datetime.now(UTC)

        event_data = data.get("event")
        event_id = data.get("event_id")

        return cls(
            id=str(data["id"]),
            alert_type=AlertType(data.get("alert_type", AlertType.SINGLE.value)),
            rule_name=data["rule_name"],
            event=AlertEvent.from_dict(event_data) if event_data else None,
            event_id=str(event_id) if event_id is not None else None,
            from_block=data.get("from_block"),
            to_block=data.get("to_block"),
            event_count=data.get("event_count"),
            severity=data.get("severity"),
            chain=data.get("chain"),
            message=data.get("message"),
            created_at=created_at,
        )


@dataclass(frozen=True)
class ChannelOutcome:
    """Outcome of delivering one alert to one channel.

    Attributes:
        success: Whether the channel accepted the alert.
        data: Result returned by the channel's send on success.
        error: Last error message when all attempts failed.
        attempts: Number of send attempts made.
    """

    success: bool
    data: dict[str, Any] | None = None
    error: str | None = None
    attempts: int = 1

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        if self.success:
            return {"success": True, "attempts": self.attempts, **(self.data or {})}
        return {"success": False, "error": self.error, "attempts": self.attempts}


@dataclass(frozen=True)
class ChannelTestResult:
    """Result of a channel connectivity check."""

    success: bool
    error: str | None = None
    skipped: bool = False


@dataclass(frozen=True)
class DispatchResult:
    """Result of dispatching an alert to all enabled channels."""

    alert_id: str
    idempotency_key: str
    channels: dict[str, ChannelOutcome] = field(default_factory=dict)
    cached: bool = False
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def success_count(self) -> int:
        """Number of channels that accepted the alert."""
        return sum(1 for outcome in self.channels.values() if outcome.success)

    @property
    def failure_count(self) -> int:
        """Number of channels that exhausted their retries."""
        return len(self.channels) - self.success_count

    @property
    def success(self) -> bool:
        """Return True if the alert was already delivered or no channel failed."""
        return self.cached or self.failure_count == 0

    @property
    def all_succeeded(self) -> bool:
        """Return True if at least one channel ran and none failed."""
        return self.failure_count == 0 and self.success_count > 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "alert_id": self.alert_id,
            "idempotency_key": self.idempotency_key,
            "success": self.success,
            "cached": self.cached,
            "channels": {name: outcome.to_dict() for name, outcome in self.channels.items()},
            "timestamp": self.timestamp.isoformat(),
        }
