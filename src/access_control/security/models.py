"""Security event and failed-login tracker models."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Severity = Literal["low", "medium", "high"]

# Security events are kept for 90 days
SECURITY_EVENT_TTL_DAYS = 90


class SecurityEvent(BaseModel):
    """Append-only security event consumed by a telemetry sink.

    Metadata must never contain a raw identifier (email, username, IP).
    """

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    severity: Severity
    reason: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def pk(self) -> str:
        """DynamoDB partition key (daily partitioning)."""
        return f"SECURITY_EVENT#{self.timestamp.astimezone(UTC).strftime('%Y-%m-%d')}"

    @property
    def sk(self) -> str:
        """DynamoDB sort key."""
        return f"{self.timestamp.isoformat()}#{self.event_id}"

    def to_dynamodb_item(self) -> dict:
        """Convert to DynamoDB item format."""
        ttl = int((self.timestamp + timedelta(days=SECURITY_EVENT_TTL_DAYS)).timestamp())
        return {
            "PK": self.pk,
            "SK": self.sk,
            "event_id": self.event_id,
            "severity": self.severity,
            "reason": self.reason,
            # DynamoDB rejects floats; store them as Decimal
            "metadata": json.loads(json.dumps(self.metadata), parse_float=Decimal),
            "timestamp": self.timestamp.isoformat(),
            "ttl": ttl,
            "entity_type": "SECURITY_EVENT",
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict) -> SecurityEvent:
        """Create SecurityEvent from DynamoDB item."""
        return cls(
            event_id=item["event_id"],
            severity=item["severity"],
            reason=item["reason"],
            metadata=item.get("metadata", {}),
            timestamp=datetime.fromisoformat(item["timestamp"]),
        )


@dataclass
class FailedLoginTracker:
    """Failed-login state for one identifier.

    Clean when count == 0; Tracking when count > 0 with window_start set.
    """

    count: int = 0
    window_start: datetime | None = None

    def is_expired(self, at: datetime, window: timedelta) -> bool:
        """True if the window anchored at window_start has elapsed."""
        if self.window_start is None:
            return True
        return at - self.window_start > window
