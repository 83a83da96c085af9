"""Telemetry sinks for security events.

Sinks may raise; SecurityMonitor and the ingestion endpoint swallow and
log sink failures so telemetry never affects an auth or rate limit
decision.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from src.access_control.retry import dynamodb_retry
from src.access_control.security.models import SecurityEvent

logger = logging.getLogger(__name__)


class TelemetrySink(Protocol):
    async def append(self, event: SecurityEvent) -> None: ...


class LoggingTelemetrySink:
    """Writes security events to the application log."""

    async def append(self, event: SecurityEvent) -> None:
        logger.warning(
            "Security event",
            extra={
                "event_id": event.event_id,
                "severity": event.severity,
                "reason": event.reason,
                "event_metadata": event.metadata,
            },
        )


class InMemoryTelemetrySink:
    """Collects events in a list. Used in tests and local runs."""

    def __init__(self) -> None:
        self.events: list[SecurityEvent] = []

    async def append(self, event: SecurityEvent) -> None:
        self.events.append(event)


class DynamoDBTelemetrySink:
    """Appends security events to the security events table."""

    def __init__(self, table: Any) -> None:
        """Initialize with a boto3 DynamoDB Table resource."""
        self._table = table

    @dynamodb_retry
    def _put(self, item: dict) -> None:
        self._table.put_item(
            Item=item,
            # Write-once: never overwrite an existing event
            ConditionExpression="attribute_not_exists(PK)",
        )

    async def append(self, event: SecurityEvent) -> None:
        await asyncio.to_thread(self._put, event.to_dynamodb_item())
