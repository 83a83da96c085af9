"""Brute-force login detection.

Flags an identifier after repeated authentication failures within a short
window (default: 3 failures in 5 minutes) and emits an anonymized security
event.

State per identifier:
- Clean: no failures being tracked
- Tracking: count > 0, window anchored at the first failure of the window

A failure in Clean state, or after the window has elapsed, starts a new
window. Reaching the threshold emits a medium-severity event; the count is
not reset, so further failures in the same window emit again. A success
returns the identifier to Clean.

For On-Call Engineers:
    Events carry identifier_hash, never the raw identifier. To find the
    events for a known email, compute hash_identifier(email) with the same
    IDENTIFIER_HASH_KEY.
    Tracking is per process: attempts spread over several replicas are not
    aggregated.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from src.access_control.config import AccessControlConfig
from src.access_control.logging_utils import get_safe_error_info, redact_pii
from src.access_control.security.models import SecurityEvent
from src.access_control.security.store import FailedLoginStore, InMemoryFailedLoginStore
from src.access_control.security.telemetry import TelemetrySink

logger = logging.getLogger(__name__)

BRUTE_FORCE_REASON = "brute force suspected"

# Hex characters kept from the digest (64 bits)
IDENTIFIER_HASH_LENGTH = 16


def normalize_identifier(identifier: str) -> str:
    """Identifiers are case-insensitive (emails) and whitespace-trimmed."""
    return identifier.strip().casefold()


def hash_identifier(identifier: str, key: str | None = None) -> str:
    """One-way hash of an identifier for telemetry.

    SHA-256, or HMAC-SHA-256 when a key is configured, truncated to 16 hex
    characters.

    Example:
        >>> len(hash_identifier("bob@example.com"))
        16
    """
    data = normalize_identifier(identifier).encode("utf-8")
    if key:
        digest = hmac.new(key.encode("utf-8"), data, hashlib.sha256).hexdigest()
    else:
        digest = hashlib.sha256(data).hexdigest()
    return digest[:IDENTIFIER_HASH_LENGTH]


def _utc_now() -> datetime:
    return datetime.now(UTC)


class SecurityMonitor:
    """Tracks authentication outcomes and emits brute-force events.

    Usage:
        monitor = SecurityMonitor(telemetry=DynamoDBTelemetrySink(table))

        if login_ok:
            await monitor.record_success(email)
        else:
            suspicious = await monitor.record_failure(email, error=str(exc))
            if suspicious:
                # e.g. require CAPTCHA on the next attempt
                ...
    """

    def __init__(
        self,
        telemetry: TelemetrySink,
        store: FailedLoginStore | None = None,
        config: AccessControlConfig | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._config = config or AccessControlConfig()
        self._telemetry = telemetry
        self._window = timedelta(minutes=self._config.brute_force_window_minutes)
        self._threshold = self._config.brute_force_threshold
        self._store = store if store is not None else InMemoryFailedLoginStore()
        self._clock = clock

    @property
    def window(self) -> timedelta:
        return self._window

    @property
    def threshold(self) -> int:
        return self._threshold

    def _hash(self, identifier: str) -> str:
        return hash_identifier(identifier, self._config.identifier_hash_key)

    async def record_failure(self, identifier: str, error: str | None = None) -> bool:
        """Record a failed login.

        Args:
            identifier: Email or username that failed to authenticate
            error: Optional error message; redacted before it is logged or emitted

        Returns:
            True if the identifier crossed the brute-force threshold
        """
        now = self._clock()
        key = normalize_identifier(identifier)
        tracker = await self._store.increment(key, now, self._window)

        identifier_hash = self._hash(identifier)
        safe_error = redact_pii(error) if error else None

        logger.info(
            "Auth event",
            extra={
                "event_name": "login_failed",
                "identifier_hash": identifier_hash,
                "failed_attempt_count": tracker.count,
                "error": safe_error,
            },
        )

        if tracker.count < self._threshold:
            return False

        logger.warning(
            "Suspicious login pattern detected",
            extra={
                "identifier_hash": identifier_hash,
                "failed_attempt_count": tracker.count,
                "threshold": self._threshold,
            },
        )

        metadata: dict[str, object] = {
            "identifier_hash": identifier_hash,
            "failed_attempt_count": tracker.count,
            "window_minutes": self._config.brute_force_window_minutes,
        }
        if safe_error:
            metadata["error"] = safe_error

        await self.emit(
            SecurityEvent(
                severity="medium",
                reason=BRUTE_FORCE_REASON,
                metadata=metadata,
                timestamp=now,
            )
        )
        return True

    async def record_success(self, identifier: str) -> None:
        """Record a successful login, clearing any tracked failures."""
        await self._store.reset(normalize_identifier(identifier))
        logger.info(
            "Auth event",
            extra={
                "event_name": "login_success",
                "identifier_hash": self._hash(identifier),
            },
        )

    async def failure_count(self, identifier: str) -> int:
        """Failures tracked in the identifier's current window."""
        tracker = await self._store.get(
            normalize_identifier(identifier), self._clock(), self._window
        )
        return tracker.count

    async def emit(self, event: SecurityEvent) -> None:
        """Best-effort append. Failures are logged, never raised."""
        try:
            await asyncio.wait_for(
                self._telemetry.append(event),
                timeout=self._config.request_timeout_seconds,
            )
        except Exception as e:
            logger.error(
                "Failed to track security event",
                extra={"event_id": event.event_id, **get_safe_error_info(e)},
            )
