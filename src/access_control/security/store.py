"""Failed-login tracker storage.

The store owns the per-identifier state transition so that a shared
implementation (e.g. backed by the rate limit table) can make it atomic.
The window length is always supplied by the caller; a store never holds
its own copy.
InMemoryFailedLoginStore is process-local: attempts spread across several
processes or replicas are not aggregated.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol

from src.access_control.security.models import FailedLoginTracker


class FailedLoginStore(Protocol):
    async def increment(
        self, identifier: str, at: datetime, window: timedelta
    ) -> FailedLoginTracker:
        """Record one failure and return the resulting state.

        Starts a new window (count=1, window_start=at) when the identifier
        is clean or its window has elapsed; otherwise increments in place.
        """
        ...

    async def reset(self, identifier: str) -> None: ...

    async def get(
        self, identifier: str, at: datetime, window: timedelta
    ) -> FailedLoginTracker: ...


class InMemoryFailedLoginStore:
    """Dict-backed store with TTL eviction of expired windows.

    Methods never await, so each call is applied atomically and in call
    order within one event loop.
    """

    def __init__(self) -> None:
        self._trackers: dict[str, FailedLoginTracker] = {}

    def __len__(self) -> int:
        return len(self._trackers)

    def _evict_expired(self, at: datetime, window: timedelta) -> None:
        expired = [
            identifier
            for identifier, tracker in self._trackers.items()
            if tracker.is_expired(at, window)
        ]
        for identifier in expired:
            del self._trackers[identifier]

    async def increment(
        self, identifier: str, at: datetime, window: timedelta
    ) -> FailedLoginTracker:
        self._evict_expired(at, window)
        tracker = self._trackers.get(identifier)
        if tracker is None:
            tracker = FailedLoginTracker(count=1, window_start=at)
            self._trackers[identifier] = tracker
        else:
            tracker.count += 1
        return FailedLoginTracker(count=tracker.count, window_start=tracker.window_start)

    async def reset(self, identifier: str) -> None:
        self._trackers.pop(identifier, None)

    async def get(
        self, identifier: str, at: datetime, window: timedelta
    ) -> FailedLoginTracker:
        tracker = self._trackers.get(identifier)
        if tracker is None or tracker.is_expired(at, window):
            return FailedLoginTracker()
        return FailedLoginTracker(count=tracker.count, window_start=tracker.window_start)
