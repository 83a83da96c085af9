"""Per-user, per-endpoint hourly rate limiting by role tier.

For On-Call Engineers:
    Quotas are tracked per (user_id, endpoint, UTC hour) in the counter
    store. Tiers: user 100/h, premium 1000/h, admin 999999/h (overridable,
    see config.py).
    When the counter store errors or times out the configured failure
    policy decides:
    - fail_open (default): allowed=True, remaining=limit. Logged at ERROR
      as "Rate limit store unavailable, failing open". This is a
      security-relevant degradation: alert on it.
    - fail_closed: allowed=False, remaining=0.

Security Notes:
    - Counting happens in the counter store's atomic check-and-increment.
      This module never reads then writes a count.
    - Requests without an identity are refused; quotas need a principal.
"""

from __future__ import annotations

import asyncio
import logging

from src.access_control.auth.enums import Role
from src.access_control.auth.permissions import coerce_role
from src.access_control.config import AccessControlConfig, FailurePolicy
from src.access_control.errors import RateLimitExceeded
from src.access_control.logging_utils import get_safe_error_info, sanitize_for_log
from src.access_control.rate_limit.counter_store import CounterStore
from src.access_control.rate_limit.models import LimitInfo, RateLimitResult

logger = logging.getLogger(__name__)


class RateLimiter:
    """Decides whether a caller may perform a rate-limited action."""

    def __init__(
        self,
        counter_store: CounterStore,
        config: AccessControlConfig | None = None,
    ) -> None:
        self._store = counter_store
        self._config = config or AccessControlConfig()

    @property
    def failure_policy(self) -> FailurePolicy:
        return self._config.failure_policy

    def limit_for(self, role: Role | str) -> int:
        """Hourly quota for a role."""
        return self._config.limit_for(coerce_role(role))

    def _on_store_failure(
        self, endpoint: str, limit: int, error: BaseException
    ) -> RateLimitResult:
        policy = self._config.failure_policy
        extra = {
            "endpoint": sanitize_for_log(endpoint, max_length=64),
            "failure_policy": policy.value,
            **get_safe_error_info(error),
        }
        if policy is FailurePolicy.FAIL_CLOSED:
            logger.error("Rate limit store unavailable, failing closed", extra=extra)
            return RateLimitResult(allowed=False, remaining=0, limit=limit, degraded=True)

        logger.error("Rate limit store unavailable, failing open", extra=extra)
        return RateLimitResult(allowed=True, remaining=limit, limit=limit, degraded=True)

    async def check_limit(
        self,
        identity: str | None,
        endpoint: str,
        role: Role | str = Role.USER,
    ) -> RateLimitResult:
        """Check and consume one unit of quota.

        Args:
            identity: Caller's user ID, or None if no principal is known
            endpoint: Endpoint being called (e.g., 'weather_api', 'save_event')
            role: Caller's role, selects the quota tier

        Returns:
            RateLimitResult with allowed status and remaining quota
        """
        limit = self.limit_for(role)

        if identity is None:
            return RateLimitResult(allowed=False, remaining=0, limit=limit)

        try:
            outcome = await asyncio.wait_for(
                self._store.check_and_increment(identity, endpoint, limit),
                timeout=self._config.request_timeout_seconds,
            )
        except Exception as e:
            return self._on_store_failure(endpoint, limit, e)

        remaining = max(0, limit - outcome.current_count)

        if not outcome.allowed:
            logger.warning(
                "Rate limit exceeded",
                extra={
                    "user_id_prefix": sanitize_for_log(identity[:8]),
                    "endpoint": sanitize_for_log(endpoint, max_length=64),
                    "count": outcome.current_count,
                    "limit": limit,
                },
            )

        return RateLimitResult(allowed=outcome.allowed, remaining=remaining, limit=limit)

    async def enforce_limit(
        self,
        identity: str | None,
        endpoint: str,
        role: Role | str = Role.USER,
    ) -> RateLimitResult:
        """Check the limit and raise if it is exceeded.

        Raises:
            RateLimitExceeded: With the endpoint and the role's hourly limit.
        """
        result = await self.check_limit(identity, endpoint, role)
        if not result.allowed:
            raise RateLimitExceeded(endpoint, self.limit_for(role))
        return result

    async def get_limit_info(
        self,
        identity: str | None,
        endpoint: str,
        role: Role | str = Role.USER,
    ) -> LimitInfo:
        """Quota snapshot for display. Does not consume quota."""
        limit = self.limit_for(role)

        if identity is None:
            return LimitInfo(current=0, limit=limit, remaining=limit)

        try:
            current = await asyncio.wait_for(
                self._store.get_count(identity, endpoint),
                timeout=self._config.request_timeout_seconds,
            )
        except Exception as e:
            logger.warning(
                "Rate limit info unavailable",
                extra={
                    "endpoint": sanitize_for_log(endpoint, max_length=64),
                    **get_safe_error_info(e),
                },
            )
            current = 0

        remaining = max(0, limit - current)
        return LimitInfo(current=limit - remaining, limit=limit, remaining=remaining)


def get_rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Get rate limit headers for a response."""
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
    }
    if not result.allowed:
        headers["Retry-After"] = "3600"
    return headers
