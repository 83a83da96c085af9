"""Configuration for the access-control core.

For On-Call Engineers:
    Every setting is read from the environment. The rate limiter's
    failure policy is RATE_LIMIT_FAILURE_POLICY:
    - fail_open (default): counter store outage disables rate limiting
      instead of blocking every user. Logged at ERROR on every occurrence.
    - fail_closed: counter store outage blocks all rate-limited actions.

For Developers:
    Build components from load_config() at startup, or pass an explicit
    AccessControlConfig in tests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import StrEnum

from src.access_control.auth.enums import Role

# Hourly quota per role. Admin is large but finite so a runaway admin
# session is still bounded.
DEFAULT_RATE_LIMIT_TIERS: dict[Role, int] = {
    Role.USER: 100,
    Role.PREMIUM: 1000,
    Role.ADMIN: 999999,
}

DEFAULT_REQUEST_TIMEOUT_SECONDS = 5.0
DEFAULT_BRUTE_FORCE_WINDOW_MINUTES = 5
DEFAULT_BRUTE_FORCE_THRESHOLD = 3


class FailurePolicy(StrEnum):
    """What the rate limiter does when the counter store is unavailable."""

    FAIL_OPEN = "fail_open"
    FAIL_CLOSED = "fail_closed"


@dataclass(frozen=True)
class AccessControlConfig:
    """Configuration for the access-control components.

    Attributes:
        rate_limit_tiers: Hourly quota per role
        failure_policy: Rate limiter behaviour on counter store errors
        request_timeout_seconds: Bound on every collaborator call
        brute_force_window_minutes: Failed-login tracking window
        brute_force_threshold: Failures within window that flag an identifier
        rate_limit_table: DynamoDB table for counters (None = in-process)
        security_events_table: DynamoDB table for security events (None = log only)
        users_table: DynamoDB table holding role items (None = in-process)
        identifier_hash_key: Optional HMAC key for identifier hashing
    """

    rate_limit_tiers: dict[Role, int] = field(
        default_factory=lambda: dict(DEFAULT_RATE_LIMIT_TIERS)
    )
    failure_policy: FailurePolicy = FailurePolicy.FAIL_OPEN
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    brute_force_window_minutes: int = DEFAULT_BRUTE_FORCE_WINDOW_MINUTES
    brute_force_threshold: int = DEFAULT_BRUTE_FORCE_THRESHOLD
    rate_limit_table: str | None = None
    security_events_table: str | None = None
    users_table: str | None = None
    identifier_hash_key: str | None = None

    def limit_for(self, role: Role) -> int:
        """Hourly quota for a role."""
        return self.rate_limit_tiers[role]


def _tier_from_env(role: Role) -> int:
    value = os.environ.get(f"RATE_LIMIT_TIER_{role.value.upper()}")
    if value is None:
        return DEFAULT_RATE_LIMIT_TIERS[role]
    limit = int(value)
    if limit <= 0:
        raise ValueError(f"RATE_LIMIT_TIER_{role.value.upper()} must be positive")
    return limit


def load_config() -> AccessControlConfig:
    """Load configuration from environment variables.

    Raises:
        ValueError: If a numeric setting or the failure policy is malformed.
    """
    return AccessControlConfig(
        rate_limit_tiers={role: _tier_from_env(role) for role in Role},
        failure_policy=FailurePolicy(
            os.environ.get("RATE_LIMIT_FAILURE_POLICY", FailurePolicy.FAIL_OPEN.value)
        ),
        request_timeout_seconds=float(
            os.environ.get(
                "ACCESS_REQUEST_TIMEOUT_SECONDS", str(DEFAULT_REQUEST_TIMEOUT_SECONDS)
            )
        ),
        brute_force_window_minutes=int(
            os.environ.get(
                "BRUTE_FORCE_WINDOW_MINUTES", str(DEFAULT_BRUTE_FORCE_WINDOW_MINUTES)
            )
        ),
        brute_force_threshold=int(
            os.environ.get("BRUTE_FORCE_THRESHOLD", str(DEFAULT_BRUTE_FORCE_THRESHOLD))
        ),
        rate_limit_table=os.environ.get("RATE_LIMIT_TABLE") or None,
        security_events_table=os.environ.get("SECURITY_EVENTS_TABLE") or None,
        users_table=os.environ.get("USERS_TABLE") or None,
        identifier_hash_key=os.environ.get("IDENTIFIER_HASH_KEY") or None,
    )
