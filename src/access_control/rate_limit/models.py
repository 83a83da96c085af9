"""Rate limit result models."""

from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, Field


class CounterResult(BaseModel):
    """Outcome of one atomic check-and-increment on the counter store."""

    allowed: bool
    current_count: int = Field(..., ge=0)
    limit: int = Field(..., gt=0)


class RateLimitResult(BaseModel):
    """Result of a rate limit check."""

    allowed: bool
    remaining: int = Field(..., ge=0)
    limit: int = Field(..., ge=0)
    # True when the counter store failed and the failure policy decided
    degraded: bool = False


class LimitInfo(BaseModel):
    """Read-only quota snapshot for display."""

    current: int = Field(..., ge=0)
    limit: int = Field(..., ge=0)
    remaining: int = Field(..., ge=0)


def hour_bucket(at: datetime) -> str:
    """UTC hour bucket used as the counter window key, e.g. 2026-10-18T14."""
    return at.astimezone(UTC).strftime("%Y-%m-%dT%H")


def bucket_end(at: datetime) -> datetime:
    """End of the hour bucket containing ``at``."""
    start = at.astimezone(UTC).replace(minute=0, second=0, microsecond=0)
    return start + timedelta(hours=1)
