"""Per-role hourly rate limiting."""

from src.access_control.rate_limit.counter_store import (
    CounterStore,
    DynamoDBCounterStore,
    InMemoryCounterStore,
)
from src.access_control.rate_limit.limiter import RateLimiter, get_rate_limit_headers
from src.access_control.rate_limit.models import (
    CounterResult,
    LimitInfo,
    RateLimitResult,
)

__all__ = [
    "CounterResult",
    "CounterStore",
    "DynamoDBCounterStore",
    "InMemoryCounterStore",
    "LimitInfo",
    "RateLimitResult",
    "RateLimiter",
    "get_rate_limit_headers",
]
