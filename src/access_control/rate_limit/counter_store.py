"""Counter stores for per-(user, endpoint, hour) request counts.

The only mutation a counter store offers is check_and_increment(), which
reads the current count, compares it to the limit and increments it as one
indivisible operation. There is deliberately no separate "set" or
"increment" call: a read-compare-then-write sequence lets concurrent
requests (several devices, retries, tabs) slip past the limit.

DynamoDB layout:
    PK = RATE#<user_id>#<endpoint>
    SK = <UTC hour bucket, YYYY-MM-DDTHH>
    count, limit, ttl (bucket end + 1h), entity_type = RATE_LIMIT

For On-Call Engineers:
    A burst of "Rate limit store unavailable" errors from the limiter means
    calls here are failing. With the default fail_open policy, rate limiting
    is OFF until the table recovers.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

from botocore.exceptions import BotoCoreError, ClientError

from src.access_control.dynamodb import to_int
from src.access_control.errors import StoreUnavailable
from src.access_control.rate_limit.models import CounterResult, bucket_end, hour_bucket
from src.access_control.retry import dynamodb_retry

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


class CounterStore(Protocol):
    """Counter-store collaborator contract."""

    async def check_and_increment(
        self, identity: str, endpoint: str, limit: int
    ) -> CounterResult:
        """Atomically increment the current window's count if below limit.

        Raises:
            StoreUnavailable: On transport or availability failure.
        """
        ...

    async def get_count(self, identity: str, endpoint: str) -> int:
        """Current window's count. Read-only.

        Raises:
            StoreUnavailable: On transport or availability failure.
        """
        ...


class DynamoDBCounterStore:
    """Counter store backed by a single conditional UpdateItem."""

    STORE_NAME = "rate_limit_table"

    def __init__(self, table: Any, clock: Clock = _utc_now) -> None:
        """Initialize with a boto3 DynamoDB Table resource."""
        self._table = table
        self._clock = clock

    @staticmethod
    def build_key(identity: str, endpoint: str, at: datetime) -> dict[str, str]:
        return {"PK": f"RATE#{identity}#{endpoint}", "SK": hour_bucket(at)}

    @dynamodb_retry
    def _increment(self, key: dict[str, str], limit: int, ttl: int) -> dict:
        return self._table.update_item(
            Key=key,
            UpdateExpression=(
                "SET #c = if_not_exists(#c, :zero) + :one, "
                "#l = :limit, #ttl = :ttl, entity_type = :type"
            ),
            ConditionExpression="attribute_not_exists(#c) OR #c < :limit",
            ExpressionAttributeNames={"#c": "count", "#l": "limit", "#ttl": "ttl"},
            ExpressionAttributeValues={
                ":zero": 0,
                ":one": 1,
                ":limit": limit,
                ":ttl": ttl,
                ":type": "RATE_LIMIT",
            },
            ReturnValues="UPDATED_NEW",
        )

    @dynamodb_retry
    def _read_count(self, key: dict[str, str]) -> int:
        response = self._table.get_item(
            Key=key,
            ConsistentRead=True,
            ProjectionExpression="#c",
            ExpressionAttributeNames={"#c": "count"},
        )
        return to_int(response.get("Item", {}).get("count"))

    async def check_and_increment(
        self, identity: str, endpoint: str, limit: int
    ) -> CounterResult:
        now = self._clock()
        key = self.build_key(identity, endpoint, now)
        ttl = int((bucket_end(now) + timedelta(hours=1)).timestamp())

        try:
            response = await asyncio.to_thread(self._increment, key, limit, ttl)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") != "ConditionalCheckFailedException":
                raise StoreUnavailable(self.STORE_NAME, e) from e
            # Quota exhausted: the condition rejected the increment.
            current = await self._safe_read(key)
            return CounterResult(
                allowed=False, current_count=max(current, limit), limit=limit
            )
        except BotoCoreError as e:
            raise StoreUnavailable(self.STORE_NAME, e) from e

        current = to_int(response.get("Attributes", {}).get("count"))
        return CounterResult(allowed=True, current_count=current, limit=limit)

    async def _safe_read(self, key: dict[str, str]) -> int:
        try:
            return await asyncio.to_thread(self._read_count, key)
        except (ClientError, BotoCoreError) as e:
            raise StoreUnavailable(self.STORE_NAME, e) from e

    async def get_count(self, identity: str, endpoint: str) -> int:
        return await self._safe_read(self.build_key(identity, endpoint, self._clock()))


class InMemoryCounterStore:
    """Process-local counter store.

    Atomicity holds within one event loop because check-and-increment runs
    under an asyncio.Lock. Counts are NOT shared across processes, so this
    store is only suitable for local development and tests.
    """

    def __init__(self, clock: Clock = _utc_now) -> None:
        self._clock = clock
        self._counts: dict[tuple[str, str, str], int] = {}
        self._lock = asyncio.Lock()

    def _evict_stale(self, current_bucket: str) -> None:
        stale = [key for key in self._counts if key[2] != current_bucket]
        for key in stale:
            del self._counts[key]

    async def check_and_increment(
        self, identity: str, endpoint: str, limit: int
    ) -> CounterResult:
        async with self._lock:
            bucket = hour_bucket(self._clock())
            self._evict_stale(bucket)
            key = (identity, endpoint, bucket)
            current = self._counts.get(key, 0)
            if current >= limit:
                return CounterResult(allowed=False, current_count=current, limit=limit)
            self._counts[key] = current + 1
            return CounterResult(allowed=True, current_count=current + 1, limit=limit)

    async def get_count(self, identity: str, endpoint: str) -> int:
        bucket = hour_bucket(self._clock())
        return self._counts.get((identity, endpoint, bucket), 0)
