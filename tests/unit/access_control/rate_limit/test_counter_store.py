"""Unit tests for the counter stores.

The DynamoDB store runs against moto; the conditional UpdateItem is what
makes check-and-increment atomic.
"""

import asyncio
from datetime import UTC, datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from src.access_control.errors import StoreUnavailable
from src.access_control.rate_limit import DynamoDBCounterStore, InMemoryCounterStore
from src.access_control.rate_limit.models import bucket_end, hour_bucket

NOW = datetime(2026, 10, 18, 14, 30, tzinfo=UTC)


class FakeClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "test"}}, "UpdateItem")


class TestHourBucket:
    def test_bucket_format(self):
        assert hour_bucket(NOW) == "2026-10-18T14"

    def test_bucket_normalizes_to_utc(self):
        local = datetime(2026, 10, 18, 9, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert hour_bucket(local) == "2026-10-18T14"

    def test_bucket_end(self):
        assert bucket_end(NOW) == datetime(2026, 10, 18, 15, 0, tzinfo=UTC)


class TestDynamoDBCounterStore:
    """Tests against a moto-backed table."""

    def test_build_key(self):
        key = DynamoDBCounterStore.build_key("user-123", "weather_api", NOW)
        assert key == {"PK": "RATE#user-123#weather_api", "SK": "2026-10-18T14"}

    @pytest.mark.asyncio
    async def test_increments_until_limit(self, rate_limit_table):
        store = DynamoDBCounterStore(rate_limit_table, clock=FakeClock())

        results = [
            await store.check_and_increment("user-123", "weather_api", 3)
            for _ in range(4)
        ]

        assert [r.allowed for r in results] == [True, True, True, False]
        assert [r.current_count for r in results] == [1, 2, 3, 3]
        assert all(r.limit == 3 for r in results)

    @pytest.mark.asyncio
    async def test_item_layout(self, rate_limit_table):
        store = DynamoDBCounterStore(rate_limit_table, clock=FakeClock())

        await store.check_and_increment("user-123", "weather_api", 100)

        item = rate_limit_table.get_item(
            Key={"PK": "RATE#user-123#weather_api", "SK": "2026-10-18T14"}
        )["Item"]
        assert item["count"] == 1
        assert item["limit"] == 100
        assert item["entity_type"] == "RATE_LIMIT"
        expected_ttl = int(datetime(2026, 10, 18, 16, 0, tzinfo=UTC).timestamp())
        assert item["ttl"] == expected_ttl

    @pytest.mark.asyncio
    async def test_counts_are_per_endpoint(self, rate_limit_table):
        store = DynamoDBCounterStore(rate_limit_table, clock=FakeClock())

        await store.check_and_increment("user-123", "weather_api", 1)
        other = await store.check_and_increment("user-123", "save_event", 1)

        assert other.allowed is True
        assert other.current_count == 1

    @pytest.mark.asyncio
    async def test_new_hour_starts_new_window(self, rate_limit_table):
        clock = FakeClock()
        store = DynamoDBCounterStore(rate_limit_table, clock=clock)

        await store.check_and_increment("user-123", "weather_api", 1)
        assert (await store.check_and_increment("user-123", "weather_api", 1)).allowed is False

        clock.advance(hours=1)
        result = await store.check_and_increment("user-123", "weather_api", 1)

        assert result.allowed is True
        assert result.current_count == 1

    @pytest.mark.asyncio
    async def test_get_count_is_read_only(self, rate_limit_table):
        store = DynamoDBCounterStore(rate_limit_table, clock=FakeClock())

        assert await store.get_count("user-123", "weather_api") == 0
        await store.check_and_increment("user-123", "weather_api", 10)
        await store.check_and_increment("user-123", "weather_api", 10)

        assert await store.get_count("user-123", "weather_api") == 2
        assert await store.get_count("user-123", "weather_api") == 2

    @pytest.mark.asyncio
    async def test_non_conditional_client_error_is_store_unavailable(self):
        table = MagicMock()
        table.update_item.side_effect = _client_error("ValidationException")
        store = DynamoDBCounterStore(table, clock=FakeClock())

        with pytest.raises(StoreUnavailable) as exc_info:
            await store.check_and_increment("user-123", "weather_api", 100)

        assert exc_info.value.store == "rate_limit_table"
        table.update_item.assert_called_once()

    @pytest.mark.asyncio
    async def test_throttling_is_retried_then_unavailable(self):
        table = MagicMock()
        table.update_item.side_effect = _client_error("ThrottlingException")
        store = DynamoDBCounterStore(table, clock=FakeClock())

        with pytest.raises(StoreUnavailable):
            await store.check_and_increment("user-123", "weather_api", 100)

        assert table.update_item.call_count == 3

    @pytest.mark.asyncio
    async def test_connection_error_is_store_unavailable(self):
        table = MagicMock()
        table.update_item.side_effect = EndpointConnectionError(
            endpoint_url="https://dynamodb.us-east-1.amazonaws.com"
        )
        store = DynamoDBCounterStore(table, clock=FakeClock())

        with pytest.raises(StoreUnavailable):
            await store.check_and_increment("user-123", "weather_api", 100)

    @pytest.mark.asyncio
    async def test_denied_read_failure_is_store_unavailable(self):
        table = MagicMock()
        table.update_item.side_effect = _client_error("ConditionalCheckFailedException")
        table.get_item.side_effect = _client_error("ValidationException")
        store = DynamoDBCounterStore(table, clock=FakeClock())

        with pytest.raises(StoreUnavailable):
            await store.check_and_increment("user-123", "weather_api", 100)


class TestInMemoryCounterStore:
    @pytest.mark.asyncio
    async def test_allows_up_to_limit(self):
        store = InMemoryCounterStore(clock=FakeClock())

        results = [
            await store.check_and_increment("user-123", "weather_api", 2)
            for _ in range(3)
        ]

        assert [r.allowed for r in results] == [True, True, False]
        assert results[-1].current_count == 2

    @pytest.mark.asyncio
    async def test_concurrent_requests_never_exceed_limit(self):
        """Exactly `limit` of N concurrent requests are allowed."""
        store = InMemoryCounterStore(clock=FakeClock())

        results = await asyncio.gather(
            *(store.check_and_increment("user-123", "weather_api", 10) for _ in range(25))
        )

        assert sum(r.allowed for r in results) == 10
        assert await store.get_count("user-123", "weather_api") == 10

    @pytest.mark.asyncio
    async def test_rollover_resets_and_evicts(self):
        clock = FakeClock()
        store = InMemoryCounterStore(clock=clock)
        await store.check_and_increment("user-123", "weather_api", 1)

        clock.advance(hours=1)

        assert await store.get_count("user-123", "weather_api") == 0
        result = await store.check_and_increment("user-123", "weather_api", 1)
        assert result.allowed is True
        assert len(store._counts) == 1
