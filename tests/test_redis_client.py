"""Unit tests for RedisCacheStore against a mocked redis.asyncio client"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from shared.cache.redis_client import INCR_CAPPED_SCRIPT, RedisCacheStore
from shared.utils.exceptions import StoreUnavailable


@pytest.fixture
def redis_mock():
    return AsyncMock()


@pytest.fixture
def redis_store(redis_mock):
    return RedisCacheStore(client=redis_mock)


def _transaction(redis_mock):
    """Wire a MULTI/EXEC pipeline mock whose commands chain like redis.asyncio"""
    pipe = MagicMock()
    pipe.__aenter__.return_value = pipe
    pipe.__aexit__.return_value = False
    pipe.delete.return_value = pipe
    pipe.hset.return_value = pipe
    pipe.execute = AsyncMock(return_value=[1, 2])
    redis_mock.pipeline = MagicMock(return_value=pipe)
    return pipe


@pytest.mark.unit
class TestRedisCacheStore:

    @pytest.mark.asyncio
    async def test_set_only_if_absent_uses_nx_and_ex(self, redis_store, redis_mock):
        redis_mock.set.return_value = True

        assert await redis_store.set("lock:T1", "T1", ttl=30, only_if_absent=True) is True

        redis_mock.set.assert_awaited_once_with("lock:T1", "T1", ex=30, nx=True)

    @pytest.mark.asyncio
    async def test_set_reports_existing_key(self, redis_store, redis_mock):
        redis_mock.set.return_value = None

        assert await redis_store.set("lock:T1", "T1", ttl=30, only_if_absent=True) is False

    @pytest.mark.asyncio
    async def test_hgetall_missing_hash_is_empty(self, redis_store, redis_mock):
        redis_mock.hgetall.return_value = None

        assert await redis_store.hgetall("ticket:T1") == {}

    @pytest.mark.asyncio
    async def test_hset_passes_mapping(self, redis_store, redis_mock):
        await redis_store.hset("ticket:T1", {"entry_count": "1"})

        redis_mock.hset.assert_awaited_once_with("ticket:T1", mapping={"entry_count": "1"})

    @pytest.mark.asyncio
    async def test_replace_hash_runs_in_one_transaction(self, redis_store, redis_mock):
        pipe = _transaction(redis_mock)

        await redis_store.replace_hash("current_event", {"id": "EVT-2", "max_capacity": "10"})

        redis_mock.pipeline.assert_called_once_with(transaction=True)
        pipe.delete.assert_called_once_with("current_event")
        pipe.hset.assert_called_once_with("current_event", mapping={"id": "EVT-2", "max_capacity": "10"})
        pipe.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_replace_hash_failure_is_store_unavailable(self, redis_store, redis_mock):
        pipe = _transaction(redis_mock)
        pipe.execute.side_effect = RedisConnectionError("down")

        with pytest.raises(StoreUnavailable):
            await redis_store.replace_hash("current_event", {"id": "EVT-2"})

    @pytest.mark.asyncio
    async def test_incr_capped_runs_script(self, redis_store, redis_mock):
        redis_mock.eval.return_value = 7

        assert await redis_store.incr_capped("current_attendees_count", 1, 100) == 7

        redis_mock.eval.assert_awaited_once_with(INCR_CAPPED_SCRIPT, 1, "current_attendees_count", 1, 100)

    @pytest.mark.asyncio
    async def test_incr_capped_at_limit_returns_none(self, redis_store, redis_mock):
        redis_mock.eval.return_value = None

        assert await redis_store.incr_capped("current_attendees_count", 1, 100) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [RedisConnectionError("down"), RedisTimeoutError("slow")])
    async def test_redis_errors_become_store_unavailable(self, redis_store, redis_mock, error):
        redis_mock.get.side_effect = error

        with pytest.raises(StoreUnavailable):
            await redis_store.get("blacklist:T1")

    @pytest.mark.asyncio
    async def test_ping_false_on_error(self, redis_store, redis_mock):
        redis_mock.ping.side_effect = RedisConnectionError("down")

        assert await redis_store.ping() is False

    @pytest.mark.asyncio
    async def test_unconnected_store_is_unavailable(self):
        store = RedisCacheStore()

        with pytest.raises(StoreUnavailable):
            await store.get("current_attendees_count")
        assert await store.ping() is False

    @pytest.mark.asyncio
    async def test_close_releases_client(self, redis_store, redis_mock):
        await redis_store.close()

        redis_mock.aclose.assert_awaited_once()
        assert await redis_store.ping() is False
