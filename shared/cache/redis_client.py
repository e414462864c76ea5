"""Redis implementation of the gate state store"""
import logging
from functools import wraps
from typing import Dict, Mapping, Optional

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError

from shared.cache.store import CacheStore
from shared.core.config import Settings, settings as default_settings
from shared.utils.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)


# Add ARGV[1] to KEYS[1] only while the result stays <= ARGV[2]
INCR_CAPPED_SCRIPT = """
local current = tonumber(redis.call("get", KEYS[1]) or "0")
local by = tonumber(ARGV[1])
if current + by > tonumber(ARGV[2]) then
    return false
end
return redis.call("incrby", KEYS[1], by)
"""


def _store_errors(func):
    """Translate redis client errors into StoreUnavailable"""

    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except RedisError as e:
            logger.error(f"Redis command {func.__name__} failed: {e}")
            raise StoreUnavailable(str(e)) from e

    return wrapper


class RedisCacheStore(CacheStore):
    """CacheStore backed by a pooled redis.asyncio client"""

    def __init__(self, config: Optional[Settings] = None, client: Optional[redis.Redis] = None):
        self.config = config or default_settings
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = client

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            raise StoreUnavailable("Redis client is not connected")
        return self._client

    async def connect(self) -> None:
        """Create the connection pool and check that Redis answers"""
        if self._client is not None:
            return

        self._pool = ConnectionPool.from_url(
            self.config.REDIS_URL,
            password=self.config.REDIS_PASSWORD or None,
            max_connections=self.config.REDIS_MAX_CONNECTIONS,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_keepalive=True,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        self._client = redis.Redis(connection_pool=self._pool)

        try:
            await self._client.ping()
            logger.info(
                f"Redis connected (pool max_connections={self.config.REDIS_MAX_CONNECTIONS})"
            )
        except RedisError as e:
            # The service still starts; the health check reports the outage
            logger.error(f"Error connecting to Redis: {e}")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None
        logger.info("Redis disconnected")

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except (RedisError, StoreUnavailable) as e:
            logger.error(f"Error checking Redis server status: {e}")
            return False

    @_store_errors
    async def get(self, key: str) -> Optional[str]:
        return await self.client.get(key)

    @_store_errors
    async def set(
        self,
        key: str,
        value: str,
        ttl: Optional[int] = None,
        only_if_absent: bool = False,
    ) -> bool:
        result = await self.client.set(key, value, ex=ttl, nx=only_if_absent)
        return bool(result)

    @_store_errors
    async def hgetall(self, key: str) -> Dict[str, str]:
        return await self.client.hgetall(key) or {}

    @_store_errors
    async def hset(self, key: str, mapping: Mapping[str, str]) -> None:
        await self.client.hset(key, mapping=dict(mapping))

    @_store_errors
    async def replace_hash(self, key: str, mapping: Mapping[str, str]) -> None:
        async with self.client.pipeline(transaction=True) as pipe:
            await pipe.delete(key).hset(key, mapping=dict(mapping)).execute()

    @_store_errors
    async def delete(self, key: str) -> None:
        await self.client.delete(key)

    @_store_errors
    async def incrby(self, key: str, by: int = 1) -> int:
        return int(await self.client.incrby(key, by))

    @_store_errors
    async def incr_capped(self, key: str, by: int, limit: int) -> Optional[int]:
        result = await self.client.eval(INCR_CAPPED_SCRIPT, 1, key, by, limit)
        return None if result is None else int(result)
