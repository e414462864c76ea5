"""Contract of the shared key/value store used for all gate state"""
from abc import ABC, abstractmethod
from typing import Dict, Mapping, Optional


class CacheStore(ABC):
    """
    Remote key/value and hash store with per-key expiry.

    One instance is created per process (FastAPI lifespan or Celery worker)
    and injected into every component; no component owns or closes it.
    Every coroutine may raise ``StoreUnavailable``.
    """

    async def connect(self) -> None:
        """Open connections; no-op by default"""

    async def close(self) -> None:
        """Release connections; no-op by default"""

    @abstractmethod
    async def ping(self) -> bool:
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(
        self,
        key: str,
        value: str,
        ttl: Optional[int] = None,
        only_if_absent: bool = False,
    ) -> bool:
        """
        Store ``value`` under ``key``.

        Returns False only when ``only_if_absent`` is set and the key exists.
        """

    @abstractmethod
    async def hgetall(self, key: str) -> Dict[str, str]:
        """Return all fields of a hash, or an empty dict if it does not exist"""

    @abstractmethod
    async def hset(self, key: str, mapping: Mapping[str, str]) -> None:
        ...

    @abstractmethod
    async def replace_hash(self, key: str, mapping: Mapping[str, str]) -> None:
        """Drop every field of the hash and write ``mapping`` as one atomic step"""

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    async def incrby(self, key: str, by: int = 1) -> int:
        ...

    @abstractmethod
    async def incr_capped(self, key: str, by: int, limit: int) -> Optional[int]:
        """
        Atomically add ``by`` to an integer key unless the result would exceed
        ``limit``. Returns the new value, or None when nothing was added.
        """
