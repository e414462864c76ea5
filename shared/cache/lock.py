"""Per-ticket advisory lock on top of the cache store"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from shared.cache.store import CacheStore
from shared.utils.exceptions import ConcurrentProcessing

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TTL = 30


def lock_key(ticket_id: str) -> str:
    return f"lock:{ticket_id}"


class TicketLock:
    """
    Fail-fast mutual exclusion for verifications of the same ticket.

    The lock is a ``lock:<ticket_id>`` key created with SET NX and a TTL. There
    is no waiting or retrying: a second attempt on a held ticket is rejected
    immediately. The TTL only bounds how long a crashed holder blocks the ticket.
    """

    def __init__(self, store: CacheStore, ttl: int = DEFAULT_LOCK_TTL):
        self.store = store
        self.ttl = ttl

    async def acquire(self, ticket_id: str) -> bool:
        """Return True if the lock was newly taken by this caller"""
        return await self.store.set(
            lock_key(ticket_id), ticket_id, ttl=self.ttl, only_if_absent=True
        )

    async def release(self, ticket_id: str) -> None:
        await self.store.delete(lock_key(ticket_id))

    @asynccontextmanager
    async def hold(self, ticket_id: str) -> AsyncIterator[None]:
        if not await self.acquire(ticket_id):
            raise ConcurrentProcessing()

        try:
            yield
        finally:
            try:
                await self.release(ticket_id)
            except Exception as e:
                # The TTL expires the key; keep the attempt's own outcome
                logger.error(f"Could not release lock for ticket {ticket_id}: {e}")
