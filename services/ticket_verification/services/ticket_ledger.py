"""Ticket entry records and the live attendee counter"""
import logging
from typing import Optional

from pydantic import ValidationError

from services.ticket_verification.models.ticket import TicketRecord
from shared.cache.store import CacheStore
from shared.utils.exceptions import TicketInvalidOrRevoked

logger = logging.getLogger(__name__)

ATTENDEES_COUNT_KEY = "current_attendees_count"


def ticket_key(ticket_id: str) -> str:
    return f"ticket:{ticket_id}"


class TicketLedger:
    """Storage of per-ticket entry state and the global attendee count"""

    def __init__(self, store: CacheStore):
        self.store = store

    async def read(self, ticket_id: str) -> Optional[TicketRecord]:
        """
        Return the stored record, or None for a ticket never scanned.

        The key names the ticket, so a hash without ``ticket_id`` is filled in
        from it. A record that still does not validate cannot be trusted and
        the ticket is rejected as invalid.
        """
        data = await self.store.hgetall(ticket_key(ticket_id))
        if not data:
            return None

        data = dict(data)
        data.setdefault("ticket_id", ticket_id)
        try:
            return TicketRecord.from_hash(data)
        except ValidationError as e:
            logger.warning(f"Malformed record for ticket {ticket_id}: {e}")
            raise TicketInvalidOrRevoked()

    async def write(self, record: TicketRecord) -> None:
        """Overwrite every field of the record in one HSET"""
        await self.store.hset(ticket_key(record.ticket_id), record.to_hash())

    async def attendee_count(self) -> int:
        value = await self.store.get(ATTENDEES_COUNT_KEY)
        return int(value) if value else 0

    async def increment_attendees(self, by: int = 1, limit: Optional[int] = None) -> Optional[int]:
        """
        Add ``by`` attendees and return the new count.

        With ``limit`` the increment is a single conditional store operation;
        None is returned (and nothing is added) if it would pass the limit.
        """
        if limit is None:
            return await self.store.incrby(ATTENDEES_COUNT_KEY, by)
        return await self.store.incr_capped(ATTENDEES_COUNT_KEY, by, limit)

    async def decrement_attendees(self, by: int = 1) -> int:
        return await self.store.incrby(ATTENDEES_COUNT_KEY, -by)
