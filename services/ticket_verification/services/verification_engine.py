"""
Ticket verification engine

Turns a scanned ticket token into an admit or deny decision. Every check runs
in a fixed order and the first failing one ends the attempt; only an admitted
ticket mutates the ticket record and the attendee counter.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from services.event_registry.models.event import Event
from services.event_registry.services.event_registry import EventRegistry
from services.ticket_verification.models.ticket import TicketRecord
from services.ticket_verification.services.ticket_ledger import TicketLedger
from shared.auth.ticket_token import TicketClaims, verify_ticket_token
from shared.cache.lock import TicketLock
from shared.cache.store import CacheStore
from shared.core.config import Settings, settings as default_settings
from shared.utils.exceptions import (
    AlreadyInside,
    Blacklisted,
    EventFull,
    EventMismatch,
    IssuerMismatch,
    MaxEntriesReached,
    NoActiveEvent,
    Revoked,
    TicketExpired,
    TicketInvalidOrRevoked,
    VerificationRejected,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VerificationEngine:
    """Admit/deny state machine for gate scans"""

    def __init__(
        self,
        store: CacheStore,
        config: Optional[Settings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.config = config or default_settings
        self.clock = clock
        self.events = EventRegistry(store)
        self.ledger = TicketLedger(store)
        self.lock = TicketLock(store, ttl=self.config.LOCK_TTL_SECONDS)

    async def verify(self, token: str, device_key: str, scan_time: datetime) -> TicketRecord:
        """
        Verify a scanned ticket

        Args:
            token: Signed ticket token read from the QR code
            device_key: Serial number of the scanning turnstile
            scan_time: Time the QR code was scanned

        Returns:
            The ticket record after admission

        Raises:
            VerificationRejected: a subclass naming the failed check
            StoreUnavailable: the shared store failed mid-attempt
        """
        try:
            record = await self._verify(token, device_key, scan_time)
        except VerificationRejected as e:
            logger.warning(f"Ticket validation failed on device {device_key}: [{e.kind}] {e.message}")
            raise

        logger.info(
            f"Ticket {record.ticket_id} admitted on device {device_key} "
            f"(entry {record.entry_count})"
        )
        return record

    async def _verify(self, token: str, device_key: str, scan_time: datetime) -> TicketRecord:
        event = await self.events.current()
        if event is None:
            raise NoActiveEvent()

        claims = verify_ticket_token(token, self.config.JWT_SECRET, [self.config.JWT_ALGORITHM])

        self.validate_issuer(claims)
        self.check_ticket_expiry(claims)
        self.validate_event_id(claims, event)

        await self.check_blacklisted(claims.ticket_id)
        await self.check_revoked(claims.ticket_id)

        async with self.lock.hold(claims.ticket_id):
            attendees = await self.ledger.attendee_count()
            if attendees >= event.max_capacity:
                raise EventFull()

            return await self._resolve_ticket(claims, event, device_key, scan_time)

    def validate_issuer(self, claims: TicketClaims) -> None:
        if claims.issuer != self.config.TICKET_ISSUER:
            raise IssuerMismatch(f"Ticket was not issued by {self.config.TICKET_ISSUER}")

    def check_ticket_expiry(self, claims: TicketClaims) -> None:
        if claims.valid_until <= self.clock():
            raise TicketExpired()

    @staticmethod
    def validate_event_id(claims: TicketClaims, event: Event) -> None:
        if claims.event_id != event.id:
            raise EventMismatch()

    async def check_blacklisted(self, ticket_id: str) -> None:
        if await self.store.get(f"blacklist:{ticket_id}"):
            raise Blacklisted()

    async def check_revoked(self, ticket_id: str) -> None:
        if await self.store.get(f"revoked:{ticket_id}"):
            raise Revoked()

    async def _resolve_ticket(
        self,
        claims: TicketClaims,
        event: Event,
        device_key: str,
        scan_time: datetime,
    ) -> TicketRecord:
        existing = await self.ledger.read(claims.ticket_id)

        if existing is None:
            record = TicketRecord.first_entry(claims, device_key, scan_time)
            await self._admit(record, event)
            return record

        if existing.status == "valid":
            if existing.entry_status == "in":
                raise AlreadyInside()
            if existing.entry_count >= event.max_entries:
                raise MaxEntriesReached()

            record = existing.model_copy(
                update={
                    "entry_status": "in",
                    "entry_count": existing.entry_count + 1,
                    "device_id": device_key,
                    "scanned": scan_time,
                }
            )
            await self._admit(record, event)
            return record

        raise TicketInvalidOrRevoked()

    async def _admit(self, record: TicketRecord, event: Event) -> None:
        """Take an attendee slot, then persist the record"""
        count = await self.ledger.increment_attendees(1, limit=event.max_capacity)
        if count is None:
            # Another ticket took the last slot after the capacity check
            raise EventFull()

        try:
            await self.ledger.write(record)
        except Exception:
            await self._return_slot(record.ticket_id)
            raise

    async def _return_slot(self, ticket_id: str) -> None:
        try:
            await self.ledger.decrement_attendees(1)
        except Exception as e:
            logger.error(f"Could not return attendee slot for ticket {ticket_id}: {e}")
