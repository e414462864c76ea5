"""Registry of the event currently admitted at the gates"""
import logging
from typing import Optional

from pydantic import ValidationError

from services.event_registry.models.event import Event
from shared.cache.store import CacheStore

logger = logging.getLogger(__name__)

CURRENT_EVENT_KEY = "current_event"


class EventRegistry:
    """Reads and replaces the single ``current_event`` hash"""

    def __init__(self, store: CacheStore):
        self.store = store

    async def current(self) -> Optional[Event]:
        """Return the active event, or None when no usable event is configured"""
        data = await self.store.hgetall(CURRENT_EVENT_KEY)
        if not data:
            return None

        try:
            return Event.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed current_event record: {e}")
            return None

    async def set(self, event: Event) -> Event:
        """Replace the current event wholesale; readers never see a partial hash"""
        await self.store.replace_hash(CURRENT_EVENT_KEY, event.to_hash())
        logger.info(
            f"Current event set to {event.id} "
            f"(capacity={event.max_capacity}, max_entries={event.max_entries})"
        )
        return event

    async def delete(self) -> None:
        await self.store.delete(CURRENT_EVENT_KEY)
        logger.info("Current event deleted")
