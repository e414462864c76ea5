"""
Test configuration and fixtures

Environment variables are set before any application module is imported,
because ``shared.core.config.settings`` is read at import time.
"""
import os

os.environ["JWT_SECRET"] = "test-secret"
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ["TICKET_ISSUER"] = "test-issuer"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["APP_ENV"] = "development"
os.environ["LOCK_TTL_SECONDS"] = "30"

import asyncio
import time
from datetime import datetime, timedelta, timezone
from typing import Dict, Mapping, Optional

import pytest

from services.event_registry.models.event import Event
from services.event_registry.services.event_registry import EventRegistry
from services.ticket_verification.services.verification_engine import VerificationEngine
from shared.auth.ticket_token import create_ticket_token
from shared.cache.store import CacheStore
from shared.utils.exceptions import StoreUnavailable

TEST_SECRET = "test-secret"
TEST_ISSUER = "test-issuer"
TEST_EVENT_ID = "EVT-1"
DEVICE_KEY = "gate-01"


class InMemoryCacheStore(CacheStore):
    """
    CacheStore double backed by dicts.

    Every operation yields to the event loop first, so concurrent coroutines
    interleave between store calls the way they do against Redis. Each
    individual operation is atomic, like a single Redis command.
    Operation names added to ``failing`` raise StoreUnavailable.
    """

    def __init__(self):
        self.values: Dict[str, str] = {}
        self.hashes: Dict[str, Dict[str, str]] = {}
        self.expires: Dict[str, float] = {}
        self.failing = set()
        self.calls = []
        self.live = True
        self.connects = 0
        self.closes = 0

    async def _enter(self, name: str, key: Optional[str] = None) -> None:
        await asyncio.sleep(0)
        self.calls.append((name, key))
        if name in self.failing:
            raise StoreUnavailable(f"{name} failed")
        if key is not None:
            self._expire(key)

    def _expire(self, key: str) -> None:
        deadline = self.expires.get(key)
        if deadline is not None and deadline <= time.monotonic():
            self.values.pop(key, None)
            self.hashes.pop(key, None)
            self.expires.pop(key, None)

    def ttl(self, key: str) -> Optional[float]:
        deadline = self.expires.get(key)
        return None if deadline is None else deadline - time.monotonic()

    def mutations(self):
        return [call for call in self.calls if call[0] in ("set", "hset", "replace_hash", "delete", "incrby", "incr_capped")]

    async def connect(self) -> None:
        self.connects += 1

    async def close(self) -> None:
        self.closes += 1

    async def ping(self) -> bool:
        await asyncio.sleep(0)
        return self.live

    async def get(self, key: str) -> Optional[str]:
        await self._enter("get", key)
        return self.values.get(key)

    async def set(self, key, value, ttl=None, only_if_absent=False) -> bool:
        await self._enter("set", key)
        if only_if_absent and (key in self.values or key in self.hashes):
            return False
        self.values[key] = str(value)
        if ttl:
            self.expires[key] = time.monotonic() + ttl
        else:
            self.expires.pop(key, None)
        return True

    async def hgetall(self, key: str) -> Dict[str, str]:
        await self._enter("hgetall", key)
        return dict(self.hashes.get(key, {}))

    async def hset(self, key: str, mapping: Mapping[str, str]) -> None:
        await self._enter("hset", key)
        self.hashes.setdefault(key, {}).update({k: str(v) for k, v in mapping.items()})

    async def replace_hash(self, key: str, mapping: Mapping[str, str]) -> None:
        await self._enter("replace_hash", key)
        self.hashes[key] = {k: str(v) for k, v in mapping.items()}

    async def delete(self, key: str) -> None:
        await self._enter("delete", key)
        self.values.pop(key, None)
        self.hashes.pop(key, None)
        self.expires.pop(key, None)

    async def incrby(self, key: str, by: int = 1) -> int:
        await self._enter("incrby", key)
        value = int(self.values.get(key, "0")) + by
        self.values[key] = str(value)
        return value

    async def incr_capped(self, key: str, by: int, limit: int) -> Optional[int]:
        await self._enter("incr_capped", key)
        current = int(self.values.get(key, "0"))
        if current + by > limit:
            return None
        self.values[key] = str(current + by)
        return current + by


@pytest.fixture
def store():
    return InMemoryCacheStore()


@pytest.fixture
def current_event():
    return Event(id=TEST_EVENT_ID, name="Test Concert", max_capacity=100, max_entries=2, validity="2026-10-16")


@pytest.fixture
async def active_event(store, current_event):
    await EventRegistry(store).set(current_event)
    store.calls.clear()
    return current_event


@pytest.fixture
def engine(store):
    return VerificationEngine(store)


@pytest.fixture
def make_token():
    """Factory for signed ticket tokens; keyword overrides replace claims"""

    def _make(ticket_id: str = "T1", secret: str = TEST_SECRET, **overrides) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "ticket_id": ticket_id,
            "event_id": TEST_EVENT_ID,
            "issuer": TEST_ISSUER,
            "valid_until": now + timedelta(hours=2),
            "exp": now + timedelta(hours=2),
        }
        claims.update(overrides)
        claims = {key: value for key, value in claims.items() if value is not None}
        return create_ticket_token(claims, secret)

    return _make


@pytest.fixture
def scan_time():
    return datetime(2026, 10, 16, 19, 30, tzinfo=timezone.utc)
