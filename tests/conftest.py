"""
Shared test configuration and fixtures.

Provides in-memory and SQLite stores plus a small stand-in for the
redis-py asyncio client, so the migration can be exercised without a
live Redis server.
"""

import json
from collections.abc import AsyncIterator
from typing import Any

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from session_cutover.stores import (
    InMemoryDestinationStore,
    InMemorySourceStore,
    SQLiteDestinationConfig,
    SQLiteDestinationStore,
)

SCENARIO_SESSIONS = {
    "session:abc123": {"theme": "dark", "user_id": 42},
    "session:xyz789": {},
}


def encode(value: dict[str, Any]) -> bytes:
    return json.dumps(value).encode("utf-8")


class FakeRedisClient:
    """
    Minimal in-process stand-in for redis.asyncio.Redis.

    Supports the calls the source store makes: scan_iter, get, hgetall,
    aclose. String values are bytes, hash values are dicts of bytes.
    """

    def __init__(self, data: dict[str, Any] | None = None, scan_batch: int = 2):
        self.data: dict[str, Any] = dict(data or {})
        self.scan_batch = scan_batch
        self.closed = False
        self.fail_scan = False
        self.fail_get: set[str] = set()
        self.scan_calls: list[tuple[str, int]] = []

    @staticmethod
    def _literal_prefix(pattern: str) -> str:
        assert pattern.endswith("*")
        prefix = []
        chars = iter(pattern[:-1])
        for char in chars:
            prefix.append(next(chars) if char == "\\" else char)
        return "".join(prefix)

    async def scan_iter(self, match: str, count: int):
        self.scan_calls.append((match, count))
        prefix = self._literal_prefix(match)
        for index, key in enumerate(sorted(self.data)):
            if self.fail_scan and index >= self.scan_batch:
                raise RedisConnectionError("Connection reset by peer")
            if key.startswith(prefix):
                yield key.encode("utf-8")

    async def get(self, key: str):
        if key in self.fail_get:
            raise RedisConnectionError("Connection reset by peer")
        value = self.data.get(key)
        if isinstance(value, dict):
            raise ResponseError("WRONGTYPE Operation against a key holding the wrong kind of value")
        return value

    async def hgetall(self, key: str):
        value = self.data.get(key)
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ResponseError("WRONGTYPE Operation against a key holding the wrong kind of value")
        return dict(value)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def scenario_source() -> InMemorySourceStore:
    """Source holding session:abc123 and session:xyz789 as JSON strings."""
    return InMemorySourceStore({key: json.dumps(value) for key, value in SCENARIO_SESSIONS.items()})


@pytest.fixture
def memory_destination() -> InMemoryDestinationStore:
    return InMemoryDestinationStore()


@pytest.fixture
async def sqlite_destination() -> AsyncIterator[SQLiteDestinationStore]:
    """Fixture providing an initialized in-memory SQLite destination."""
    store = await SQLiteDestinationStore.create(SQLiteDestinationConfig(db_path=":memory:"))
    yield store
    await store.close()


@pytest.fixture
def fake_redis() -> FakeRedisClient:
    return FakeRedisClient({key: encode(value) for key, value in SCENARIO_SESSIONS.items()})
