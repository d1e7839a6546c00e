"""
Redis source store.

Reads sessions out of a shared Redis keyspace through the redis-py
asyncio client. Keys are discovered with SCAN so the live server is
never blocked the way KEYS would block it.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ..exceptions import SessionDecodeError, StoreUnavailableError
from .base import SourcePayload, SourceStore

logger = logging.getLogger(__name__)

_GLOB_SPECIAL = "\\*?[]"


def escape_glob(text: str) -> str:
    """Escape Redis glob metacharacters so text matches literally."""
    return "".join(f"\\{char}" if char in _GLOB_SPECIAL else char for char in text)


def redact_url(url: str) -> str:
    """Drop credentials from a Redis URL before logging it."""
    parts = urlsplit(url)
    if parts.password is None and parts.username is None:
        return url
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, f"***@{host}", parts.path, parts.query, parts.fragment))


@dataclass
class RedisSourceConfig:
    """Configuration for the Redis source."""

    url: str = "redis://localhost:6379/0"
    scan_count: int = 500  # SCAN COUNT hint
    socket_timeout: float | None = 10.0


class RedisSourceStore(SourceStore):
    """
    Source store backed by Redis.

    The client is injected so callers decide connection pooling and
    authentication; create() builds one from a URL.
    """

    def __init__(self, client: Any, scan_count: int = 500, name: str = "redis"):
        """
        Initialize Redis source.

        Args:
            client: redis.asyncio.Redis (or compatible) client
            scan_count: COUNT hint passed to SCAN
            name: Store name used in errors and logs
        """
        self.client = client
        self.scan_count = scan_count
        self.name = name

    @classmethod
    async def create(cls, config: RedisSourceConfig | None = None) -> RedisSourceStore:
        """Connect to Redis and verify the server answers."""
        if config is None:
            config = RedisSourceConfig()

        safe_url = redact_url(config.url)
        client = aioredis.Redis.from_url(
            config.url,
            socket_connect_timeout=config.socket_timeout,
            socket_timeout=config.socket_timeout,
        )
        try:
            await client.ping()
        except (RedisConnectionError, RedisTimeoutError, OSError) as e:
            await client.aclose()
            raise StoreUnavailableError(safe_url, e) from e

        logger.info("Connected to Redis source", extra={"redis_url": safe_url})
        return cls(client, scan_count=config.scan_count, name=safe_url)

    async def scan_prefix(self, prefix: str) -> AsyncIterator[str]:
        pattern = f"{escape_glob(prefix)}*"
        try:
            async for raw_key in self.client.scan_iter(match=pattern, count=self.scan_count):
                yield _to_text(raw_key)
        except (RedisConnectionError, RedisTimeoutError, OSError) as e:
            raise StoreUnavailableError(self.name, e) from e

    async def fetch(self, key: str, value_kind: str = "string") -> SourcePayload | None:
        try:
            if value_kind == "hash":
                fields = await self.client.hgetall(key)
                # HGETALL answers an empty mapping for a missing key
                return fields or None
            return await self.client.get(key)
        except ResponseError as e:
            # WRONGTYPE: the key holds a different Redis type than expected
            raise SessionDecodeError(key, str(e)) from e
        except (RedisConnectionError, RedisTimeoutError, OSError) as e:
            raise StoreUnavailableError(self.name, e) from e

    async def close(self) -> None:
        await self.client.aclose()


def _to_text(value: bytes | str) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value
