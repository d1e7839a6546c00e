"""
Abstract base classes for session stores.

The migration only depends on these interfaces, so any key-value
cache can act as the source and any store with a unique constraint
on session_id can act as the destination.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

from ..models import CanonicalSessionRecord, UpsertResult

# Raw payload as held by the source: a serialized string value, or the
# field mapping of a hash. None when the key does not exist.
SourcePayload = bytes | str | dict[Any, Any]


class SourceStore(ABC):
    """
    Read-only view of the namespaced cache holding live sessions.

    Implementations raise StoreUnavailableError when the store cannot
    be reached and SessionDecodeError when a key holds a value of a
    kind they cannot return.
    """

    @abstractmethod
    def scan_prefix(self, prefix: str) -> AsyncIterator[str]:
        """
        Iterate over every key starting with prefix.

        Each call queries the live key set again. A key may be
        yielded more than once within one pass.
        """

    @abstractmethod
    async def fetch(self, key: str, value_kind: str = "string") -> SourcePayload | None:
        """
        Fetch the raw value stored under key.

        Args:
            key: Full source key (prefix included)
            value_kind: "string" for serialized values, "hash" for field maps

        Returns:
            The raw payload, or None if the key no longer exists
        """

    async def close(self) -> None:
        """Release any connections held by the store."""

    async def __aenter__(self) -> SourceStore:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


class DestinationStore(ABC):
    """
    Relational store receiving migrated sessions.

    session_id is unique: writes never replace an existing row.
    """

    async def initialize(self) -> None:
        """Prepare connections and schema. Safe to call twice."""

    @abstractmethod
    async def upsert_if_absent(self, record: CanonicalSessionRecord) -> UpsertResult:
        """
        Insert record unless a row with the same session_id exists.

        Returns:
            INSERTED when the row was written, ALREADY_EXISTS otherwise

        Raises:
            PersistenceError: Any failure other than the duplicate case
        """

    @abstractmethod
    async def exists(self, session_id: str) -> bool:
        """Check whether a row with session_id is present."""

    @abstractmethod
    async def get(self, session_id: str) -> CanonicalSessionRecord | None:
        """Load a stored session, or None if absent."""

    @abstractmethod
    async def count(self) -> int:
        """Number of stored sessions."""

    async def close(self) -> None:
        """Release any connections held by the store."""

    async def __aenter__(self) -> DestinationStore:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
