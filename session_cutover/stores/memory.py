"""
In-memory stores.

Useful for dry runs against captured data and for exercising the
migration without a live Redis or database.
"""

from __future__ import annotations

import copy
from collections.abc import AsyncIterator, Mapping
from typing import Any

from ..models import CanonicalSessionRecord, UpsertResult
from .base import DestinationStore, SourcePayload, SourceStore


class InMemorySourceStore(SourceStore):
    """Source store over a plain dict of key -> payload."""

    def __init__(self, items: Mapping[str, SourcePayload] | None = None):
        self.items: dict[str, SourcePayload] = dict(items or {})

    async def scan_prefix(self, prefix: str) -> AsyncIterator[str]:
        # Snapshot the live key set at call time
        for key in sorted(self.items):
            if key.startswith(prefix):
                yield key

    async def fetch(self, key: str, value_kind: str = "string") -> SourcePayload | None:
        return self.items.get(key)

    def put(self, key: str, payload: SourcePayload) -> None:
        self.items[key] = payload

    def expire(self, key: str) -> None:
        self.items.pop(key, None)


class InMemoryDestinationStore(DestinationStore):
    """Destination store keeping records in a dict keyed by session_id."""

    def __init__(self, records: list[CanonicalSessionRecord] | None = None):
        self.records: dict[str, CanonicalSessionRecord] = {}
        self.write_attempts = 0
        for record in records or []:
            self.records[record.session_id] = record

    async def upsert_if_absent(self, record: CanonicalSessionRecord) -> UpsertResult:
        self.write_attempts += 1
        if record.session_id in self.records:
            return UpsertResult.ALREADY_EXISTS
        self.records[record.session_id] = copy.deepcopy(record)
        return UpsertResult.INSERTED

    async def exists(self, session_id: str) -> bool:
        return session_id in self.records

    async def get(self, session_id: str) -> CanonicalSessionRecord | None:
        return self.records.get(session_id)

    async def count(self) -> int:
        return len(self.records)

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """session_id -> data for every stored record."""
        return {sid: record.data for sid, record in self.records.items()}
