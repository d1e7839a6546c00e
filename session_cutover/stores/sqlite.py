"""
SQLite destination store.

Keeps one row per session in a table keyed by session_id, with the
session fields serialized as JSON text. Inserts go through
INSERT ... ON CONFLICT DO NOTHING so an existing row is never replaced.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import aiosqlite

from ..exceptions import ConfigurationError, PersistenceError, StoreUnavailableError
from ..models import CanonicalSessionRecord, UpsertResult
from .base import DestinationStore

logger = logging.getLogger(__name__)

_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

SESSION_COLUMNS = (
    "session_id",
    "data",
    "created_at",
    "updated_at",
)


def validate_table_name(table: str) -> str:
    """Table names are interpolated into SQL, so only identifiers pass."""
    if not _TABLE_NAME_RE.match(table):
        raise ConfigurationError("table", "must be a plain SQL identifier", table)
    return table


@dataclass
class SQLiteDestinationConfig:
    """Configuration for the SQLite destination."""

    db_path: str | Path = ":memory:"
    table: str = "sessions"


class SQLiteDestinationStore(DestinationStore):
    """
    Destination store backed by SQLite.

    Schema:
    - session_id TEXT PRIMARY KEY
    - data TEXT (JSON object)
    - created_at / updated_at TEXT (ISO 8601, UTC)
    """

    def __init__(self, config: SQLiteDestinationConfig):
        """
        Initialize SQLite destination.

        Args:
            config: SQLite configuration
        """
        self.config = config
        self.table = validate_table_name(config.table)
        self.conn: aiosqlite.Connection | None = None
        self._initialized = False
        self._write_lock = asyncio.Lock()

    @classmethod
    async def create(cls, config: SQLiteDestinationConfig | None = None) -> SQLiteDestinationStore:
        """Create and initialize SQLite destination."""
        if config is None:
            config = SQLiteDestinationConfig()

        store = cls(config)
        await store.initialize()
        return store

    async def initialize(self) -> None:
        """Open the connection and create the sessions table if needed."""
        if self._initialized:
            return

        try:
            self.conn = await aiosqlite.connect(str(self.config.db_path))
            await self.conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    session_id TEXT NOT NULL PRIMARY KEY,
                    data TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            await self.conn.commit()
        except sqlite3.Error as e:
            raise StoreUnavailableError(str(self.config.db_path), e) from e

        self._initialized = True
        logger.info(f"SQLite destination ready: {self.config.db_path} (table {self.table})")

    def _require_conn(self) -> aiosqlite.Connection:
        if self.conn is None:
            raise StoreUnavailableError(str(self.config.db_path), RuntimeError("not initialized"))
        return self.conn

    async def upsert_if_absent(self, record: CanonicalSessionRecord) -> UpsertResult:
        conn = self._require_conn()
        now = datetime.now(UTC)
        created_at = record.created_at or now
        updated_at = record.updated_at or created_at

        try:
            async with self._write_lock:
                cursor = await conn.execute(
                    f"""
                    INSERT INTO {self.table} (session_id, data, created_at, updated_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(session_id) DO NOTHING
                    """,
                    (
                        record.session_id,
                        record.data_json(),
                        created_at.isoformat(),
                        updated_at.isoformat(),
                    ),
                )
                inserted = cursor.rowcount
                await cursor.close()
                await conn.commit()
        except (sqlite3.Error, TypeError, ValueError) as e:
            raise PersistenceError(record.session_id, e) from e

        if inserted == 0:
            return UpsertResult.ALREADY_EXISTS
        return UpsertResult.INSERTED

    async def exists(self, session_id: str) -> bool:
        conn = self._require_conn()
        async with conn.execute(
            f"SELECT 1 FROM {self.table} WHERE session_id = ?", (session_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return row is not None

    async def get(self, session_id: str) -> CanonicalSessionRecord | None:
        conn = self._require_conn()
        async with conn.execute(
            f"SELECT {', '.join(SESSION_COLUMNS)} FROM {self.table} WHERE session_id = ?",
            (session_id,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_record(row)

    async def count(self) -> int:
        conn = self._require_conn()
        async with conn.execute(f"SELECT COUNT(*) FROM {self.table}") as cursor:
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    async def list_session_ids(self) -> list[str]:
        """All stored session ids, sorted."""
        conn = self._require_conn()
        async with conn.execute(
            f"SELECT session_id FROM {self.table} ORDER BY session_id"
        ) as cursor:
            rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def close(self) -> None:
        if self.conn is not None:
            await self.conn.close()
            self.conn = None
        self._initialized = False

    @staticmethod
    def _row_to_record(row: Any) -> CanonicalSessionRecord:
        session_id, data, created_at, updated_at = row
        return CanonicalSessionRecord(
            session_id=session_id,
            data=json.loads(data),
            created_at=datetime.fromisoformat(created_at) if created_at else None,
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )
