"""
Tests for the SQLite destination store.

Uses real SQLite (in-memory) for accurate testing.
"""

from datetime import UTC, datetime

import pytest

from session_cutover.exceptions import ConfigurationError, PersistenceError, StoreUnavailableError
from session_cutover.models import CanonicalSessionRecord, UpsertResult
from session_cutover.stores import SQLiteDestinationConfig, SQLiteDestinationStore


class TestSQLiteInitialization:
    """Tests for SQLite destination initialization."""

    @pytest.mark.asyncio
    async def test_create_with_defaults(self):
        """Destination creates with default configuration."""
        store = await SQLiteDestinationStore.create()
        assert store._initialized is True
        assert await store.count() == 0
        await store.close()

    @pytest.mark.asyncio
    async def test_initialize_twice(self, sqlite_destination):
        """Initializing again is a no-op."""
        await sqlite_destination.initialize()
        assert sqlite_destination._initialized is True

    @pytest.mark.asyncio
    async def test_custom_table(self):
        config = SQLiteDestinationConfig(db_path=":memory:", table="web_sessions")
        async with SQLiteDestinationStore(config) as store:
            result = await store.upsert_if_absent(CanonicalSessionRecord("abc", {"n": 1}))
            assert result == UpsertResult.INSERTED
            assert await store.exists("abc")

    def test_rejects_unsafe_table_name(self):
        with pytest.raises(ConfigurationError):
            SQLiteDestinationStore(SQLiteDestinationConfig(table="sessions; DROP TABLE x"))

    @pytest.mark.asyncio
    async def test_schema_persists_in_file(self, tmp_path):
        db_path = tmp_path / "sessions.db"
        first = await SQLiteDestinationStore.create(SQLiteDestinationConfig(db_path=db_path))
        await first.upsert_if_absent(CanonicalSessionRecord("abc", {"theme": "dark"}))
        await first.close()

        second = await SQLiteDestinationStore.create(SQLiteDestinationConfig(db_path=db_path))
        try:
            assert await second.count() == 1
            assert await second.upsert_if_absent(
                CanonicalSessionRecord("abc", {})
            ) == UpsertResult.ALREADY_EXISTS
        finally:
            await second.close()

    @pytest.mark.asyncio
    async def test_unopened_store_is_unavailable(self):
        store = SQLiteDestinationStore(SQLiteDestinationConfig())
        with pytest.raises(StoreUnavailableError):
            await store.count()


class TestSQLiteUpsert:
    """Tests for insert-if-absent writes."""

    @pytest.mark.asyncio
    async def test_insert_new_session(self, sqlite_destination):
        record = CanonicalSessionRecord(
            session_id="abc123", data={"theme": "dark", "user_id": 42}
        )

        result = await sqlite_destination.upsert_if_absent(record)

        assert result == UpsertResult.INSERTED
        stored = await sqlite_destination.get("abc123")
        assert stored is not None
        assert stored.data == {"theme": "dark", "user_id": 42}

    @pytest.mark.asyncio
    async def test_duplicate_is_not_overwritten(self, sqlite_destination):
        await sqlite_destination.upsert_if_absent(
            CanonicalSessionRecord(session_id="abc123", data={"theme": "light"})
        )

        result = await sqlite_destination.upsert_if_absent(
            CanonicalSessionRecord(session_id="abc123", data={"theme": "dark"})
        )

        assert result == UpsertResult.ALREADY_EXISTS
        stored = await sqlite_destination.get("abc123")
        assert stored.data == {"theme": "light"}
        assert await sqlite_destination.count() == 1

    @pytest.mark.asyncio
    async def test_timestamps_default_to_insert_time(self, sqlite_destination):
        before = datetime.now(UTC)
        await sqlite_destination.upsert_if_absent(CanonicalSessionRecord("abc", {}))
        after = datetime.now(UTC)

        stored = await sqlite_destination.get("abc")
        assert before <= stored.created_at <= after
        assert stored.updated_at == stored.created_at

    @pytest.mark.asyncio
    async def test_source_timestamps_kept(self, sqlite_destination):
        created = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        updated = datetime(2024, 1, 2, 8, 30, tzinfo=UTC)
        await sqlite_destination.upsert_if_absent(
            CanonicalSessionRecord("abc", {}, created_at=created, updated_at=updated)
        )

        stored = await sqlite_destination.get("abc")
        assert stored.created_at == created
        assert stored.updated_at == updated

    @pytest.mark.asyncio
    async def test_data_stored_canonically(self, sqlite_destination):
        await sqlite_destination.upsert_if_absent(
            CanonicalSessionRecord("abc", {"b": 1, "a": [1, 2]})
        )

        async with sqlite_destination.conn.execute(
            "SELECT data FROM sessions WHERE session_id = ?", ("abc",)
        ) as cursor:
            row = await cursor.fetchone()

        assert row[0] == '{"a":[1,2],"b":1}'

    @pytest.mark.asyncio
    async def test_missing_table_raises_persistence_error(self, sqlite_destination):
        conn = sqlite_destination.conn
        await conn.execute("DROP TABLE sessions")

        with pytest.raises(PersistenceError) as exc_info:
            await sqlite_destination.upsert_if_absent(CanonicalSessionRecord("abc", {}))
        assert exc_info.value.session_id == "abc"

    @pytest.mark.asyncio
    async def test_nan_data_is_not_written(self, sqlite_destination):
        with pytest.raises(PersistenceError):
            await sqlite_destination.upsert_if_absent(
                CanonicalSessionRecord("abc", {"score": float("nan")})
            )
        assert await sqlite_destination.exists("abc") is False


class TestSQLiteQueries:
    """Tests for lookups."""

    @pytest.mark.asyncio
    async def test_exists(self, sqlite_destination):
        assert await sqlite_destination.exists("abc") is False
        await sqlite_destination.upsert_if_absent(CanonicalSessionRecord("abc", {}))
        assert await sqlite_destination.exists("abc") is True

    @pytest.mark.asyncio
    async def test_get_missing(self, sqlite_destination):
        assert await sqlite_destination.get("missing") is None

    @pytest.mark.asyncio
    async def test_list_session_ids(self, sqlite_destination):
        for session_id in ("b", "c", "a"):
            await sqlite_destination.upsert_if_absent(CanonicalSessionRecord(session_id, {}))
        assert await sqlite_destination.list_session_ids() == ["a", "b", "c"]
