"""Tests for gemstudio.core.history_store — SQLite-backed generation history.

Tests cover:
- Opening (schema creation, idempotence, unusable locations).
- Insert / list ordering (newest first) and round-tripping of every field.
- Duplicate ids rejected with DuplicateKey, leaving the store unchanged.
- Idempotent delete, clear, and count.
- Operations on a store that was never opened.
- Per-profile scoping and timestamp reservation.
"""

from __future__ import annotations

import sqlite3

import pytest

from gemstudio.core.errors import DuplicateKey, StoreUnavailable
from gemstudio.core.history_store import HistoryStore, SQLiteHistoryStore


class TestOpen:
    """Tests for SQLiteHistoryStore.open."""

    @pytest.mark.asyncio
    async def test_open_creates_database(self, temp_dir):
        """Opening a store should create the database file and table."""
        db_path = temp_dir / "nested" / "history.db"
        store = SQLiteHistoryStore(db_path)

        await store.open()

        assert store.is_open
        assert db_path.exists()
        with sqlite3.connect(db_path) as conn:
            tables = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            ).fetchall()
        assert ("history",) in tables

    @pytest.mark.asyncio
    async def test_open_is_idempotent(self, history_store, make_record):
        """Opening twice should keep existing records."""
        await history_store.insert(make_record(1000))

        await history_store.open()

        assert await history_store.count() == 1

    @pytest.mark.asyncio
    async def test_reopen_sees_previous_session(self, temp_dir, make_record):
        """A new store on the same file should see earlier records."""
        first = SQLiteHistoryStore(temp_dir / "history.db")
        await first.open()
        await first.insert(make_record(1000))

        second = SQLiteHistoryStore(temp_dir / "history.db")
        await second.open()

        assert [r.id for r in await second.list_all()] == ["1000"]

    @pytest.mark.asyncio
    async def test_open_unusable_path_raises(self, temp_dir):
        """A database path that is a directory should fail to open."""
        blocker = temp_dir / "blocker"
        blocker.mkdir()
        store = SQLiteHistoryStore(blocker)

        with pytest.raises(StoreUnavailable):
            await store.open()

        assert not store.is_open

    def test_is_history_store(self, temp_dir):
        assert isinstance(SQLiteHistoryStore(temp_dir / "h.db"), HistoryStore)


class TestNotOpen:
    """Operations before open() should report the store as unavailable."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", ["list_all", "clear", "count"])
    async def test_operations_require_open(self, temp_dir, operation):
        store = SQLiteHistoryStore(temp_dir / "history.db")

        with pytest.raises(StoreUnavailable, match="not open"):
            await getattr(store, operation)()

    @pytest.mark.asyncio
    async def test_insert_requires_open(self, temp_dir, make_record):
        store = SQLiteHistoryStore(temp_dir / "history.db")

        with pytest.raises(StoreUnavailable):
            await store.insert(make_record(1000))

    @pytest.mark.asyncio
    async def test_delete_requires_open(self, temp_dir):
        store = SQLiteHistoryStore(temp_dir / "history.db")

        with pytest.raises(StoreUnavailable):
            await store.delete_by_id("1000")


class TestInsertAndList:
    """Tests for insert and list_all."""

    @pytest.mark.asyncio
    async def test_empty_store_lists_nothing(self, history_store):
        assert await history_store.list_all() == []

    @pytest.mark.asyncio
    async def test_list_is_newest_first(self, history_store, make_record):
        """Records come back in descending timestamp order regardless of insert order."""
        for timestamp in (2000, 1000, 3000):
            await history_store.insert(make_record(timestamp))

        records = await history_store.list_all()

        assert [r.timestamp for r in records] == [3000, 2000, 1000]

    @pytest.mark.asyncio
    async def test_record_round_trips(self, history_store, make_record):
        """Every field should survive storage unchanged."""
        record = make_record(1234, prompt="A lighthouse at dusk", model="gemini-3-pro-image-preview")

        await history_store.insert(record)

        assert await history_store.list_all() == [record]

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, history_store, make_record):
        """Inserting an existing id raises DuplicateKey and keeps the original."""
        original = make_record(1000, prompt="original")
        await history_store.insert(original)

        with pytest.raises(DuplicateKey) as exc_info:
            await history_store.insert(make_record(1000, prompt="replacement"))

        assert exc_info.value.record_id == "1000"
        assert await history_store.list_all() == [original]

    @pytest.mark.asyncio
    async def test_count(self, history_store, make_record):
        for timestamp in (1000, 2000):
            await history_store.insert(make_record(timestamp))

        assert await history_store.count() == 2


class TestDeleteAndClear:
    """Tests for delete_by_id and clear."""

    @pytest.mark.asyncio
    async def test_delete_removes_only_target(self, history_store, make_record):
        for timestamp in (1000, 2000, 3000):
            await history_store.insert(make_record(timestamp))

        await history_store.delete_by_id("2000")

        assert [r.id for r in await history_store.list_all()] == ["3000", "1000"]

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, history_store, make_record):
        """Deleting twice, or deleting an unknown id, is not an error."""
        await history_store.insert(make_record(1000))

        await history_store.delete_by_id("1000")
        await history_store.delete_by_id("1000")
        await history_store.delete_by_id("does-not-exist")

        assert await history_store.count() == 0

    @pytest.mark.asyncio
    async def test_clear_removes_everything(self, history_store, make_record):
        for timestamp in (1000, 2000):
            await history_store.insert(make_record(timestamp))

        await history_store.clear()

        assert await history_store.list_all() == []

    @pytest.mark.asyncio
    async def test_clear_empty_store(self, history_store):
        await history_store.clear()

        assert await history_store.count() == 0

    @pytest.mark.asyncio
    async def test_insert_after_clear(self, history_store, make_record):
        """Ids freed by clear can be reused."""
        await history_store.insert(make_record(1000))
        await history_store.clear()

        await history_store.insert(make_record(1000))

        assert await history_store.count() == 1


class TestProfiles:
    """Stores on one database file only see their own profile's records."""

    @pytest.mark.asyncio
    async def test_list_is_scoped_to_profile(self, temp_dir, make_record):
        alice = SQLiteHistoryStore(temp_dir / "history.db", profile_id="alice")
        bob = SQLiteHistoryStore(temp_dir / "history.db", profile_id="bob")
        await alice.open()
        await bob.open()

        await alice.insert(make_record(1000, prompt="alice"))
        await bob.insert(make_record(2000, prompt="bob"))

        assert [r.prompt for r in await alice.list_all()] == ["alice"]
        assert [r.prompt for r in await bob.list_all()] == ["bob"]
        assert await alice.count() == 1

    @pytest.mark.asyncio
    async def test_delete_and_clear_are_scoped(self, temp_dir, make_record):
        alice = SQLiteHistoryStore(temp_dir / "history.db", profile_id="alice")
        bob = SQLiteHistoryStore(temp_dir / "history.db", profile_id="bob")
        await alice.open()
        await bob.open()
        await alice.insert(make_record(1000))
        await bob.insert(make_record(2000))

        await bob.delete_by_id("1000")
        await bob.clear()

        assert [r.id for r in await alice.list_all()] == ["1000"]
        assert await bob.count() == 0


class TestReserveTimestamp:
    """Tests for SQLiteHistoryStore.reserve_timestamp."""

    @pytest.mark.asyncio
    async def test_returns_requested_value_when_free(self, history_store):
        assert await history_store.reserve_timestamp(5000) == 5000

    @pytest.mark.asyncio
    async def test_reservations_strictly_increase(self, history_store):
        first = await history_store.reserve_timestamp(42)
        second = await history_store.reserve_timestamp(42)

        assert second > first

    @pytest.mark.asyncio
    async def test_shared_between_stores_on_one_file(self, temp_dir):
        alice = SQLiteHistoryStore(temp_dir / "history.db", profile_id="alice")
        bob = SQLiteHistoryStore(temp_dir / "history.db", profile_id="bob")
        await alice.open()
        await bob.open()

        assert await alice.reserve_timestamp(42) == 42
        assert await bob.reserve_timestamp(42) == 43

    @pytest.mark.asyncio
    async def test_newer_than_any_stored_record(self, temp_dir, make_record):
        alice = SQLiteHistoryStore(temp_dir / "history.db", profile_id="alice")
        bob = SQLiteHistoryStore(temp_dir / "history.db", profile_id="bob")
        await alice.open()
        await bob.open()
        await alice.insert(make_record(9000))

        assert await bob.reserve_timestamp(42) == 9001

    @pytest.mark.asyncio
    async def test_requires_open(self, temp_dir):
        with pytest.raises(StoreUnavailable):
            await SQLiteHistoryStore(temp_dir / "history.db").reserve_timestamp(1)
