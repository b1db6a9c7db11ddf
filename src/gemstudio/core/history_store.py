"""Generation history storage.

The history store keeps every successful generation as a
:class:`~gemstudio.core.records.HistoryRecord`.  It is the single source of
truth for the history list: the UI never keeps records beyond a read-only
rendering snapshot and re-reads the store after every mutation.

Interface
---------
:class:`HistoryStore` is an abstract asynchronous key-value interface:

- ``open()`` prepares the store for the session (idempotent)
- ``reserve_timestamp(not_before)`` hands out a record timestamp that no
  other record in the backing storage uses
- ``insert(record)`` adds a record, rejecting duplicate ids
- ``list_all()`` returns every record, newest first
- ``delete_by_id(id)`` removes a record; unknown ids are a no-op
- ``clear()`` removes every record

Profiles
--------
Each store instance is scoped to one browser profile.  Several profiles can
share one database file; listing, deleting and clearing only ever touch the
rows of the store's own profile.  Record ids stay unique across the whole
file.

Backend
-------
:class:`SQLiteHistoryStore` keeps records in a single SQLite table.  Every
operation opens its own connection and runs in its own transaction, so a
caller never observes a half-written or half-deleted record.  SQLite calls
are blocking, so they run in a worker thread via :func:`asyncio.to_thread`
to keep the event loop responsive.

The store is never explicitly closed; it lives for the whole process.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import closing
from pathlib import Path

from .errors import DuplicateKey, StoreUnavailable
from .records import HistoryRecord

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = "default"

# Last timestamp handed out per database file, shared by every store
# instance in the process.
_reserved_timestamps: dict[Path, int] = {}
_reserve_lock = threading.Lock()


class HistoryStore(ABC):
    """Abstract asynchronous store for generation history."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether :meth:`open` has completed successfully."""

    @abstractmethod
    async def open(self) -> None:
        """Prepare the store for use, creating the schema if absent.

        Raises:
            StoreUnavailable: If the underlying storage cannot be opened.
        """

    @abstractmethod
    async def reserve_timestamp(self, not_before: int) -> int:
        """Return a record timestamp of at least ``not_before``.

        The returned value is newer than every stored record and every
        timestamp reserved before it, so ids derived from it never collide.

        Raises:
            StoreUnavailable: If the store is not open or cannot be read.
        """

    @abstractmethod
    async def insert(self, record: HistoryRecord) -> None:
        """Add a new record.

        Raises:
            DuplicateKey: If a record with the same id already exists.
            StoreUnavailable: If the store is not open or the write fails.
        """

    @abstractmethod
    async def list_all(self) -> list[HistoryRecord]:
        """Return every record ordered by timestamp, newest first."""

    @abstractmethod
    async def delete_by_id(self, record_id: str) -> None:
        """Remove a record if present; deleting an unknown id is not an error."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove all records."""

    @abstractmethod
    async def count(self) -> int:
        """Return the number of stored records."""


class SQLiteHistoryStore(HistoryStore):
    """History store backed by a local SQLite database file.

    Args:
        db_path: Path to the SQLite database file.  Parent directories are
            created on :meth:`open`.
        profile_id: Browser profile whose records this store sees.
    """

    def __init__(self, db_path: Path | str, profile_id: str = DEFAULT_PROFILE):
        self.db_path = Path(db_path)
        self.profile_id = profile_id
        self._opened = False

    def __repr__(self) -> str:
        return (
            f"SQLiteHistoryStore(db_path={str(self.db_path)!r}, "
            f"profile_id={self.profile_id!r}, open={self._opened})"
        )

    @property
    def is_open(self) -> bool:
        return self._opened

    # ------------------------------------------------------------------
    # Async interface
    # ------------------------------------------------------------------

    async def open(self) -> None:
        if self._opened:
            return
        await asyncio.to_thread(self._initialize_db)
        self._opened = True
        logger.info(f"Opened history store at {self.db_path}")

    async def reserve_timestamp(self, not_before: int) -> int:
        self._require_open()
        return await asyncio.to_thread(self._reserve_timestamp, not_before)

    async def insert(self, record: HistoryRecord) -> None:
        self._require_open()
        await asyncio.to_thread(self._insert, record)

    async def list_all(self) -> list[HistoryRecord]:
        self._require_open()
        return await asyncio.to_thread(self._list_all)

    async def delete_by_id(self, record_id: str) -> None:
        self._require_open()
        await asyncio.to_thread(self._delete, record_id)

    async def clear(self) -> None:
        self._require_open()
        await asyncio.to_thread(self._clear)

    async def count(self) -> int:
        self._require_open()
        return await asyncio.to_thread(self._count)

    # ------------------------------------------------------------------
    # Blocking SQLite operations (run in a worker thread)
    # ------------------------------------------------------------------

    def _require_open(self) -> None:
        if not self._opened:
            raise StoreUnavailable("History store is not open.")

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _initialize_db(self) -> None:
        """Create database schema if it doesn't exist."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with closing(self._connect()) as conn, conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS history (
                        id TEXT PRIMARY KEY,
                        profile_id TEXT NOT NULL,
                        timestamp INTEGER NOT NULL,
                        url TEXT NOT NULL,
                        prompt TEXT NOT NULL,
                        model TEXT NOT NULL,
                        filename TEXT NOT NULL
                    )
                    """)
                conn.execute("""
                    CREATE INDEX IF NOT EXISTS idx_history_profile_timestamp
                    ON history(profile_id, timestamp DESC)
                    """)
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Could not open history store at {self.db_path}: {e}")
            raise StoreUnavailable(f"History is unavailable: {e}") from e

    def _reserve_timestamp(self, not_before: int) -> int:
        key = self.db_path.resolve()
        with _reserve_lock:
            try:
                with closing(self._connect()) as conn:
                    row = conn.execute("SELECT MAX(timestamp) FROM history").fetchone()
            except sqlite3.Error as e:
                raise StoreUnavailable(f"Could not read history: {e}") from e
            newest = row[0] if row and row[0] is not None else 0
            timestamp = max(not_before, newest + 1, _reserved_timestamps.get(key, 0) + 1)
            _reserved_timestamps[key] = timestamp
        return timestamp

    def _insert(self, record: HistoryRecord) -> None:
        try:
            with closing(self._connect()) as conn, conn:
                conn.execute(
                    """
                    INSERT INTO history (id, profile_id, timestamp, url, prompt, model, filename)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.id,
                        self.profile_id,
                        record.timestamp,
                        record.url,
                        record.prompt,
                        record.model,
                        record.filename,
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise DuplicateKey(record.id) from e
        except sqlite3.Error as e:
            logger.error(f"Error saving history record {record.id}: {e}")
            raise StoreUnavailable(f"Could not save to history: {e}") from e
        logger.debug(f"Saved history record {record.id}")

    def _list_all(self) -> list[HistoryRecord]:
        try:
            with closing(self._connect()) as conn:
                conn.row_factory = sqlite3.Row
                # id breaks timestamp ties so a single listing is deterministic
                rows = conn.execute(
                    """
                    SELECT id, timestamp, url, prompt, model, filename
                    FROM history
                    WHERE profile_id = ?
                    ORDER BY timestamp DESC, id DESC
                    """,
                    (self.profile_id,),
                ).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Error reading history: {e}")
            raise StoreUnavailable(f"Could not read history: {e}") from e
        return [HistoryRecord.from_dict(dict(row)) for row in rows]

    def _delete(self, record_id: str) -> None:
        try:
            with closing(self._connect()) as conn, conn:
                cursor = conn.execute(
                    "DELETE FROM history WHERE id = ? AND profile_id = ?",
                    (record_id, self.profile_id),
                )
                if cursor.rowcount > 0:
                    logger.info(f"Deleted history record {record_id}")
                else:
                    logger.debug(f"History record not found: {record_id}")
        except sqlite3.Error as e:
            logger.error(f"Error deleting history record {record_id}: {e}")
            raise StoreUnavailable(f"Could not delete from history: {e}") from e

    def _clear(self) -> None:
        try:
            with closing(self._connect()) as conn, conn:
                conn.execute("DELETE FROM history WHERE profile_id = ?", (self.profile_id,))
            logger.info("Cleared all history")
        except sqlite3.Error as e:
            logger.error(f"Error clearing history: {e}")
            raise StoreUnavailable(f"Could not clear history: {e}") from e

    def _count(self) -> int:
        try:
            with closing(self._connect()) as conn:
                result = conn.execute(
                    "SELECT COUNT(*) FROM history WHERE profile_id = ?", (self.profile_id,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Could not read history: {e}") from e
        return result[0] if result else 0
