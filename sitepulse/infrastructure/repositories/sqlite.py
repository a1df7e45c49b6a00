# ==============================================================================
# SQLite Repository Implementation
# ==============================================================================
"""
In-memory SQLite implementation of the EventRepository interface.

The working copy of the ledger lives in an in-memory SQLite database; it is
loaded from the data file on connect() and written back by persist(). All
access to the in-memory connection is serialized by one re-entrant lock:

- appends never interleave with each other or with a read
- snapshot() holds the lock across several reads
- persist() copies the database memory-to-memory under the lock and writes
  the copy to disk after releasing it, replacing the data file atomically
"""

import logging
import os
import sqlite3
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Literal

from sitepulse.base.repositories import FILTERABLE_FIELDS, EventRepository
from sitepulse.core.errors import StoreError
from sitepulse.core.models import DEFAULT_EVENT_TYPE, NewVisitEvent, VisitEvent
from sitepulse.core.time_range import format_timestamp, parse_timestamp, utc_now
from sitepulse.utils.config import Settings, get_settings
from sitepulse.utils.db import render_schema_sql, validate_identifier

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "visits"

# Event field -> column name (legacy analytics.db layout)
FIELD_COLUMNS = {
    "visitor_id": "uid",
    "client_address": "ip",
    "client_signature": "user_agent",
    "url": "url",
    "referrer": "referrer",
    "event_type": "event_type",
    "meta_data": "meta_data",
}

SELECT_COLUMNS = "id, timestamp, ip, user_agent, uid, url, referrer, event_type, meta_data"


def _memory_connection() -> sqlite3.Connection:
    conn = sqlite3.connect(":memory:", check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


class SQLiteEventRepository(EventRepository):
    """
    SQLite implementation of EventRepository.

    With data_file=None the store is memory-only and persist() does nothing
    (used by tests and throwaway runs).
    """

    def __init__(self, data_file: Path | None = None, table_name: str = DEFAULT_TABLE):
        """
        Initialize the event repository.

        Args:
            data_file: SQLite file to load from and persist to, or None
            table_name: Events table name (plain SQL identifier)
        """
        self._data_file = Path(data_file) if data_file is not None else None
        self._table = validate_identifier(table_name)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._persist_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "SQLiteEventRepository":
        """Build a repository from application settings."""
        settings = settings or get_settings()
        return cls(settings.store.data_file_path, settings.store.table_name)

    @property
    def data_file(self) -> Path | None:
        return self._data_file

    @property
    def table_name(self) -> str:
        return self._table

    # --------------------------------------------------------------------------
    # Lifecycle
    # --------------------------------------------------------------------------

    def connect(self, quarantine: bool = True) -> None:
        """
        Open the in-memory database, loading the data file if present.

        Args:
            quarantine: Move an unreadable data file aside and start empty.
                        When False the file is left untouched and StoreError
                        is raised instead (read-only callers).

        Raises:
            StoreError: If the schema cannot be created, or the data file
                        cannot be loaded and quarantine is False
        """
        conn = _memory_connection()

        if self._data_file is not None and self._data_file.exists():
            try:
                self._load(conn)
            except (sqlite3.Error, StoreError) as e:
                conn.close()
                if not quarantine:
                    raise StoreError(f"Cannot load data file {self._data_file}: {e}") from e
                logger.error(
                    "Could not load event store from %s: %s. Starting with an empty store.",
                    self._data_file,
                    e,
                )
                conn = _memory_connection()
                self._quarantine_data_file()

        try:
            conn.executescript(render_schema_sql(self._table))
            conn.commit()
        except sqlite3.Error as e:
            conn.close()
            raise StoreError(f"Failed to initialize event store: {e}") from e

        with self._lock:
            self._conn = conn
        logger.info(
            "SQLiteEventRepository connected (table=%s, events=%d, file=%s)",
            self._table,
            self.count(),
            self._data_file or "memory only",
        )

    def _load(self, conn: sqlite3.Connection) -> None:
        """Copy the data file into the in-memory database."""
        source = sqlite3.connect(f"{self._data_file.resolve().as_uri()}?mode=ro", uri=True)
        try:
            source.backup(conn)
        finally:
            source.close()
        (status,) = conn.execute("PRAGMA quick_check").fetchone()
        if status != "ok":
            raise StoreError(f"integrity check failed: {status}")

    def _quarantine_data_file(self) -> None:
        """Rename an unreadable data file so the next persist cannot overwrite it."""
        stamp = utc_now().strftime("%Y%m%d%H%M%S")
        target = self._data_file.with_name(f"{self._data_file.name}.corrupt-{stamp}")
        try:
            self._data_file.rename(target)
        except OSError as e:
            raise StoreError(f"Cannot move unreadable data file aside: {e}") from e
        logger.warning("Unreadable data file moved to %s", target)

    def close(self) -> None:
        """Close the in-memory database."""
        with self._lock:
            if self._conn:
                try:
                    self._conn.close()
                    logger.info("SQLiteEventRepository closed")
                except sqlite3.Error as e:
                    logger.warning("Error closing event store: %s", e)
                finally:
                    self._conn = None

    def _require_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Event store not connected. Call connect() first.")
        return self._conn

    # --------------------------------------------------------------------------
    # Writes
    # --------------------------------------------------------------------------

    def append(self, event: NewVisitEvent) -> int:
        """Insert one event and return its id."""
        with self._lock:
            conn = self._require_connection()
            timestamp = format_timestamp(event.timestamp or utc_now())
            try:
                cur = conn.execute(
                    f"""
                    INSERT INTO {self._table}
                        (timestamp, ip, user_agent, uid, url, referrer, event_type, meta_data)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        timestamp,
                        event.client_address,
                        event.client_signature,
                        event.visitor_id,
                        event.url,
                        event.referrer,
                        event.event_type,
                        event.meta_data,
                    ),
                )
                conn.commit()
            except sqlite3.Error as e:
                raise StoreError(f"Failed to append event: {e}") from e

        logger.debug("Appended %s event on %s (id=%d)", event.event_type, event.url, cur.lastrowid)
        return cur.lastrowid

    def purge_all(self) -> int:
        """Delete every event in a single statement."""
        with self._lock:
            conn = self._require_connection()
            try:
                cur = conn.execute(f"DELETE FROM {self._table}")
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StoreError(f"Failed to purge events: {e}") from e
        logger.info("Purged %d events", cur.rowcount)
        return cur.rowcount

    # --------------------------------------------------------------------------
    # Reads
    # --------------------------------------------------------------------------

    def query(
        self,
        since: datetime | None = None,
        until: datetime | None = None,
        require: Iterable[str] = (),
        order: Literal["id", "time"] = "id",
        descending: bool = False,
        limit: int | None = None,
    ) -> list[VisitEvent]:
        """Read events matching the filters; all values are bound parameters."""
        clauses: list[str] = []
        params: list = []

        if since is not None:
            clauses.append("timestamp >= ?")
            params.append(format_timestamp(since))
        if until is not None:
            clauses.append("timestamp <= ?")
            params.append(format_timestamp(until))
        for field in require:
            if field not in FILTERABLE_FIELDS:
                raise ValueError(f"Cannot filter on '{field}'")
            clauses.append(f"{FIELD_COLUMNS[field]} IS NOT NULL")

        direction = "DESC" if descending else "ASC"
        if order == "time":
            order_by = f"timestamp {direction}, id {direction}"
        elif order == "id":
            order_by = f"id {direction}"
        else:
            raise ValueError(f"Unknown order '{order}'")

        sql = f"SELECT {SELECT_COLUMNS} FROM {self._table}"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += f" ORDER BY {order_by}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        with self._lock:
            conn = self._require_connection()
            try:
                rows = conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StoreError(f"Failed to query events: {e}") from e

        return [self._to_event(row) for row in rows]

    @staticmethod
    def _to_event(row: sqlite3.Row) -> VisitEvent:
        return VisitEvent(
            id=row["id"],
            timestamp=parse_timestamp(row["timestamp"]),
            client_address=row["ip"],
            client_signature=row["user_agent"],
            visitor_id=row["uid"],
            url=row["url"],
            referrer=row["referrer"],
            event_type=row["event_type"] or DEFAULT_EVENT_TYPE,
            meta_data=row["meta_data"],
        )

    def first_seen(self) -> dict[str, datetime]:
        """Earliest timestamp per visitor, using the uid index."""
        with self._lock:
            conn = self._require_connection()
            try:
                rows = conn.execute(
                    f"""
                    SELECT uid, MIN(timestamp) AS first_ts
                    FROM {self._table}
                    WHERE uid IS NOT NULL
                    GROUP BY uid
                    """
                ).fetchall()
            except sqlite3.Error as e:
                raise StoreError(f"Failed to query first-seen timestamps: {e}") from e
        return {row["uid"]: parse_timestamp(row["first_ts"]) for row in rows}

    def count(self) -> int:
        with self._lock:
            conn = self._require_connection()
            (total,) = conn.execute(f"SELECT COUNT(*) FROM {self._table}").fetchone()
        return total

    @contextmanager
    def snapshot(self) -> Iterator["SQLiteEventRepository"]:
        """Hold the store lock so a sequence of reads sees one state."""
        with self._lock:
            self._require_connection()
            yield self

    # --------------------------------------------------------------------------
    # Persistence
    # --------------------------------------------------------------------------

    def persist(self) -> None:
        """
        Write a point-in-time copy of the store to the data file.

        Only the memory-to-memory copy happens under the store lock; the disk
        write goes to a temporary file that then replaces the data file.
        """
        if self._data_file is None:
            return

        with self._persist_lock:
            copy = sqlite3.connect(":memory:")
            try:
                with self._lock:
                    self._require_connection().backup(copy)
                self._write_data_file(copy)
            except (sqlite3.Error, OSError) as e:
                raise StoreError(f"Failed to persist event store: {e}") from e
            finally:
                copy.close()

        logger.debug("Event store persisted to %s", self._data_file)

    def _write_data_file(self, copy: sqlite3.Connection) -> None:
        self._data_file.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._data_file.with_name(f"{self._data_file.name}.tmp")
        if tmp_path.exists():
            tmp_path.unlink()

        target = sqlite3.connect(tmp_path)
        try:
            copy.backup(target)
        finally:
            target.close()
        os.replace(tmp_path, self._data_file)
