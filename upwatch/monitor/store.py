"""Time-series store — append-only SQLite tables for checks and speed tests.

Two collections, each indexed on ``timestamp``:

    checks      (timestamp, target, status, latency_ms)
    speedtests  (timestamp, download_mbps, upload_mbps, latency_ms)

Writes go through one writer connection guarded by a lock, so at most one
commit is in flight. Reads open a short-lived connection of their own; with
WAL journaling they see the last committed snapshot and never wait on the
writer lock.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import closing
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Union

from .models import CheckRecord, CheckStatus, SpeedRecord

logger = logging.getLogger(__name__)

Record = Union[CheckRecord, SpeedRecord]

_BUSY_TIMEOUT_S = 10.0


class StoreError(Exception):
    """Base class for time-series store failures."""


class SchemaInitError(StoreError):
    """Raised when the database cannot be opened or its schema created."""


class StoreWriteError(StoreError):
    """Raised when an append or delete could not be committed."""


class StoreReadError(StoreError):
    """Raised when a query against the store fails."""


class Collection(str, Enum):
    CHECKS = "checks"
    SPEED_TESTS = "speedtests"


class Order(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


_SCHEMA = """
    CREATE TABLE IF NOT EXISTS checks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp TEXT NOT NULL,
        target TEXT NOT NULL,
        status TEXT NOT NULL,
        latency_ms INTEGER NOT NULL
    );
    CREATE INDEX IF NOT EXISTS idx_checks_time ON checks (timestamp);

    CREATE TABLE IF NOT EXISTS speedtests (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp TEXT NOT NULL,
        download_mbps REAL NOT NULL,
        upload_mbps REAL NOT NULL,
        latency_ms INTEGER NOT NULL
    );
    CREATE INDEX IF NOT EXISTS idx_speedtests_time ON speedtests (timestamp);
"""


def to_db_time(dt: datetime) -> str:
    """Fixed-width UTC ISO text, so string order is time order."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_time(raw: str) -> datetime:
    return datetime.fromisoformat(raw)


def _check_from_row(row: sqlite3.Row) -> CheckRecord:
    return CheckRecord(
        target=row["target"],
        status=CheckStatus(row["status"]),
        latency_ms=int(row["latency_ms"]),
        timestamp=from_db_time(row["timestamp"]),
    )


def _speed_from_row(row: sqlite3.Row) -> SpeedRecord:
    return SpeedRecord(
        download_mbps=float(row["download_mbps"]),
        upload_mbps=float(row["upload_mbps"]),
        latency_ms=int(row["latency_ms"]),
        timestamp=from_db_time(row["timestamp"]),
    )


_ROW_READERS = {
    Collection.CHECKS: _check_from_row,
    Collection.SPEED_TESTS: _speed_from_row,
}


class TimeSeriesStore:
    """SQLite-backed storage for check and speed-test time series."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path)
        self._write_lock = threading.Lock()
        self._writer: sqlite3.Connection | None = None
        self._closed = False
        self.init_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    # ── Connections ──────────────────────────────────────────────────────

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self._db_path), timeout=_BUSY_TIMEOUT_S, check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        return conn

    def _get_writer(self) -> sqlite3.Connection:
        # Caller holds _write_lock.
        if self._closed:
            raise StoreWriteError("Store is closed")
        if self._writer is None:
            self._writer = self._open()
            self._writer.execute("PRAGMA journal_mode=WAL")
        return self._writer

    def init_schema(self) -> None:
        """Create tables and indexes if missing. Safe to call repeatedly."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._write_lock:
                conn = self._get_writer()
                conn.executescript(_SCHEMA)
                conn.commit()
        except (OSError, sqlite3.Error, StoreWriteError) as e:
            raise SchemaInitError(f"Failed to initialise {self._db_path}: {e}") from e
        logger.debug("Schema ready at %s", self._db_path)

    # ── Writes ───────────────────────────────────────────────────────────

    def _write(self, sql: str, params: tuple[Any, ...]) -> int:
        with self._write_lock:
            conn = self._get_writer()
            try:
                with conn:
                    cursor = conn.execute(sql, params)
            except sqlite3.Error as e:
                raise StoreWriteError(f"Write failed: {e}") from e
            return cursor.rowcount

    def append_check(self, record: CheckRecord) -> None:
        self._write(
            "INSERT INTO checks (timestamp, target, status, latency_ms) VALUES (?, ?, ?, ?)",
            (to_db_time(record.timestamp), record.target, record.status.value, record.latency_ms),
        )

    def append_speed_test(self, record: SpeedRecord) -> None:
        self._write(
            "INSERT INTO speedtests (timestamp, download_mbps, upload_mbps, latency_ms) "
            "VALUES (?, ?, ?, ?)",
            (
                to_db_time(record.timestamp), record.download_mbps,
                record.upload_mbps, record.latency_ms,
            ),
        )

    def append(self, record: Record) -> None:
        """Append a record to the collection matching its type."""
        if isinstance(record, CheckRecord):
            self.append_check(record)
        elif isinstance(record, SpeedRecord):
            self.append_speed_test(record)
        else:
            raise TypeError(f"Unsupported record type: {type(record).__name__}")

    def delete_older_than(self, collection: Collection, cutoff: datetime) -> int:
        """Delete rows strictly older than ``cutoff``; return how many went."""
        collection = Collection(collection)
        return self._write(
            f"DELETE FROM {collection.value} WHERE timestamp < ?",
            (to_db_time(cutoff),),
        )

    # ── Reads ────────────────────────────────────────────────────────────

    def _read(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        try:
            with closing(self._open()) as conn:
                return conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StoreReadError(f"Query failed: {e}") from e

    def query_range(
        self,
        collection: Collection,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
        order: Order = Order.DESC,
        target: str | None = None,
    ) -> list[Any]:
        """Records with ``start <= timestamp <= end``, time-ordered, capped."""
        collection = Collection(collection)
        order = Order(order)
        clauses: list[str] = []
        params: list[Any] = []
        if start is not None:
            clauses.append("timestamp >= ?")
            params.append(to_db_time(start))
        if end is not None:
            clauses.append("timestamp <= ?")
            params.append(to_db_time(end))
        if target is not None:
            if collection is not Collection.CHECKS:
                raise ValueError("target filter only applies to checks")
            clauses.append("target = ?")
            params.append(target)

        where = f"WHERE {' AND '.join(clauses)} " if clauses else ""
        params.append(-1 if limit is None else limit)
        rows = self._read(
            f"SELECT * FROM {collection.value} {where}"
            f"ORDER BY timestamp {order.value}, id {order.value} LIMIT ?",
            tuple(params),
        )
        reader = _ROW_READERS[collection]
        return [reader(r) for r in rows]

    def count(self, collection: Collection) -> int:
        collection = Collection(collection)
        return int(self._read(f"SELECT COUNT(*) FROM {collection.value}")[0][0])

    def size_bytes(self) -> int:
        """On-disk size in bytes: main database pages plus the WAL file."""
        row = self._read(
            "SELECT page_count * page_size AS size "
            "FROM pragma_page_count(), pragma_page_size()"
        )[0]
        wal = self._db_path.with_name(self._db_path.name + "-wal")
        try:
            wal_size = wal.stat().st_size
        except FileNotFoundError:
            wal_size = 0
        return int(row["size"]) + wal_size

    # ── Lifecycle ────────────────────────────────────────────────────────

    def close(self) -> None:
        """Wait for any in-flight write, then close. Later writes fail."""
        with self._write_lock:
            self._closed = True
            if self._writer is not None:
                self._writer.close()
                self._writer = None
