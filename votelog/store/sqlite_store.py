"""SQLite-backed list store for single-host deployments."""

import logging
import sqlite3
import threading
from contextlib import contextmanager, nullcontext
from datetime import datetime
from pathlib import Path
from typing import Iterator

from ..errors import StoreUnavailable
from .base import ListStore

logger = logging.getLogger(__name__)

# Schema for the list store. Position in a list is the order of ``id``
# among the rows sharing a key.
LIST_SCHEMA = """
CREATE TABLE IF NOT EXISTS list_entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_list_entries_key ON list_entries(key, id);

CREATE TABLE IF NOT EXISTS scalars (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


class SQLiteListStore(ListStore):
    """Append-only lists kept in a single SQLite database file.

    Each thread gets its own connection in autocommit mode, and every write
    runs in its own ``BEGIN IMMEDIATE`` transaction, so a failed append on
    one thread never rolls back another thread's. An in-memory database
    only exists inside one connection; it is shared by all threads behind
    a lock.
    """

    name = "sqlite"

    def __init__(self, db_path: str | Path, timeout: float = 5.0):
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file, or ``":memory:"``.
            timeout: Seconds a writer waits for another writer's lock.
        """
        self.in_memory = str(db_path) == ":memory:"
        self.db_path = Path(db_path) if self.in_memory else Path(db_path).expanduser()
        self.timeout = timeout
        self._local = threading.local()
        self._shared: sqlite3.Connection | None = None
        self._memory_lock = threading.Lock()
        self._registry_lock = threading.Lock()
        self._connections: list[sqlite3.Connection] = []
        self._schema_ready = False

    def _open(self) -> sqlite3.Connection:
        """Open and register a new autocommit connection.

        Callers must hold ``_registry_lock``.
        """
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.timeout,
            isolation_level=None,
            check_same_thread=False,
        )
        self._connections.append(conn)
        return conn

    def _connection(self) -> sqlite3.Connection:
        """This thread's connection, opened on first use."""
        if self.in_memory:
            with self._registry_lock:
                if self._shared is None:
                    self._shared = self._open()
                return self._shared

        conn = getattr(self._local, "conn", None)
        if conn is None:
            with self._registry_lock:
                conn = self._open()
            self._local.conn = conn
        return conn

    def connect(self) -> None:
        """Open the database and create the schema."""
        if not self.in_memory:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            conn = self._connection()
            if not self.in_memory:
                conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(LIST_SCHEMA)
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Cannot open {self.db_path}: {e}") from e

        self._schema_ready = True
        logger.info(f"SQLiteListStore connected to {self.db_path}")

    def close(self) -> None:
        """Close every connection opened by any thread."""
        with self._registry_lock:
            connections, self._connections = self._connections, []
            self._shared = None
            self._local = threading.local()
            self._schema_ready = False
        for conn in connections:
            conn.close()

    def _ensure_connected(self) -> sqlite3.Connection:
        if not self._schema_ready:
            self.connect()
        return self._connection()

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        """A connection this thread may use exclusively for one operation."""
        conn = self._ensure_connected()
        with self._memory_lock if self.in_memory else nullcontext():
            yield conn

    @contextmanager
    def _write(self) -> Iterator[sqlite3.Connection]:
        """One ``BEGIN IMMEDIATE`` transaction, committed on success."""
        with self._session() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def rpush(self, key: str, value: str) -> int:
        try:
            with self._write() as conn:
                conn.execute(
                    "INSERT INTO list_entries (key, value, created_at) VALUES (?, ?, ?)",
                    (key, value, datetime.now().isoformat()),
                )
                # Writers are serialized, so the count includes exactly our row
                length = conn.execute(
                    "SELECT COUNT(*) FROM list_entries WHERE key = ?", (key,)
                ).fetchone()[0]
        except sqlite3.Error as e:
            logger.error(f"Append to {key} failed: {e}")
            raise StoreUnavailable(f"SQLite append failed: {e}") from e

        logger.debug(f"Appended to {key}, length={length}")
        return length

    def lrange(self, key: str, start: int) -> list[str]:
        try:
            with self._session() as conn:
                cursor = conn.execute(
                    """
                    SELECT value FROM list_entries
                    WHERE key = ?
                    ORDER BY id ASC
                    LIMIT -1 OFFSET ?
                    """,
                    (key, start),
                )
                return [row[0] for row in cursor]
        except sqlite3.Error as e:
            logger.error(f"Range read of {key} failed: {e}")
            raise StoreUnavailable(f"SQLite range read failed: {e}") from e

    def llen(self, key: str) -> int:
        try:
            with self._session() as conn:
                return conn.execute(
                    "SELECT COUNT(*) FROM list_entries WHERE key = ?", (key,)
                ).fetchone()[0]
        except sqlite3.Error as e:
            raise StoreUnavailable(f"SQLite count failed: {e}") from e

    def set_if_absent(self, key: str, value: str) -> str:
        try:
            with self._write() as conn:
                conn.execute(
                    "INSERT OR IGNORE INTO scalars (key, value) VALUES (?, ?)",
                    (key, value),
                )
                return conn.execute(
                    "SELECT value FROM scalars WHERE key = ?", (key,)
                ).fetchone()[0]
        except sqlite3.Error as e:
            raise StoreUnavailable(f"SQLite scalar write failed: {e}") from e

    def ping(self) -> bool:
        try:
            with self._session() as conn:
                conn.execute("SELECT 1").fetchone()
            return True
        except (sqlite3.Error, StoreUnavailable) as e:
            logger.warning(f"SQLite ping failed: {e}")
            return False
