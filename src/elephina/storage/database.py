"""
=============================================================================
SQLITE CONNECTION
=============================================================================

One connection per process, shared by every worker thread:

    ┌──────────┐   ┌──────────┐   ┌──────────┐
    │ worker 1 │   │ worker 2 │   │ worker 3 │
    └────┬─────┘   └────┬─────┘   └────┬─────┘
         └──────────────┼──────────────┘
                        ▼
               Database.lock (RLock)
                        ▼
               sqlite3.Connection   rows as sqlite3.Row
                                    autocommit

Statements are serialized through the lock, so the connection is opened
with check_same_thread=False.

=============================================================================
"""

from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Sequence, Union
import logging
import sqlite3
import threading


logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    userId INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    password TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

Params = Union[Sequence[Any], dict]


class Database:
    """A locked sqlite3 connection."""

    def __init__(self, connection: sqlite3.Connection):
        self.connection = connection
        self.lock = threading.RLock()

    @contextmanager
    def cursor(self) -> Iterator[sqlite3.Cursor]:
        with self.lock:
            cur = self.connection.cursor()
            try:
                yield cur
            finally:
                cur.close()

    def fetch_all(self, sql: str, params: Optional[Params] = None) -> List[dict]:
        with self.cursor() as cur:
            cur.execute(sql, params or ())
            return [dict(row) for row in cur.fetchall()]

    def fetch_one(self, sql: str, params: Optional[Params] = None) -> Optional[dict]:
        with self.cursor() as cur:
            cur.execute(sql, params or ())
            row = cur.fetchone()
            return dict(row) if row is not None else None

    def execute(self, sql: str, params: Optional[Params] = None) -> sqlite3.Cursor:
        """Run a write statement; read rowcount or lastrowid off the result."""
        with self.lock:
            return self.connection.execute(sql, params or ())

    def close(self) -> None:
        with self.lock:
            self.connection.close()


def connect(path: str = "elephina.db") -> Database:
    """
    Open the database.

    Raises:
        sqlite3.Error: The file cannot be opened.
    """
    conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    logger.debug(f"Opened SQLite database {path}")
    return Database(conn)


def ensure_schema(db: Database) -> None:
    """Create the tables the application needs, if missing."""
    with db.lock:
        db.connection.executescript(SCHEMA)
