"""SQLite connection layer for the override store."""

from __future__ import annotations

import sqlite3
from pathlib import Path

_DEFAULT_TIMEOUT = 5.0  # seconds to wait on a locked database


class Database:
    """Per-project SQLite database holding admin-edited profile content."""

    def __init__(self, db_path: Path | str, *, timeout: float = _DEFAULT_TIMEOUT) -> None:
        """Store the database path. Call connect() to open the connection.

        Args:
            db_path: Path to the SQLite database file (created if missing),
                or ``":memory:"``.
            timeout: Seconds a statement waits for a competing writer's lock.
        """
        self.db_path = db_path if db_path == ":memory:" else Path(db_path)
        self.timeout = timeout
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        """Open a connection with row access by column name and return it."""
        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        if self.db_path != ":memory:":
            conn.execute("PRAGMA journal_mode = WAL")
        return conn

    def __enter__(self) -> sqlite3.Connection:
        """Open the database and return the connection (context manager support)."""
        self._conn = self.connect()
        return self._conn

    def __exit__(self, *args: object) -> None:
        """Close the connection when leaving the context manager."""
        if self._conn:
            self._conn.close()
            self._conn = None
