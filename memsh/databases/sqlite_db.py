"""
SQLite implementation for MemSH record storage.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any

from memsh.databases.base import BaseDatabase

logger = logging.getLogger(__name__)


class SQLiteDatabase(BaseDatabase):
    """SQLite-based record storage for MemSH."""

    def __init__(self, db_path: str | None = None):
        """
        Initialize SQLite database.

        Args:
            db_path: Path to SQLite database file. None for in-memory database.
        """
        self.db_path = db_path or ":memory:"
        self.conn: sqlite3.Connection | None = None

    def initialize(self) -> None:
        """Initialize the database schema."""
        if self.conn is not None:
            return
        if self.db_path != ":memory:":
            Path(self.db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._create_tables()

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        assert self.conn is not None

        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS records (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at REAL NOT NULL
            )
        """)
        self.conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def get_record(self, key: str) -> Any | None:
        """Get the decoded document stored under ``key``."""
        assert self.conn is not None

        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM records WHERE key = ?", (key,))
        row = cursor.fetchone()
        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            logger.warning("Ignoring undecodable record %r", key)
            return None

    def put_record(self, key: str, value: Any) -> None:
        """Store (insert or replace) a JSON-serializable document."""
        assert self.conn is not None

        cursor = self.conn.cursor()
        cursor.execute(
            "INSERT OR REPLACE INTO records (key, value, updated_at) VALUES (?, ?, ?)",
            (key, json.dumps(value), time.time()),
        )
        self.conn.commit()

    def delete_record(self, key: str) -> bool:
        """Delete a record. Returns True if deleted."""
        assert self.conn is not None

        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM records WHERE key = ?", (key,))
        self.conn.commit()
        return cursor.rowcount > 0

    def list_records(self, prefix: str = "") -> list[str]:
        """List record keys, optionally filtered by prefix."""
        assert self.conn is not None

        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT key FROM records WHERE key LIKE ? ESCAPE '\\' ORDER BY key",
            (_escape_like(prefix) + "%",),
        )
        return [row["key"] for row in cursor.fetchall()]


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
