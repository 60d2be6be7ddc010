"""SQLite-based data persistence for Grocery Reconciler.

This module provides SQLite database storage as an alternative to JSON files.
It implements the same interface as DataStore for seamless switching.
"""

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from .data_store import JSONEncoder, PersistenceError, record_key
from .models import CollectionKind


class SQLiteStore:
    """Manages SQLite database persistence for grocery data."""

    SCHEMA_VERSION = 1

    def __init__(self, db_path: Path | None = None):
        """Initialize SQLite store.

        Args:
            db_path: Path to the SQLite database file. Defaults to ./data/grocery.db
        """
        if db_path is None:
            db_path = Path.cwd() / "data" / "grocery.db"
        self.db_path = db_path
        self._ensure_directories()
        self._init_database()

    def _ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _get_connection(self, kind: CollectionKind, operation: str):
        """Get a database connection with proper cleanup.

        The whole block runs in one transaction; any sqlite error rolls it
        back and surfaces as a PersistenceError.
        """
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise PersistenceError(kind, operation, e) from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(kind, operation, e) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_database(self) -> None:
        """Initialize database schema if not exists."""
        with self._get_connection(CollectionKind.CATALOG, "initialize") as conn:
            conn.executescript("""
                -- Schema version tracking
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                );

                -- One row per record; position keeps collection order
                CREATE TABLE IF NOT EXISTS records (
                    kind TEXT NOT NULL,
                    id TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    payload TEXT NOT NULL,
                    PRIMARY KEY (kind, id)
                );

                CREATE INDEX IF NOT EXISTS idx_records_kind_position
                    ON records(kind, position);
            """)
            conn.execute(
                "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
                (self.SCHEMA_VERSION,),
            )

    def read_collection(self, kind: CollectionKind) -> list[dict[str, Any]]:
        """Load every record of a collection, in stored order."""
        kind = CollectionKind(kind)
        with self._get_connection(kind, "read") as conn:
            rows = conn.execute(
                "SELECT payload FROM records WHERE kind = ? ORDER BY position",
                (kind.value,),
            ).fetchall()
            return [json.loads(row["payload"]) for row in rows]

    def write_collection(self, kind: CollectionKind, records: list[dict[str, Any]]) -> None:
        """Replace a collection with the given records in one transaction."""
        kind = CollectionKind(kind)
        with self._get_connection(kind, "write") as conn:
            conn.execute("DELETE FROM records WHERE kind = ?", (kind.value,))
            conn.executemany(
                "INSERT INTO records (kind, id, position, payload) VALUES (?, ?, ?, ?)",
                [
                    (kind.value, record_key(kind, record), position, self._dumps(record))
                    for position, record in enumerate(records)
                ],
            )

    def write_record(self, kind: CollectionKind, record_id: str, record: dict[str, Any]) -> None:
        """Insert or replace a single record, keeping its position if present."""
        kind = CollectionKind(kind)
        with self._get_connection(kind, "write") as conn:
            row = conn.execute(
                "SELECT position FROM records WHERE kind = ? AND id = ?",
                (kind.value, record_id),
            ).fetchone()

            if row is not None:
                conn.execute(
                    "UPDATE records SET payload = ? WHERE kind = ? AND id = ?",
                    (self._dumps(record), kind.value, record_id),
                )
                return

            next_position = conn.execute(
                "SELECT COALESCE(MAX(position) + 1, 0) FROM records WHERE kind = ?",
                (kind.value,),
            ).fetchone()[0]
            conn.execute(
                "INSERT INTO records (kind, id, position, payload) VALUES (?, ?, ?, ?)",
                (kind.value, record_id, next_position, self._dumps(record)),
            )

    def delete_record(self, kind: CollectionKind, record_id: str) -> None:
        """Remove a record if present."""
        kind = CollectionKind(kind)
        with self._get_connection(kind, "delete") as conn:
            conn.execute(
                "DELETE FROM records WHERE kind = ? AND id = ?",
                (kind.value, record_id),
            )

    @staticmethod
    def _dumps(record: dict[str, Any]) -> str:
        return json.dumps(record, cls=JSONEncoder)
