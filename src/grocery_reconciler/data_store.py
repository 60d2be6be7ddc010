"""Data persistence for Grocery Reconciler.

This module provides data persistence with support for JSON (default) or SQLite backends.
Use create_data_store() to get the appropriate backend based on configuration.
"""

import json
import os
import tempfile
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Protocol
from uuid import UUID

from .models import CollectionKind


class BackendType(str, Enum):
    """Data storage backend types."""

    JSON = "json"
    SQLITE = "sqlite"


class PersistenceError(Exception):
    """Raised when a backend fails to read or write a collection."""

    def __init__(self, kind: CollectionKind | str, operation: str, cause: Exception | None = None):
        self.kind = CollectionKind(kind)
        self.operation = operation
        self.cause = cause
        message = f"Failed to {operation} {self.kind.value}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class DataStoreProtocol(Protocol):
    """Protocol defining the persistence collaborator interface."""

    def read_collection(self, kind: CollectionKind) -> list[dict[str, Any]]: ...
    def write_record(self, kind: CollectionKind, record_id: str, record: dict[str, Any]) -> None: ...
    def write_collection(self, kind: CollectionKind, records: list[dict[str, Any]]) -> None: ...
    def delete_record(self, kind: CollectionKind, record_id: str) -> None: ...


class JSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for our data types."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, date):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


def record_key(kind: CollectionKind, record: dict[str, Any]) -> str:
    """Identity of a record within its collection.

    Catalog records are categories and are keyed by name; everything else by id.
    """
    if kind == CollectionKind.CATALOG:
        return str(record["name"])
    return str(record["id"])


class DataStore:
    """Manages JSON file persistence, one file per collection."""

    def __init__(self, data_dir: Path | None = None):
        """Initialize data store.

        Args:
            data_dir: Directory for data files. Defaults to ./data
        """
        self.data_dir = data_dir or Path.cwd() / "data"
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _collection_path(self, kind: CollectionKind) -> Path:
        """Path to a collection file."""
        return self.data_dir / f"{CollectionKind(kind).value}.json"

    def read_collection(self, kind: CollectionKind) -> list[dict[str, Any]]:
        """Load every record of a collection, in stored order.

        Returns:
            List of records, empty if the file doesn't exist
        """
        path = self._collection_path(kind)
        if not path.exists():
            return []

        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(kind, "read", e) from e

        return list(data.get("records", []))

    def write_collection(self, kind: CollectionKind, records: list[dict[str, Any]]) -> None:
        """Replace a collection with the given records in one write.

        The file is swapped in atomically so readers see either the old or
        the new collection.
        """
        path = self._collection_path(kind)
        payload = {
            "kind": CollectionKind(kind).value,
            "last_updated": datetime.now(),
            "records": records,
        }

        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{path.stem}-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w") as f:
                    json.dump(payload, f, cls=JSONEncoder, indent=2)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except (OSError, TypeError) as e:
            raise PersistenceError(kind, "write", e) from e

    def write_record(self, kind: CollectionKind, record_id: str, record: dict[str, Any]) -> None:
        """Insert or replace a single record, keeping its position if present."""
        records = self.read_collection(kind)
        for i, existing in enumerate(records):
            if record_key(kind, existing) == record_id:
                records[i] = record
                break
        else:
            records.append(record)
        self.write_collection(kind, records)

    def delete_record(self, kind: CollectionKind, record_id: str) -> None:
        """Remove a record if present."""
        records = self.read_collection(kind)
        remaining = [r for r in records if record_key(kind, r) != record_id]
        if len(remaining) != len(records):
            self.write_collection(kind, remaining)


def create_data_store(
    backend: BackendType = BackendType.JSON,
    data_dir: Path | None = None,
    db_path: Path | None = None,
) -> DataStoreProtocol:
    """Create a data store with the specified backend.

    Args:
        backend: Which backend to use (json or sqlite)
        data_dir: Directory for data files (used by JSON backend, also used
                  as base path for SQLite if db_path not specified)
        db_path: Path to SQLite database file (only used by SQLite backend)

    Returns:
        A DataStore or SQLiteStore instance
    """
    if backend == BackendType.SQLITE:
        from .sqlite_store import SQLiteStore

        if db_path is None:
            base_dir = data_dir or Path.cwd() / "data"
            db_path = base_dir / "grocery.db"
        return SQLiteStore(db_path=db_path)

    return DataStore(data_dir=data_dir)
