"""Tests for JSON data persistence."""

import json
from datetime import datetime

import pytest

from grocery_reconciler.data_store import (
    BackendType,
    DataStore,
    JSONEncoder,
    PersistenceError,
    create_data_store,
    record_key,
)
from grocery_reconciler.models import CollectionKind
from grocery_reconciler.sqlite_store import SQLiteStore


@pytest.fixture
def store(temp_data_dir):
    return DataStore(data_dir=temp_data_dir)


class TestCollections:
    """Tests for collection reads and writes."""

    def test_missing_collection_is_empty(self, store):
        assert store.read_collection(CollectionKind.INVENTORY) == []

    def test_write_and_read_in_order(self, store):
        records = [{"id": "b"}, {"id": "a"}]
        store.write_collection(CollectionKind.SHOPPING_LIST, records)
        assert store.read_collection(CollectionKind.SHOPPING_LIST) == records

    def test_file_layout(self, store, temp_data_dir):
        store.write_collection(CollectionKind.INVENTORY, [{"id": "milk"}])
        data = json.loads((temp_data_dir / "inventory.json").read_text())
        assert data["kind"] == "inventory"
        assert "last_updated" in data
        assert data["records"] == [{"id": "milk"}]

    def test_no_temp_files_left(self, store, temp_data_dir):
        store.write_collection(CollectionKind.INVENTORY, [{"id": "milk"}])
        assert [p.name for p in temp_data_dir.iterdir()] == ["inventory.json"]

    def test_corrupt_file_raises_persistence_error(self, store, temp_data_dir):
        (temp_data_dir / "catalog.json").write_text("{not json")
        with pytest.raises(PersistenceError) as exc_info:
            store.read_collection(CollectionKind.CATALOG)
        assert exc_info.value.kind == CollectionKind.CATALOG
        assert exc_info.value.operation == "read"

    def test_unserialisable_record(self, store):
        with pytest.raises(PersistenceError):
            store.write_collection(CollectionKind.INVENTORY, [{"id": object()}])
        assert store.read_collection(CollectionKind.INVENTORY) == []


class TestRecords:
    """Tests for single-record operations."""

    def test_write_record_appends(self, store):
        store.write_record(CollectionKind.SHOPPING_LIST, "a", {"id": "a"})
        store.write_record(CollectionKind.SHOPPING_LIST, "b", {"id": "b"})
        assert [r["id"] for r in store.read_collection(CollectionKind.SHOPPING_LIST)] == ["a", "b"]

    def test_write_record_replaces_in_place(self, store):
        store.write_collection(CollectionKind.SHOPPING_LIST, [{"id": "a"}, {"id": "b", "q": 1}])
        store.write_record(CollectionKind.SHOPPING_LIST, "b", {"id": "b", "q": 2})
        store.write_record(CollectionKind.SHOPPING_LIST, "a", {"id": "a", "q": 3})
        assert store.read_collection(CollectionKind.SHOPPING_LIST) == [
            {"id": "a", "q": 3},
            {"id": "b", "q": 2},
        ]

    def test_catalog_keyed_by_name(self, store):
        store.write_record(CollectionKind.CATALOG, "Dairy", {"name": "Dairy", "items": []})
        store.write_record(CollectionKind.CATALOG, "Dairy", {"name": "Dairy", "items": [1]})
        assert store.read_collection(CollectionKind.CATALOG) == [{"name": "Dairy", "items": [1]}]

    def test_delete_record(self, store):
        store.write_collection(CollectionKind.SHOPPING_LIST, [{"id": "a"}, {"id": "b"}])
        store.delete_record(CollectionKind.SHOPPING_LIST, "a")
        assert store.read_collection(CollectionKind.SHOPPING_LIST) == [{"id": "b"}]

    def test_delete_missing_is_noop(self, store):
        store.delete_record(CollectionKind.SHOPPING_LIST, "a")
        assert store.read_collection(CollectionKind.SHOPPING_LIST) == []

    def test_record_key(self):
        assert record_key(CollectionKind.CATALOG, {"name": "Dairy"}) == "Dairy"
        assert record_key(CollectionKind.INVENTORY, {"id": "milk"}) == "milk"


class TestCreateDataStore:
    def test_json_backend(self, temp_data_dir):
        assert isinstance(create_data_store(BackendType.JSON, temp_data_dir), DataStore)

    def test_sqlite_backend_defaults_to_data_dir(self, temp_data_dir):
        store = create_data_store(BackendType.SQLITE, temp_data_dir)
        assert isinstance(store, SQLiteStore)
        assert store.db_path == temp_data_dir / "grocery.db"


class TestJSONEncoder:
    """Tests for custom JSON encoder."""

    def test_encode_datetime_and_enum(self):
        encoded = json.dumps(
            {"time": datetime(2024, 1, 15, 10, 30), "kind": CollectionKind.CATALOG},
            cls=JSONEncoder,
        )
        assert "2024-01-15T10:30:00" in encoded
        assert '"catalog"' in encoded

    def test_encode_fallback_raises(self):
        with pytest.raises(TypeError):
            json.dumps({"bad": object()}, cls=JSONEncoder)
