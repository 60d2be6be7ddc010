"""Shared test fixtures for Grocery Reconciler."""

from collections import Counter

import pytest

from grocery_reconciler.catalog import Catalog
from grocery_reconciler.data_store import DataStore, PersistenceError
from grocery_reconciler.inventory_ledger import InventoryLedger
from grocery_reconciler.models import CollectionKind, Ingredient
from grocery_reconciler.reconciler import GroceryReconciler
from grocery_reconciler.shopping_list import ShoppingListEngine
from grocery_reconciler.sqlite_store import SQLiteStore


class RecordingStore(DataStore):
    """DataStore that counts writes and can be told to fail them.

    Only the outermost call is counted; ``write_record`` and ``delete_record``
    rewrite the file through ``write_collection`` internally.
    """

    def __init__(self, data_dir):
        super().__init__(data_dir=data_dir)
        self.calls: Counter = Counter()
        self.fail_on: set[tuple[str, str]] = set()
        self._nested = False

    def _check(self, operation, kind):
        kind = CollectionKind(kind)
        self.calls[(operation, kind.value)] += 1
        if (operation, kind.value) in self.fail_on:
            raise PersistenceError(kind, operation)

    def write_record(self, kind, record_id, record):
        self._check("write_record", kind)
        self._nested = True
        try:
            super().write_record(kind, record_id, record)
        finally:
            self._nested = False

    def write_collection(self, kind, records):
        if not self._nested:
            self._check("write_collection", kind)
        super().write_collection(kind, records)

    def delete_record(self, kind, record_id):
        self._check("delete_record", kind)
        self._nested = True
        try:
            super().delete_record(kind, record_id)
        finally:
            self._nested = False

    def reset(self):
        self.calls.clear()


class ManualScheduler:
    """Scheduler whose tasks only run when the test fires them."""

    def __init__(self):
        self.tasks: list[dict] = []

    def schedule(self, task, delay):
        handle = {"task": task, "delay": delay, "cancelled": False}
        self.tasks.append(handle)
        return handle

    def cancel(self, handle):
        handle["cancelled"] = True

    @property
    def pending(self):
        return [h for h in self.tasks if not h["cancelled"] and "ran" not in h]

    def fire(self):
        """Run every task whose window has elapsed."""
        for handle in self.pending:
            handle["ran"] = True
            handle["task"]()


@pytest.fixture
def temp_data_dir(tmp_path):
    """Create a temporary data directory."""
    data_dir = tmp_path / "test_data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def data_store(temp_data_dir):
    """Create a recording DataStore with temporary directory."""
    return RecordingStore(temp_data_dir)


@pytest.fixture
def sqlite_store(tmp_path):
    """Create a SQLite store with a temporary database."""
    return SQLiteStore(db_path=tmp_path / "test.db")


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def catalog(data_store):
    """Catalog with produce, dairy and a composite sauce."""
    catalog = Catalog(data_store)
    catalog.add_category("Produce")
    catalog.add_category("Dairy")
    catalog.add_category("Meals")
    catalog.add_item("Produce", "Tomato", item_id="tomato")
    catalog.add_item("Produce", "Basil", unit="bunch", item_id="basil")
    catalog.add_item(
        "Dairy",
        "Milk",
        unit="gallon",
        item_id="milk",
        auto_restock=True,
        restock_threshold=1,
        restock_quantity=2,
    )
    catalog.add_item(
        "Meals",
        "Pasta Sauce",
        item_id="sauce",
        ingredients=[
            Ingredient(id="tomato", name="Tomato", quantity_per_unit=2),
            Ingredient(id="basil", name="Basil", unit="bunch", quantity_per_unit=1),
        ],
    )
    return catalog


@pytest.fixture
def inventory(data_store):
    return InventoryLedger(data_store)


@pytest.fixture
def shopping_list(data_store, inventory, catalog):
    """Engine sharing the data store with inventory and catalog."""
    return ShoppingListEngine(data_store, inventory, catalog)


@pytest.fixture
def reconciler(data_store, catalog, scheduler):
    """Reconciler over the populated catalog with a manual debounce scheduler."""
    return GroceryReconciler(data_store, scheduler=scheduler)
