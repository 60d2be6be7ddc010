"""Grocery Reconciler - keeps a food bank, inventory and shopping list consistent."""

from .catalog import Catalog, CatalogItemNotFoundError, CategoryExistsError, CategoryNotFoundError
from .config import ConfigManager
from .data_store import BackendType, DataStore, PersistenceError, create_data_store
from .deficit import compute_deficit
from .inventory_ledger import InventoryLedger
from .merge import RESTOCK_ENTRY_POLICY, SHOPPING_ENTRY_POLICY, FieldPolicy, merge
from .models import (
    CatalogCategory,
    CatalogItem,
    CollectionKind,
    CompositeAddResult,
    DeficitLine,
    Ingredient,
    InventoryChange,
    InventoryEntry,
    MealProgress,
    RestockAction,
    RestockOutcome,
    ShoppingListEntry,
)
from .ordering import AsyncioScheduler, OrderingBuffer, Scheduler, TimerScheduler
from .output_formatter import OutputFormatter
from .reconciler import GroceryReconciler
from .restock import AutoRestockTrigger, crosses_threshold
from .shopping_list import ItemNotFoundError, ShoppingListEngine
from .sqlite_store import SQLiteStore

__version__ = "0.1.0"

__all__ = [
    "AsyncioScheduler",
    "AutoRestockTrigger",
    "BackendType",
    "Catalog",
    "CatalogCategory",
    "CatalogItem",
    "CatalogItemNotFoundError",
    "CategoryExistsError",
    "CategoryNotFoundError",
    "CollectionKind",
    "CompositeAddResult",
    "compute_deficit",
    "ConfigManager",
    "create_data_store",
    "crosses_threshold",
    "DataStore",
    "DeficitLine",
    "FieldPolicy",
    "GroceryReconciler",
    "Ingredient",
    "InventoryChange",
    "InventoryEntry",
    "InventoryLedger",
    "ItemNotFoundError",
    "MealProgress",
    "merge",
    "OrderingBuffer",
    "OutputFormatter",
    "PersistenceError",
    "RESTOCK_ENTRY_POLICY",
    "RestockAction",
    "RestockOutcome",
    "Scheduler",
    "SHOPPING_ENTRY_POLICY",
    "ShoppingListEngine",
    "SQLiteStore",
    "TimerScheduler",
]
