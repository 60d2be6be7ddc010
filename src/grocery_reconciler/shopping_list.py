"""Shopping list operations for Grocery Reconciler."""

import functools
import logging
import threading
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime

from .catalog import Catalog
from .data_store import DataStore, DataStoreProtocol
from .inventory_ledger import InventoryLedger
from .merge import SHOPPING_ENTRY_POLICY, FieldPolicy, merge
from .models import (
    CatalogItem,
    CollectionKind,
    CompositeAddResult,
    DeficitLine,
    InventoryEntry,
    MealProgress,
    ShoppingListEntry,
)

logger = logging.getLogger(__name__)


def synchronized(method):
    """Run an engine method while holding the engine's lock."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.lock:
            return method(self, *args, **kwargs)

    return wrapper


class ItemNotFoundError(Exception):
    """Raised when an item is not on the shopping list."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Item with ID '{item_id}' not found")


@dataclass
class ListSections:
    """The shopping list as displayed: user-ordered, purchased, meals."""

    unchecked: list[ShoppingListEntry] = field(default_factory=list)
    checked: list[ShoppingListEntry] = field(default_factory=list)
    composite: list[ShoppingListEntry] = field(default_factory=list)

    def ordered(self) -> list[ShoppingListEntry]:
        return [*self.unchecked, *self.checked, *self.composite]


class ShoppingListIndex:
    """Ordered map from item id to its shopping list entry."""

    def __init__(self, entries: Iterable[ShoppingListEntry] = ()):
        self._entries: dict[str, ShoppingListEntry] = {}
        for entry in entries:
            self.put(entry)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._entries

    def __iter__(self) -> Iterator[ShoppingListEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, item_id: str) -> ShoppingListEntry | None:
        return self._entries.get(item_id)

    def ids(self) -> list[str]:
        return list(self._entries)

    def copy(self) -> "ShoppingListIndex":
        return ShoppingListIndex(self._entries.values())

    def put(self, entry: ShoppingListEntry, position: int | None = None) -> None:
        """Replace an entry in place, or insert a new one at ``position`` (default: end)."""
        if entry.id in self._entries or position is None:
            self._entries[entry.id] = entry
            return

        items = list(self._entries.items())
        items.insert(position, (entry.id, entry))
        self._entries = dict(items)

    def remove(self, item_id: str) -> ShoppingListEntry:
        return self._entries.pop(item_id)

    def sections(self) -> ListSections:
        sections = ListSections()
        for entry in self._entries.values():
            if entry.is_composite:
                sections.composite.append(entry)
            elif entry.checked:
                sections.checked.append(entry)
            else:
                sections.unchecked.append(entry)
        return sections

    def meal_progress(self, meal: ShoppingListEntry) -> MealProgress:
        """Count the meal's ingredient lines whose own entries are checked off."""
        lines = meal.ingredients or []
        checked = 0
        for line in lines:
            entry = self._entries.get(line.id)
            if entry is not None and entry.checked:
                checked += 1
        return MealProgress(checked_count=checked, total_count=len(lines))


class ShoppingListEngine:
    """Owns the to-buy collection and its link to inventory.

    Mutations hold ``lock`` from reading the index to writing it back, so a
    debounced reorder running on a timer thread cannot overwrite a concurrent
    edit with a stale copy.
    """

    def __init__(
        self,
        data_store: DataStoreProtocol | None = None,
        inventory: InventoryLedger | None = None,
        catalog: Catalog | None = None,
    ):
        """Initialize the engine.

        Args:
            data_store: Persistence collaborator. Creates a JSON DataStore if not provided.
            inventory: Ledger updated on purchase and undo
            catalog: Used to name inventory entries created by a purchase
        """
        self.data_store = data_store or DataStore()
        self.inventory = inventory or InventoryLedger(self.data_store)
        self.catalog = catalog
        self.lock = threading.RLock()
        self._index = ShoppingListIndex()
        self.reload()

    @synchronized
    def reload(self) -> None:
        """Re-read the list from the data store, folding duplicate ids together."""
        index = ShoppingListIndex()
        for record in self.data_store.read_collection(CollectionKind.SHOPPING_LIST):
            entry = ShoppingListEntry.model_validate(record)
            existing = index.get(entry.id)
            if existing is not None:
                logger.warning("Merging duplicate shopping list entries for %s", entry.id)
                entry = merge(existing, entry, SHOPPING_ENTRY_POLICY)
            index.put(entry)
        self._index = index

    # --- Lookups ---

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._index

    def __len__(self) -> int:
        return len(self._index)

    def get(self, item_id: str) -> ShoppingListEntry | None:
        return self._index.get(item_id)

    def require(self, item_id: str) -> ShoppingListEntry:
        entry = self._index.get(item_id)
        if entry is None:
            raise ItemNotFoundError(item_id)
        return entry

    def ids(self) -> list[str]:
        return self._index.ids()

    def sections(self) -> ListSections:
        """Unchecked entries in user order, then checked, then meals."""
        return self._index.sections()

    def ordered_entries(self) -> list[ShoppingListEntry]:
        return self.sections().ordered()

    def meal_progress(self, item_id: str) -> MealProgress:
        """Ingredient progress of a meal on the list.

        Raises:
            ItemNotFoundError: If the entry doesn't exist
        """
        return self._index.meal_progress(self.require(item_id))

    # --- Adding ---

    @synchronized
    def add_or_merge(
        self,
        entry: ShoppingListEntry,
        position: int | None = None,
        policy: Mapping[str, FieldPolicy] = SHOPPING_ENTRY_POLICY,
    ) -> ShoppingListEntry:
        """Add an entry, or merge it into the existing entry with the same id.

        Args:
            entry: Incoming entry
            position: Insertion index for a new entry; existing entries keep their place
            policy: Field policy used when merging

        Returns:
            The stored entry
        """
        working = self._index.copy()
        stored = self._merge_into(working, entry, position, policy)

        if position is None or entry.id in self._index:
            self.data_store.write_record(
                CollectionKind.SHOPPING_LIST, stored.id, stored.model_dump(mode="json")
            )
        else:
            self._write_all(working)

        self._index = working
        return stored

    @synchronized
    def add_composite(
        self,
        item: CatalogItem,
        quantity: float,
        deficit_lines: list[DeficitLine],
        is_update: bool = False,
        policy: Mapping[str, FieldPolicy] = SHOPPING_ENTRY_POLICY,
        warnings: list[str] | None = None,
    ) -> CompositeAddResult:
        """Merge a composite item and each of its deficit lines into the list.

        The composite entry carries its deficit lines. Every line is then
        merged as its own entry; ``update_item`` on a line is only a hint, the
        existence check made here decides between merge and insert. The whole
        change is written in one collection write.

        Args:
            item: Composite catalog item
            quantity: Units of the item requested
            deficit_lines: Freshly computed shortages
            is_update: Whether the caller is updating an existing request
            policy: Field policy for the composite entry itself
            warnings: Data-integrity warnings to pass back to the caller

        Returns:
            Result describing what was added, for caller messaging
        """
        working = self._index.copy()
        self._merge_into(
            working,
            ShoppingListEntry(
                id=item.id,
                name=item.name,
                category=item.category,
                quantity=quantity,
                unit=item.unit,
                ingredients=list(deficit_lines),
            ),
            None,
            policy,
        )

        for line in deficit_lines:
            if line.update_item != (line.id in working):
                logger.debug(
                    "List membership of %s changed since deficit was computed", line.id
                )
            self._merge_into(working, self._entry_for_line(line), None, SHOPPING_ENTRY_POLICY)

        self._write_all(working)
        self._index = working

        result = CompositeAddResult(
            item_id=item.id,
            name=item.name,
            quantity=quantity,
            is_update=is_update,
            deficit=list(deficit_lines),
            warnings=list(warnings or []),
        )
        logger.debug(result.message)
        return result

    # --- Purchase state ---

    @synchronized
    def mark_purchased(
        self, item_id: str, purchased_quantity: float | None = None
    ) -> ShoppingListEntry:
        """Check an entry off and add the purchased quantity to inventory.

        Args:
            item_id: Shopping list entry id
            purchased_quantity: Quantity bought; defaults to the entry's quantity

        Returns:
            The updated entry

        Raises:
            ItemNotFoundError: If the entry doesn't exist
            ValueError: If the purchased quantity is not positive
        """
        if purchased_quantity is not None and purchased_quantity <= 0:
            raise ValueError("Purchased quantity must be positive")

        entry = self.require(item_id)
        if entry.checked and entry.added_to_inventory:
            return entry

        quantity = entry.quantity if purchased_quantity is None else purchased_quantity
        name, category = self._inventory_identity(entry)

        before = self.inventory.get(item_id)
        self.inventory.adjust(item_id, quantity, name=name, category=category)

        updated = entry.model_copy(
            update={"checked": True, "added_to_inventory": True, "updated_at": datetime.now()}
        )
        self._write_or_restore(updated, before)
        return updated

    @synchronized
    def undo_purchase(self, item_id: str) -> ShoppingListEntry:
        """Uncheck an entry and take its quantity back out of inventory.

        Inventory is floored at zero; an item with no inventory entry is
        treated as already at zero.

        Raises:
            ItemNotFoundError: If the entry doesn't exist
        """
        entry = self.require(item_id)
        if not entry.checked and not entry.added_to_inventory:
            return entry

        before = self.inventory.get(item_id)
        if before is not None:
            self.inventory.adjust(item_id, -entry.quantity)

        updated = entry.model_copy(
            update={"checked": False, "added_to_inventory": False, "updated_at": datetime.now()}
        )
        self._write_or_restore(updated, before)
        return updated

    # --- Removal and edits ---

    @synchronized
    def delete_entry(self, item_id: str) -> ShoppingListEntry:
        """Remove an entry. Inventory is not affected.

        Raises:
            ItemNotFoundError: If the entry doesn't exist
        """
        entry = self.require(item_id)
        self.data_store.delete_record(CollectionKind.SHOPPING_LIST, item_id)
        self._index.remove(item_id)
        return entry

    @synchronized
    def clear_purchased(self) -> list[ShoppingListEntry]:
        """Remove every checked entry in a single write.

        Returns:
            The removed entries
        """
        removed = [e for e in self._index if e.checked]
        if not removed:
            return []

        working = ShoppingListIndex(e for e in self._index if not e.checked)
        self._write_all(working)
        self._index = working
        logger.info("Cleared %d purchased items", len(removed))
        return removed

    @synchronized
    def update_quantity(self, item_id: str, quantity: float) -> ShoppingListEntry | None:
        """Set the quantity of an entry; zero or less removes it.

        Returns:
            The updated entry, or None if it was removed

        Raises:
            ItemNotFoundError: If the entry doesn't exist
        """
        entry = self.require(item_id)
        if quantity <= 0:
            self.delete_entry(item_id)
            return None

        updated = entry.model_copy(update={"quantity": quantity, "updated_at": datetime.now()})
        self.data_store.write_record(
            CollectionKind.SHOPPING_LIST, item_id, updated.model_dump(mode="json")
        )
        self._index.put(updated)
        return updated

    @synchronized
    def apply_order(self, ordered_ids: list[str]) -> list[ShoppingListEntry]:
        """Persist a new list order in one write.

        Ids that are no longer on the list are ignored and entries missing
        from ``ordered_ids`` keep their relative order after the given ones.

        Returns:
            The full list in its new order
        """
        known = [i for i in dict.fromkeys(ordered_ids) if i in self._index]
        placed = set(known)
        rest = [i for i in self._index.ids() if i not in placed]
        working = ShoppingListIndex(self.require(i) for i in [*known, *rest])
        self._write_all(working)
        self._index = working
        return list(working)

    # --- Internals ---

    @staticmethod
    def _merge_into(
        index: ShoppingListIndex,
        entry: ShoppingListEntry,
        position: int | None,
        policy: Mapping[str, FieldPolicy],
    ) -> ShoppingListEntry:
        existing = index.get(entry.id)
        if existing is not None:
            stored = merge(existing, entry, policy)
        else:
            stored = entry.model_copy(update={"checked": False, "added_to_inventory": False})
        index.put(stored, position)
        return stored

    def _entry_for_line(self, line: DeficitLine) -> ShoppingListEntry:
        category = line.category
        if category is None and self.catalog is not None:
            catalog_item = self.catalog.get_item(line.id)
            category = catalog_item.category if catalog_item else None
        return ShoppingListEntry(
            id=line.id,
            name=line.name,
            category=category,
            quantity=line.quantity,
            unit=line.unit,
        )

    def _inventory_identity(self, entry: ShoppingListEntry) -> tuple[str, str]:
        current = self.inventory.get(entry.id)
        if current is not None:
            return current.name, current.category
        catalog_item = self.catalog.get_item(entry.id) if self.catalog is not None else None
        if catalog_item is not None:
            return catalog_item.name, catalog_item.category
        return entry.name, entry.category

    def _write_or_restore(
        self, updated: ShoppingListEntry, inventory_before: InventoryEntry | None
    ) -> None:
        try:
            self.data_store.write_record(
                CollectionKind.SHOPPING_LIST, updated.id, updated.model_dump(mode="json")
            )
        except Exception:
            logger.warning("Rolling back inventory for %s after failed list write", updated.id)
            self.inventory.restore(inventory_before, updated.id)
            raise
        self._index.put(updated)

    def _write_all(self, index: ShoppingListIndex) -> None:
        self.data_store.write_collection(
            CollectionKind.SHOPPING_LIST, [e.model_dump(mode="json") for e in index]
        )
