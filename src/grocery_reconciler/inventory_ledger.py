"""On-hand inventory tracking for Grocery Reconciler."""

import logging
from collections.abc import Mapping
from datetime import datetime

from .data_store import DataStore, DataStoreProtocol
from .models import UNCATEGORIZED, CollectionKind, InventoryChange, InventoryEntry

logger = logging.getLogger(__name__)


def quantity_on_hand(inventory: Mapping[str, InventoryEntry], item_id: str) -> float:
    """Quantity of an item, treating absent entries as zero."""
    entry = inventory.get(item_id)
    return entry.quantity if entry is not None else 0


class InventoryLedger:
    """Current on-hand quantity per item id.

    Entries exist only while their quantity is positive; driving a quantity
    to zero deletes the record.
    """

    def __init__(self, data_store: DataStoreProtocol | None = None):
        self.data_store = data_store or DataStore()
        self._entries: dict[str, InventoryEntry] = {}
        self.reload()

    def reload(self) -> None:
        """Re-read inventory from the data store."""
        records = self.data_store.read_collection(CollectionKind.INVENTORY)
        entries = [InventoryEntry.model_validate(r) for r in records]
        self._entries = {e.id: e for e in entries if e.quantity > 0}

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, item_id: str) -> InventoryEntry | None:
        """Entry for an item, or None when not in stock."""
        return self._entries.get(item_id)

    def quantity(self, item_id: str) -> float:
        """On-hand quantity, zero when absent."""
        return quantity_on_hand(self._entries, item_id)

    def snapshot(self) -> dict[str, InventoryEntry]:
        """Copy of the current entries keyed by item id."""
        return dict(self._entries)

    def entries(self, category: str | None = None) -> list[InventoryEntry]:
        """Entries sorted by name, optionally filtered by category."""
        entries = list(self._entries.values())
        if category:
            entries = [e for e in entries if e.category.lower() == category.lower()]
        return sorted(entries, key=lambda e: e.name.lower())

    def set_quantity(
        self,
        item_id: str,
        quantity: float,
        name: str | None = None,
        category: str | None = None,
    ) -> InventoryChange:
        """Set the absolute on-hand quantity of an item.

        Args:
            item_id: Item id
            quantity: New quantity; zero or less removes the entry
            name: Display name, used when creating the entry
            category: Category, used when creating the entry

        Returns:
            The transition that was applied
        """
        current = self._entries.get(item_id)
        old_quantity = current.quantity if current is not None else 0
        new_quantity = max(0, quantity)

        if new_quantity == 0:
            if current is not None:
                self.data_store.delete_record(CollectionKind.INVENTORY, item_id)
                del self._entries[item_id]
                logger.debug("Removed %s from inventory", item_id)
        else:
            entry = InventoryEntry(
                id=item_id,
                name=name or (current.name if current else item_id),
                category=category or (current.category if current else UNCATEGORIZED),
                quantity=new_quantity,
                date_updated=datetime.now(),
            )
            self._write(entry)

        return InventoryChange(
            item_id=item_id, old_quantity=old_quantity, new_quantity=new_quantity
        )

    def adjust(
        self,
        item_id: str,
        delta: float,
        name: str | None = None,
        category: str | None = None,
    ) -> InventoryChange:
        """Add or subtract from the on-hand quantity, floored at zero."""
        return self.set_quantity(item_id, self.quantity(item_id) + delta, name, category)

    def restore(self, entry: InventoryEntry | None, item_id: str) -> None:
        """Put back a previously captured entry (or its absence)."""
        if entry is None:
            if item_id in self._entries:
                self.data_store.delete_record(CollectionKind.INVENTORY, item_id)
                del self._entries[item_id]
        else:
            self._write(entry)

    def _write(self, entry: InventoryEntry) -> None:
        self.data_store.write_record(
            CollectionKind.INVENTORY, entry.id, entry.model_dump(mode="json")
        )
        self._entries[entry.id] = entry
