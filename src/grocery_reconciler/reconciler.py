"""Wires catalog, inventory and shopping list into the grocery data flow."""

import logging

from .catalog import Catalog, CatalogItemNotFoundError
from .data_store import DataStore, DataStoreProtocol
from .deficit import compute_deficit, missing_ingredient_warnings
from .inventory_ledger import InventoryLedger
from .models import ShoppingListEntry
from .ordering import DEFAULT_DEBOUNCE_SECONDS, OrderingBuffer, Scheduler
from .restock import AutoRestockTrigger
from .shopping_list import ShoppingListEngine

logger = logging.getLogger(__name__)


class GroceryReconciler:
    """Keeps catalog, inventory and shopping list consistent.

    Inventory edits run through the restock trigger; manual purchase
    requests run through the deficit calculator; reordering goes through
    the ordering buffer only. Results are returned as dicts with
    ``success``, ``message`` and ``data`` keys.
    """

    def __init__(
        self,
        data_store: DataStoreProtocol | None = None,
        scheduler: Scheduler | None = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        self.data_store = data_store or DataStore()
        self.catalog = Catalog(self.data_store)
        self.inventory = InventoryLedger(self.data_store)
        self.shopping_list = ShoppingListEngine(self.data_store, self.inventory, self.catalog)
        self.restock = AutoRestockTrigger(self.shopping_list, self.catalog)
        self.ordering = OrderingBuffer(self.shopping_list, scheduler, debounce_seconds)

    # --- Catalog ---

    def get_catalog(self, category: str | None = None) -> dict:
        names = [category] if category is not None else self.catalog.categories()
        categories = [
            {
                "name": name,
                "items": [i.model_dump(mode="json") for i in self.catalog.items(name)],
            }
            for name in names
        ]
        return {
            "success": True,
            "data": {
                "catalog": categories,
                "total_items": sum(len(c["items"]) for c in categories),
            },
        }

    def add_category(self, name: str) -> dict:
        category = self.catalog.add_category(name)
        return {
            "success": True,
            "message": f"Added category {category.name}",
            "data": {"category": category.name},
        }

    def rename_category(self, old_name: str, new_name: str) -> dict:
        category = self.catalog.rename_category(old_name, new_name)
        return {
            "success": True,
            "message": f"Renamed category {old_name} to {category.name}",
            "data": {"category": category.name},
        }

    def delete_category(self, name: str) -> dict:
        removed = self.catalog.delete_category(name)
        return {
            "success": True,
            "message": f"Deleted category {name} ({len(removed.items)} items)",
            "data": {"category": name, "removed_count": len(removed.items)},
        }

    def add_catalog_item(self, category: str, name: str, **fields) -> dict:
        item = self.catalog.add_item(category, name, **fields)
        return {
            "success": True,
            "message": f"Added {item.name} to {item.category}",
            "data": {"catalog_item": item.model_dump(mode="json")},
        }

    def edit_catalog_item(self, item_id: str, **changes) -> dict:
        item = self.catalog.edit_item(item_id, **changes)
        return {
            "success": True,
            "message": f"Updated {item.name}",
            "data": {"catalog_item": item.model_dump(mode="json")},
        }

    def delete_catalog_item(self, item_id: str) -> dict:
        item = self.catalog.delete_item(item_id)
        return {
            "success": True,
            "message": f"Deleted {item.name} from {item.category}",
            "data": {"catalog_item": item.model_dump(mode="json")},
        }

    # --- Inventory ---

    def set_inventory_quantity(self, item_id: str, quantity: float) -> dict:
        """Set an item's on-hand quantity and run the restock trigger.

        Raises:
            CatalogItemNotFoundError: If the item is neither in the catalog nor in stock
        """
        item = self.catalog.get_item(item_id)
        current = self.inventory.get(item_id)
        if item is None and current is None:
            raise CatalogItemNotFoundError(item_id)

        source = item if item is not None else current
        name = source.name
        change = self.inventory.set_quantity(
            item_id, quantity, name=name, category=source.category
        )
        logger.debug("%s: %g -> %g", name, change.old_quantity, change.new_quantity)

        data: dict = {
            "change": change.model_dump(mode="json"),
            "inventory": None,
            "restock": None,
        }
        entry = self.inventory.get(item_id)
        if entry is not None:
            data["inventory"] = entry.model_dump(mode="json")

        message = f"{name}: {change.old_quantity:g} -> {change.new_quantity:g}"
        if item is not None:
            outcome = self.restock.on_change(change, item)
            data["restock"] = outcome.model_dump(mode="json")
            if outcome.composite is not None:
                message += f"; {outcome.composite.message}"
                data["warnings"] = outcome.composite.warnings
            elif outcome.fired:
                message += f"; restock {outcome.action.value} ({outcome.quantity:g})"

        self.ordering.refresh()
        return {"success": True, "message": message, "data": data}

    def adjust_inventory(self, item_id: str, delta: float) -> dict:
        """Add to or subtract from an item's on-hand quantity."""
        return self.set_inventory_quantity(item_id, self.inventory.quantity(item_id) + delta)

    def get_inventory(self, category: str | None = None) -> dict:
        entries = self.inventory.entries(category=category)
        return {
            "success": True,
            "data": {
                "inventory": [e.model_dump(mode="json") for e in entries],
                "total_items": len(entries),
            },
        }

    # --- Shopping list ---

    def request_purchase(self, item_id: str, quantity: float | None = None) -> dict:
        """Add a catalog item to the shopping list.

        Composite items have their deficit computed on every request, even
        when every ingredient turns out to be in stock.

        Args:
            item_id: Catalog item id
            quantity: Units to buy; defaults to the item's restock quantity

        Raises:
            CatalogItemNotFoundError: If the item is not in the catalog
        """
        item = self.catalog.require_item(item_id)
        quantity = item.restock_quantity if quantity is None else quantity
        if quantity <= 0:
            raise ValueError("Quantity must be positive")

        if item.is_composite:
            warnings = missing_ingredient_warnings(item, self.catalog)
            for warning in warnings:
                logger.warning(warning)

            deficit = compute_deficit(
                item,
                quantity,
                self.inventory.snapshot(),
                self.shopping_list.ids(),
                catalog=self.catalog,
            )
            result = self.shopping_list.add_composite(
                item,
                quantity,
                deficit,
                is_update=item_id in self.shopping_list,
                warnings=warnings,
            )
            self.ordering.refresh()
            return {
                "success": True,
                "message": result.message,
                "data": {
                    "item": self.shopping_list.require(item_id).model_dump(mode="json"),
                    "ingredients_added": result.ingredients_added,
                    "fully_stocked": result.fully_stocked,
                    "warnings": result.warnings,
                },
            }

        entry = self.shopping_list.add_or_merge(
            ShoppingListEntry(
                id=item.id,
                name=item.name,
                category=item.category,
                quantity=quantity,
                unit=item.unit,
            )
        )
        self.ordering.refresh()
        return {
            "success": True,
            "message": f"Added {item.name} ({quantity:g}) to shopping list",
            "data": {"item": entry.model_dump(mode="json")},
        }

    def mark_purchased(self, item_id: str, quantity: float | None = None) -> dict:
        entry = self.shopping_list.mark_purchased(item_id, quantity)
        self.ordering.refresh()
        return {
            "success": True,
            "message": f"Marked {entry.name} as purchased",
            "data": {
                "item": entry.model_dump(mode="json"),
                "inventory_quantity": self.inventory.quantity(item_id),
            },
        }

    def undo_purchase(self, item_id: str) -> dict:
        entry = self.shopping_list.undo_purchase(item_id)
        self.ordering.refresh()
        return {
            "success": True,
            "message": f"Undid purchase of {entry.name}",
            "data": {
                "item": entry.model_dump(mode="json"),
                "inventory_quantity": self.inventory.quantity(item_id),
            },
        }

    def remove_from_list(self, item_id: str) -> dict:
        entry = self.shopping_list.delete_entry(item_id)
        self.ordering.refresh()
        return {
            "success": True,
            "message": f"Removed {entry.name} from shopping list",
            "data": {"item": entry.model_dump(mode="json")},
        }

    def set_list_quantity(self, item_id: str, quantity: float) -> dict:
        name = self.shopping_list.require(item_id).name
        entry = self.shopping_list.update_quantity(item_id, quantity)
        self.ordering.refresh()
        if entry is None:
            return {
                "success": True,
                "message": f"Removed {name} from shopping list",
                "data": {"item": None},
            }
        return {
            "success": True,
            "message": f"Updated {name} to {quantity:g}",
            "data": {"item": entry.model_dump(mode="json")},
        }

    def clear_purchased(self) -> dict:
        removed = self.shopping_list.clear_purchased()
        self.ordering.refresh()
        return {
            "success": True,
            "message": f"Cleared {len(removed)} purchased items",
            "data": {"removed_count": len(removed)},
        }

    def move(self, item_id: str, direction: str) -> dict:
        """Move an unchecked entry one place up or down."""
        if direction == "up":
            moved = self.ordering.move_up(item_id)
        elif direction == "down":
            moved = self.ordering.move_down(item_id)
        else:
            raise ValueError(f"Unknown direction '{direction}'")

        return {
            "success": True,
            "message": f"Moved {item_id} {direction}" if moved else f"{item_id} is already at the edge",
            "data": {
                "moved": moved,
                "order": [e.id for e in self.ordering.view],
            },
        }

    def get_list(self) -> dict:
        """The list as displayed, with unsaved reordering applied.

        Each meal carries a ``progress`` dict counting its ingredient lines
        that are already checked off.
        """
        with self.shopping_list.lock:
            unchecked = self.ordering.view
            sections = self.shopping_list.sections()
            meals = [
                {
                    **e.model_dump(mode="json"),
                    "progress": self.shopping_list.meal_progress(e.id).model_dump(mode="json"),
                }
                for e in sections.composite
            ]
        return {
            "success": True,
            "data": {
                "list": {
                    "unchecked": [e.model_dump(mode="json") for e in unchecked],
                    "checked": [e.model_dump(mode="json") for e in sections.checked],
                    "meals": meals,
                    "total_items": len(self.shopping_list),
                }
            },
        }

    def close(self) -> None:
        """Write any pending reorder before shutting down."""
        self.ordering.flush()
