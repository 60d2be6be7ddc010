"""Threshold-triggered restocking for Grocery Reconciler."""

import logging
from collections.abc import Container

from .deficit import compute_deficit, missing_ingredient_warnings
from .merge import RESTOCK_ENTRY_POLICY
from .models import (
    CatalogItem,
    InventoryChange,
    RestockAction,
    RestockOutcome,
    ShoppingListEntry,
)
from .shopping_list import ShoppingListEngine

logger = logging.getLogger(__name__)


def crosses_threshold(old_quantity: float, new_quantity: float, item: CatalogItem) -> bool:
    """Whether a quantity transition should enqueue a restock.

    Edge-triggered: fires once when the quantity drops onto the threshold, or
    when a zero threshold is reached by the item running out. Increases,
    level changes below the threshold and drops that skip past it never fire.
    """
    if not item.auto_restock:
        return False

    threshold = item.restock_threshold
    if new_quantity == 0 and old_quantity > 0 and threshold == 0:
        return True
    return new_quantity < old_quantity and new_quantity == threshold


class AutoRestockTrigger:
    """Watches inventory transitions and enqueues restock purchases."""

    def __init__(self, shopping_list: ShoppingListEngine, catalog: Container[str] | None = None):
        """Initialize the trigger.

        Args:
            shopping_list: Engine that receives restock entries
            catalog: Known item ids, used to skip dangling ingredients
        """
        self.shopping_list = shopping_list
        self.catalog = catalog

    def on_change(self, change: InventoryChange, item: CatalogItem) -> RestockOutcome:
        return self.on_inventory_change(
            change.item_id, change.old_quantity, change.new_quantity, item
        )

    def on_inventory_change(
        self,
        item_id: str,
        old_quantity: float,
        new_quantity: float,
        item: CatalogItem,
    ) -> RestockOutcome:
        """Evaluate a transition and restock if it crosses the threshold.

        Args:
            item_id: Inventory item id
            old_quantity: Quantity before the change
            new_quantity: Quantity after the change
            item: Catalog entry holding the restock policy

        Returns:
            What was done to the shopping list
        """
        if not crosses_threshold(old_quantity, new_quantity, item):
            return RestockOutcome(item_id=item_id)

        logger.info(
            "Restock triggered for %s (%g -> %g, threshold %g)",
            item.name,
            old_quantity,
            new_quantity,
            item.restock_threshold,
        )
        return self.restock(item_id, item)

    def restock(self, item_id: str, item: CatalogItem) -> RestockOutcome:
        """Bring the shopping list entry up to the item's restock quantity."""
        target = item.restock_quantity
        existing = self.shopping_list.get(item_id)
        previous = existing.quantity if existing is not None else None

        if existing is not None and existing.quantity >= target:
            logger.debug("%s already listed with %g, no update", item.name, existing.quantity)
            return RestockOutcome(
                item_id=item_id,
                action=RestockAction.ALREADY_LISTED,
                quantity=existing.quantity,
                previous_quantity=previous,
            )

        action = RestockAction.UPDATED if existing is not None else RestockAction.ADDED

        if item.is_composite:
            warnings = []
            if self.catalog is not None:
                warnings = missing_ingredient_warnings(item, self.catalog)
            for warning in warnings:
                logger.warning(warning)

            deficit = compute_deficit(
                item,
                target,
                self.shopping_list.inventory.snapshot(),
                self.shopping_list.ids(),
                catalog=self.catalog,
            )
            composite = self.shopping_list.add_composite(
                item,
                target,
                deficit,
                is_update=existing is not None,
                policy=RESTOCK_ENTRY_POLICY,
                warnings=warnings,
            )
            return RestockOutcome(
                item_id=item_id,
                action=action,
                quantity=target,
                previous_quantity=previous,
                composite=composite,
            )

        self.shopping_list.add_or_merge(
            ShoppingListEntry(
                id=item_id,
                name=item.name,
                category=item.category,
                quantity=target,
                unit=item.unit,
            ),
            policy=RESTOCK_ENTRY_POLICY,
        )
        return RestockOutcome(
            item_id=item_id,
            action=action,
            quantity=target,
            previous_quantity=previous,
        )
