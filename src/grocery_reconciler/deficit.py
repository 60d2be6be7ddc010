"""Ingredient shortage computation for composite items."""

from collections.abc import Container, Iterable, Mapping

from .inventory_ledger import quantity_on_hand
from .models import CatalogItem, DeficitLine, InventoryEntry, ShoppingListEntry


def compute_deficit(
    item: CatalogItem,
    requested_quantity: float,
    inventory: Mapping[str, InventoryEntry],
    existing_list: Iterable[ShoppingListEntry] | Container[str],
    catalog: Container[str] | None = None,
) -> list[DeficitLine]:
    """Net shortage per ingredient for buying ``requested_quantity`` of an item.

    Ingredients fully covered by inventory are left out. Each line records
    whether the ingredient already had its own shopping list entry at the time
    of computation; that flag is advisory only.

    Args:
        item: Catalog item, composite or not
        requested_quantity: Units of the item to buy
        inventory: On-hand entries keyed by item id
        existing_list: Current shopping list entries, or a container of their ids
        catalog: Known item ids; ingredients missing from it are skipped

    Returns:
        Deficit lines in ingredient order, empty when nothing is short
    """
    if not item.ingredients:
        return []

    listed_ids = _listed_ids(existing_list)
    lines = []
    for ingredient in item.ingredients:
        if catalog is not None and ingredient.id not in catalog:
            continue

        total_needed = ingredient.quantity_per_unit * requested_quantity
        on_hand = quantity_on_hand(inventory, ingredient.id)
        if on_hand < total_needed:
            lines.append(
                DeficitLine(
                    id=ingredient.id,
                    name=ingredient.name,
                    unit=ingredient.unit,
                    quantity=total_needed - on_hand,
                    update_item=ingredient.id in listed_ids,
                    category=ingredient.category,
                )
            )
    return lines


def missing_ingredients(item: CatalogItem, catalog: Container[str]) -> list[str]:
    """Ids of ingredients that reference nothing in the catalog."""
    return [i.id for i in item.ingredients or [] if i.id not in catalog]


def _listed_ids(existing_list: Iterable[ShoppingListEntry] | Container[str]) -> Container[str]:
    if isinstance(existing_list, (set, frozenset, Mapping)):
        return existing_list
    if isinstance(existing_list, Iterable):
        return {e if isinstance(e, str) else e.id for e in existing_list}
    return existing_list


def missing_ingredient_warnings(item: CatalogItem, catalog: Container[str]) -> list[str]:
    """Human-readable warnings for dangling ingredient references."""
    return [
        f"Ingredient '{ingredient_id}' of {item.name} is not in the catalog"
        for ingredient_id in missing_ingredients(item, catalog)
    ]
