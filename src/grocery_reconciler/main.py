"""CLI entry point for Grocery Reconciler."""

import logging
from enum import Enum
from pathlib import Path
from typing import Annotated, NoReturn

import typer
from pydantic import ValidationError

from .catalog import CatalogItemNotFoundError, CategoryExistsError, CategoryNotFoundError
from .config import ConfigManager
from .data_store import BackendType, PersistenceError, create_data_store
from .models import Ingredient
from .output_formatter import OutputFormatter
from .reconciler import GroceryReconciler
from .shopping_list import ItemNotFoundError

app = typer.Typer(
    name="grocery",
    help="Grocery list, inventory and food bank reconciliation",
    no_args_is_help=True,
)

# Global state for formatter and config (set by callback)
formatter: OutputFormatter = OutputFormatter()
config: ConfigManager | None = None
reconciler: GroceryReconciler | None = None

ERROR_CODES: dict[type[Exception], str] = {
    ItemNotFoundError: "ITEM_NOT_FOUND",
    CatalogItemNotFoundError: "CATALOG_ITEM_NOT_FOUND",
    CategoryExistsError: "CATEGORY_EXISTS",
    CategoryNotFoundError: "CATEGORY_NOT_FOUND",
    PersistenceError: "PERSISTENCE_ERROR",
    ValidationError: "VALIDATION_ERROR",
    ValueError: "INVALID_VALUE",
}


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"


def get_config() -> ConfigManager:
    """Get or create ConfigManager instance."""
    global config
    if config is None:
        config = ConfigManager()
    return config


def get_reconciler() -> GroceryReconciler:
    """Get or create the GroceryReconciler using config values."""
    global reconciler
    if reconciler is None:
        cfg = get_config()
        data_store = create_data_store(
            backend=BackendType(cfg.data.backend), data_dir=cfg.data.storage_dir
        )
        reconciler = GroceryReconciler(
            data_store, debounce_seconds=cfg.ordering.debounce_seconds
        )
    return reconciler


def fail(error: Exception) -> NoReturn:
    """Report an error with its code and exit with status 1."""
    code = next(
        (c for exc_type, c in ERROR_CODES.items() if isinstance(error, exc_type)), None
    )
    formatter.error(str(error), error_code=code)
    raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    json_output: Annotated[
        bool, typer.Option("--json", help="Output as JSON for programmatic use")
    ] = False,
    data_dir: Annotated[Path | None, typer.Option("--data-dir", help="Data directory path")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    """Grocery Reconciler CLI - keep the food bank, inventory and shopping list in sync."""
    global formatter, config, reconciler

    formatter = OutputFormatter(json_mode=json_output)
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    config = ConfigManager()

    # CLI --data-dir overrides config, which overrides default
    effective_data_dir = data_dir if data_dir else config.data.storage_dir
    backend = BackendType(config.data.backend)

    try:
        data_store = create_data_store(backend=backend, data_dir=effective_data_dir)
        reconciler = GroceryReconciler(
            data_store, debounce_seconds=config.ordering.debounce_seconds
        )
    except (PersistenceError, ValidationError) as e:
        fail(e)

    # The process exits before a debounce timer could fire
    ctx.call_on_close(reconciler.close)


# --- Catalog ---

catalog_app = typer.Typer(help="Food bank (catalog) commands")
app.add_typer(catalog_app, name="catalog")


def _parse_ingredients(pairs: list[str] | None) -> list[Ingredient] | None:
    """Turn ``ID=QTY`` pairs into ingredients, named after their catalog items.

    Unknown ids are registered in the configured default category.
    """
    if not pairs:
        return None

    rec = get_reconciler()
    ingredients = []
    for pair in pairs:
        item_id, sep, quantity = pair.partition("=")
        if not sep or not item_id:
            raise typer.BadParameter(f"Expected ID=QTY, got '{pair}'", param_hint="--ingredient")
        known = rec.catalog.get_item(item_id)
        ingredients.append(
            Ingredient(
                id=item_id,
                name=known.name if known else item_id,
                unit=known.unit if known else get_config().defaults.unit,
                quantity_per_unit=float(quantity),
                category=known.category if known else get_config().defaults.category,
            )
        )
    return ingredients


@catalog_app.command("show")
def catalog_show(
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="Only show one category")
    ] = None,
) -> None:
    """Show the food bank."""
    try:
        result = get_reconciler().get_catalog(category)
        formatter.output(result)
    except Exception as e:
        fail(e)


@catalog_app.command("add-category")
def catalog_add_category(
    name: Annotated[str, typer.Argument(help="Category name")],
) -> None:
    """Create an empty category."""
    try:
        result = get_reconciler().add_category(name)
        formatter.output(result, result["message"])
    except Exception as e:
        fail(e)


@catalog_app.command("rename-category")
def catalog_rename_category(
    old_name: Annotated[str, typer.Argument(help="Current category name")],
    new_name: Annotated[str, typer.Argument(help="New category name")],
) -> None:
    """Rename a category."""
    try:
        result = get_reconciler().rename_category(old_name, new_name)
        formatter.output(result, result["message"])
    except Exception as e:
        fail(e)


@catalog_app.command("delete-category")
def catalog_delete_category(
    name: Annotated[str, typer.Argument(help="Category name")],
) -> None:
    """Delete a category and all of its items."""
    try:
        result = get_reconciler().delete_category(name)
        formatter.output(result, result["message"])
    except Exception as e:
        fail(e)


@catalog_app.command("add")
def catalog_add(
    category: Annotated[str, typer.Argument(help="Category to add the item to")],
    name: Annotated[str, typer.Argument(help="Item name")],
    unit: Annotated[str | None, typer.Option("--unit", "-u", help="Unit of measurement")] = None,
    item_id: Annotated[str | None, typer.Option("--id", help="Explicit item ID")] = None,
    auto_restock: Annotated[
        bool, typer.Option("--auto-restock", help="Add to the list when stock runs low")
    ] = False,
    threshold: Annotated[
        float, typer.Option("--threshold", help="Quantity that triggers a restock")
    ] = 0,
    restock_quantity: Annotated[
        float, typer.Option("--restock-quantity", help="Quantity to buy on restock")
    ] = 1,
    ingredient: Annotated[
        list[str] | None,
        typer.Option("--ingredient", "-i", help="Ingredient as ID=QTY per unit (repeatable)"),
    ] = None,
    notes: Annotated[str | None, typer.Option("--notes", "-n", help="Additional notes")] = None,
) -> None:
    """Add an item to the food bank."""
    try:
        result = get_reconciler().add_catalog_item(
            category,
            name,
            unit=unit or get_config().defaults.unit,
            auto_restock=auto_restock,
            restock_threshold=threshold,
            restock_quantity=restock_quantity,
            ingredients=_parse_ingredients(ingredient),
            notes=notes,
            item_id=item_id,
        )
        formatter.output(result, result["message"])
    except typer.BadParameter:
        raise
    except Exception as e:
        fail(e)


@catalog_app.command("edit")
def catalog_edit(
    item_id: Annotated[str, typer.Argument(help="Catalog item ID")],
    name: Annotated[str | None, typer.Option("--name", help="New name")] = None,
    unit: Annotated[str | None, typer.Option("--unit", "-u", help="New unit")] = None,
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="Move to category")
    ] = None,
    auto_restock: Annotated[
        bool | None, typer.Option("--auto-restock/--no-auto-restock", help="Toggle auto-restock")
    ] = None,
    threshold: Annotated[float | None, typer.Option("--threshold", help="New threshold")] = None,
    restock_quantity: Annotated[
        float | None, typer.Option("--restock-quantity", help="New restock quantity")
    ] = None,
    ingredient: Annotated[
        list[str] | None,
        typer.Option("--ingredient", "-i", help="Replace ingredients, ID=QTY (repeatable)"),
    ] = None,
    notes: Annotated[str | None, typer.Option("--notes", "-n", help="New notes")] = None,
) -> None:
    """Edit a food bank item."""
    try:
        changes = {
            "name": name,
            "unit": unit,
            "category": category,
            "auto_restock": auto_restock,
            "restock_threshold": threshold,
            "restock_quantity": restock_quantity,
            "ingredients": _parse_ingredients(ingredient),
            "notes": notes,
        }
        result = get_reconciler().edit_catalog_item(
            item_id, **{k: v for k, v in changes.items() if v is not None}
        )
        formatter.output(result, result["message"])
    except typer.BadParameter:
        raise
    except Exception as e:
        fail(e)


@catalog_app.command("delete")
def catalog_delete(
    item_id: Annotated[str, typer.Argument(help="Catalog item ID")],
) -> None:
    """Delete an item from the food bank."""
    try:
        result = get_reconciler().delete_catalog_item(item_id)
        formatter.output(result, result["message"])
    except Exception as e:
        fail(e)


# --- Inventory ---

inv_app = typer.Typer(help="Inventory commands")
app.add_typer(inv_app, name="inventory")


@inv_app.command("set")
def inv_set(
    item_id: Annotated[str, typer.Argument(help="Item ID")],
    quantity: Annotated[float, typer.Argument(help="Quantity on hand")],
) -> None:
    """Set the on-hand quantity of an item, restocking if it runs low."""
    try:
        result = get_reconciler().set_inventory_quantity(item_id, quantity)
        formatter.output(result, result["message"])
    except Exception as e:
        fail(e)


@inv_app.command("show")
def inv_show(
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="Filter by category")
    ] = None,
) -> None:
    """Show on-hand inventory."""
    try:
        formatter.output(get_reconciler().get_inventory(category))
    except Exception as e:
        fail(e)


# --- Shopping list ---

list_app = typer.Typer(help="Shopping list commands")
app.add_typer(list_app, name="list")


@list_app.command("add")
def list_add(
    item_id: Annotated[str, typer.Argument(help="Catalog item ID to buy")],
    quantity: Annotated[
        float | None, typer.Option("--quantity", "-q", help="Quantity to buy")
    ] = None,
) -> None:
    """Add a food bank item to the shopping list."""
    try:
        result = get_reconciler().request_purchase(item_id, quantity)
        formatter.output(result, result["message"])
    except Exception as e:
        fail(e)


@list_app.command("show")
def list_show() -> None:
    """View the shopping list."""
    try:
        formatter.output(get_reconciler().get_list())
    except Exception as e:
        fail(e)


@list_app.command("buy")
def list_buy(
    item_id: Annotated[str, typer.Argument(help="Item ID to mark as purchased")],
    quantity: Annotated[
        float | None, typer.Option("--quantity", "-q", help="Actual quantity bought")
    ] = None,
) -> None:
    """Mark an item as purchased and add it to inventory."""
    try:
        result = get_reconciler().mark_purchased(item_id, quantity)
        formatter.output(result, result["message"])
    except Exception as e:
        fail(e)


@list_app.command("undo")
def list_undo(
    item_id: Annotated[str, typer.Argument(help="Item ID to uncheck")],
) -> None:
    """Undo a purchase and take it back out of inventory."""
    try:
        result = get_reconciler().undo_purchase(item_id)
        formatter.output(result, result["message"])
    except Exception as e:
        fail(e)


@list_app.command("remove")
def list_remove(
    item_id: Annotated[str, typer.Argument(help="Item ID to remove")],
) -> None:
    """Remove an item from the shopping list."""
    try:
        result = get_reconciler().remove_from_list(item_id)
        formatter.output(result, result["message"])
    except Exception as e:
        fail(e)


@list_app.command("set-quantity")
def list_set_quantity(
    item_id: Annotated[str, typer.Argument(help="Item ID")],
    quantity: Annotated[float, typer.Argument(help="New quantity; 0 removes the item")],
) -> None:
    """Change the quantity of a shopping list item."""
    try:
        result = get_reconciler().set_list_quantity(item_id, quantity)
        formatter.output(result, result["message"])
    except Exception as e:
        fail(e)


@list_app.command("clear")
def list_clear() -> None:
    """Remove every purchased item from the list."""
    try:
        result = get_reconciler().clear_purchased()
        formatter.success(result["message"], result.get("data"))
    except Exception as e:
        fail(e)


@list_app.command("move")
def list_move(
    item_id: Annotated[str, typer.Argument(help="Item ID to move")],
    direction: Annotated[Direction, typer.Argument(help="up or down")],
) -> None:
    """Move an unpurchased item one place up or down."""
    try:
        rec = get_reconciler()
        result = rec.move(item_id, direction.value)
        rec.ordering.flush()
        formatter.output(result, result["message"])
    except Exception as e:
        fail(e)


if __name__ == "__main__":
    app()
