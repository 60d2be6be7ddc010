"""Food bank (catalog) management for Grocery Reconciler."""

import logging

from .data_store import DataStore, DataStoreProtocol
from .models import DEFAULT_UNIT, CatalogCategory, CatalogItem, CollectionKind, Ingredient

logger = logging.getLogger(__name__)


class CatalogItemNotFoundError(Exception):
    """Raised when a catalog item id is unknown."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Catalog item with ID '{item_id}' not found")


class CategoryNotFoundError(Exception):
    """Raised when a catalog category does not exist."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Category '{name}' not found")


class CategoryExistsError(Exception):
    """Raised when creating or renaming onto an existing category."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Category '{name}' already exists")


class Catalog:
    """Reference data: purchasable items grouped by category."""

    def __init__(self, data_store: DataStoreProtocol | None = None):
        """Initialize the catalog.

        Args:
            data_store: Persistence collaborator. Creates a JSON DataStore if not provided.
        """
        self.data_store = data_store or DataStore()
        self._categories: dict[str, CatalogCategory] = {}
        self.reload()

    def reload(self) -> None:
        """Re-read the catalog from the data store."""
        records = self.data_store.read_collection(CollectionKind.CATALOG)
        categories = [CatalogCategory.model_validate(r) for r in records]
        self._categories = {c.name: c for c in categories}

    # --- Lookups ---

    def __contains__(self, item_id: object) -> bool:
        return isinstance(item_id, str) and self.get_item(item_id) is not None

    def categories(self) -> list[str]:
        """Category names in stored order."""
        return list(self._categories)

    def items(self, category: str | None = None) -> list[CatalogItem]:
        """All items, optionally restricted to one category."""
        if category is not None:
            if category not in self._categories:
                raise CategoryNotFoundError(category)
            return list(self._categories[category].items)
        return [item for c in self._categories.values() for item in c.items]

    def get_item(self, item_id: str) -> CatalogItem | None:
        """Find an item anywhere in the catalog."""
        for category in self._categories.values():
            for item in category.items:
                if item.id == item_id:
                    return item
        return None

    def require_item(self, item_id: str) -> CatalogItem:
        """Find an item or raise CatalogItemNotFoundError."""
        item = self.get_item(item_id)
        if item is None:
            raise CatalogItemNotFoundError(item_id)
        return item

    # --- Category edits ---

    def add_category(self, name: str) -> CatalogCategory:
        """Create an empty category."""
        name = name.strip()
        if not name:
            raise ValueError("Category name cannot be empty")
        if name in self._categories:
            raise CategoryExistsError(name)

        category = CatalogCategory(name=name)
        self._save_category(category)
        return category

    def rename_category(self, old_name: str, new_name: str) -> CatalogCategory:
        """Rename a category, keeping its position and moving its items along."""
        new_name = new_name.strip()
        if old_name not in self._categories:
            raise CategoryNotFoundError(old_name)
        if not new_name:
            raise ValueError("Category name cannot be empty")
        if new_name in self._categories:
            raise CategoryExistsError(new_name)

        old = self._categories[old_name]
        renamed = CatalogCategory(
            name=new_name,
            items=[item.model_copy(update={"category": new_name}) for item in old.items],
        )
        categories = {
            (new_name if name == old_name else name): (renamed if name == old_name else c)
            for name, c in self._categories.items()
        }
        self.data_store.write_collection(
            CollectionKind.CATALOG,
            [c.model_dump(mode="json") for c in categories.values()],
        )
        self._categories = categories
        return renamed

    def delete_category(self, name: str) -> CatalogCategory:
        """Delete a category and every item in it."""
        if name not in self._categories:
            raise CategoryNotFoundError(name)

        self.data_store.delete_record(CollectionKind.CATALOG, name)
        removed = self._categories.pop(name)
        logger.info("Deleted category %s with %d items", name, len(removed.items))
        return removed

    # --- Item edits ---

    def add_item(
        self,
        category: str,
        name: str,
        unit: str = DEFAULT_UNIT,
        auto_restock: bool = False,
        restock_threshold: float = 0,
        restock_quantity: float = 1,
        ingredients: list[Ingredient] | None = None,
        notes: str | None = None,
        item_id: str | None = None,
    ) -> CatalogItem:
        """Add an item to a category.

        Ingredients that reference ids unknown to the catalog and carry a
        category are registered as plain items in that category first.

        Args:
            category: Category to add the item to
            name: Item name
            unit: Unit of measurement
            auto_restock: Whether inventory drops enqueue a purchase
            restock_threshold: Quantity at which auto-restock fires
            restock_quantity: Quantity requested when it fires
            ingredients: Sub-ingredients, making the item composite
            notes: Free-form notes
            item_id: Explicit id, generated if omitted

        Returns:
            The created CatalogItem

        Raises:
            CategoryNotFoundError: If the category doesn't exist
        """
        if category not in self._categories:
            raise CategoryNotFoundError(category)

        fields = {
            "name": name.strip(),
            "unit": unit,
            "category": category,
            "auto_restock": auto_restock,
            "restock_threshold": restock_threshold,
            "restock_quantity": restock_quantity,
            "ingredients": ingredients,
            "notes": notes,
        }
        if item_id is not None:
            if self.get_item(item_id) is not None:
                raise ValueError(f"Catalog item '{item_id}' already exists")
            fields["id"] = item_id
        item = CatalogItem(**fields)

        self._register_ingredients(item.ingredients)
        target = self._categories[category]
        self._save_category(target.model_copy(update={"items": [*target.items, item]}))
        return item

    def edit_item(self, item_id: str, **changes) -> CatalogItem:
        """Update fields of an existing item.

        Passing ``category`` moves the item to another existing category.
        Passing ``ingredients=None`` turns a composite item back into a plain one.

        Raises:
            CatalogItemNotFoundError: If the item doesn't exist
            CategoryNotFoundError: If moving to an unknown category
        """
        current = self.require_item(item_id)
        changes.pop("id", None)
        target_name = changes.get("category", current.category)
        if target_name not in self._categories:
            raise CategoryNotFoundError(target_name)

        updated = CatalogItem.model_validate({**current.model_dump(), **changes})
        self._register_ingredients(updated.ingredients)

        source = self._categories[current.category]
        if target_name == current.category:
            self._save_category(
                source.model_copy(
                    update={"items": [updated if i.id == item_id else i for i in source.items]}
                )
            )
        else:
            self._save_category(
                source.model_copy(update={"items": [i for i in source.items if i.id != item_id]})
            )
            target = self._categories[target_name]
            self._save_category(target.model_copy(update={"items": [*target.items, updated]}))
        return updated

    def delete_item(self, item_id: str) -> CatalogItem:
        """Remove an item from the catalog."""
        item = self.require_item(item_id)
        category = self._categories[item.category]
        self._save_category(
            category.model_copy(update={"items": [i for i in category.items if i.id != item_id]})
        )
        return item

    def _register_ingredients(self, ingredients: list[Ingredient] | None) -> None:
        """Add unknown ingredients to the catalog as plain items."""
        for ingredient in ingredients or []:
            if self.get_item(ingredient.id) is not None or not ingredient.category:
                continue

            if ingredient.category not in self._categories:
                self._save_category(CatalogCategory(name=ingredient.category))
            category = self._categories[ingredient.category]
            new_item = CatalogItem(
                id=ingredient.id,
                name=ingredient.name,
                unit=ingredient.unit or DEFAULT_UNIT,
                category=ingredient.category,
            )
            self._save_category(category.model_copy(update={"items": [*category.items, new_item]}))
            logger.debug("Registered ingredient %s in %s", ingredient.name, ingredient.category)

    def _save_category(self, category: CatalogCategory) -> None:
        self.data_store.write_record(
            CollectionKind.CATALOG, category.name, category.model_dump(mode="json")
        )
        self._categories[category.name] = category
