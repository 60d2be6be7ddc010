"""Core data models for Grocery Reconciler."""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator

UNCATEGORIZED = "Uncategorized"
DEFAULT_UNIT = "count"


class CollectionKind(str, Enum):
    """Collections owned by the persistence collaborator."""

    CATALOG = "catalog"
    INVENTORY = "inventory"
    SHOPPING_LIST = "shopping_list"


def _new_id() -> str:
    return str(uuid4())


def _category_or_default(value: object) -> str:
    """Fall back to the default category for missing or malformed values."""
    if isinstance(value, str) and value.strip():
        return value.strip()
    return UNCATEGORIZED


class Ingredient(BaseModel):
    """A reference to another catalog item, per one unit of a composite item."""

    id: str
    name: str
    unit: str = DEFAULT_UNIT
    quantity_per_unit: float = Field(gt=0)
    category: str | None = None


class CatalogItem(BaseModel):
    """A food bank entry with its restock policy."""

    id: str = Field(default_factory=_new_id)
    name: str
    unit: str = DEFAULT_UNIT
    category: str = UNCATEGORIZED
    auto_restock: bool = False
    restock_threshold: float = Field(default=0, ge=0)
    restock_quantity: float = Field(default=1, gt=0)
    ingredients: list[Ingredient] | None = None
    notes: str | None = None

    @field_validator("category", mode="before")
    @classmethod
    def _default_category(cls, value: object) -> str:
        return _category_or_default(value)

    @model_validator(mode="after")
    def _reset_restock_policy(self) -> "CatalogItem":
        # A disabled policy is stored as "threshold 0, restock 1".
        if not self.auto_restock:
            self.restock_threshold = 0
            self.restock_quantity = 1
        if self.ingredients is not None and not self.ingredients:
            self.ingredients = None
        return self

    @property
    def is_composite(self) -> bool:
        """Whether buying this item means buying its ingredients."""
        return bool(self.ingredients)


class CatalogCategory(BaseModel):
    """A named group of catalog items, persisted as one record."""

    name: str
    items: list[CatalogItem] = Field(default_factory=list)


class InventoryEntry(BaseModel):
    """On-hand quantity of a single item."""

    id: str
    name: str
    category: str = UNCATEGORIZED
    quantity: float = Field(default=0, ge=0)
    date_updated: datetime = Field(default_factory=datetime.now)

    @field_validator("category", mode="before")
    @classmethod
    def _default_category(cls, value: object) -> str:
        return _category_or_default(value)


class DeficitLine(BaseModel):
    """Shortage of one ingredient after netting against inventory."""

    id: str
    name: str
    unit: str = DEFAULT_UNIT
    quantity: float = Field(gt=0)
    update_item: bool = False
    category: str | None = None


class ShoppingListEntry(BaseModel):
    """An item on the to-buy list."""

    id: str
    name: str
    category: str = UNCATEGORIZED
    quantity: float = Field(default=1, ge=0)
    unit: str | None = None
    checked: bool = False
    added_to_inventory: bool = False
    updated_at: datetime = Field(default_factory=datetime.now)
    ingredients: list[DeficitLine] | None = None

    @field_validator("category", mode="before")
    @classmethod
    def _default_category(cls, value: object) -> str:
        return _category_or_default(value)

    @property
    def is_composite(self) -> bool:
        """Entries added for a meal carry their deficit lines, even when empty."""
        return self.ingredients is not None


class CompositeAddResult(BaseModel):
    """Outcome of merging a composite item and its deficit into the list."""

    item_id: str
    name: str
    quantity: float
    is_update: bool = False
    deficit: list[DeficitLine] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def ingredients_added(self) -> int:
        return len(self.deficit)

    @property
    def fully_stocked(self) -> bool:
        return not self.deficit

    @property
    def message(self) -> str:
        verb = "Updated" if self.is_update else "Added"
        if self.fully_stocked:
            return f"{verb} {self.name} ({self.quantity:g}) - all ingredients in stock"
        count = self.ingredients_added
        suffix = "" if count == 1 else "s"
        return f"{verb} {self.name} ({self.quantity:g}) with {count} ingredient{suffix}"


class MealProgress(BaseModel):
    """How many of a meal's ingredient lines have been bought."""

    checked_count: int = 0
    total_count: int = 0

    @computed_field
    @property
    def all_checked(self) -> bool:
        # A meal with nothing to buy has no progress to complete
        return self.total_count > 0 and self.checked_count == self.total_count


class RestockAction(str, Enum):
    """What an auto-restock evaluation did to the shopping list."""

    NONE = "none"
    ALREADY_LISTED = "already_listed"
    ADDED = "added"
    UPDATED = "updated"


class RestockOutcome(BaseModel):
    """Result of evaluating an inventory transition for auto-restock."""

    item_id: str
    action: RestockAction = RestockAction.NONE
    quantity: float | None = None
    previous_quantity: float | None = None
    composite: CompositeAddResult | None = None

    @property
    def fired(self) -> bool:
        return self.action != RestockAction.NONE


class InventoryChange(BaseModel):
    """A single on-hand quantity transition."""

    item_id: str
    old_quantity: float
    new_quantity: float

    @property
    def removed(self) -> bool:
        return self.old_quantity > 0 and self.new_quantity == 0

    @property
    def decreased(self) -> bool:
        return self.new_quantity < self.old_quantity
