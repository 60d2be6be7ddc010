"""Field-policy merging of list records.

Merge semantics are expressed as a table mapping field names to a policy, so
they can be inspected and tested as data.
"""

from collections.abc import Mapping
from enum import Enum
from typing import TypeVar

from pydantic import BaseModel

ModelT = TypeVar("ModelT", bound=BaseModel)


class FieldPolicy(str, Enum):
    """How a single field is combined when two records share an id."""

    OVERWRITE = "overwrite"
    SUM = "sum"
    MAX = "max"
    PRESERVE_UNLESS_SET = "preserve_unless_set"
    PRESERVE = "preserve"


# Shopping list entries requested twice add up; purchase state survives a
# merge unless the incoming entry says otherwise.
SHOPPING_ENTRY_POLICY: dict[str, FieldPolicy] = {
    "id": FieldPolicy.PRESERVE,
    "quantity": FieldPolicy.SUM,
    "checked": FieldPolicy.PRESERVE_UNLESS_SET,
    "added_to_inventory": FieldPolicy.PRESERVE_UNLESS_SET,
}

# Restocking tops an entry up to the restock quantity instead of adding to it.
RESTOCK_ENTRY_POLICY: dict[str, FieldPolicy] = {
    **SHOPPING_ENTRY_POLICY,
    "quantity": FieldPolicy.MAX,
}


def merge(
    existing: ModelT,
    incoming: BaseModel,
    field_policy: Mapping[str, FieldPolicy],
    default: FieldPolicy = FieldPolicy.OVERWRITE,
) -> ModelT:
    """Combine two records describing the same entity.

    Args:
        existing: Record currently stored
        incoming: Record being added
        field_policy: Per-field policy; fields not listed use ``default``
        default: Policy for unlisted fields

    Returns:
        A new record of the same type as ``existing``
    """
    explicitly_set = incoming.model_fields_set
    incoming_values = dict(incoming)
    update = {}

    for name in type(existing).model_fields:
        if name not in incoming_values:
            continue

        policy = field_policy.get(name, default)
        current = getattr(existing, name)
        value = incoming_values[name]

        if policy == FieldPolicy.OVERWRITE:
            update[name] = value
        elif policy == FieldPolicy.SUM:
            update[name] = (current or 0) + (value or 0)
        elif policy == FieldPolicy.MAX:
            update[name] = max(current or 0, value or 0)
        elif policy == FieldPolicy.PRESERVE_UNLESS_SET:
            if name in explicitly_set:
                update[name] = value
        elif policy == FieldPolicy.PRESERVE:
            pass
        else:
            raise ValueError(f"Unknown merge policy: {policy}")

    return existing.model_copy(update=update)
