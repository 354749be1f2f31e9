# mealplanner/core/merge.py
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .categories import classify
from .models import ItemKey, RecipeRecord, ShoppingListItem, StructuredIngredient

EPSILON = 0.01


def _append_unique(values: List[str], value: str) -> None:
    if value not in values:
        values.append(value)


def _discard(values: List[str], value: str) -> List[str]:
    return [v for v in values if v != value]


def _ingredient_index(ingredients: Iterable[StructuredIngredient]) -> Dict[ItemKey, StructuredIngredient]:
    idx: Dict[ItemKey, StructuredIngredient] = {}
    for ing in ingredients:
        # First occurrence wins when a recipe repeats a key
        idx.setdefault(ing.key(), ing)
    return idx


def decrement_items(
    items: Iterable[ShoppingListItem],
    recipe: RecipeRecord,
    on_date: str,
    epsilon: float = EPSILON,
) -> List[ShoppingListItem]:
    """
    Remove one recipe's contribution for one date.

    Rules:
    - Manual items and items whose key the recipe does not use pass through unchanged.
    - Matching items lose the ingredient amount (floored at 0) and drop the recipe id
      and the date from their tracking lists. Recipe names stay while any recipe id
      remains (two planned recipes may share a name) and are cleared with the last id.
    - A matching item survives only if (quantity > epsilon and still used by a recipe)
      or it is checked.

    Returns new item objects; the input is not mutated.
    """
    by_key = _ingredient_index(recipe.ingredients)
    out: List[ShoppingListItem] = []

    for item in items:
        ing: Optional[StructuredIngredient] = None if item.is_manual else by_key.get(item.key())
        if ing is None:
            out.append(item.model_copy(deep=True))
            continue

        updated = item.model_copy(deep=True)
        updated.quantity = max(0.0, round(updated.quantity - max(0.0, ing.amount), 6))
        updated.used_in_recipes = _discard(updated.used_in_recipes, recipe.id)
        updated.used_on_dates = _discard(updated.used_on_dates, on_date)
        if not updated.used_in_recipes:
            updated.recipe_names = []

        still_needed = updated.quantity > epsilon and bool(updated.used_in_recipes)
        if still_needed or updated.checked:
            out.append(updated)

    return out


def increment_items(
    items: Iterable[ShoppingListItem],
    recipe: RecipeRecord,
    on_date: str,
) -> List[ShoppingListItem]:
    """
    Add one recipe's ingredients for one date.

    Existing items (manual ones included) are matched by key and accumulate the amount;
    recipe id, date and recipe name are appended with set semantics. Unmatched
    ingredients become new items, categorized by the classifier. Existing items keep
    their order and new ones follow in recipe order.
    """
    out: List[ShoppingListItem] = [it.model_copy(deep=True) for it in items]
    idx: Dict[ItemKey, ShoppingListItem] = {}
    for it in out:
        idx.setdefault(it.key(), it)

    for ing in recipe.ingredients:
        if not ing.name:
            continue
        key = ing.key()
        existing = idx.get(key)
        if existing is not None:
            existing.quantity = max(0.0, round(existing.quantity + max(0.0, ing.amount), 6))
            _append_unique(existing.used_in_recipes, recipe.id)
            _append_unique(existing.used_on_dates, on_date)
            _append_unique(existing.recipe_names, recipe.name)
            continue

        created = ShoppingListItem(
            name=ing.name,
            quantity=max(0.0, ing.amount),
            unit=ing.unit,
            category=classify(ing.name),
            checked=False,
            is_manual=False,
            used_in_recipes=[recipe.id],
            used_on_dates=[on_date],
            recipe_names=[recipe.name],
        )
        out.append(created)
        idx[key] = created

    return out
