# mealplanner/core/freshness.py
from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel

from .categories import Recommendation, category_name, check_freshness
from .models import ShoppingList, ShoppingListItem


class FreshnessEntry(BaseModel):
    name: str
    category: str
    category_name: str
    first_use: date
    days_until_use: int
    is_fresh: bool
    days_over: int
    recommendation: Recommendation


def _first_use(item: ShoppingListItem) -> Optional[date]:
    dates = []
    for raw in item.used_on_dates:
        try:
            dates.append(date.fromisoformat(raw))
        except ValueError:
            continue
    return min(dates) if dates else None


def freshness_report(shopping_list: ShoppingList, today: date) -> List[FreshnessEntry]:
    """
    Shelf-life check for every unchecked, recipe-linked item, against its earliest
    planned date. Items that will spoil before use come first.
    """
    out: List[FreshnessEntry] = []
    for item in shopping_list.items:
        if item.checked:
            continue
        first = _first_use(item)
        if first is None:
            continue
        days = max(0, (first - today).days)
        verdict = check_freshness(item.category, days)
        out.append(FreshnessEntry(
            name=item.name,
            category=item.category.value,
            category_name=category_name(item.category),
            first_use=first,
            days_until_use=days,
            is_fresh=verdict.is_fresh,
            days_over=verdict.days_over,
            recommendation=verdict.recommendation,
        ))
    out.sort(key=lambda e: (e.is_fresh, -e.days_over, e.name.lower()))
    return out
