from __future__ import annotations

import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, model_validator

from mealplanner.config import Settings
from mealplanner.core.categories import CategoryInfo, categories_by_store_layout
from mealplanner.core.freshness import FreshnessEntry, freshness_report
from mealplanner.core.models import ShoppingList, ShoppingListItem
from mealplanner.services.exceptions import NotFoundError, PersistenceError
from mealplanner.services.repo.json_repo import JSONShoppingListRepo
from mealplanner.services.sync import LIST_LOCKS

router = APIRouter(tags=["shopping-lists"])

# ---- DI helpers --------------------------------------------------------------

def get_settings() -> Settings:
    return Settings()

def get_list_repo(settings: Settings = Depends(get_settings)) -> JSONShoppingListRepo:
    return JSONShoppingListRepo(settings)

# ---- Models ------------------------------------------------------------------

class ShoppingListCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    date_range_start: date
    date_range_end: date
    name: Optional[str] = None

    @model_validator(mode="after")
    def _range_order(self) -> "ShoppingListCreate":
        if self.date_range_end < self.date_range_start:
            raise ValueError("date_range_end must not be before date_range_start")
        return self


def _default_name(start: date, end: date) -> str:
    return f"Inköp {start.isoformat()} - {end.isoformat()}"

# ---- Routes ------------------------------------------------------------------

@router.get("/api/v1/categories", response_model=List[CategoryInfo])
def list_categories():
    return categories_by_store_layout()


@router.post("/api/v1/shopping-lists", response_model=ShoppingList, status_code=status.HTTP_201_CREATED)
async def create_shopping_list(body: ShoppingListCreate, lists: JSONShoppingListRepo = Depends(get_list_repo)):
    shopping_list = ShoppingList(
        id=uuid.uuid4().hex,
        user_id=body.user_id,
        name=(body.name or "").strip() or _default_name(body.date_range_start, body.date_range_end),
        date_range_start=body.date_range_start,
        date_range_end=body.date_range_end,
        items=[],
    )
    try:
        return await lists.create(shopping_list)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/api/v1/shopping-lists/{list_id}", response_model=ShoppingList)
async def get_shopping_list(list_id: str, lists: JSONShoppingListRepo = Depends(get_list_repo)):
    try:
        return await lists.get(list_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/api/v1/shopping-lists/{list_id}/items", response_model=ShoppingList)
async def replace_shopping_list_items(
    list_id: str,
    items: List[ShoppingListItem],
    lists: JSONShoppingListRepo = Depends(get_list_repo),
):
    """User edits: checked state, manual items, removals. Replaces the whole collection."""
    keys = [it.key() for it in items]
    if len(set(keys)) != len(keys):
        raise HTTPException(status_code=422, detail="Duplicate item (name, unit) in list")
    try:
        async with LIST_LOCKS.hold(list_id):
            return await lists.replace_items(list_id, items)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/api/v1/shopping-lists/{list_id}/freshness", response_model=List[FreshnessEntry])
async def shopping_list_freshness(
    list_id: str,
    today: Optional[date] = Query(None, description="Shopping day; defaults to today"),
    lists: JSONShoppingListRepo = Depends(get_list_repo),
):
    try:
        shopping_list = await lists.get(list_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return freshness_report(shopping_list, today or date.today())
