# mealplanner/core/models.py
from __future__ import annotations

import datetime as dt
from datetime import date, datetime
from typing import Any, Literal, Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .categories import DEFAULT_CATEGORY, IngredientCategory, resolve_category


# ---------- Matching key ----------

def normalize_name(name: Optional[str]) -> str:
    return (name or "").lower().strip()


def normalize_unit(unit: Optional[str], quantity: Optional[float] = None) -> str:
    """
    Unit half of the matching key.

    ml is matched as dl, and g is matched as kg once the quantity reaches 1000.
    This is matching only: amounts are still summed raw, never converted.
    """
    u = (unit or "").lower().strip()
    if u == "ml":
        return "dl"
    if u == "g" and quantity and quantity >= 1000:
        return "kg"
    return u


ItemKey = tuple[str, str]


# ---------- Core value objects ----------

class StructuredIngredient(BaseModel):
    """One parsed ingredient line."""
    name: str = Field(..., description="Ingredient name, e.g. 'mjölk'")
    amount: float = Field(0, ge=0, description="Numeric amount; 0 when unknown")
    unit: str = Field("", description="Unit as written, e.g. 'dl', 'msk'; empty when unknown")

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v: Any) -> str:
        return str(v or "").strip()

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_default(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("unit", mode="before")
    @classmethod
    def _unit_default(cls, v: Any) -> str:
        return str(v or "").strip()

    def key(self) -> ItemKey:
        return (normalize_name(self.name), normalize_unit(self.unit, self.amount))


RecipeSource = Literal["structured", "heuristic", "ai"]


class ExtractedRecipe(BaseModel):
    """Result of one import attempt. Immutable once a layer has won."""
    model_config = ConfigDict(frozen=True)

    name: str = ""
    servings: int = Field(4, ge=1)
    ingredients: List[StructuredIngredient] = Field(default_factory=list)
    instructions: str = ""
    tags: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    source: RecipeSource
    confidence: float = Field(..., ge=0, le=1)
    source_url: str
    prep_time_minutes: Optional[int] = Field(None, ge=0)
    cook_time_minutes: Optional[int] = Field(None, ge=0)


class RecipeRecord(BaseModel):
    """A stored recipe, as read by the synchronizer."""
    id: str
    name: str
    servings: int = Field(4, ge=1)
    ingredients: List[StructuredIngredient] = Field(default_factory=list)
    instructions: str = ""
    tags: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    source_url: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


# ---------- Shopping lists ----------

class ShoppingListItem(BaseModel):
    name: str = Field(..., min_length=1)
    quantity: float = Field(0, ge=0)
    unit: str = ""
    category: IngredientCategory = DEFAULT_CATEGORY
    checked: bool = False
    is_manual: bool = False
    used_in_recipes: List[str] = Field(default_factory=list)
    used_on_dates: List[str] = Field(default_factory=list)
    recipe_names: List[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("ShoppingListItem.name cannot be blank")
        return v

    @field_validator("unit", mode="before")
    @classmethod
    def _unit_default(cls, v: Any) -> str:
        return str(v or "").strip()

    @field_validator("category", mode="before")
    @classmethod
    def _legacy_category(cls, v: Any) -> Any:
        # Older lists carry Swedish labels ("GRÖNSAKER") or unknown strings
        if isinstance(v, str):
            return resolve_category(v) or DEFAULT_CATEGORY
        return v

    def key(self) -> ItemKey:
        return (normalize_name(self.name), normalize_unit(self.unit, self.quantity))


class ShoppingList(BaseModel):
    id: str
    user_id: str
    name: str = ""
    date_range_start: date
    date_range_end: date
    items: List[ShoppingListItem] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def covers(self, on: date) -> bool:
        return self.date_range_start <= on <= self.date_range_end


class SyncRequest(BaseModel):
    """One meal-plan mutation: the recipe planned on ``date`` went from old to new."""
    user_id: str = Field(..., min_length=1)
    old_recipe_id: Optional[str] = None
    new_recipe_id: Optional[str] = None
    date: dt.date


# ---------- Auditing / events ----------

class AppEvent(BaseModel):
    ts: datetime = Field(default_factory=datetime.utcnow)
    type: Literal["import", "sync"]
    payload: dict
    schema_version: int = 1
