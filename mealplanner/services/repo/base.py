from __future__ import annotations
from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional
from mealplanner.core.models import AppEvent, RecipeRecord, ShoppingList, ShoppingListItem


class RecipeRepo(ABC):
    @abstractmethod
    async def get(self, recipe_id: str) -> RecipeRecord:
        """Raises RecipeNotFoundError when absent."""
    @abstractmethod
    async def add(self, record: RecipeRecord) -> RecipeRecord: ...


class ShoppingListRepo(ABC):
    @abstractmethod
    async def find_active(self, user_id: str, on: date) -> Optional[ShoppingList]:
        """The user's list covering ``on``; most recently created wins."""
    @abstractmethod
    async def get(self, list_id: str) -> ShoppingList:
        """Raises ShoppingListNotFoundError when absent."""
    @abstractmethod
    async def create(self, shopping_list: ShoppingList) -> ShoppingList: ...
    @abstractmethod
    async def replace_items(self, list_id: str, items: List[ShoppingListItem]) -> ShoppingList: ...


class EventRepo(ABC):
    @abstractmethod
    async def append(self, event: AppEvent) -> None: ...
