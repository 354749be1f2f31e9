from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional

from mealplanner.core.merge import EPSILON, decrement_items, increment_items
from mealplanner.core.models import AppEvent, ShoppingListItem, SyncRequest
from .exceptions import PersistenceError, ServiceError
from .metrics import MetricsLogger
from .repo.base import EventRepo, RecipeRepo, ShoppingListRepo

logger = logging.getLogger(__name__)


class ListLocks:
    """
    Registry of per-shopping-list asyncio locks.

    Entries exist only while someone holds or waits for them.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, list_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(list_id, asyncio.Lock())
        self._users[list_id] = self._users.get(list_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[list_id] -= 1
            if self._users[list_id] == 0:
                del self._users[list_id]
                del self._locks[list_id]


# Process-wide registry shared by every request that rewrites a list
LIST_LOCKS = ListLocks()


class ShoppingListSynchronizer:
    """
    Keeps the shopping list covering a date in step with one meal-plan change.

    Decrement (old recipe) always runs before increment (new recipe), and the
    whole read-modify-write for one list is serialized through ``ListLocks``.
    """

    def __init__(
        self,
        recipes: RecipeRepo,
        lists: ShoppingListRepo,
        events: Optional[EventRepo] = None,
        metrics: Optional[MetricsLogger] = None,
        locks: Optional[ListLocks] = None,
        epsilon: float = EPSILON,
    ):
        self._recipes = recipes
        self._lists = lists
        self._events = events
        self._metrics = metrics
        self._locks = locks if locks is not None else LIST_LOCKS
        self._epsilon = epsilon

    async def sync(self, request: SyncRequest) -> None:
        if self._metrics is None:
            await self._sync(request)
            return
        with self._metrics.timed("sync", user_id=request.user_id) as extra:
            extra["list_id"] = await self._sync(request)

    async def _sync(self, request: SyncRequest) -> Optional[str]:
        if not request.old_recipe_id and not request.new_recipe_id:
            return None

        active = await self._lists.find_active(request.user_id, request.date)
        if active is None:
            logger.info("No shopping list covers %s for user %s; skipping sync",
                        request.date, request.user_id)
            return None

        on_date = request.date.isoformat()
        async with self._locks.hold(active.id):
            current = await self._lists.get(active.id)
            items: List[ShoppingListItem] = list(current.items)

            if request.old_recipe_id:
                try:
                    old = await self._recipes.get(request.old_recipe_id)
                except ServiceError as e:
                    logger.warning("Could not read old recipe %s, nothing to remove: %s",
                                   request.old_recipe_id, e)
                else:
                    items = decrement_items(items, old, on_date, epsilon=self._epsilon)
                    logger.debug("After removing %s: %d items", old.id, len(items))

            if request.new_recipe_id:
                new = await self._recipes.get(request.new_recipe_id)
                items = increment_items(items, new, on_date)
                logger.debug("After adding %s: %d items", new.id, len(items))

            await self._lists.replace_items(current.id, items)

        logger.info("Synced list %s for %s (old=%s, new=%s): %d items",
                    current.id, on_date, request.old_recipe_id, request.new_recipe_id, len(items))
        await self._record(request, current.id, len(items))
        return current.id

    async def _record(self, request: SyncRequest, list_id: str, item_count: int) -> None:
        if self._events is None:
            return
        try:
            await self._events.append(AppEvent(type="sync", payload={
                "user_id": request.user_id,
                "list_id": list_id,
                "date": request.date.isoformat(),
                "old_recipe_id": request.old_recipe_id,
                "new_recipe_id": request.new_recipe_id,
                "items": item_count,
            }))
        except PersistenceError as e:
            # Best-effort
            logger.debug("Could not record sync event: %s", e)
