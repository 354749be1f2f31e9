# tests/unit/test_sync.py
import asyncio
from datetime import date

import pytest
from mealplanner.core.models import RecipeRecord, ShoppingList, ShoppingListItem, StructuredIngredient, SyncRequest
from mealplanner.services.exceptions import PersistenceError, RecipeNotFoundError, ShoppingListNotFoundError
from mealplanner.services.repo.base import RecipeRepo, ShoppingListRepo
from mealplanner.services.sync import ListLocks, ShoppingListSynchronizer

D = date(2025, 3, 12)


def _recipe(rid, *ings):
    return RecipeRecord(id=rid, name=f"Recept {rid}",
                        ingredients=[StructuredIngredient(name=n, amount=a, unit=u) for n, a, u in ings])


class MemRecipes(RecipeRepo):
    def __init__(self, *recipes):
        self.rows = {r.id: r for r in recipes}

    async def get(self, recipe_id):
        if recipe_id not in self.rows:
            raise RecipeNotFoundError(recipe_id)
        return self.rows[recipe_id]

    async def add(self, record):
        self.rows[record.id] = record
        return record


class MemLists(ShoppingListRepo):
    def __init__(self, *lists, fail_writes=False):
        self.rows = {sl.id: sl for sl in lists}
        self.fail_writes = fail_writes
        self.writes = 0

    async def find_active(self, user_id, on):
        hits = [sl for sl in self.rows.values() if sl.user_id == user_id and sl.covers(on)]
        return max(hits, key=lambda sl: sl.created_at) if hits else None

    async def get(self, list_id):
        if list_id not in self.rows:
            raise ShoppingListNotFoundError(list_id)
        return self.rows[list_id]

    async def create(self, shopping_list):
        self.rows[shopping_list.id] = shopping_list
        return shopping_list

    async def replace_items(self, list_id, items):
        if self.fail_writes:
            raise PersistenceError("disk full")
        await asyncio.sleep(0)
        self.writes += 1
        self.rows[list_id] = self.rows[list_id].model_copy(update={"items": list(items)})
        return self.rows[list_id]


def _list(*items):
    return ShoppingList(id="l1", user_id="u1", date_range_start=date(2025, 3, 10),
                        date_range_end=date(2025, 3, 16), items=list(items))


A = _recipe("A", ("lax", 2, "st"), ("citron", 1, ""))
B = _recipe("B", ("lax", 3, "st"), ("dill", 1, "knippe"))


def _sync(lists, *recipes):
    return ShoppingListSynchronizer(MemRecipes(*recipes), lists, locks=ListLocks())


async def test_add_then_remove_round_trip():
    lists = MemLists(_list())
    sync = _sync(lists, A)
    await sync.sync(SyncRequest(user_id="u1", new_recipe_id="A", date=D))
    items = lists.rows["l1"].items
    assert [(i.name, i.quantity, i.unit) for i in items] == [("lax", 2, "st"), ("citron", 1, "")]
    assert all(i.used_in_recipes == ["A"] and i.used_on_dates == ["2025-03-12"] for i in items)

    await sync.sync(SyncRequest(user_id="u1", old_recipe_id="A", date=D))
    assert lists.rows["l1"].items == []


async def test_swap_recipe_on_same_date():
    lists = MemLists(_list())
    sync = _sync(lists, A, B)
    await sync.sync(SyncRequest(user_id="u1", new_recipe_id="A", date=D))
    await sync.sync(SyncRequest(user_id="u1", old_recipe_id="A", new_recipe_id="B", date=D))
    salmon = next(i for i in lists.rows["l1"].items if i.name == "lax")
    assert salmon.quantity == 3
    assert salmon.used_in_recipes == ["B"]
    assert {i.name for i in lists.rows["l1"].items} == {"lax", "dill"}


async def test_manual_and_checked_items_survive():
    manual = ShoppingListItem(name="diskmedel", quantity=1, is_manual=True)
    lists = MemLists(_list(manual))
    sync = _sync(lists, A)
    await sync.sync(SyncRequest(user_id="u1", new_recipe_id="A", date=D))
    items = lists.rows["l1"].items
    items[1] = items[1].model_copy(update={"checked": True})  # lax bought already
    lists.rows["l1"] = lists.rows["l1"].model_copy(update={"items": items})

    await sync.sync(SyncRequest(user_id="u1", old_recipe_id="A", date=D))
    remaining = lists.rows["l1"].items
    assert remaining[0] == manual
    assert [(i.name, i.quantity, i.checked) for i in remaining[1:]] == [("lax", 0, True)]


async def test_no_covering_list_is_a_no_op():
    lists = MemLists(_list())
    await _sync(lists, A).sync(SyncRequest(user_id="u1", new_recipe_id="A", date=date(2025, 4, 1)))
    await _sync(lists, A).sync(SyncRequest(user_id="someone-else", new_recipe_id="A", date=D))
    assert lists.writes == 0


async def test_missing_old_recipe_still_adds_new_one():
    lists = MemLists(_list())
    await _sync(lists, B).sync(SyncRequest(user_id="u1", old_recipe_id="gone", new_recipe_id="B", date=D))
    assert {i.name for i in lists.rows["l1"].items} == {"lax", "dill"}


async def test_missing_new_recipe_aborts():
    lists = MemLists(_list())
    with pytest.raises(RecipeNotFoundError):
        await _sync(lists, A).sync(SyncRequest(user_id="u1", old_recipe_id="A", new_recipe_id="gone", date=D))
    assert lists.writes == 0


async def test_persist_failure_propagates():
    lists = MemLists(_list(), fail_writes=True)
    with pytest.raises(PersistenceError):
        await _sync(lists, A).sync(SyncRequest(user_id="u1", new_recipe_id="A", date=D))


async def test_concurrent_syncs_on_one_list_are_serialized():
    lists = MemLists(_list())
    locks = ListLocks()
    sync = ShoppingListSynchronizer(MemRecipes(A, B), lists, locks=locks)
    await asyncio.gather(
        sync.sync(SyncRequest(user_id="u1", new_recipe_id="A", date=D)),
        sync.sync(SyncRequest(user_id="u1", new_recipe_id="B", date=date(2025, 3, 13))),
    )
    salmon = next(i for i in lists.rows["l1"].items if i.name == "lax")
    assert salmon.quantity == 5
    assert salmon.used_in_recipes == ["A", "B"]
    assert len(locks) == 0
