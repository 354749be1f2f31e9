from __future__ import annotations

import asyncio
import io
import json
import os
import tempfile
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Callable, Iterator, List, Optional

from pydantic import ValidationError

from mealplanner.config import Settings
from mealplanner.core.models import AppEvent, RecipeRecord, ShoppingList, ShoppingListItem
from mealplanner.services.exceptions import PersistenceError, RecipeNotFoundError, ShoppingListNotFoundError
from .base import EventRepo, RecipeRepo, ShoppingListRepo


# Cross-platform file lock (fcntl for *nix; msvcrt for Windows)
@contextmanager
def _locked(path: str) -> Iterator[io.FileIO]:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    f = open(path, "a+b")  # create if missing
    try:
        try:
            import fcntl  # type: ignore
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            locker = ("fcntl", None)
        except ImportError:
            try:
                import msvcrt  # type: ignore
                msvcrt.locking(f.fileno(), msvcrt.LK_LOCK, 1)
                locker = ("msvcrt", 1)
            except (ImportError, OSError) as e:
                f.close()
                raise PersistenceError(f"Could not lock file {path}: {e}") from e
        except OSError as e:
            f.close()
            raise PersistenceError(f"Could not lock file {path}: {e}") from e
        yield f
    finally:
        if not f.closed:
            try:
                if locker[0] == "fcntl":
                    import fcntl  # type: ignore
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                else:
                    import msvcrt  # type: ignore
                    msvcrt.locking(f.fileno(), msvcrt.LK_UNLCK, locker[1])
            except OSError:
                pass
            f.close()


def _atomic_write(path: str, data: bytes) -> None:
    d = os.path.dirname(path) or "."
    os.makedirs(d, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".tmp-", dir=d)
    try:
        with os.fdopen(fd, "wb") as w:
            w.write(data)
            w.flush()
            os.fsync(w.fileno())
        os.replace(tmp, path)
    except OSError as e:
        try:
            os.remove(tmp)
        except OSError:
            pass
        raise PersistenceError(f"Atomic write failed for {path}: {e}") from e


def _append_line(path: str, obj: dict) -> None:
    line = (json.dumps(obj, ensure_ascii=False, separators=(",", ":"), default=str) + "\n").encode("utf-8")
    with _locked(path) as f:
        f.seek(0, os.SEEK_END)
        f.write(line)
        f.flush()
        os.fsync(f.fileno())


class _JSONCollection:
    """
    One JSON document ``{"<key>": [ ... ]}`` on disk.

    The document is replaced atomically on every write; read-modify-write cycles
    hold an exclusive lock on a sidecar ``.lock`` file, since os.replace swaps
    the data file's inode underneath any lock taken on it.
    """

    def __init__(self, path: str, key: str):
        self.path = path
        self.key = key
        self.lock_path = path + ".lock"

    def _read_rows(self) -> List[dict]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "rb") as f:
                raw = f.read() or b"{}"
            obj = json.loads(raw.decode("utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Failed to load {self.path}: {e}") from e
        rows = obj.get(self.key, []) if isinstance(obj, dict) else []
        return [r for r in rows if isinstance(r, dict)]

    def _write_rows(self, rows: List[dict]) -> None:
        payload = json.dumps({self.key: rows}, ensure_ascii=False, separators=(",", ":"), default=str)
        _atomic_write(self.path, payload.encode("utf-8"))

    def read(self) -> List[dict]:
        with _locked(self.lock_path):
            return self._read_rows()

    def update(self, fn: Callable[[List[dict]], Any]) -> Any:
        """Apply ``fn`` to the rows in place under the lock and persist them."""
        with _locked(self.lock_path):
            rows = self._read_rows()
            result = fn(rows)
            self._write_rows(rows)
            return result


class JSONRecipeRepo(RecipeRepo):
    def __init__(self, settings: Settings):
        self._store = _JSONCollection(settings.recipes_file, "recipes")

    def _get(self, recipe_id: str) -> RecipeRecord:
        for row in self._store.read():
            if row.get("id") == recipe_id:
                try:
                    return RecipeRecord(**row)
                except ValidationError as e:
                    raise PersistenceError(f"Corrupt recipe {recipe_id} in {self._store.path}: {e}") from e
        raise RecipeNotFoundError(recipe_id)

    def _add(self, record: RecipeRecord) -> RecipeRecord:
        def upsert(rows: List[dict]) -> None:
            rows[:] = [r for r in rows if r.get("id") != record.id]
            rows.append(record.model_dump(mode="json"))

        self._store.update(upsert)
        return record

    async def get(self, recipe_id: str) -> RecipeRecord:
        return await asyncio.to_thread(self._get, recipe_id)

    async def add(self, record: RecipeRecord) -> RecipeRecord:
        return await asyncio.to_thread(self._add, record)


class JSONShoppingListRepo(ShoppingListRepo):
    def __init__(self, settings: Settings):
        self._store = _JSONCollection(settings.shopping_lists_file, "lists")

    @staticmethod
    def _parse(row: dict) -> ShoppingList:
        try:
            return ShoppingList(**row)
        except ValidationError as e:
            raise PersistenceError(f"Corrupt shopping list {row.get('id')}: {e}") from e

    def _find_active(self, user_id: str, on: date) -> Optional[ShoppingList]:
        candidates = [
            self._parse(r) for r in self._store.read() if r.get("user_id") == user_id
        ]
        covering = [sl for sl in candidates if sl.covers(on)]
        if not covering:
            return None
        return max(covering, key=lambda sl: sl.created_at)

    def _get(self, list_id: str) -> ShoppingList:
        for row in self._store.read():
            if row.get("id") == list_id:
                return self._parse(row)
        raise ShoppingListNotFoundError(list_id)

    def _create(self, shopping_list: ShoppingList) -> ShoppingList:
        def insert(rows: List[dict]) -> None:
            if any(r.get("id") == shopping_list.id for r in rows):
                raise PersistenceError(f"Shopping list already exists: {shopping_list.id}")
            rows.append(shopping_list.model_dump(mode="json"))

        self._store.update(insert)
        return shopping_list

    def _replace_items(self, list_id: str, items: List[ShoppingListItem]) -> ShoppingList:
        def replace(rows: List[dict]) -> ShoppingList:
            for i, row in enumerate(rows):
                if row.get("id") == list_id:
                    current = self._parse(row)
                    # Validate before writing; a bad item must never reach disk
                    try:
                        updated = ShoppingList.model_validate({
                            **current.model_dump(),
                            "items": [it.model_dump() for it in items],
                            "updated_at": datetime.utcnow(),
                        })
                    except ValidationError as e:
                        raise PersistenceError(f"Refusing to store invalid items for shopping list {list_id}: {e}") from e
                    rows[i] = updated.model_dump(mode="json")
                    return updated
            raise ShoppingListNotFoundError(list_id)

        return self._store.update(replace)

    async def find_active(self, user_id: str, on: date) -> Optional[ShoppingList]:
        return await asyncio.to_thread(self._find_active, user_id, on)

    async def get(self, list_id: str) -> ShoppingList:
        return await asyncio.to_thread(self._get, list_id)

    async def create(self, shopping_list: ShoppingList) -> ShoppingList:
        return await asyncio.to_thread(self._create, shopping_list)

    async def replace_items(self, list_id: str, items: List[ShoppingListItem]) -> ShoppingList:
        return await asyncio.to_thread(self._replace_items, list_id, items)


class JSONEventRepo(EventRepo):
    def __init__(self, settings: Settings):
        self.path = settings.events_file

    def _append(self, event: AppEvent) -> None:
        try:
            _append_line(self.path, event.model_dump(mode="json"))
        except OSError as e:
            raise PersistenceError(f"Failed to append event to {self.path}: {e}") from e

    async def append(self, event: AppEvent) -> None:
        await asyncio.to_thread(self._append, event)
