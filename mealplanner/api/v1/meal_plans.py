from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from mealplanner.config import Settings
from mealplanner.core.models import SyncRequest
from mealplanner.services.exceptions import NotFoundError, PersistenceError
from mealplanner.services.metrics import MetricsLogger
from mealplanner.services.repo.json_repo import JSONEventRepo, JSONRecipeRepo, JSONShoppingListRepo
from mealplanner.services.sync import ShoppingListSynchronizer

router = APIRouter(tags=["meal-plans"])

# ---- DI helpers --------------------------------------------------------------

def get_settings() -> Settings:
    return Settings()

def get_synchronizer(settings: Settings = Depends(get_settings)) -> ShoppingListSynchronizer:
    return ShoppingListSynchronizer(
        recipes=JSONRecipeRepo(settings),
        lists=JSONShoppingListRepo(settings),
        events=JSONEventRepo(settings),
        metrics=MetricsLogger(settings),
        epsilon=settings.sync_epsilon,
    )

# ---- Routes ------------------------------------------------------------------

@router.post("/api/v1/meal-plans/sync", status_code=status.HTTP_204_NO_CONTENT)
async def sync_meal_plan(req: SyncRequest, sync: ShoppingListSynchronizer = Depends(get_synchronizer)):
    """
    Apply one meal-plan change (old recipe -> new recipe on a date) to the shopping
    list covering that date. A date no list covers is a no-op.
    """
    try:
        await sync.sync(req)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
