from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from mealplanner.config import Settings
from mealplanner.core.models import AppEvent, ExtractedRecipe, RecipeRecord, StructuredIngredient
from mealplanner.services.exceptions import (
    ExtractionExhaustedError,
    FetchError,
    LLMError,
    NotFoundError,
    PersistenceError,
)
from mealplanner.services.fetch import PageFetcher
from mealplanner.services.importer import RecipeImporter
from mealplanner.services.llm import OpenAIRecipeExtractor
from mealplanner.services.metrics import MetricsLogger
from mealplanner.services.repo.json_repo import JSONEventRepo, JSONRecipeRepo

logger = logging.getLogger(__name__)

router = APIRouter(tags=["recipes"])

# ---- DI helpers --------------------------------------------------------------

def get_settings() -> Settings:
    return Settings()

def get_importer(settings: Settings = Depends(get_settings)) -> RecipeImporter:
    ai = None
    if settings.ai_available:
        try:
            ai = OpenAIRecipeExtractor(settings)
        except LLMError as e:
            logger.warning("AI import disabled: %s", e)
    return RecipeImporter(settings, PageFetcher(settings), ai)

def get_recipe_repo(settings: Settings = Depends(get_settings)) -> JSONRecipeRepo:
    return JSONRecipeRepo(settings)

def get_event_repo(settings: Settings = Depends(get_settings)) -> JSONEventRepo:
    return JSONEventRepo(settings)

def get_metrics(settings: Settings = Depends(get_settings)) -> MetricsLogger:
    return MetricsLogger(settings)

# ---- Models ------------------------------------------------------------------

class ImportRequest(BaseModel):
    url: str = Field(..., min_length=1)
    allow_expensive_fallback: bool = False
    save: bool = False

    @field_validator("url")
    @classmethod
    def _http_only(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("url must start with http:// or https://")
        return v


class ImportResponse(BaseModel):
    recipe: ExtractedRecipe
    recipe_id: Optional[str] = None


class RecipeCreate(BaseModel):
    name: str = Field(..., min_length=1)
    servings: int = Field(4, ge=1)
    ingredients: List[StructuredIngredient] = Field(default_factory=list)
    instructions: str = ""
    tags: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    source_url: Optional[str] = None


def _new_record(**fields) -> RecipeRecord:
    return RecipeRecord(id=uuid.uuid4().hex, **fields)

# ---- Routes ------------------------------------------------------------------

@router.post("/api/v1/recipes/import", response_model=ImportResponse)
async def import_recipe(
    req: ImportRequest,
    importer: RecipeImporter = Depends(get_importer),
    recipes: JSONRecipeRepo = Depends(get_recipe_repo),
    events: JSONEventRepo = Depends(get_event_repo),
    metrics: MetricsLogger = Depends(get_metrics),
):
    try:
        with metrics.timed("import") as extra:
            extra["url"] = req.url
            recipe = await importer.import_from_url(req.url, req.allow_expensive_fallback)
            extra["source"] = recipe.source
    except FetchError as e:
        raise HTTPException(status_code=502, detail={"message": str(e), "status_code": e.status_code})
    except ExtractionExhaustedError as e:
        raise HTTPException(status_code=422, detail={
            "message": str(e),
            "ai_available": e.ai_available,
            "ai_attempted": e.ai_attempted,
            "can_retry_with_ai": e.can_retry_with_ai,
        })

    recipe_id = None
    if req.save:
        record = _new_record(
            name=recipe.name or req.url,
            servings=recipe.servings,
            ingredients=list(recipe.ingredients),
            instructions=recipe.instructions,
            tags=list(recipe.tags),
            image_url=recipe.image_url,
            source_url=recipe.source_url,
        )
        try:
            await recipes.add(record)
        except PersistenceError as e:
            raise HTTPException(status_code=500, detail=str(e))
        recipe_id = record.id

    try:
        await events.append(AppEvent(type="import", payload={
            "url": req.url, "source": recipe.source, "confidence": recipe.confidence, "recipe_id": recipe_id,
        }))
    except PersistenceError:
        pass  # best-effort
    return ImportResponse(recipe=recipe, recipe_id=recipe_id)


@router.post("/api/v1/recipes", response_model=RecipeRecord, status_code=status.HTTP_201_CREATED)
async def create_recipe(body: RecipeCreate, recipes: JSONRecipeRepo = Depends(get_recipe_repo)):
    try:
        return await recipes.add(_new_record(**body.model_dump()))
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/api/v1/recipes/{recipe_id}", response_model=RecipeRecord)
async def get_recipe(recipe_id: str, recipes: JSONRecipeRepo = Depends(get_recipe_repo)):
    try:
        return await recipes.get(recipe_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))
