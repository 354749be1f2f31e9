from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mealplanner.api.v1.meal_plans import router as meal_plans_router
from mealplanner.api.v1.recipes import router as recipes_router
from mealplanner.api.v1.shopping_lists import router as shopping_lists_router
from mealplanner.config import Settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Ensure data dir exists so repos can write
    settings = Settings()
    os.makedirs(settings.data_dir, exist_ok=True)
    logger.info("AI import %s", "available" if settings.ai_available else "not configured")
    yield


def create_app() -> FastAPI:
    settings = Settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title="Meal Planner API", version="1.0", lifespan=lifespan)

    # CORS (narrow it down in .env via CORS_ALLOW_ORIGINS if you want)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(recipes_router)
    app.include_router(meal_plans_router)
    app.include_router(shopping_lists_router)

    if settings.enable_telemetry:
        from mealplanner.telemetry import setup_telemetry
        setup_telemetry(app, settings)

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.get("/readyz")
    def readyz():
        return {"status": "ready", "ai_import": settings.ai_available}

    return app

app = create_app()
