from __future__ import annotations
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional, List
from dotenv import load_dotenv
load_dotenv()  # populates os.environ from .env


class Settings(BaseSettings):
    # Storage
    data_dir: str = Field("data")
    recipes_file: str = Field("data/recipes.json")
    shopping_lists_file: str = Field("data/shopping_lists.json")
    events_file: str = Field("data/events.jsonl")

    # AI extraction layer (disabled when no key is configured)
    openai_api_key: Optional[str] = Field(None)
    openai_model_import: str = Field("gpt-4o-mini")
    ai_timeout_s: float = Field(60.0, gt=0)
    ai_max_chars: int = Field(50_000, gt=0)

    # Page fetch
    fetch_timeout_s: float = Field(20.0, gt=0)
    user_agent: str = Field("Mozilla/5.0 (compatible; MealPlanner/1.0; +https://mealplanner.app)")

    # Cascade acceptance thresholds
    structured_min_confidence: float = Field(0.7, ge=0, le=1)
    heuristic_min_confidence: float = Field(0.6, ge=0, le=1)

    # Shopping list sync
    sync_epsilon: float = Field(0.01, ge=0)

    # CORS
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["http://127.0.0.1:5173"])

    # Logging / tracing
    log_level: str = Field("INFO")
    enable_telemetry: bool = Field(False)
    otlp_endpoint: str = Field("http://127.0.0.1:6006/v1/traces")
    launch_phoenix: bool = Field(False)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def ai_available(self) -> bool:
        return bool(self.openai_api_key)
