from __future__ import annotations

import logging
from typing import Optional

from mealplanner.config import Settings
from mealplanner.core.heuristic import extract_heuristic
from mealplanner.core.models import ExtractedRecipe
from mealplanner.core.structured import extract_structured
from .exceptions import ExtractionExhaustedError, LLMError
from .fetch import PageFetcher
from .llm import AIRecipeExtractor

logger = logging.getLogger(__name__)

NO_AI_MESSAGE = (
    "Recipe import failed with structured and heuristic methods. "
    "Enable AI import for better success rate."
)
AI_UNAVAILABLE_MESSAGE = (
    "Recipe import failed with structured and heuristic methods, "
    "and AI import is not configured."
)
AI_FAILED_MESSAGE = "Recipe import failed with all methods, including AI."


class RecipeImporter:
    """
    Three-layer import cascade: structured data -> heuristic DOM -> AI.

    The page is fetched once and shared by every layer. Layers run strictly in
    order and the first one that reaches its threshold wins; the AI layer only
    runs when the caller allows it.
    """

    def __init__(
        self,
        settings: Settings,
        fetcher: PageFetcher,
        ai_extractor: Optional[AIRecipeExtractor] = None,
    ):
        self._settings = settings
        self._fetcher = fetcher
        self._ai = ai_extractor

    @property
    def ai_available(self) -> bool:
        return self._ai is not None

    def _try_structured(self, html: str, url: str) -> Optional[ExtractedRecipe]:
        try:
            recipe = extract_structured(html, url)
        except Exception as e:
            logger.warning("Structured layer crashed for %s: %s", url, e)
            return None
        if recipe is None:
            logger.info("Structured layer found no recipe for %s", url)
            return None
        if recipe.confidence < self._settings.structured_min_confidence:
            logger.info("Structured layer below threshold for %s (%.2f)", url, recipe.confidence)
            return None
        return recipe

    def _try_heuristic(self, html: str, url: str) -> Optional[ExtractedRecipe]:
        threshold = self._settings.heuristic_min_confidence
        try:
            recipe = extract_heuristic(html, url, min_confidence=threshold)
        except Exception as e:
            logger.warning("Heuristic layer crashed for %s: %s", url, e)
            return None
        if recipe is None or recipe.confidence < threshold:
            logger.info("Heuristic layer found no usable recipe for %s", url)
            return None
        return recipe

    async def import_from_url(self, url: str, allow_expensive_fallback: bool = False) -> ExtractedRecipe:
        """
        Raises FetchError when the page cannot be retrieved and
        ExtractionExhaustedError when no permitted layer succeeds.
        """
        logger.info("Importing recipe from %s (AI allowed: %s)", url, allow_expensive_fallback)
        html = await self._fetcher.fetch(url)

        recipe = self._try_structured(html, url)
        if recipe is not None:
            logger.info("Structured layer accepted %s (confidence %.2f)", url, recipe.confidence)
            return recipe

        recipe = self._try_heuristic(html, url)
        if recipe is not None:
            logger.info("Heuristic layer accepted %s (confidence %.2f)", url, recipe.confidence)
            return recipe

        if not allow_expensive_fallback:
            raise ExtractionExhaustedError(
                NO_AI_MESSAGE, ai_allowed=False, ai_available=self.ai_available,
            )
        if self._ai is None:
            raise ExtractionExhaustedError(
                AI_UNAVAILABLE_MESSAGE, ai_allowed=True, ai_available=False,
            )

        logger.info("Trying AI layer for %s", url)
        try:
            recipe = await self._ai.extract(html, url)
        except LLMError as e:
            logger.warning("AI layer failed for %s: %s", url, e)
            raise ExtractionExhaustedError(
                f"{AI_FAILED_MESSAGE} {e}", ai_allowed=True, ai_available=True, ai_attempted=True,
            ) from e
        logger.info("AI layer accepted %s", url)
        return recipe
