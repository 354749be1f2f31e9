from __future__ import annotations

from typing import Optional


class ServiceError(RuntimeError):
    """Base class for service-layer errors."""


class FetchError(ServiceError):
    """A page or dependency could not be retrieved."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ExtractionExhaustedError(ServiceError):
    """Every permitted extraction layer failed or scored below its threshold."""

    def __init__(self, message: str, *, ai_allowed: bool, ai_available: bool, ai_attempted: bool = False):
        super().__init__(message)
        self.ai_allowed = ai_allowed
        self.ai_available = ai_available
        self.ai_attempted = ai_attempted

    @property
    def can_retry_with_ai(self) -> bool:
        """True when enabling the expensive fallback could still help."""
        return not self.ai_allowed and self.ai_available


AllLayersFailedError = ExtractionExhaustedError


class NotFoundError(ServiceError):
    """A referenced recipe or shopping list is absent."""


class RecipeNotFoundError(NotFoundError):
    def __init__(self, recipe_id: str):
        super().__init__(f"Recipe not found: {recipe_id}")
        self.recipe_id = recipe_id


class ShoppingListNotFoundError(NotFoundError):
    def __init__(self, list_id: str):
        super().__init__(f"Shopping list not found: {list_id}")
        self.list_id = list_id


class PersistenceError(ServiceError):
    """Errors from repositories (I/O, parse, schema)."""


class LLMError(ServiceError):
    """Errors from the AI extraction adapter."""
