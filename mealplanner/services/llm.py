from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, List

from openai import AsyncOpenAI
from pydantic import BaseModel

from mealplanner.config import Settings
from mealplanner.core.ingredients import number_steps, clean_instructions, parse_amount, parse_ingredient_line, parse_servings
from mealplanner.core.models import ExtractedRecipe, StructuredIngredient
from .exceptions import LLMError

logger = logging.getLogger(__name__)

AI_CONFIDENCE = 0.95

_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)

_SYSTEM_PROMPT = "You extract recipes from web pages and answer with strict JSON only."

_PROMPT = (
    "Extract the recipe from the HTML below. Keep the page language for names and steps. "
    "Do not invent ingredients. If the number of servings is unknown, use 4.\n"
    "Return ONLY a JSON object with this schema:\n"
    '{"name": str, "servings": int, '
    '"ingredients": [{"name": str, "amount": number, "unit": str}], '
    '"instructions": [str], "tags": [str], "image_url": str | null}\n'
    "Use amount 0 and unit \"\" when a line has no quantity.\n\n"
    "Source URL: {url}\n\n"
    "HTML:\n{html}"
)


class AIRecipeExtractor(BaseModel):
    """
    Interface-like base for the expensive fallback layer. Concrete impl below.
    """
    async def extract(self, html: str, source_url: str) -> ExtractedRecipe:  # pragma: no cover - interface
        raise NotImplementedError


class OpenAIRecipeExtractor(AIRecipeExtractor):
    _client: AsyncOpenAI
    _model: str
    _max_chars: int

    def __init__(self, settings: Settings):
        super().__init__()
        try:
            self._client = AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.ai_timeout_s)
        except Exception as e:
            raise LLMError("Could not initialize OpenAI client") from e
        self._model = settings.openai_model_import
        self._max_chars = settings.ai_max_chars

    async def extract(self, html: str, source_url: str) -> ExtractedRecipe:
        """
        Send the (size-capped) page to the model and decode its JSON answer.
        """
        prompt = _PROMPT.replace("{url}", source_url).replace("{html}", html[: self._max_chars])
        try:
            resp = await self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "system", "content": _SYSTEM_PROMPT},
                          {"role": "user", "content": prompt}],
                response_format={"type": "json_object"},
                temperature=0.1,
            )
            content = resp.choices[0].message.content or ""
        except Exception as e:
            # No fallback: bubble details up
            raise LLMError(f"OpenAI recipe extraction failed: {e}") from e
        return decode_ai_payload(content, source_url)


def _load_json(content: str) -> Any:
    text = content.strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        m = _FENCE.search(text)
        if not m:
            raise
        return json.loads(m.group(1))


def _amount(value: Any) -> float:
    # Models send numbers, numeric strings like "1/2" or "1,5", or junk
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) and value > 0 else 0.0
    if isinstance(value, str):
        return parse_amount(value)
    return 0.0


def _ingredients(rows: Any) -> List[StructuredIngredient]:
    out: List[StructuredIngredient] = []
    for row in rows if isinstance(rows, list) else []:
        if isinstance(row, str):
            if row.strip():
                out.append(parse_ingredient_line(row))
        elif isinstance(row, dict) and row.get("name"):
            amount = row.get("amount", row.get("quantity"))
            out.append(StructuredIngredient(
                name=row["name"],
                amount=_amount(amount),
                unit=row.get("unit") or "",
            ))
    return out


def decode_ai_payload(content: str, source_url: str) -> ExtractedRecipe:
    """
    Turn the model's answer into an ExtractedRecipe.

    Accepts bare JSON or JSON inside a Markdown code fence. Ingredients may be
    objects or raw lines; instructions may be a list of steps or one string.
    """
    try:
        data = _load_json(content)
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        name = str(data.get("name") or data.get("title") or "").strip()
        if not name:
            raise ValueError("recipe has no name")

        instructions = data.get("instructions") or ""
        if isinstance(instructions, list):
            instructions = number_steps(str(s) for s in instructions if s)
        else:
            instructions = clean_instructions(str(instructions))

        tags = data.get("tags") or []
        image_url = data.get("image_url") or data.get("image")
        return ExtractedRecipe(
            name=name,
            servings=parse_servings(data.get("servings")),
            ingredients=_ingredients(data.get("ingredients")),
            instructions=instructions,
            tags=[str(t).strip().lower() for t in tags if str(t).strip()] if isinstance(tags, list) else [],
            image_url=image_url if isinstance(image_url, str) and image_url else None,
            source="ai",
            confidence=AI_CONFIDENCE,
            source_url=source_url,
        )
    except (ValueError, TypeError) as e:
        snippet = content[:200] if content else "<no content>"
        raise LLMError(f"Could not decode AI response: {e}; snippet={snippet!r}") from e
