# mealplanner/core/heuristic.py
"""
Layer 2: heuristic DOM parsing for pages without structured data.

Each field is located by an ordered list of lookups. A lookup pairs a CSS
selector with an extractor and a plausibility check; ``first_hit`` walks the
list and returns the first plausible value. The selector tables below are the
whole policy, the DOM backend only lives in the extractor functions.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, List, NamedTuple, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from .ingredients import DEFAULT_SERVINGS, clean_instructions, parse_ingredient_lines, parse_servings
from .models import ExtractedRecipe

logger = logging.getLogger(__name__)

TITLE_WEIGHT = 0.3
INGREDIENTS_WEIGHT = 0.4
INSTRUCTIONS_WEIGHT = 0.3
HEURISTIC_MIN_CONFIDENCE = 0.6

MIN_TITLE_CHARS = 4
MIN_INGREDIENT_CHARS = 3
MIN_INGREDIENTS = 3
MIN_INSTRUCTION_CHARS = 51


class Lookup(NamedTuple):
    selector: str
    extract: Callable[[Any, str], Any]
    accept: Callable[[Any], bool]


def first_hit(lookups: Iterable[Lookup], document: Any) -> Any:
    """Value of the first lookup whose extractor yields something it accepts."""
    for lookup in lookups:
        value = lookup.extract(document, lookup.selector)
        if value is not None and lookup.accept(value):
            return value
    return None


# ---------- BeautifulSoup extractors ----------

def text_of_first(soup: BeautifulSoup, selector: str) -> Optional[str]:
    el = soup.select_one(selector)
    return el.get_text(" ", strip=True) if el is not None else None


def texts_of_all(soup: BeautifulSoup, selector: str) -> List[str]:
    texts = (el.get_text(" ", strip=True) for el in soup.select(selector))
    return [t for t in texts if len(t) >= MIN_INGREDIENT_CHARS]


def block_text(soup: BeautifulSoup, selector: str) -> Optional[str]:
    el = soup.select_one(selector)
    return clean_instructions(el.get_text("\n")) if el is not None else None


def image_src(soup: BeautifulSoup, selector: str) -> Optional[str]:
    el = soup.select_one(selector)
    if el is None:
        return None
    src = el.get("src") or el.get("data-src") or el.get("content")
    return src.strip() if isinstance(src, str) and src.strip() else None


# ---------- Lookup tables ----------

def _lookups(selectors: Iterable[str], extract: Callable[[Any, str], Any],
            accept: Callable[[Any], bool]) -> tuple[Lookup, ...]:
    return tuple(Lookup(s, extract, accept) for s in selectors)


TITLE_LOOKUPS = _lookups(
    ('h1.recipe-title', 'h1[itemprop="name"]', '[class*="recipe"] h1', '.entry-title', 'h1'),
    text_of_first,
    lambda text: len(text) >= MIN_TITLE_CHARS,
)

SERVINGS_LOOKUPS = _lookups(
    ('[itemprop="recipeYield"]', '.recipe-yield', '[class*="serving"]', '[class*="yield"]'),
    text_of_first,
    lambda text: bool(text),
)

INGREDIENT_LOOKUPS = _lookups(
    ('.recipe-ingredients li', '[itemprop="recipeIngredient"]', '.ingredients li',
     'ul.ingredient-list li', '[class*="ingredient"] li'),
    texts_of_all,
    lambda texts: len(texts) >= MIN_INGREDIENTS,
)

INSTRUCTION_LOOKUPS = _lookups(
    ('.recipe-instructions', '[itemprop="recipeInstructions"]', '.instructions', '.directions',
     '[class*="instruction"]', '[class*="direction"]'),
    block_text,
    lambda text: len(text) >= MIN_INSTRUCTION_CHARS,
)

IMAGE_LOOKUPS = _lookups(
    ('.recipe-image img', 'img[itemprop="image"]', '[itemprop="image"]', '.entry-image img', 'article img'),
    image_src,
    lambda src: not src.startswith("data:"),
)


def extract_heuristic(
    html: str,
    source_url: str,
    min_confidence: float = HEURISTIC_MIN_CONFIDENCE,
) -> Optional[ExtractedRecipe]:
    """Layer 2 entry point. None when too few fields were found."""
    soup = BeautifulSoup(html, "html.parser")
    confidence = 0.0

    name = first_hit(TITLE_LOOKUPS, soup)
    if name:
        confidence += TITLE_WEIGHT

    ingredient_lines = first_hit(INGREDIENT_LOOKUPS, soup) or []
    if ingredient_lines:
        confidence += INGREDIENTS_WEIGHT

    instructions = first_hit(INSTRUCTION_LOOKUPS, soup)
    if instructions:
        confidence += INSTRUCTIONS_WEIGHT

    confidence = round(confidence, 2)
    if confidence < min_confidence:
        logger.debug("Heuristic parse too weak (confidence %.2f)", confidence)
        return None

    servings_text = first_hit(SERVINGS_LOOKUPS, soup)
    image = first_hit(IMAGE_LOOKUPS, soup)

    return ExtractedRecipe(
        name=name or "",
        servings=parse_servings(servings_text) if servings_text else DEFAULT_SERVINGS,
        ingredients=parse_ingredient_lines(ingredient_lines),
        instructions=instructions or "",
        image_url=urljoin(source_url, image) if image else None,
        source="heuristic",
        confidence=confidence,
        source_url=source_url,
    )
