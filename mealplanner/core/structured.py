# mealplanner/core/structured.py
"""
Layer 1: schema.org ``Recipe`` objects embedded as JSON-LD.

Pages wrap the recipe in several ways (a bare object, an array of objects,
an ``@graph`` container, or combinations). ``iter_nodes`` flattens every shape
into a stream of candidate nodes so field extraction never has to care.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Iterator, List, Optional

from bs4 import BeautifulSoup

from .ingredients import (
    clean_instructions,
    number_steps,
    parse_duration_minutes,
    parse_ingredient_lines,
    parse_servings,
)
from .models import ExtractedRecipe

logger = logging.getLogger(__name__)

STRUCTURED_CONFIDENCE = 0.9


def iter_nodes(doc: Any) -> Iterator[dict]:
    """Yield every JSON object reachable through arrays and ``@graph`` containers."""
    if isinstance(doc, list):
        for entry in doc:
            yield from iter_nodes(entry)
    elif isinstance(doc, dict):
        yield doc
        graph = doc.get("@graph")
        if graph is not None:
            yield from iter_nodes(graph)


def is_recipe_node(node: dict) -> bool:
    kind = node.get("@type")
    if isinstance(kind, str):
        return kind == "Recipe"
    if isinstance(kind, list):
        return "Recipe" in kind
    return False


def find_recipe_node(html: str) -> Optional[dict]:
    """First ``Recipe`` node across all JSON-LD blocks; malformed blocks are skipped."""
    soup = BeautifulSoup(html, "html.parser")
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            doc = json.loads(raw)
        except (json.JSONDecodeError, ValueError) as e:
            logger.debug("Skipping malformed JSON-LD block: %s", e)
            continue
        for node in iter_nodes(doc):
            if is_recipe_node(node):
                return node
    return None


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _step_texts(instructions: Any) -> Iterator[str]:
    for step in _as_list(instructions):
        if isinstance(step, str):
            yield step
        elif isinstance(step, dict):
            if step.get("@type") == "HowToSection":
                yield from _step_texts(step.get("itemListElement"))
                continue
            text = step.get("text") or step.get("description") or step.get("name")
            if isinstance(text, str):
                yield text


def parse_instructions(instructions: Any) -> str:
    if isinstance(instructions, str):
        return clean_instructions(instructions)
    return number_steps(_step_texts(instructions))


def parse_tags(node: dict) -> List[str]:
    tags: List[str] = []
    tags.extend(_as_list(node.get("recipeCategory")))
    tags.extend(_as_list(node.get("recipeCuisine")))
    keywords = node.get("keywords")
    if isinstance(keywords, str):
        tags.extend(k.strip() for k in keywords.split(","))
    else:
        tags.extend(_as_list(keywords))
    return [str(t).strip().lower() for t in tags if isinstance(t, str) and t.strip()]


def parse_image(image: Any) -> Optional[str]:
    if not image:
        return None
    if isinstance(image, str):
        return image
    if isinstance(image, list):
        return parse_image(image[0])
    if isinstance(image, dict):
        url = image.get("url") or image.get("contentUrl")
        return url if isinstance(url, str) else None
    return None


def recipe_from_node(node: dict, source_url: str) -> ExtractedRecipe:
    servings_raw = node.get("recipeYield") or node.get("servings") or node.get("yield")
    cook = node.get("cookTime") or node.get("totalTime")
    name = node.get("name")
    return ExtractedRecipe(
        name=name.strip() if isinstance(name, str) else "",
        servings=parse_servings(servings_raw),
        ingredients=parse_ingredient_lines(_as_list(node.get("recipeIngredient"))),
        instructions=parse_instructions(node.get("recipeInstructions")),
        tags=parse_tags(node),
        image_url=parse_image(node.get("image")),
        source="structured",
        confidence=STRUCTURED_CONFIDENCE,
        source_url=source_url,
        prep_time_minutes=parse_duration_minutes(node.get("prepTime")),
        cook_time_minutes=parse_duration_minutes(cook),
    )


def extract_structured(html: str, source_url: str) -> Optional[ExtractedRecipe]:
    """Layer 1 entry point. None when the page carries no usable Recipe node."""
    node = find_recipe_node(html)
    if node is None:
        return None
    try:
        return recipe_from_node(node, source_url)
    except (TypeError, ValueError, AttributeError) as e:
        logger.info("Recipe node found but could not be decoded: %s", e)
        return None
