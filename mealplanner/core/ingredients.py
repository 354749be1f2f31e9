# mealplanner/core/ingredients.py
"""
Text parsers shared by every extraction layer: ingredient lines, servings,
instructions and ISO-8601 durations.
"""
from __future__ import annotations

import math
import re
from typing import Any, Iterable, List, Optional

from .models import StructuredIngredient

DEFAULT_SERVINGS = 4

_VULGAR_FRACTIONS = {
    "½": "1/2",
    "¼": "1/4",
    "¾": "3/4",
    "⅓": "1/3",
    "⅔": "2/3",
}
_VULGAR = "".join(_VULGAR_FRACTIONS)

# "1 1/2", "1/2", "1,5", "2", "½", "1½"
_AMOUNT = rf"(?:\d+(?:[.,]\d+)?\s*[{_VULGAR}]|\d+\s+\d+/\d+|\d+/\d+|\d+(?:[.,]\d+)?|[{_VULGAR}])"
_UNIT = r"[^\W\d_]+\.?"

# Tried in order; the first match wins.
_LINE_PATTERNS = (
    # "2 dl mjölk", "500g köttfärs", "1 1/2 msk socker"
    re.compile(rf"^(?P<amount>{_AMOUNT})\s*(?P<unit>{_UNIT})\s+(?P<name>.+)$"),
    # "2 ägg"
    re.compile(rf"^(?P<amount>{_AMOUNT})\s+(?P<name>[^\W\d_].*)$"),
    # "salt", "peppar efter smak"
    re.compile(r"^(?P<name>[^\W\d_].*)$"),
)

_WS = re.compile(r"\s+")
_DIGITS = re.compile(r"\d+")
_STEP_NUMBER = re.compile(r"^\d+\.")
_DURATION = re.compile(r"^P(?:T?(?:(?P<h>\d+)H)?(?:(?P<m>\d+)M)?(?:\d+S)?)$", re.IGNORECASE)


def parse_amount(text: str) -> float:
    """
    Sum whitespace-separated number tokens: "1 1/2" -> 1.5, "1,5" -> 1.5, "½" -> 0.5.
    Tokens that are not a positive finite number count as 0.
    """
    for char, ascii_fraction in _VULGAR_FRACTIONS.items():
        text = text.replace(char, f" {ascii_fraction}")
    total = 0.0
    for token in text.split():
        if "/" in token:
            num, _, den = token.partition("/")
            try:
                value = float(num) / float(den)
            except (ValueError, ZeroDivisionError):
                continue
        else:
            try:
                value = float(token.replace(",", "."))
            except ValueError:
                continue
        if math.isfinite(value) and value > 0:
            total += value
    return total


def parse_ingredient_line(line: str) -> StructuredIngredient:
    """
    Parse one raw line into name/amount/unit.

    "2 dl mjölk" -> (2, "dl", "mjölk"); "salt" -> (0, "", "salt").
    Lines that match nothing keep the whole text as the name.
    """
    text = _WS.sub(" ", line or "").strip()
    for pattern in _LINE_PATTERNS:
        m = pattern.match(text)
        if not m:
            continue
        groups = m.groupdict()
        amount = groups.get("amount")
        return StructuredIngredient(
            name=groups["name"].strip(),
            amount=parse_amount(amount) if amount else 0,
            unit=(groups.get("unit") or "").lower().rstrip("."),
        )
    return StructuredIngredient(name=text, amount=0, unit="")


def parse_ingredient_lines(lines: Iterable[Any]) -> List[StructuredIngredient]:
    out: List[StructuredIngredient] = []
    for line in lines:
        if line is None:
            continue
        text = str(line).strip()
        if text:
            out.append(parse_ingredient_line(text))
    return out


def parse_servings(value: Any) -> int:
    """Numbers round to nearest (min 1); strings use their first digit run (min 1); else 4."""
    if isinstance(value, bool):
        return DEFAULT_SERVINGS
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return DEFAULT_SERVINGS
        return max(1, int(math.floor(value + 0.5)))
    if isinstance(value, str):
        m = _DIGITS.search(value)
        return max(1, int(m.group(0))) if m else DEFAULT_SERVINGS
    if isinstance(value, (list, tuple)) and value:
        return parse_servings(value[0])
    return DEFAULT_SERVINGS


def clean_instructions(text: str) -> str:
    """Collapse whitespace within lines and keep at most one blank line between blocks."""
    lines = [_WS.sub(" ", ln).strip() for ln in (text or "").splitlines()]
    joined = "\n".join(lines).strip()
    return re.sub(r"\n{3,}", "\n\n", joined)


def number_steps(steps: Iterable[str]) -> str:
    """Join discrete steps, prefixing each with its ordinal unless it already has one."""
    out: List[str] = []
    for i, step in enumerate(steps, start=1):
        text = clean_instructions(step)
        if not text:
            continue
        out.append(text if _STEP_NUMBER.match(text) else f"{i}. {text}")
    return "\n\n".join(out)


def parse_duration_minutes(value: Any) -> Optional[int]:
    """ISO-8601 duration ("PT1H30M") to minutes; None when absent, zero or unparseable."""
    if not isinstance(value, str):
        return None
    m = _DURATION.match(value.strip())
    if not m:
        return None
    minutes = int(m.group("h") or 0) * 60 + int(m.group("m") or 0)
    return minutes or None
