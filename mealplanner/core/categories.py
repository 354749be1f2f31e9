# mealplanner/core/categories.py
"""
Grocery-aisle taxonomy and the ingredient classifier.

The taxonomy follows a Swedish store layout (ICA/Coop/Willys). Classification
is a first-match scan over an ordered rule table; more specific rules sit above
the generic ones they overlap with ("köttfärs" before "kött", "vitlök" is
caught by the vegetable rule before anything else can see "lök").
"""
from __future__ import annotations

import enum
from types import MappingProxyType
from typing import Literal, Mapping, NamedTuple, Optional, Tuple

from pydantic import BaseModel, ConfigDict


class IngredientCategory(str, enum.Enum):
    FRUIT = "FRUIT"
    VEGETABLES = "VEGETABLES"
    SALAD_LEAFY = "SALAD_LEAFY"
    FRESH_HERBS = "FRESH_HERBS"
    DAIRY_MILK = "DAIRY_MILK"
    DAIRY_YOGURT = "DAIRY_YOGURT"
    DAIRY_CHEESE = "DAIRY_CHEESE"
    DAIRY_BUTTER = "DAIRY_BUTTER"
    EGGS = "EGGS"
    MEAT_FRESH = "MEAT_FRESH"
    MEAT_GROUND = "MEAT_GROUND"
    MEAT_POULTRY = "MEAT_POULTRY"
    MEAT_DELI = "MEAT_DELI"
    FISH_FRESH = "FISH_FRESH"
    FISH_FROZEN = "FISH_FROZEN"
    SHELLFISH = "SHELLFISH"
    BREAD = "BREAD"
    BAKING_FLOUR = "BAKING_FLOUR"
    BAKING_SUGAR = "BAKING_SUGAR"
    BAKING_SUPPLIES = "BAKING_SUPPLIES"
    PASTA_RICE = "PASTA_RICE"
    CANNED = "CANNED"
    LEGUMES = "LEGUMES"
    NUTS_SEEDS = "NUTS_SEEDS"
    DRIED_SPICES = "DRIED_SPICES"
    SPICES = "SPICES"
    SAUCES = "SAUCES"
    OIL_VINEGAR = "OIL_VINEGAR"
    FROZEN_MEAT = "FROZEN_MEAT"
    FROZEN_FISH = "FROZEN_FISH"
    FROZEN_VEGETABLES = "FROZEN_VEGETABLES"
    FROZEN_OTHER = "FROZEN_OTHER"
    OTHER = "OTHER"


DEFAULT_CATEGORY = IngredientCategory.OTHER


class CategoryInfo(BaseModel):
    """Display and storage metadata for one category."""
    model_config = ConfigDict(frozen=True)

    key: IngredientCategory
    name_sv: str
    name_en: str
    icon: str
    sort_order: int
    shelf_life_days: int  # days at 4°C
    freezable: bool


def _info(key: IngredientCategory, name_sv: str, name_en: str, icon: str,
          sort_order: int, shelf_life_days: int, freezable: bool) -> CategoryInfo:
    return CategoryInfo(key=key, name_sv=name_sv, name_en=name_en, icon=icon,
                        sort_order=sort_order, shelf_life_days=shelf_life_days, freezable=freezable)


C = IngredientCategory

CATEGORY_DATABASE: Mapping[IngredientCategory, CategoryInfo] = MappingProxyType({
    c.key: c for c in (
        # Frukt & grönt
        _info(C.FRUIT, "Frukt", "Fruit", "🍎", 1, 7, True),
        _info(C.VEGETABLES, "Grönsaker", "Vegetables", "🥕", 2, 7, True),
        _info(C.SALAD_LEAFY, "Sallad & Bladgrönt", "Salad & Leafy Greens", "🥬", 3, 5, False),
        _info(C.FRESH_HERBS, "Färska Örter", "Fresh Herbs", "🌿", 4, 5, True),
        # Mejeri & ägg
        _info(C.DAIRY_MILK, "Mjölk & Grädde", "Milk & Cream", "🥛", 10, 7, False),
        _info(C.DAIRY_YOGURT, "Yoghurt & Fil", "Yogurt", "🥄", 11, 14, False),
        _info(C.DAIRY_CHEESE, "Ost", "Cheese", "🧀", 12, 21, True),
        _info(C.DAIRY_BUTTER, "Smör & Matfett", "Butter & Fat", "🧈", 13, 30, True),
        _info(C.EGGS, "Ägg", "Eggs", "🥚", 14, 28, False),
        # Kött & chark
        _info(C.MEAT_FRESH, "Färskt Kött", "Fresh Meat", "🥩", 20, 4, True),
        _info(C.MEAT_GROUND, "Köttfärs", "Ground Meat", "🍖", 21, 2, True),
        _info(C.MEAT_POULTRY, "Kyckling & Fågel", "Poultry", "🍗", 22, 2, True),
        _info(C.MEAT_DELI, "Charkuterier", "Deli Meats", "🥓", 23, 7, True),
        # Fisk & skaldjur
        _info(C.FISH_FRESH, "Färsk Fisk", "Fresh Fish", "🐟", 30, 2, True),
        _info(C.FISH_FROZEN, "Fryst Fisk", "Frozen Fish", "🧊", 31, 1, True),
        _info(C.SHELLFISH, "Skaldjur", "Shellfish", "🦐", 32, 2, True),
        # Bröd & bakning
        _info(C.BREAD, "Bröd", "Bread", "🍞", 40, 7, True),
        _info(C.BAKING_FLOUR, "Mjöl", "Flour", "🌾", 41, 365, False),
        _info(C.BAKING_SUGAR, "Socker", "Sugar", "🍬", 42, 730, False),
        _info(C.BAKING_SUPPLIES, "Bakpulver & Jäst", "Baking Powder & Yeast", "🧁", 43, 365, False),
        # Konserver & torrvaror
        _info(C.PASTA_RICE, "Pasta & Ris", "Pasta & Rice", "🍝", 50, 730, False),
        _info(C.CANNED, "Konserver", "Canned Goods", "🥫", 51, 730, False),
        _info(C.LEGUMES, "Baljväxter", "Legumes", "🫘", 52, 730, False),
        _info(C.NUTS_SEEDS, "Nötter & Frön", "Nuts & Seeds", "🥜", 53, 180, True),
        _info(C.DRIED_SPICES, "Torkade Kryddor", "Dried Spices", "🌶️", 54, 365, False),
        # Kryddor & såser
        _info(C.SPICES, "Kryddor", "Spices", "🧂", 60, 365, False),
        _info(C.SAUCES, "Såser & Dressing", "Sauces & Dressing", "🍶", 61, 90, False),
        _info(C.OIL_VINEGAR, "Olja & Vinäger", "Oil & Vinegar", "🫗", 62, 365, False),
        # Fryst
        _info(C.FROZEN_MEAT, "Fryst Kött", "Frozen Meat", "❄️", 70, 1, True),
        _info(C.FROZEN_FISH, "Fryst Fisk", "Frozen Fish", "❄️", 71, 1, True),
        _info(C.FROZEN_VEGETABLES, "Frysta Grönsaker", "Frozen Vegetables", "❄️", 72, 1, True),
        _info(C.FROZEN_OTHER, "Övrig Frys", "Other Frozen", "❄️", 73, 1, True),
        # Övrigt
        _info(C.OTHER, "Övrigt", "Other", "📦", 99, 30, False),
    )
})


class ClassificationRule(NamedTuple):
    """Matches when any keyword is a substring of the name and, if qualifiers
    are given, any qualifier is too."""
    category: IngredientCategory
    keywords: Tuple[str, ...]
    qualifiers: Tuple[str, ...] = ()

    def matches(self, name: str) -> bool:
        if self.qualifiers and not any(q in name for q in self.qualifiers):
            return False
        return any(k in name for k in self.keywords)


_FROZEN = ("fryst", "djupfryst")

CLASSIFICATION_RULES: Tuple[ClassificationRule, ...] = (
    # Explicitly frozen goods go to the freezer aisle regardless of what they are
    ClassificationRule(C.FROZEN_MEAT, ("kött", "biff", "fläsk", "färs", "kyckling"), _FROZEN),
    ClassificationRule(C.FROZEN_FISH, ("fisk", "lax", "torsk", "räk"), _FROZEN),
    ClassificationRule(C.FROZEN_VEGETABLES, ("grönsak", "ärtor", "bönor", "broccoli", "spenat", "majs"), _FROZEN),
    ClassificationRule(C.FROZEN_OTHER, _FROZEN),
    ClassificationRule(C.FRESH_HERBS, (
        "dill", "persilja", "timjan", "rosmarin", "basilika", "koriander", "mynta",
        "oregano", "salvia", "dragon", "gräslök", "citronmeliss",
    )),
    ClassificationRule(C.MEAT_GROUND, ("köttfärs", "nötfärs", "fläskfärs", "färs")),
    ClassificationRule(C.MEAT_POULTRY, ("kyckling", "fågel", "höna", "kalkon")),
    ClassificationRule(C.FISH_FRESH, (
        "lax", "torsk", "sill", "abborre", "gädda", "forell", "makrill", "tonfisk",
    )),
    ClassificationRule(C.SHELLFISH, ("räka", "räkor", "kräfta", "hummer", "mussla", "musslor", "ostron", "skaldjur")),
    ClassificationRule(C.MEAT_FRESH, (
        "kött", "biff", "stek", "kotlett", "fläsk", "oxfilé", "revbensspjäll", "entrecôte",
    )),
    ClassificationRule(C.MEAT_DELI, ("skinka", "bacon", "korv", "salami", "prosciutto", "serrano", "pålägg")),
    # Compound names that contain a vegetable keyword
    ClassificationRule(C.CANNED, ("krossade tomater", "tomatpuré", "passerade tomater")),
    ClassificationRule(C.DRIED_SPICES, ("paprikapulver",)),
    ClassificationRule(C.SALAD_LEAFY, ("sallad", "ruccola", "spenat", "mangold", "pak choi")),
    ClassificationRule(C.VEGETABLES, (
        "tomat", "gurka", "paprika", "lök", "morot", "morötter", "potatis", "broccoli",
        "blomkål", "zucchini", "aubergine", "squash", "pumpa", "palsternacka", "rotselleri",
        "majrova", "rödbet", "kålrot", "kål",
    )),
    ClassificationRule(C.FRUIT, (
        "äpple", "banan", "apelsin", "citron", "lime", "päron", "vindruv", "mango", "ananas",
        "jordgubb", "blåbär", "hallon", "björnbär", "persika", "nektarin", "plommon", "kiwi", "melon",
    )),
    ClassificationRule(C.DAIRY_YOGURT, ("yoghurt", "filmjölk", "fil", "kesella")),
    ClassificationRule(C.DAIRY_MILK, ("mjölk", "grädde", "crème fraiche", "creme fraiche")),
    ClassificationRule(C.DAIRY_CHEESE, (
        "ost", "parmesan", "mozzarella", "cheddar", "feta", "gorgonzola", "gruyère", "brie",
        "camembert", "ricotta", "mascarpone",
    )),
    ClassificationRule(C.DAIRY_BUTTER, ("smör", "margarin", "matfett")),
    ClassificationRule(C.EGGS, ("ägg",)),
    ClassificationRule(C.BAKING_FLOUR, ("mjöl", "maizena", "ströbröd")),
    ClassificationRule(C.BREAD, ("bröd", "frallor", "baguette", "ciabatta", "pita", "tortilla", "wraps")),
    ClassificationRule(C.BAKING_SUPPLIES, ("bakpulver", "bikarbonat", "jäst", "vaniljsocker")),
    ClassificationRule(C.BAKING_SUGAR, ("socker", "sirap", "honung")),
    ClassificationRule(C.PASTA_RICE, (
        "pasta", "spaghetti", "penne", "fusilli", "makaroner", "nudlar", "ris",
        "couscous", "bulgur", "quinoa",
    )),
    ClassificationRule(C.CANNED, (
        "burk", "konserv", "majskorn", "kidneybönor", "kikärtor",
    )),
    ClassificationRule(C.LEGUMES, ("böna", "bönor", "lins", "ärtor")),
    ClassificationRule(C.NUTS_SEEDS, ("nöt", "mandel", "cashew", "jordnöt", "pinjenöt", "frön", "sesam")),
    ClassificationRule(C.DRIED_SPICES, (
        "torkad", "cayennepeppar", "kanel", "kardemumma", "spiskummin",
        "curry", "ingefära, mald",
    )),
    ClassificationRule(C.SPICES, ("krydda", "salt", "peppar", "lagerblad", "nejlika", "muskot", "chilipulver")),
    ClassificationRule(C.SAUCES, (
        "sås", "soja", "worcestershire", "tabasco", "ketchup", "senap", "majonnäs",
        "dressing", "vinägrett", "buljong", "fond",
    )),
    ClassificationRule(C.OIL_VINEGAR, ("olja", "vinäger")),
)


def classify(name: Optional[str]) -> IngredientCategory:
    """Map a free-text ingredient name to exactly one category.

    Total: unmatched, empty or missing names map to ``DEFAULT_CATEGORY``.
    """
    normalized = (name or "").lower().strip()
    if not normalized:
        return DEFAULT_CATEGORY
    for rule in CLASSIFICATION_RULES:
        if rule.matches(normalized):
            return rule.category
    return DEFAULT_CATEGORY


# Labels written by older clients and the previous database schema.
LEGACY_LABELS: Mapping[str, IngredientCategory] = MappingProxyType({
    "GRÖNSAKER": C.VEGETABLES,
    "FRUKT": C.FRUIT,
    "MEJERI": C.DAIRY_MILK,
    "KÖTT": C.MEAT_FRESH,
    "FÅGEL": C.MEAT_POULTRY,
    "FISK": C.FISH_FRESH,
    "FISH": C.FISH_FRESH,
    "SKALDJUR": C.SHELLFISH,
    "ÖRTER": C.FRESH_HERBS,
    "KRYDDOR": C.SPICES,
    "TORKADE_KRYDDOR": C.DRIED_SPICES,
    "SÅSER": C.SAUCES,
    "OLJA_VINÄGER": C.OIL_VINEGAR,
    "PASTA_RIS": C.PASTA_RICE,
    "BRÖD": C.BREAD,
    "BAKNING": C.BAKING_FLOUR,
    "BAKPULVER_JÄST": C.BAKING_SUPPLIES,
    "KONSERVER": C.CANNED,
    "BALJVÄXTER": C.LEGUMES,
    "ÄGG": C.EGGS,
    "OST": C.DAIRY_CHEESE,
    "SMÖR": C.DAIRY_BUTTER,
    "YOGHURT": C.DAIRY_YOGURT,
    "SALLAD": C.SALAD_LEAFY,
    "CHARK": C.MEAT_DELI,
    "KÖTTFÄRS": C.MEAT_GROUND,
    "FRYST": C.FROZEN_OTHER,
    "FRYST_KÖTT": C.FROZEN_MEAT,
    "FRYST_FISK": C.FROZEN_FISH,
    "FRYSTA_GRÖNSAKER": C.FROZEN_VEGETABLES,
    "ÖVRIGT": C.OTHER,
    "GRAINS": C.PASTA_RICE,
    "PANTRY": C.PASTA_RICE,
    "SKAFFERI": C.PASTA_RICE,
    "NÖTTER": C.NUTS_SEEDS,
})


def resolve_category(label: str) -> Optional[IngredientCategory]:
    """Resolve a category key or a legacy Swedish label; None if unknown."""
    key = label.strip().upper()
    try:
        return IngredientCategory(key)
    except ValueError:
        return LEGACY_LABELS.get(key)


def category_info(label: str) -> Optional[CategoryInfo]:
    category = resolve_category(label)
    return CATEGORY_DATABASE[category] if category is not None else None


def category_name(category: IngredientCategory, locale: str = "sv") -> str:
    info = CATEGORY_DATABASE[category]
    return info.name_sv if locale == "sv" else info.name_en


def categories_by_store_layout() -> list[CategoryInfo]:
    return sorted(CATEGORY_DATABASE.values(), key=lambda c: c.sort_order)


# ---------- Freshness ----------

Recommendation = Literal["ok", "freeze", "buy_later"]


class FreshnessVerdict(NamedTuple):
    is_fresh: bool
    days_over: int
    recommendation: Recommendation


def check_freshness(category: IngredientCategory, days_until_use: int) -> FreshnessVerdict:
    """Will an item bought today still be fresh ``days_until_use`` days from now?"""
    info = CATEGORY_DATABASE[category]
    if days_until_use <= info.shelf_life_days:
        return FreshnessVerdict(True, 0, "ok")
    days_over = days_until_use - info.shelf_life_days
    if info.freezable:
        return FreshnessVerdict(False, days_over, "freeze")
    return FreshnessVerdict(False, days_over, "buy_later")
