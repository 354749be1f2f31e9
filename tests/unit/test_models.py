# tests/unit/test_models.py
import pytest
from mealplanner.core.categories import IngredientCategory
from mealplanner.core.models import ExtractedRecipe, ShoppingListItem, StructuredIngredient, normalize_unit


def test_item_key_normalization():
    it = ShoppingListItem(name="  Mjölk  ", quantity=2, unit="DL")
    assert it.name == "Mjölk"
    assert it.key() == ("mjölk", "dl")


def test_unit_equivalence_for_matching():
    assert normalize_unit("ml") == "dl"
    assert normalize_unit("g", 999) == "g"
    assert normalize_unit("g", 1000) == "kg"
    assert normalize_unit(None) == ""


def test_item_name_cannot_be_blank():
    with pytest.raises(Exception):
        ShoppingListItem(name="  ", quantity=1)


def test_legacy_category_labels_are_mapped():
    assert ShoppingListItem(name="gurka", category="GRÖNSAKER").category == IngredientCategory.VEGETABLES
    assert ShoppingListItem(name="x", category="NOT_A_CATEGORY").category == IngredientCategory.OTHER


def test_structured_ingredient_defaults():
    ing = StructuredIngredient(name=" salt ", amount=None, unit=None)
    assert (ing.name, ing.amount, ing.unit) == ("salt", 0, "")


def test_extracted_recipe_is_immutable():
    r = ExtractedRecipe(name="Soppa", source="structured", confidence=0.9, source_url="https://x.se")
    assert r.servings == 4
    with pytest.raises(Exception):
        r.name = "Annat"


def test_structured_ingredient_rejects_negative_amount():
    with pytest.raises(Exception):
        StructuredIngredient(name="mjölk", amount=-5, unit="dl")
