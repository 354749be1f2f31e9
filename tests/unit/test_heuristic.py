# tests/unit/test_heuristic.py
from mealplanner.core.heuristic import Lookup, extract_heuristic, first_hit

URL = "https://blogg.example.se/2024/05/kottbullar"

STEPS = "Blanda färsen med ströbröd och mjölk. Rulla bollar och stek dem gyllenbruna i smör."


def test_first_hit_is_backend_independent():
    doc = {"a": "", "b": "kort", "c": "tillräckligt lång"}
    lookups = [Lookup(sel, lambda d, s: d.get(s), lambda v: len(v) > 5) for sel in ("missing", "a", "b", "c")]
    assert first_hit(lookups, doc) == "tillräckligt lång"
    assert first_hit(lookups[:3], doc) is None


def test_full_page_scores_one():
    html = f"""
    <html><body><article>
      <h1 class="entry-title">Köttbullar</h1>
      <div class="recipe-yield">4 portioner</div>
      <img src="/img/kb.jpg">
      <ul class="ingredients">
        <li>500 g köttfärs</li><li>1 dl ströbröd</li><li>1 dl mjölk</li><li>x</li>
      </ul>
      <div class="instructions"><p>{STEPS}</p></div>
    </article></body></html>
    """
    r = extract_heuristic(html, URL)
    assert r is not None
    assert r.source == "heuristic"
    assert r.confidence == 1.0
    assert r.name == "Köttbullar"
    assert r.servings == 4
    assert [i.name for i in r.ingredients] == ["köttfärs", "ströbröd", "mjölk"]
    assert r.instructions == STEPS
    assert r.image_url == "https://blogg.example.se/img/kb.jpg"


def test_too_few_ingredients_and_no_steps_is_rejected():
    html = """
    <html><body><h1>Köttbullar</h1>
      <ul class="ingredients"><li>500 g köttfärs</li><li>1 dl mjölk</li></ul>
    </body></html>
    """
    assert extract_heuristic(html, URL) is None


def test_title_and_ingredients_without_steps_pass_threshold():
    html = """
    <html><body><h1>Köttbullar</h1>
      <ul class="ingredient-list"><li>500 g köttfärs</li><li>1 dl ströbröd</li><li>1 dl mjölk</li></ul>
    </body></html>
    """
    r = extract_heuristic(html, URL)
    assert r is not None
    assert r.confidence == 0.7
    assert r.instructions == ""
    assert r.servings == 4
