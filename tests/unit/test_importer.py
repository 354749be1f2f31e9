# tests/unit/test_importer.py
import json

import pytest
from mealplanner.config import Settings
from mealplanner.core.models import ExtractedRecipe
from mealplanner.services.exceptions import ExtractionExhaustedError, FetchError, LLMError
from mealplanner.services.importer import RecipeImporter

URL = "https://recept.example.se/r/1"

STRUCTURED_PAGE = '<script type="application/ld+json">{}</script>'.format(json.dumps({
    "@type": "Recipe", "name": "Gryta", "recipeIngredient": ["1 kg potatis"], "recipeInstructions": "Koka.",
}))

HEURISTIC_PAGE = """
<h1 class="recipe-title">Gryta med rotfrukter</h1>
<ul class="recipe-ingredients"><li>1 kg potatis</li><li>2 morötter</li><li>1 palsternacka</li></ul>
"""

EMPTY_PAGE = "<html><body><p>Inget recept här.</p></body></html>"


class FakeFetcher:
    def __init__(self, html=None, error=None):
        self.html = html
        self.error = error
        self.calls = []

    async def fetch(self, url):
        self.calls.append(url)
        if self.error:
            raise self.error
        return self.html


class FakeAI:
    def __init__(self, error=None):
        self.error = error
        self.calls = 0

    async def extract(self, html, source_url):
        self.calls += 1
        if self.error:
            raise self.error
        return ExtractedRecipe(name="AI-gryta", source="ai", confidence=0.95, source_url=source_url)


def _importer(html=None, ai=None, fetch_error=None):
    fetcher = FakeFetcher(html, fetch_error)
    return RecipeImporter(Settings(openai_api_key=None), fetcher, ai), fetcher


async def test_structured_data_wins_without_ai():
    ai = FakeAI()
    importer, fetcher = _importer(STRUCTURED_PAGE, ai)
    r = await importer.import_from_url(URL, allow_expensive_fallback=True)
    assert r.source == "structured"
    assert ai.calls == 0
    assert fetcher.calls == [URL]


async def test_heuristic_used_when_no_structured_data():
    ai = FakeAI()
    importer, _ = _importer(HEURISTIC_PAGE, ai)
    r = await importer.import_from_url(URL, allow_expensive_fallback=True)
    assert r.source == "heuristic"
    assert r.name == "Gryta med rotfrukter"
    assert ai.calls == 0


async def test_exhausted_without_ai_suggests_enabling_it():
    importer, _ = _importer(EMPTY_PAGE, FakeAI())
    with pytest.raises(ExtractionExhaustedError) as exc:
        await importer.import_from_url(URL, allow_expensive_fallback=False)
    assert "Enable AI import" in str(exc.value)
    assert exc.value.can_retry_with_ai
    assert not exc.value.ai_attempted


async def test_ai_called_exactly_once_when_allowed():
    ai = FakeAI()
    importer, fetcher = _importer(EMPTY_PAGE, ai)
    r = await importer.import_from_url(URL, allow_expensive_fallback=True)
    assert r.source == "ai"
    assert ai.calls == 1
    assert len(fetcher.calls) == 1


async def test_ai_failure_is_terminal():
    ai = FakeAI(error=LLMError("quota"))
    importer, _ = _importer(EMPTY_PAGE, ai)
    with pytest.raises(ExtractionExhaustedError) as exc:
        await importer.import_from_url(URL, allow_expensive_fallback=True)
    assert exc.value.ai_attempted
    assert not exc.value.can_retry_with_ai
    assert ai.calls == 1


async def test_ai_allowed_but_not_configured():
    importer, _ = _importer(EMPTY_PAGE, None)
    with pytest.raises(ExtractionExhaustedError) as exc:
        await importer.import_from_url(URL, allow_expensive_fallback=True)
    assert not exc.value.ai_available


async def test_fetch_error_propagates():
    importer, _ = _importer(fetch_error=FetchError("HTTP 404", status_code=404))
    with pytest.raises(FetchError) as exc:
        await importer.import_from_url(URL)
    assert exc.value.status_code == 404
