import pytest
from fastapi.testclient import TestClient
from mealplanner.main import create_app


@pytest.fixture
def client(tmp_path, monkeypatch):
    # isolate data dir for this test run
    d = tmp_path / "data"
    d.mkdir()
    monkeypatch.setenv("DATA_DIR", str(d))
    monkeypatch.setenv("RECIPES_FILE", str(d / "recipes.json"))
    monkeypatch.setenv("SHOPPING_LISTS_FILE", str(d / "shopping_lists.json"))
    monkeypatch.setenv("EVENTS_FILE", str(d / "events.jsonl"))
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("ENABLE_TELEMETRY", "false")

    app = create_app()
    with TestClient(app) as c:
        yield c
