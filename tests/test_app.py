import pytest

import main
from app import create_app


@pytest.fixture
def completed_client():
    result = main.RunResult(
        success=True, processed_count=3, total_articles_collected=9, logs=["done"], errors=["one failed"]
    )
    return create_app(pipeline=lambda: result).test_client()


def test_completed_run_returns_200_with_summary(completed_client):
    response = completed_client.post("/")

    assert response.status_code == 200
    assert response.get_json() == {
        "success": True,
        "processedCount": 3,
        "totalArticlesCollected": 9,
        "logs": ["done"],
        "errors": ["one failed"],
    }
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_get_also_triggers_a_run(completed_client):
    assert completed_client.get("/").status_code == 200


def test_halted_run_returns_500():
    result = main.RunResult(error="Missing GEMINI_API_KEY", logs=[])
    client = create_app(pipeline=lambda: result).test_client()

    response = client.post("/")

    assert response.status_code == 500
    assert response.get_json() == {"error": "Missing GEMINI_API_KEY", "logs": []}


def test_preflight_returns_empty_success_without_running():
    calls = []
    client = create_app(pipeline=lambda: calls.append(1)).test_client()

    response = client.options("/")

    assert response.status_code == 200
    assert response.get_data() == b""
    assert "content-type" in response.headers["Access-Control-Allow-Headers"]
    assert calls == []


def test_default_pipeline_reports_missing_config(monkeypatch):
    monkeypatch.setattr(main, "validate_config", lambda mock=False: (False, ["Missing GEMINI_API_KEY"]))
    client = create_app().test_client()

    response = client.post("/")

    assert response.status_code == 500
    assert response.get_json()["error"] == "Missing GEMINI_API_KEY"
