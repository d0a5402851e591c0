from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from tastetrip.fallback import static_result
from tastetrip.main import app


def _sample_profile() -> dict:
    return {
        "url": "https://wanderlens.example",
        "themes": ["photography", "culture"],
        "hints": ["museum", "street photography"],
        "contentType": "Photography",
        "socialLinks": [{"platform": "Instagram", "url": "https://instagram.com/wanderlens"}],
        "audienceLocation": "Europe",
    }


def test_profile_taste_endpoint():
    client = TestClient(app)

    response = client.post("/api/profile-taste", json={"profile": _sample_profile()})

    assert response.status_code == 200
    body = response.json()
    assert set(body["tasteVector"]) == {"adventure", "culture", "luxury", "food", "nature", "urban", "budget"}
    assert 0.3 <= body["confidence"] <= 0.92
    assert body["metadata"]["source"] == "website-analysis"


def test_recommendations_endpoint(monkeypatch):
    client = TestClient(app)
    orchestrator = AsyncMock(return_value=static_result())
    monkeypatch.setattr("tastetrip.main.recommend", orchestrator)

    response = client.post(
        "/api/recommendations",
        json={"profile": _sample_profile(), "preferences": {"budget": 1500, "duration": 7}, "limit": 3},
    )

    assert response.status_code == 200
    orchestrator.assert_awaited_once()
    request = orchestrator.await_args.args[0]
    assert request.limit == 3
    assert request.preferences.duration == 7
    assert orchestrator.await_args.kwargs["health"] is app.state.service_health
    assert orchestrator.await_args.kwargs["breaker"] is app.state.circuit_breaker
    body = response.json()
    assert body["metadata"]["fallback"] is True
    assert body["recommendations"][0]["matchScore"] == 75


def test_recommendations_rejects_bad_payload(monkeypatch):
    client = TestClient(app)
    orchestrator = AsyncMock()
    monkeypatch.setattr("tastetrip.main.recommend", orchestrator)

    response = client.post("/api/recommendations", json={"profile": _sample_profile(), "limit": 100})

    assert response.status_code == 422
    orchestrator.assert_not_awaited()


def test_question_endpoints_walk_the_interview():
    client = TestClient(app)

    first = client.post("/api/questions/next", json={"context": {"themes": ["food"]}, "questionNumber": 1})
    assert first.status_code == 200
    assert first.json()["question"]["id"] == "duration"

    answered = client.post(
        "/api/questions/answer",
        json={"context": {}, "questionId": "duration", "answer": "7 days"},
    )
    context = answered.json()["context"]
    assert context["duration"] == 7

    rejected = client.post(
        "/api/questions/answer",
        json={"context": context, "questionId": "budget", "answer": "$100"},
    )
    assert rejected.status_code == 200
    assert rejected.json()["status"] == "rejected"
    assert rejected.json()["context"]["budget"] is None

    accepted = client.post(
        "/api/questions/answer",
        json={"context": context, "questionId": "budget", "answer": "$1000"},
    )
    assert accepted.json()["context"]["dailyBudget"] == 142

    done = client.post("/api/questions/next", json={"context": context, "questionNumber": 5})
    assert done.json() == {"complete": True}


def test_preferences_delta_endpoint():
    client = TestClient(app)

    response = client.post(
        "/api/preferences/delta",
        json={
            "current": {"budget": "$5000", "duration": "5 days"},
            "baseline": {"budget": "$1000", "duration": "5 days"},
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["fullRegeneration"] is True
    assert body["payload"]["type"] == "full"
    assert body["delta"]["changed"]["budget"] == {"old": "$1000", "new": "$5000"}
    assert len(body["advisories"]) == 1


def test_health_endpoint():
    client = TestClient(app)

    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert isinstance(response.json()["services"], dict)
