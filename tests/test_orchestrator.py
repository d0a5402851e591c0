import asyncio
import time

import pytest

from tastetrip import orchestrator
from tastetrip.agents.creator_viability import estimate_creator_community
from tastetrip.fallback import CircuitBreaker, ServiceHealth
from tastetrip.orchestrator import candidates_from_entities, recommend, run_local_pipeline, run_pipeline
from tastetrip.schemas import CreatorCommunityRecord, QlooEntity, RecommendationRequest


class OfflineQloo:
    def is_configured(self) -> bool:
        return False


class BrokenQloo:
    def is_configured(self) -> bool:
        return True

    async def fetch_entities(self, profile, *, limit=10):
        raise RuntimeError("taste graph unavailable")


class LiveQloo:
    def __init__(self, entities):
        self.entities = entities

    def is_configured(self) -> bool:
        return True

    async def fetch_entities(self, profile, *, limit=10):
        return self.entities


class OfflineYouTube:
    def is_configured(self) -> bool:
        return False


def _request(**overrides) -> RecommendationRequest:
    payload = {
        "profile": {
            "url": "https://trailfood.example",
            "themes": ["adventure", "food"],
            "hints": ["hiking", "street food"],
            "contentType": "Travel vlog",
            "socialLinks": [{"platform": "YouTube", "url": "https://youtube.com/@trailfood"}],
        },
        "limit": 3,
    }
    payload.update(overrides)
    return RecommendationRequest.model_validate(payload)


@pytest.fixture(autouse=True)
def no_llm(monkeypatch):
    monkeypatch.setattr(orchestrator, "llm_enrich_destinations", lambda names, profile: {})


def test_insufficient_destinations_are_dropped(monkeypatch):
    async def run() -> None:
        request = _request()
        leader = (await run_local_pipeline(request)).recommendations[0].destination

        async def fake_creator_data(destination, country, themes, content_type, *, qloo=None, youtube=None):
            if destination == leader:
                return CreatorCommunityRecord(total_active_creators=3, data_source="insufficient")
            return estimate_creator_community(destination, country, themes)

        monkeypatch.setattr(orchestrator, "get_creator_data", fake_creator_data)
        result = await run_pipeline(request, qloo=OfflineQloo(), youtube=OfflineYouTube())

        names = [rec.destination for rec in result.recommendations]
        assert leader not in names
        assert len(names) == 3
        assert result.metadata.source == "enhanced-mock"
        assert result.metadata.fallback is False
        assert all(rec.creator_details.data_source != "insufficient" for rec in result.recommendations)

    asyncio.run(run())


def test_local_pipeline_is_ranked_and_labelled():
    async def run() -> None:
        result = await run_local_pipeline(_request(limit=5))

        scores = [rec.match_score for rec in result.recommendations]
        assert scores == sorted(scores, reverse=True)
        assert result.metadata.source == "local-fallback"
        assert result.metadata.total_destinations == len(result.recommendations) == 5
        first = result.recommendations[0]
        assert first.engagement is not None
        assert set(first.score_breakdown) == {
            "tasteAffinity",
            "communityEngagement",
            "brandCollaborationFit",
            "budgetAlignment",
            "creatorCollaboration",
        }

    asyncio.run(run())


def test_taste_graph_failure_falls_back_to_local():
    async def run() -> None:
        health = ServiceHealth()
        result = await recommend(
            _request(),
            qloo=BrokenQloo(),
            youtube=OfflineYouTube(),
            health=health,
            breaker=CircuitBreaker(),
        )

        assert result.metadata.fallback is True
        assert result.metadata.source == "local-fallback"
        assert result.metadata.error == "taste graph unavailable"
        assert result.recommendations
        assert health.status("recommendations") == "degraded"

    asyncio.run(run())


def test_slow_enrichment_cannot_outlive_the_deadline(monkeypatch):
    async def run() -> None:
        def stalled(names, profile):
            time.sleep(1.0)
            return {}

        monkeypatch.setattr(orchestrator, "llm_enrich_destinations", stalled)
        started = time.monotonic()
        result = await recommend(
            _request(),
            qloo=OfflineQloo(),
            youtube=OfflineYouTube(),
            timeout_ms=200,
            health=ServiceHealth(),
            breaker=CircuitBreaker(),
        )
        elapsed = time.monotonic() - started

        assert elapsed < 0.9
        assert result.metadata.fallback is True
        assert result.metadata.source == "local-fallback"
        assert result.metadata.error == "recommendations timed out after 200ms"

    asyncio.run(run())


def test_live_entities_drive_candidates(monkeypatch):
    async def run() -> None:
        entities = [
            QlooEntity.model_validate({"name": "Tokyo", "popularity": 0.95, "query": {"affinity": 0.9}}),
            QlooEntity.model_validate(
                {"name": "Madeira", "country": "Portugal", "tags": [{"name": "Hiking trails"}], "popularity": 0.7}
            ),
        ]

        async def fake_creator_data(destination, country, themes, content_type, *, qloo=None, youtube=None):
            return estimate_creator_community(destination, country, themes)

        monkeypatch.setattr(orchestrator, "get_creator_data", fake_creator_data)
        result = await run_pipeline(_request(), qloo=LiveQloo(entities), youtube=OfflineYouTube())

        assert {rec.destination for rec in result.recommendations} == {"Tokyo", "Madeira"}
        assert result.metadata.source in ("real", "enhanced-mock")

    asyncio.run(run())


def test_llm_enrichment_overrides_heuristics(monkeypatch):
    async def run() -> None:
        def enrich(names, profile):
            return {name: {"bestMonths": ["June"], "highlights": ["Sunrise hike"]} for name in names}

        monkeypatch.setattr(orchestrator, "llm_enrich_destinations", enrich)
        result = await run_pipeline(_request(), qloo=OfflineQloo(), youtube=OfflineYouTube())

        assert all(rec.best_months == ["June"] for rec in result.recommendations)
        assert all(rec.highlights == ["Sunrise hike"] for rec in result.recommendations)

    asyncio.run(run())


def test_enrichment_errors_keep_heuristics(monkeypatch):
    async def run() -> None:
        def explode(names, profile):
            raise RuntimeError("rate limited")

        monkeypatch.setattr(orchestrator, "llm_enrich_destinations", explode)
        result = await run_pipeline(_request(), qloo=OfflineQloo(), youtube=OfflineYouTube())

        assert result.recommendations
        assert all(rec.best_months for rec in result.recommendations)

    asyncio.run(run())


def test_candidates_from_entities_maps_catalogue_and_tags():
    entities = [
        QlooEntity(name="Tokyo", popularity=0.9),
        QlooEntity(name="tokyo", popularity=0.1),
        QlooEntity.model_validate({"name": "Tulum", "country": "Mexico", "tags": [{"name": "Beach clubs"}]}),
        QlooEntity(name="Nowhere"),
    ]

    candidates = candidates_from_entities(entities)

    assert [c.name for c in candidates] == ["Tokyo", "Tulum"]
    assert candidates[0].popularity == 0.9
    assert candidates[0].attributes["urban"] == 0.9
    assert candidates[1].attributes == {"nature": 0.8}
    assert all(c.source == "qloo-api" for c in candidates)
