import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

from tastetrip.fallback import (
    CircuitBreaker,
    ServiceHealth,
    static_result,
    with_fallback,
)
from tastetrip.schemas import RecommendationResult, ResultMetadata


def _result(source: str) -> RecommendationResult:
    return RecommendationResult(
        recommendations=[],
        metadata=ResultMetadata(
            fallback=False,
            source=source,
            generated_at=datetime.now(timezone.utc).isoformat(),
        ),
    )


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_primary_result_passes_through():
    async def run() -> None:
        primary = AsyncMock(return_value=_result("real"))
        fallback = AsyncMock(return_value=_result("local-fallback"))

        result = await with_fallback(
            primary, fallback, "recommendations", 1000, health=ServiceHealth(), breaker=CircuitBreaker()
        )

        assert result.metadata.source == "real"
        assert result.metadata.fallback is False
        fallback.assert_not_awaited()

    asyncio.run(run())


def test_timeout_switches_to_fallback():
    async def run() -> None:
        async def slow():
            await asyncio.sleep(1)
            return _result("real")

        health = ServiceHealth()
        result = await with_fallback(
            slow,
            AsyncMock(return_value=_result("local-fallback")),
            "recommendations",
            20,
            health=health,
            breaker=CircuitBreaker(),
        )

        assert result.metadata.fallback is True
        assert result.metadata.source == "local-fallback"
        assert "timed out" in result.metadata.error
        assert health.status("recommendations") == "degraded"

    asyncio.run(run())


def test_both_failing_yields_static_result():
    async def run() -> None:
        primary = AsyncMock(side_effect=RuntimeError("taste graph down"))
        fallback = AsyncMock(side_effect=ValueError("catalogue missing"))

        result = await with_fallback(
            primary, fallback, "recommendations", 1000, health=ServiceHealth(), breaker=CircuitBreaker()
        )

        assert result.metadata.fallback is True
        assert result.metadata.source == "static"
        assert result.metadata.error == "taste graph down"
        assert result.metadata.total_destinations == 1
        only = result.recommendations[0]
        assert only.match_score == 75
        assert only.confidence == 0.6

    asyncio.run(run())


def test_open_circuit_skips_primary():
    async def run() -> None:
        clock = FakeClock()
        breaker = CircuitBreaker(failure_threshold=5, reset_seconds=300, clock=clock)
        for _ in range(5):
            breaker.record_failure("recommendations")
        primary = AsyncMock(return_value=_result("real"))

        result = await with_fallback(
            primary,
            AsyncMock(return_value=_result("local-fallback")),
            "recommendations",
            1000,
            health=ServiceHealth(),
            breaker=breaker,
        )

        primary.assert_not_awaited()
        assert result.metadata.error == "recommendations circuit open"

        clock.now += 301
        result = await with_fallback(
            primary,
            AsyncMock(return_value=_result("local-fallback")),
            "recommendations",
            1000,
            health=ServiceHealth(),
            breaker=breaker,
        )
        primary.assert_awaited_once()
        assert result.metadata.source == "real"
        assert not breaker.is_open("recommendations")

    asyncio.run(run())


def test_service_health_statuses():
    clock = FakeClock()
    health = ServiceHealth(window_seconds=300, clock=clock)

    assert health.status("qloo") == "healthy"
    for _ in range(4):
        health.record_failure("qloo", "boom")
    assert health.status("qloo") == "degraded"
    health.record_failure("qloo", "boom")
    assert health.status("qloo") == "failing"

    clock.now += 301
    assert health.status("qloo") == "healthy"
    assert health.snapshot()["qloo"]["lastError"] == "boom"


def test_static_result_shape():
    result = static_result("recommendations", "boom")
    dumped = result.model_dump(by_alias=True)

    assert dumped["metadata"]["fallback"] is True
    assert set(dumped["recommendations"][0]) >= {
        "destination",
        "country",
        "matchScore",
        "budget",
        "creatorDetails",
        "tags",
        "bestMonths",
        "engagement",
        "scoreBreakdown",
        "highlights",
    }


def test_malformed_fallback_result_yields_static_result():
    async def run() -> None:
        result = await with_fallback(
            AsyncMock(side_effect=RuntimeError("taste graph down")),
            AsyncMock(return_value={"recommendations": []}),
            "recommendations",
            1000,
            health=ServiceHealth(),
            breaker=CircuitBreaker(),
        )

        assert result.metadata.source == "static"
        assert result.metadata.error == "taste graph down"

    asyncio.run(run())


def test_static_recommendation_is_labelled_static():
    details = static_result().recommendations[0].creator_details

    assert details.data_source == "static"
    assert details.total_active_creators == 0
    assert details.show_collaboration is False
