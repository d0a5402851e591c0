# tastetrip/orchestrator.py
from __future__ import annotations

import asyncio
import logging
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from tastetrip.schemas import (
    CandidateDestination,
    CompositeScore,
    CreatorCommunityRecord,
    CreatorDetails,
    QlooEntity,
    Recommendation,
    RecommendationRequest,
    RecommendationResult,
    ResultMetadata,
    TasteProfile,
    UserPreferences,
    WebsiteProfile,
)
from tastetrip.llm import llm_enrich_destinations  # import at module top to avoid circulars
from tastetrip.agents.creator_viability import (
    collaboration_gate,
    creator_insights,
    estimate_creator_community,
    get_creator_data,
    should_recommend_destination,
)
from tastetrip.agents.destination_scorer import CATALOGUE, catalogue_lookup, rank
from tastetrip.agents.signal_extractor import matched_categories
from tastetrip.agents.taste_vector import build_taste_profile
from tastetrip.agents.trip_details import (
    best_months,
    destination_highlights,
    destination_tags,
    engagement_for,
    estimate_budget,
)
from tastetrip.currency import travel_style
from tastetrip.fallback import CircuitBreaker, ServiceHealth, with_fallback
from tastetrip.tools.qloo import QlooClient
from tastetrip.tools.youtube import YouTubeSearcher

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TASTETRIP_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

REAL_CONFIDENCE = 0.6
# Some shortlisted candidates drop out at the creator gate.
SHORTLIST_FACTOR = 2
ENTITY_ATTRIBUTE = 0.8

Ranked = List[Tuple[CandidateDestination, CompositeScore]]


async def recommend(
    request: RecommendationRequest,
    *,
    qloo: Optional[QlooClient] = None,
    youtube: Optional[YouTubeSearcher] = None,
    timeout_ms: Optional[int] = None,
    health: Optional[ServiceHealth] = None,
    breaker: Optional[CircuitBreaker] = None,
) -> RecommendationResult:
    """Entry point for the API: live pipeline first, local scoring as the fallback.

    Long-lived callers pass their own ``health`` and ``breaker`` so failures
    accumulate across requests; one-off callers get a fresh pair.
    """
    qloo = qloo or QlooClient()
    youtube = youtube or YouTubeSearcher()
    health = health or ServiceHealth()
    breaker = breaker or CircuitBreaker()
    logger.info(
        "Recommendation start: url=%s themes=%s contentType=%s limit=%d",
        request.profile.url,
        request.profile.themes,
        request.profile.content_type,
        request.limit,
    )

    async def primary() -> RecommendationResult:
        return await run_pipeline(request, qloo=qloo, youtube=youtube)

    async def fallback() -> RecommendationResult:
        return await run_local_pipeline(request)

    return await with_fallback(
        primary, fallback, "recommendations", timeout_ms, health=health, breaker=breaker
    )


async def run_pipeline(
    request: RecommendationRequest,
    *,
    qloo: QlooClient,
    youtube: YouTubeSearcher,
) -> RecommendationResult:
    """Full pipeline: taste graph, scoring, tiered creator gate and LLM enrichment.

    Taste-graph errors propagate so the caller can switch to the local pipeline.
    """
    profile = request.profile
    entities: List[QlooEntity] = []
    if qloo.is_configured():
        entities = await qloo.fetch_entities(profile, limit=request.limit * SHORTLIST_FACTOR)
    else:
        logger.warning("Taste-graph not configured; scoring against the built-in catalogue")

    taste = build_taste_profile(profile, entities)
    candidates = candidates_from_entities(entities) or list(CATALOGUE)
    shortlist = rank(taste.taste_vector, candidates, request.preferences, profile.themes)
    shortlist = shortlist[: request.limit * SHORTLIST_FACTOR]

    results = await asyncio.gather(
        *[
            get_creator_data(
                candidate.name,
                candidate.country,
                profile.themes,
                profile.content_type or "mixed",
                qloo=qloo,
                youtube=youtube,
            )
            for candidate, _ in shortlist
        ],
        return_exceptions=True,
    )
    records: List[Optional[CreatorCommunityRecord]] = []
    for (candidate, _), result in zip(shortlist, results):
        if isinstance(result, Exception):
            logger.warning("Creator lookup raised for %s: %s", candidate.name, result)
            records.append(None)
        else:
            records.append(result)

    recommendations = _assemble(shortlist, records, taste, profile, request.preferences, request.limit)
    await _apply_llm_enrichment(recommendations, profile, request.preferences)

    source = "real" if entities and taste.confidence >= REAL_CONFIDENCE else "enhanced-mock"
    return _result(recommendations, source=source, confidence=taste.confidence)


async def run_local_pipeline(request: RecommendationRequest) -> RecommendationResult:
    """Catalogue scoring with heuristic creator estimates; no network calls."""
    profile = request.profile
    taste = build_taste_profile(profile)
    shortlist = rank(taste.taste_vector, CATALOGUE, request.preferences, profile.themes)
    shortlist = shortlist[: request.limit * SHORTLIST_FACTOR]
    records = [estimate_creator_community(c.name, c.country, profile.themes) for c, _ in shortlist]
    recommendations = _assemble(shortlist, records, taste, profile, request.preferences, request.limit)
    return _result(recommendations, source="local-fallback", confidence=taste.confidence)


def candidates_from_entities(entities: Sequence[QlooEntity]) -> List[CandidateDestination]:
    """Map taste-graph destinations onto catalogue attributes, or onto their tags."""
    candidates: List[CandidateDestination] = []
    seen = set()
    for entity in entities:
        key = entity.name.lower()
        if key in seen:
            continue
        seen.add(key)
        known = catalogue_lookup(entity.name)
        if known is not None:
            candidates.append(
                known.model_copy(update={"popularity": entity.popularity, "source": "qloo-api"})
            )
            continue
        attributes: Dict[str, float] = {}
        for tag in entity.tags or []:
            for dimension in matched_categories(tag.name):
                attributes[dimension] = ENTITY_ATTRIBUTE
        if not attributes:
            logger.debug("Skipping taste-graph entity %s without usable tags", entity.name)
            continue
        candidates.append(
            CandidateDestination(
                name=entity.name,
                country=entity.country or "",
                attributes=attributes,
                popularity=entity.popularity,
                source="qloo-api",
            )
        )
    if entities:
        logger.info("Mapped %d of %d taste-graph entities to candidates", len(candidates), len(entities))
    return candidates


def _assemble(
    shortlist: Ranked,
    records: Sequence[Optional[CreatorCommunityRecord]],
    taste: TasteProfile,
    profile: WebsiteProfile,
    preferences: Optional[UserPreferences],
    limit: int,
) -> List[Recommendation]:
    recommendations: List[Recommendation] = []
    dropped: List[str] = []
    for (candidate, composite), record in zip(shortlist, records):
        if record is None or not should_recommend_destination(record):
            dropped.append(candidate.name)
            continue
        recommendations.append(_recommendation(candidate, composite, record, taste, profile, preferences))
        if len(recommendations) >= limit:
            break
    if dropped:
        logger.info("Dropped %d destinations with insufficient creator communities: %s", len(dropped), ", ".join(dropped))
    logger.info(
        "Assembled %d recommendations; top: %s",
        len(recommendations),
        recommendations[0].destination if recommendations else "n/a",
    )
    return recommendations


def _recommendation(
    candidate: CandidateDestination,
    composite: CompositeScore,
    record: CreatorCommunityRecord,
    taste: TasteProfile,
    profile: WebsiteProfile,
    preferences: Optional[UserPreferences],
) -> Recommendation:
    gate = collaboration_gate(record)
    prefs = preferences or UserPreferences()
    return Recommendation(
        destination=candidate.name,
        country=candidate.country,
        match_score=composite.total,
        budget=estimate_budget(candidate.name, candidate.country, duration=prefs.duration, currency=prefs.currency),
        creator_details=CreatorDetails(
            total_active_creators=record.total_active_creators,
            top_creators=record.top_creators,
            data_source=record.data_source,
            minimum_threshold=record.minimum_threshold,
            collaboration_opportunities=record.collaboration_opportunities if gate.show_collaboration else [],
            insights=creator_insights(record),
            show_collaboration=gate.show_collaboration,
            collaboration_score=round(gate.collaboration_score, 2),
        ),
        tags=destination_tags(candidate),
        best_months=best_months(candidate.name),
        highlights=destination_highlights(candidate, profile.themes),
        engagement=engagement_for(composite.total, record.total_active_creators),
        score_breakdown=composite.breakdown,
        confidence=round(taste.confidence, 2),
    )


async def _apply_llm_enrichment(
    recommendations: List[Recommendation],
    profile: WebsiteProfile,
    preferences: Optional[UserPreferences],
) -> None:
    """Overlay model-provided months and highlights.

    The OpenAI client is blocking, so the call runs in a worker thread and the
    request deadline in ``with_fallback`` still applies to it.
    """
    if not recommendations:
        return
    if preferences is not None and preferences.budget is not None:
        budget_label = f"{preferences.currency or '$'}{int(preferences.budget)}"
    else:
        budget_label = recommendations[0].budget.range
    try:
        enrichment = await asyncio.to_thread(
            llm_enrich_destinations,
            [rec.destination for rec in recommendations],
            {
                "themes": profile.themes,
                "content_type": profile.content_type,
                "audience_location": profile.audience_location,
                "travel_style": travel_style(budget_label),
            },
        )
    except Exception:
        logger.warning("LLM enrichment failed; keeping heuristic details", exc_info=True)
        return
    for rec in recommendations:
        data = enrichment.get(rec.destination)
        if not data:
            continue
        if data.get("bestMonths"):
            rec.best_months = data["bestMonths"]
        if data.get("highlights"):
            rec.highlights = data["highlights"]


def _result(recommendations: List[Recommendation], *, source: str, confidence: float) -> RecommendationResult:
    return RecommendationResult(
        recommendations=recommendations,
        metadata=ResultMetadata(
            fallback=source == "local-fallback",
            source=source,
            generated_at=datetime.now(timezone.utc).isoformat(),
            total_destinations=len(recommendations),
            confidence=round(confidence, 2),
        ),
    )
