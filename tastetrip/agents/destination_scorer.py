"""Composite destination scoring against a taste vector."""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import logging
import os

from tastetrip.currency import prefers_low_budget
from tastetrip.schemas import (
    CandidateDestination,
    CompositeScore,
    ScoreComponent,
    TasteVector,
    UserPreferences,
)

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TASTETRIP_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

WEIGHTS: Dict[str, float] = {
    "tasteAffinity": 0.45,
    "communityEngagement": 0.25,
    "brandCollaborationFit": 0.15,
    "budgetAlignment": 0.10,
    "creatorCollaboration": 0.05,
}

THEME_BONUS = 0.1
MISSING_ATTRIBUTE = 0.3
NEUTRAL_BUDGET = 0.5
FLAGSHIP_ENGAGEMENT = 0.8
DEFAULT_ENGAGEMENT = 0.6
_FLAGSHIP_HUBS = ("tokyo", "paris", "new york")

# (theme keywords, destinations boosted)
_THEME_BONUSES: Tuple[Tuple[Tuple[str, ...], Tuple[str, ...]], ...] = (
    (("productivity", "business"), ("singapore", "zurich", "tokyo")),
    (("tech", "digital"), ("san francisco", "seoul", "tel aviv")),
    (("wellness", "health"), ("costa rica", "bali", "rishikesh")),
)


def _dest(name: str, country: str, **attributes: float) -> CandidateDestination:
    return CandidateDestination(name=name, country=country, attributes=attributes)


# Declaration order doubles as the tie-break order when scores are equal.
CATALOGUE: Tuple[CandidateDestination, ...] = (
    _dest("Queenstown", "New Zealand", adventure=0.9, nature=0.8, luxury=0.6, urban=0.3),
    _dest("Costa Rica", "Costa Rica", adventure=0.8, nature=0.9, culture=0.6, budget=0.7),
    _dest("Kathmandu & Pokhara", "Nepal", adventure=0.9, culture=0.8, nature=0.8, budget=0.8),
    _dest("Patagonia", "Chile", adventure=0.9, nature=0.9, luxury=0.4, culture=0.5),
    _dest("Kyoto", "Japan", culture=0.9, luxury=0.7, urban=0.6, food=0.8),
    _dest("Rome", "Italy", culture=0.9, food=0.8, luxury=0.6, urban=0.7),
    _dest("Istanbul", "Turkey", culture=0.9, food=0.7, urban=0.8, budget=0.6),
    _dest("Marrakech", "Morocco", culture=0.9, adventure=0.6, food=0.7, budget=0.7),
    _dest("Cusco", "Peru", culture=0.9, adventure=0.7, nature=0.7, budget=0.8),
    _dest("Dubai", "UAE", luxury=0.9, urban=0.8, culture=0.6, food=0.7),
    _dest("Monaco", "Monaco", luxury=0.9, urban=0.7, culture=0.5, nature=0.4),
    _dest("Santorini", "Greece", luxury=0.8, nature=0.7, culture=0.6, food=0.7),
    _dest("Maldives", "Maldives", luxury=0.9, nature=0.8, adventure=0.6, culture=0.3),
    _dest("Aspen", "USA", luxury=0.8, adventure=0.7, nature=0.8, urban=0.4),
    _dest("Tokyo", "Japan", food=0.9, culture=0.8, urban=0.9, luxury=0.7),
    _dest("Paris", "France", food=0.9, culture=0.9, luxury=0.8, urban=0.8),
    _dest("Bangkok", "Thailand", food=0.9, culture=0.7, urban=0.7, budget=0.8),
    _dest("Lima", "Peru", food=0.8, culture=0.7, adventure=0.6, budget=0.7),
    _dest("Mumbai", "India", food=0.8, culture=0.8, urban=0.8, budget=0.9),
    _dest("Reykjavik", "Iceland", nature=0.9, adventure=0.8, culture=0.6, luxury=0.5),
    _dest("Norwegian Fjords", "Norway", nature=0.9, adventure=0.7, luxury=0.6, culture=0.5),
    _dest("Banff", "Canada", nature=0.9, adventure=0.8, luxury=0.6, culture=0.4),
    _dest("Yellowstone", "USA", nature=0.9, adventure=0.7, culture=0.5, budget=0.6),
    _dest("New York", "USA", urban=0.9, culture=0.8, food=0.8, luxury=0.7),
    _dest("London", "UK", urban=0.9, culture=0.9, food=0.7, luxury=0.7),
    _dest("Singapore", "Singapore", urban=0.9, food=0.8, luxury=0.7, culture=0.6),
    _dest("Barcelona", "Spain", urban=0.8, culture=0.8, food=0.8, adventure=0.5),
    _dest("Berlin", "Germany", urban=0.8, culture=0.8, food=0.6, budget=0.7),
    _dest("Hanoi", "Vietnam", budget=0.9, food=0.8, culture=0.7, adventure=0.6),
    _dest("Porto", "Portugal", budget=0.8, culture=0.8, food=0.7, nature=0.6),
    _dest("Prague", "Czech Republic", budget=0.8, culture=0.8, urban=0.6, food=0.6),
    _dest("Antigua", "Guatemala", budget=0.9, culture=0.7, adventure=0.7, nature=0.7),
    _dest("Jaipur", "India", budget=0.9, culture=0.9, food=0.8, adventure=0.6),
    _dest("Tel Aviv", "Israel", urban=0.8, culture=0.7, food=0.8, luxury=0.6),
    _dest("Austin", "USA", urban=0.7, culture=0.6, food=0.7, budget=0.7),
    _dest("Copenhagen", "Denmark", urban=0.8, culture=0.7, food=0.7, luxury=0.6),
    _dest("Melbourne", "Australia", urban=0.8, culture=0.7, food=0.8, adventure=0.5),
    _dest("Lisbon", "Portugal", urban=0.7, culture=0.8, food=0.7, budget=0.8),
    _dest("Amsterdam", "Netherlands", urban=0.8, culture=0.8, food=0.6, luxury=0.6),
    _dest("San Francisco", "USA", urban=0.9, luxury=0.7, culture=0.6, food=0.7),
    _dest("Zurich", "Switzerland", urban=0.7, luxury=0.9, culture=0.6, nature=0.6),
    _dest("Seoul", "South Korea", urban=0.9, culture=0.7, food=0.8, luxury=0.6),
    _dest("Stockholm", "Sweden", urban=0.8, culture=0.7, luxury=0.6, nature=0.6),
    _dest("Bali", "Indonesia", adventure=0.9, culture=0.8, food=0.9, nature=0.9, budget=0.7),
    _dest("Rishikesh", "India", nature=0.8, culture=0.8, adventure=0.6, budget=0.9),
)


def catalogue_lookup(name: str) -> Optional[CandidateDestination]:
    key = (name or "").split(",")[0].strip().lower()
    for candidate in CATALOGUE:
        if candidate.name.lower() == key:
            return candidate
    return None


def taste_affinity(vector: TasteVector, attributes: Dict[str, float]) -> float:
    """Mean of ``vector[d] * attributes[d]`` over dimensions the candidate defines."""
    values = vector.as_dict()
    shared = [dim for dim in attributes if dim in values]
    if not shared:
        return 0.0
    return sum(values[dim] * attributes[dim] for dim in shared) / len(shared)


def community_engagement(candidate: CandidateDestination) -> float:
    if candidate.popularity is not None:
        return _clamp(candidate.popularity)
    name = candidate.name.lower()
    if any(hub in name for hub in _FLAGSHIP_HUBS):
        return FLAGSHIP_ENGAGEMENT
    return DEFAULT_ENGAGEMENT


def brand_collaboration_fit(attributes: Dict[str, float]) -> float:
    return attributes.get("luxury", MISSING_ATTRIBUTE) * 0.6 + attributes.get("urban", MISSING_ATTRIBUTE) * 0.4


def budget_alignment(
    vector: TasteVector,
    attributes: Dict[str, float],
    preferences: Optional[UserPreferences] = None,
) -> float:
    friendliness = attributes.get("budget", NEUTRAL_BUDGET)
    favours_low: Optional[bool] = None
    if preferences is not None:
        daily = preferences.daily_budget
        if daily is None and preferences.budget is not None and preferences.duration:
            daily = preferences.budget // preferences.duration
        favours_low = prefers_low_budget(daily, preferences.currency)
    if favours_low is None:
        favours_low = vector.budget > 0.6
    return friendliness if favours_low else 1 - friendliness


def creator_collaboration(attributes: Dict[str, float]) -> float:
    return attributes.get("urban", MISSING_ATTRIBUTE) * 0.6 + attributes.get("culture", MISSING_ATTRIBUTE) * 0.4


def theme_bonus(candidate: CandidateDestination, themes: Iterable[str]) -> float:
    name = candidate.name.lower()
    bonus = 0.0
    for theme in themes:
        lowered = (theme or "").lower()
        for keywords, hubs in _THEME_BONUSES:
            if any(keyword in lowered for keyword in keywords) and any(hub in name for hub in hubs):
                bonus += THEME_BONUS
    return bonus


def score(
    vector: TasteVector,
    candidate: CandidateDestination,
    preferences: Optional[UserPreferences] = None,
    themes: Iterable[str] = (),
) -> CompositeScore:
    attributes = candidate.attributes
    components = {
        "tasteAffinity": taste_affinity(vector, attributes),
        "communityEngagement": community_engagement(candidate),
        "brandCollaborationFit": brand_collaboration_fit(attributes),
        "budgetAlignment": budget_alignment(vector, attributes, preferences),
        "creatorCollaboration": creator_collaboration(attributes),
    }
    breakdown = {
        name: ScoreComponent(
            score=round(value, 4),
            weight=WEIGHTS[name],
            contribution=round(value * WEIGHTS[name] * 100, 2),
        )
        for name, value in components.items()
    }
    weighted = sum(value * WEIGHTS[name] for name, value in components.items())
    bonus = theme_bonus(candidate, themes)
    final = _clamp(weighted + bonus)
    return CompositeScore(score=final, total=round(final * 100, 1), breakdown=breakdown, bonus=bonus)


def rank(
    vector: TasteVector,
    candidates: Sequence[CandidateDestination],
    preferences: Optional[UserPreferences] = None,
    themes: Iterable[str] = (),
) -> List[Tuple[CandidateDestination, CompositeScore]]:
    """Score and sort candidates descending; ``sorted`` keeps ties in input order."""
    theme_list = list(themes)
    scored = [(candidate, score(vector, candidate, preferences, theme_list)) for candidate in candidates]
    ranked = sorted(scored, key=lambda item: item[1].score, reverse=True)
    if ranked:
        logger.debug(
            "Ranked %d candidates; leader %s at %.1f",
            len(ranked),
            ranked[0][0].name,
            ranked[0][1].total,
        )
    return ranked


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))
