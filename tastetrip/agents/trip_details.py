"""Heuristic trip details attached to every recommendation.

Budget ranges come from coarse city tiers, engagement labels from the match
score, and best months from a small table of well-known destinations.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from tastetrip.currency import budget_category, format_amount, from_usd
from tastetrip.schemas import BudgetEstimate, CandidateDestination, DIMENSIONS, Engagement

DEFAULT_TRIP_DAYS = 7

# (needles matched against destination and country, USD per day low/high)
_CITY_TIERS: Tuple[Tuple[Tuple[str, ...], Tuple[int, int]], ...] = (
    (("tokyo", "new york", "london", "paris", "zurich", "singapore"), (100, 150)),
    (("barcelona", "amsterdam", "sydney", "seoul", "dubai"), (70, 100)),
    (("bali", "vietnam", "guatemala", "morocco", "india"), (20, 40)),
)
# Prague, Budapest, Lisbon, Bangkok, Mexico City and anything unknown.
_DEFAULT_TIER = (40, 70)

BREAKDOWN_SHARES: Dict[str, float] = {
    "accommodation": 0.40,
    "food": 0.25,
    "activities": 0.20,
    "transport": 0.15,
}

_ENGAGEMENT_BANDS: Tuple[Tuple[float, str], ...] = (
    (90, "Exceptional"),
    (80, "Very High"),
    (70, "High"),
    (60, "Good"),
)

BEST_MONTHS: Dict[str, List[str]] = {
    "bali": ["April-May", "September-October"],
    "dubai": ["November-March"],
    "lisbon": ["May-June", "September-October"],
    "tokyo": ["March-May", "September-November"],
    "santorini": ["May-June", "September"],
}

_TAG_LABELS: Dict[str, str] = {
    "adventure": "Adventure",
    "culture": "Culture",
    "luxury": "Luxury",
    "food": "Food",
    "nature": "Nature",
    "urban": "Urban",
    "budget": "Budget-friendly",
}

_HIGHLIGHTS: Dict[str, str] = {
    "adventure": "Outdoor adventures made for action footage",
    "culture": "Historic quarters and cultural landmarks",
    "luxury": "Boutique stays and premium brand partners",
    "food": "Street food and signature local dishes",
    "nature": "Landscapes for golden-hour shoots",
    "urban": "Photogenic neighbourhoods and nightlife",
    "budget": "Great value for longer content trips",
}
TAG_THRESHOLD = 0.7


def daily_range_usd(destination: str, country: str = "") -> Tuple[int, int]:
    haystack = f"{destination} {country}".lower()
    for needles, daily in _CITY_TIERS:
        if any(needle in haystack for needle in needles):
            return daily
    return _DEFAULT_TIER


def estimate_budget(
    destination: str,
    country: str = "",
    *,
    duration: Optional[int] = None,
    currency: Optional[str] = None,
) -> BudgetEstimate:
    days = duration or DEFAULT_TRIP_DAYS
    low, high = daily_range_usd(destination, country)
    local_low, local_high = from_usd(low, currency), from_usd(high, currency)
    total_low, total_high = local_low * days, local_high * days
    breakdown = {
        item: f"{format_amount(total_low * share, currency)}-{int(total_high * share)}"
        for item, share in BREAKDOWN_SHARES.items()
    }
    return BudgetEstimate(
        range=f"{format_amount(total_low, currency)}-{int(total_high)}",
        daily_range=f"{format_amount(local_low, currency)}-{int(local_high)}",
        tier=budget_category((low + high) / 2),
        breakdown=breakdown,
    )


def engagement_label(match_score: float) -> str:
    for floor, label in _ENGAGEMENT_BANDS:
        if match_score >= floor:
            return label
    return "Moderate"


def engagement_for(match_score: float, community_size: int) -> Engagement:
    label = engagement_label(match_score)
    return Engagement(
        potential=label,
        reason=f"{match_score:.0f}% taste match with an active community of {community_size} creators",
    )


def best_months(destination: str) -> List[str]:
    key = (destination or "").split(",")[0].strip().lower()
    return list(BEST_MONTHS.get(key, ["Year-round"]))


def destination_tags(candidate: CandidateDestination) -> List[str]:
    ranked = sorted(
        (dim for dim in DIMENSIONS if candidate.attributes.get(dim, 0.0) >= TAG_THRESHOLD),
        key=lambda dim: candidate.attributes[dim],
        reverse=True,
    )
    return [_TAG_LABELS[dim] for dim in ranked]


def destination_highlights(candidate: CandidateDestination, themes: Sequence[str] = ()) -> List[str]:
    ranked = sorted(candidate.attributes.items(), key=lambda item: item[1], reverse=True)
    highlights = [_HIGHLIGHTS[dim] for dim, _ in ranked[:3] if dim in _HIGHLIGHTS]
    if candidate.reason:
        highlights.insert(0, candidate.reason)
    elif themes:
        highlights.append(f"Strong fit for {themes[0].lower()} content")
    return highlights[:4]
