"""Creator-community viability for candidate destinations.

Counts come from the first tier that clears ``MINIMUM_CREATORS``: the taste
graph, then a video-platform channel search, then a popularity heuristic. A
destination that still falls short is tagged ``insufficient`` and must not be
recommended.
"""
from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from tastetrip.schemas import CreatorCommunityRecord, CreatorProfile, QlooEntity
from tastetrip.tools.qloo import QlooClient
from tastetrip.tools.youtube import Channel, YouTubeSearcher

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TASTETRIP_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

MINIMUM_CREATORS = 10
MIN_CHANNEL_SUBSCRIBERS = 1000
MAX_REPRESENTATIVES = 5
MIN_COLLABORATION_CREATORS = 2
ESTIMATED_ACTIVE_RATIO = 0.7

# (baseCreators, popularityFactor)
_MAJOR_DESTINATIONS: Dict[str, Tuple[int, float]] = {
    "tokyo": (150, 1.5),
    "bali": (120, 1.4),
    "paris": (130, 1.4),
    "new york": (140, 1.5),
    "london": (120, 1.3),
    "dubai": (100, 1.3),
    "bangkok": (80, 1.2),
    "singapore": (90, 1.2),
    "lisbon": (60, 1.1),
    "marrakech": (40, 0.9),
}
_COUNTRIES: Dict[str, Tuple[int, float]] = {
    "japan": (80, 1.2),
    "indonesia": (70, 1.1),
    "france": (75, 1.2),
    "usa": (90, 1.3),
    "uk": (70, 1.1),
    "uae": (60, 1.0),
    "thailand": (50, 1.0),
    "singapore": (60, 1.1),
    "portugal": (30, 0.8),
    "morocco": (20, 0.7),
}
_DEFAULT_CHARACTERISTICS = (50, 1.0)

_THEME_MULTIPLIERS: Dict[str, float] = {
    "photography": 1.3,
    "food": 1.2,
    "travel": 1.1,
    "lifestyle": 1.1,
    "adventure": 1.0,
    "culture": 0.9,
    "luxury": 0.8,
    "spiritual": 0.7,
    "business": 0.6,
}
MAX_THEME_MULTIPLIER = 2.0

_REPRESENTATIVE_NAMES = ("LocalLens", "CityExplorer", "TravelPro", "ContentCreator", "VisualStory")
_REPRESENTATIVE_FOLLOWERS = (18500, 4200, 76000, 2300, 240000)

_NICHES = (
    (("food", "cooking"), "Food & Culinary"),
    (("photo",), "Photography"),
    (("travel",), "Travel"),
    (("lifestyle",), "Lifestyle"),
    (("adventure",), "Adventure"),
    (("culture",), "Culture"),
)


@dataclass
class CollaborationGate:
    show_collaboration: bool
    active_creators: int
    collaboration_score: float
    reason: Optional[str] = None


async def get_creator_data(
    destination: str,
    country: str,
    themes: Sequence[str] = (),
    content_type: str = "mixed",
    *,
    qloo: Optional[QlooClient] = None,
    youtube: Optional[YouTubeSearcher] = None,
) -> CreatorCommunityRecord:
    """Return the creator-community record for ``destination``. Never raises."""
    themes = [t for t in themes if t]
    qloo = qloo or QlooClient()
    youtube = youtube or YouTubeSearcher()

    record = await _qloo_tier(destination, country, themes, content_type, qloo)
    if record is not None and should_recommend_destination(record):
        return record

    record = await _social_tier(destination, themes, content_type, youtube)
    if record is not None and should_recommend_destination(record):
        return record

    record = estimate_creator_community(destination, country, themes)
    if should_recommend_destination(record):
        logger.info("Using estimated creator community for %s (%d)", destination, record.total_active_creators)
    else:
        logger.info(
            "Insufficient creator community for %s (%d < %d)",
            destination,
            record.total_active_creators,
            MINIMUM_CREATORS,
        )
    return record


def should_recommend_destination(record: CreatorCommunityRecord) -> bool:
    return record.total_active_creators >= record.minimum_threshold


async def _qloo_tier(
    destination: str,
    country: str,
    themes: List[str],
    content_type: str,
    qloo: QlooClient,
) -> Optional[CreatorCommunityRecord]:
    if not qloo.is_configured():
        return None
    try:
        entities = await qloo.fetch_creators(destination, country, themes)
    except Exception:
        logger.warning("Taste-graph creator tier failed for %s", destination, exc_info=True)
        return None
    if not entities:
        return None
    creators = [_creator_from_entity(entity, themes) for entity in entities]
    logger.info("Taste-graph tier found %d creators for %s", len(creators), destination)
    return _record(
        total=len(creators),
        creators=creators[:MAX_REPRESENTATIVES],
        opportunities=collaboration_opportunities(themes, content_type),
        source="qloo-api",
    )


async def _social_tier(
    destination: str,
    themes: List[str],
    content_type: str,
    youtube: YouTubeSearcher,
) -> Optional[CreatorCommunityRecord]:
    if not youtube.is_configured():
        return None
    queries = [
        f"{destination} travel vlog",
        f"{destination} {themes[0] if themes else 'travel'}",
        f"{content_type} {destination}",
    ]
    results = await asyncio.gather(*[youtube.search_channels(q) for q in queries], return_exceptions=True)

    seen: Dict[str, Channel] = {}
    for query, result in zip(queries, results):
        if isinstance(result, Exception):
            logger.warning("Channel search failed for '%s': %s", query, result)
            continue
        for channel in result:
            if (channel.subscribers or 0) <= MIN_CHANNEL_SUBSCRIBERS:
                continue
            seen.setdefault(channel.channel_id, channel)
    if not seen:
        return None

    channels = sorted(seen.values(), key=lambda c: c.subscribers or 0, reverse=True)
    creators = [
        CreatorProfile(
            name=channel.title,
            followers=format_follower_count(channel.subscribers or 0),
            niche=infer_niche(channel.description, themes),
            collaboration="YouTube partnerships available",
            platform="YouTube",
        )
        for channel in channels
    ]
    logger.info("Channel search tier found %d qualifying channels for %s", len(creators), destination)
    return _record(
        total=len(creators),
        creators=creators[:MAX_REPRESENTATIVES],
        opportunities=collaboration_opportunities(themes, content_type),
        source="social-apis",
    )


def estimate_creator_community(destination: str, country: str, themes: Sequence[str]) -> CreatorCommunityRecord:
    """Heuristic tier: ``base * themeMultiplier * popularityFactor``.

    Estimates that reach half the threshold are floored up to it; smaller ones
    stay below and come back ``insufficient``.
    """
    base, popularity = destination_characteristics(destination, country)
    multiplier = theme_multiplier(themes)
    estimate = int(base * multiplier * popularity)
    logger.debug(
        "Creator estimate for %s: base=%d theme=%.2f popularity=%.2f -> %d",
        destination,
        base,
        multiplier,
        popularity,
        estimate,
    )
    if estimate >= MINIMUM_CREATORS / 2:
        count = max(MINIMUM_CREATORS, estimate)
        return _record(
            total=count,
            creators=_representative_creators(destination, themes, min(count, 3)),
            opportunities=collaboration_opportunities(themes, "mixed"),
            source="estimated",
        )
    return _record(total=estimate, creators=[], opportunities=[], source="insufficient")


def destination_characteristics(destination: str, country: str) -> Tuple[int, float]:
    dest = (destination or "").split(",")[0].strip().lower()
    if dest in _MAJOR_DESTINATIONS:
        return _MAJOR_DESTINATIONS[dest]
    ctry = (country or "").strip().lower()
    if ctry in _COUNTRIES:
        return _COUNTRIES[ctry]
    return _DEFAULT_CHARACTERISTICS


def theme_multiplier(themes: Iterable[str]) -> float:
    multiplier = 1.0
    for theme in themes:
        multiplier *= _THEME_MULTIPLIERS.get((theme or "").lower(), 1.0)
    return min(multiplier, MAX_THEME_MULTIPLIER)


def format_follower_count(count: int) -> str:
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M"
    if count >= 1000:
        return f"{count / 1000:.1f}K"
    return str(count)


def parse_follower_count(followers: object) -> int:
    """Parse strings such as ``15K`` or ``1.2M``; anything unreadable is 0."""
    if not isinstance(followers, str) or not followers:
        return 0
    text = followers.lower().replace(",", "").strip()
    try:
        if "m" in text:
            return int(float(text.replace("m", "")) * 1_000_000)
        if "k" in text:
            return int(float(text.replace("k", "")) * 1000)
        return int(text)
    except ValueError:
        return 0


def infer_niche(description: str, themes: Sequence[str]) -> str:
    lowered = (description or "").lower()
    for needles, niche in _NICHES:
        if any(needle in lowered for needle in needles):
            return niche
    return themes[0] if themes else "General"


def collaboration_opportunities(themes: Sequence[str], content_type: str) -> List[str]:
    lowered_themes = [t.lower() for t in themes]
    kind = (content_type or "").lower()
    opportunities: List[str] = []
    if "photography" in lowered_themes:
        opportunities.append("Photo walks and workshops")
    if "food" in lowered_themes:
        opportunities.append("Food tours and restaurant collaborations")
    if "adventure" in lowered_themes:
        opportunities.append("Adventure activity partnerships")
    if "video" in kind:
        opportunities.append("Video collaboration opportunities")
    if "blog" in kind:
        opportunities.append("Guest blogging exchanges")
    opportunities += ["Cross-promotion partnerships", "Local creator meetups"]
    return list(dict.fromkeys(opportunities))[:4]


def creator_insights(record: CreatorCommunityRecord) -> str:
    count = record.total_active_creators
    if record.data_source == "insufficient":
        return (
            f"Limited creator community ({count} active creators). "
            "Consider destinations with stronger creator networks."
        )
    if record.data_source == "estimated":
        return f"Estimated {count} active creators. Verification recommended before travel."
    return f"Verified {count} active creators with collaboration opportunities."


def collaboration_gate(record: CreatorCommunityRecord) -> CollaborationGate:
    """Decide whether the collaboration section is worth showing.

    Live sources count representative creators with at least 1000 followers;
    estimated sources assume a fixed share of the reported community is active.
    """
    if record.data_source in ("qloo-api", "social-apis"):
        active = sum(
            1 for creator in record.top_creators
            if parse_follower_count(creator.followers) >= MIN_CHANNEL_SUBSCRIBERS
        )
    else:
        estimated = int(record.total_active_creators * ESTIMATED_ACTIVE_RATIO)
        active = min(estimated, len(record.top_creators), record.total_active_creators)

    if active < MIN_COLLABORATION_CREATORS:
        return CollaborationGate(
            show_collaboration=False,
            active_creators=active,
            collaboration_score=0.0,
            reason=f"Only {active} active creators found (minimum {MIN_COLLABORATION_CREATORS} required)",
        )
    return CollaborationGate(
        show_collaboration=True,
        active_creators=active,
        collaboration_score=collaboration_score(active),
    )


def collaboration_score(active: int) -> float:
    if active < MIN_COLLABORATION_CREATORS:
        return 0.0
    if active <= 5:
        return 0.5 + (active - 2) * 0.1 / 3
    if active <= 15:
        return 0.7 + (active - 6) * 0.15 / 9
    return min(0.85 + (active - 16) * 0.15 / 20, 1.0)


def _creator_from_entity(entity: QlooEntity, themes: Sequence[str]) -> CreatorProfile:
    tag_names = [tag.name for tag in (entity.tags or []) if tag.name]
    return CreatorProfile(
        name=entity.name,
        followers=format_follower_count(entity.followers) if entity.followers is not None else "n/a",
        niche=tag_names[0] if tag_names else (themes[0] if themes else "Travel"),
        collaboration="Contact via taste-graph profile",
        platform="Qloo",
    )


def _representative_creators(destination: str, themes: Sequence[str], count: int) -> List[CreatorProfile]:
    short = destination.split(",")[0].replace(" ", "")
    creators: List[CreatorProfile] = []
    for index in range(count):
        creators.append(
            CreatorProfile(
                name=f"{_REPRESENTATIVE_NAMES[index % len(_REPRESENTATIVE_NAMES)]}{short}{index + 1}",
                followers=format_follower_count(_REPRESENTATIVE_FOLLOWERS[index % len(_REPRESENTATIVE_FOLLOWERS)]),
                niche=themes[0] if themes else "Travel",
            )
        )
    return creators


def _record(
    *,
    total: int,
    creators: List[CreatorProfile],
    opportunities: List[str],
    source: str,
) -> CreatorCommunityRecord:
    return CreatorCommunityRecord(
        total_active_creators=total,
        top_creators=creators,
        collaboration_opportunities=opportunities,
        minimum_threshold=MINIMUM_CREATORS,
        data_source=source,
        last_updated=datetime.now(timezone.utc).isoformat(),
    )
