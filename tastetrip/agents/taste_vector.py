"""Taste vector construction and confidence scoring."""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import logging
import os

from tastetrip.agents.signal_extractor import Signal, extract_signals, theme_signals
from tastetrip.schemas import (
    DIMENSIONS,
    ProfileMetadata,
    QlooEntity,
    TasteProfile,
    TasteVector,
    WebsiteProfile,
)

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TASTETRIP_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

BASE_VECTOR: Dict[str, float] = {
    "adventure": 0.2,
    "culture": 0.3,
    "luxury": 0.25,
    "food": 0.2,
    "nature": 0.2,
    "urban": 0.4,
    "budget": 0.6,
}

VECTOR_FLOOR = 0.05
VECTOR_CEILING = 0.95
CONFIDENCE_FLOOR = 0.3
CONFIDENCE_CEILING = 0.92

ENTITY_BLEND = 0.9
AFFINITY_THRESHOLD = 0.4

_ENTITY_TAG_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("adventure", ("outdoor", "adventure")),
    ("culture", ("culture", "art", "history")),
    ("luxury", ("luxury", "premium")),
    ("food", ("food", "culinary")),
    ("nature", ("nature", "scenic", "beach")),
    ("urban", ("urban", "city")),
)

_GENERIC_THEMES = ("travel", "lifestyle", "blog")
_CREATOR_HINTS = ("content creator", "influencer", "youtuber", "blogger", "educator", "entrepreneur")
_SPECIFIC_CONTENT_TYPES = ("productivity", "educational", "business", "tech", "culinary", "photography")
_MAJOR_PLATFORMS = ("youtube", "instagram", "tiktok", "linkedin")

_DIMENSION_AFFINITIES = {
    "adventure": ["Adventure Sports", "Outdoor Activities", "Extreme Experiences"],
    "culture": ["Cultural Heritage", "Museums & Galleries", "Local Traditions", "Historical Sites"],
    "luxury": ["Luxury Travel", "Fine Dining", "Premium Accommodations", "Exclusive Experiences"],
    "food": ["Culinary Exploration", "Local Cuisine", "Food Markets", "Cooking Experiences"],
    "nature": ["Natural Wonders", "Wildlife Encounters", "Scenic Landscapes", "Eco-Tourism"],
    "urban": ["Urban Exploration", "Modern Architecture", "City Culture", "Metropolitan Life"],
}

_REGIONAL_AFFINITIES = (
    (("asia", "japanese", "korean"), "East Asian Culture"),
    (("european", "mediterranean"), "European Heritage"),
    (("latin", "south american"), "Latin American Culture"),
    (("african", "middle eastern"), "African & Middle Eastern Culture"),
)


def apply_signals(signals: Iterable[Signal], base: Optional[Dict[str, float]] = None) -> Dict[str, float]:
    """Greedy clamped accumulation: every addition is capped at 1.0 before the next."""
    values = dict(base or BASE_VECTOR)
    for signal in signals:
        for dimension, delta in signal.weighted():
            values[dimension] = min(values[dimension] + delta, 1.0)
        for dimension, reduction, minimum in signal.floors:
            values[dimension] = max(values[dimension] - reduction * signal.weight, minimum)
    return values


def finalize_vector(values: Dict[str, float]) -> TasteVector:
    return TasteVector(**{dim: _clamp(values.get(dim, BASE_VECTOR[dim])) for dim in DIMENSIONS})


def build_taste_vector(profile: WebsiteProfile) -> Tuple[TasteVector, float]:
    """Return the website-derived taste vector and its confidence."""
    vector = finalize_vector(apply_signals(extract_signals(profile)))
    confidence = calculate_confidence(profile)
    logger.info(
        "Built taste vector from %d themes, %d hints, content type '%s' (confidence %.2f)",
        len(profile.themes),
        len(profile.hints),
        profile.content_type or "-",
        confidence,
    )
    return vector, confidence


def vector_from_entities(entities: Sequence[QlooEntity], themes: Iterable[str]) -> TasteVector:
    """Refine a theme-only vector with taste-graph entity tags."""
    values = apply_signals(theme_signals(themes))
    for entity in entities:
        popularity = entity.popularity or 0.0
        affinity = (entity.query.affinity if entity.query else None) or 0.0
        weight = (popularity + affinity) / 2
        for tag in entity.tags or []:
            name = (tag.name or "").lower()
            for dimension, keywords in _ENTITY_TAG_KEYWORDS:
                if any(keyword in name for keyword in keywords):
                    values[dimension] = min(values[dimension] + weight * 0.3, 1.0)
    return finalize_vector(values)


def blend_vectors(entity_vector: TasteVector, website_vector: TasteVector, *, weight: float = ENTITY_BLEND) -> TasteVector:
    entity = entity_vector.as_dict()
    website = website_vector.as_dict()
    return finalize_vector(
        {dim: entity[dim] * weight + website[dim] * (1 - weight) for dim in DIMENSIONS}
    )


def calculate_confidence(profile: WebsiteProfile) -> float:
    confidence = CONFIDENCE_FLOOR
    themes = [t for t in profile.themes if t]
    hints = [h for h in profile.hints if h]

    if themes:
        confidence += min(len(themes) * 0.04, 0.15)
        specific = [t for t in themes if len(t) > 5 and t.lower() not in _GENERIC_THEMES]
        confidence += min(len(specific) * 0.02, 0.1)

    if hints:
        confidence += min(len(hints) * 0.03, 0.12)
        if any(marker in hint.lower() for hint in hints for marker in _CREATOR_HINTS):
            confidence += 0.08

    content_type = profile.content_type or ""
    if len(content_type) > 3:
        confidence += 0.08
        if any(kind in content_type.lower() for kind in _SPECIFIC_CONTENT_TYPES):
            confidence += 0.07

    links = profile.social_links
    if links:
        confidence += min(len(links) * 0.03, 0.12)
        major = [
            link for link in links
            if any(platform in link.platform.lower() for platform in _MAJOR_PLATFORMS)
        ]
        confidence += min(len(major) * 0.02, 0.08)

    metadata = 0.0
    if profile.title and len(profile.title) > 10:
        metadata += 0.03
    if profile.description and len(profile.description) > 50:
        metadata += 0.04
    if len(profile.keywords) > 3:
        metadata += 0.03
    confidence += min(metadata, 0.1)

    confidence += data_consistency(profile) * 0.1
    return max(CONFIDENCE_FLOOR, min(confidence, CONFIDENCE_CEILING))


def data_consistency(profile: WebsiteProfile) -> float:
    """Cross-field agreement between themes, content type, hints and platforms."""
    themes = [t.lower() for t in profile.themes if t]
    hints = [h.lower() for h in profile.hints if h]
    content_type = (profile.content_type or "").lower()
    consistency = 0.0

    if themes and content_type:
        lead = content_type.split(" ")[0]
        aligned = [t for t in themes if t in content_type or (lead and lead in t)]
        consistency += min(len(aligned) / len(themes), 0.3)

    if len(profile.social_links) > 1:
        consistency += 0.2

    if hints and themes:
        consistent = [h for h in hints if any(h in t or t in h for t in themes)]
        consistency += min(len(consistent) / max(len(hints), 1), 0.3)

    return min(consistency, 1.0)


def cultural_affinities(vector: TasteVector, themes: Iterable[str]) -> List[str]:
    affinities: List[str] = []
    values = vector.as_dict()
    for dimension, labels in _DIMENSION_AFFINITIES.items():
        if values[dimension] > AFFINITY_THRESHOLD:
            affinities.extend(labels)
    if vector.budget > 0.6:
        affinities.extend(["Budget Travel", "Local Transportation", "Authentic Experiences", "Value Travel"])

    theme_list = [t.lower() for t in themes if t]
    joined = " ".join(theme_list)
    for theme in theme_list:
        if "productivity" in theme or "education" in theme:
            affinities.extend(["Learning Experiences", "Educational Tourism", "Skill Development"])
        if "business" in theme or "entrepreneur" in theme:
            affinities.extend(["Business Networking", "Innovation Hubs", "Entrepreneurial Ecosystems"])
        if "tech" in theme or "digital" in theme:
            affinities.extend(["Tech Innovation", "Digital Nomad Hubs", "Future Cities"])
    for needles, label in _REGIONAL_AFFINITIES:
        if any(needle in joined for needle in needles):
            affinities.append(label)

    return _unique(affinities)[:8]


def profile_metadata(profile: WebsiteProfile, confidence: float, *, source: str, entity_count: int = 0) -> ProfileMetadata:
    groups = [
        bool(profile.themes),
        bool(profile.hints),
        bool(profile.content_type),
        bool(profile.social_links),
        bool(profile.title or profile.description or profile.keywords),
        bool(profile.audience_location),
    ]
    richness = len(profile.themes) + len(profile.hints) + len(profile.social_links) + len(profile.keywords)
    if confidence > 0.8:
        level = "High"
    elif confidence > 0.6:
        level = "Medium"
    else:
        level = "Low"
    return ProfileMetadata(
        source=source,
        data_richness=richness,
        profile_completeness=round(sum(groups) / len(groups), 2),
        confidence_level=level,
        entity_count=entity_count,
    )


def build_taste_profile(profile: WebsiteProfile, entities: Optional[Sequence[QlooEntity]] = None) -> TasteProfile:
    """Combine website analysis with optional taste-graph entities.

    With live entities the entity-derived vector dominates (90/10 blend); without
    them the website vector stands on its own.
    """
    website_vector, confidence = build_taste_vector(profile)
    if entities:
        vector = blend_vectors(vector_from_entities(entities, profile.themes), website_vector)
        source = "qloo-api"
        logger.info("Blended %d taste-graph entities into website vector", len(entities))
    else:
        vector = website_vector
        source = "website-analysis"
    return TasteProfile(
        taste_vector=vector,
        confidence=confidence,
        cultural_affinities=cultural_affinities(vector, profile.themes),
        metadata=profile_metadata(profile, confidence, source=source, entity_count=len(entities or [])),
    )


def _clamp(value: float) -> float:
    return max(VECTOR_FLOOR, min(VECTOR_CEILING, value))


def _unique(values: Iterable[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        out.append(value)
    return out
