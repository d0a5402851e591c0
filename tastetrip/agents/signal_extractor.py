"""Turn website-derived facts into weighted taste-vector signals."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Literal, Optional, Tuple
import logging
import os

from tastetrip.schemas import WebsiteProfile

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TASTETRIP_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

SignalCategory = Literal["theme", "hint", "content-type", "social-platform", "metadata-text", "audience-location"]

THEME_WEIGHT = 0.25
HINT_WEIGHT = 0.15
CONTENT_TYPE_WEIGHT = 0.3
SOCIAL_WEIGHT = 0.1
METADATA_WEIGHT = 0.1
AUDIENCE_WEIGHT = 0.1

# Application order is part of the contract: accumulation clamps after every step.
CATEGORY_ORDER: Tuple[SignalCategory, ...] = (
    "theme",
    "content-type",
    "hint",
    "social-platform",
    "metadata-text",
    "audience-location",
)

TAXONOMY: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("adventure", ("adventure", "hiking", "outdoor", "extreme", "sport", "climbing")),
    ("culture", ("culture", "art", "history", "museum", "heritage", "tradition")),
    ("luxury", ("luxury", "premium", "high-end", "exclusive", "vip", "first-class")),
    ("food", ("food", "culinary", "restaurant", "cooking", "cuisine", "chef")),
    ("nature", ("nature", "wildlife", "landscape", "beach", "mountain", "forest")),
    ("urban", ("urban", "city", "metropolitan", "nightlife", "shopping", "architecture")),
    ("budget", ("budget", "backpack", "cheap", "hostel", "frugal", "economical")),
)
CREATOR_KEYWORDS: Tuple[str, ...] = ("productivity", "educational", "tech", "business", "entrepreneur", "digital nomad")

_CONTENT_TYPE_RULES: Tuple[Tuple[Tuple[str, ...], Tuple[Tuple[str, float], ...]], ...] = (
    (("photography", "visual"), (("culture", 0.3), ("nature", 0.25), ("urban", 0.2))),
    (("food", "culinary"), (("food", 0.4), ("culture", 0.3), ("urban", 0.2))),
    (("luxury", "lifestyle"), (("luxury", 0.4), ("urban", 0.3), ("culture", 0.2))),
    (("travel", "adventure"), (("adventure", 0.4), ("nature", 0.3), ("culture", 0.2))),
    (("productivity", "educational", "tech"), (("urban", 0.4), ("culture", 0.3), ("luxury", 0.2))),
    (("wellness", "health"), (("nature", 0.4), ("culture", 0.2), ("luxury", 0.2))),
    (("business", "entrepreneur"), (("urban", 0.4), ("luxury", 0.3), ("culture", 0.2))),
)

_SOCIAL_RULES = {
    "instagram": (("culture", 0.1), ("food", 0.1), ("luxury", 0.08)),
    "youtube": (("culture", 0.12), ("adventure", 0.1)),
    "tiktok": (("urban", 0.1), ("culture", 0.08)),
    "linkedin": (("urban", 0.12), ("luxury", 0.1)),
}

_METADATA_KEYWORDS = {
    "productivity": ("productivity", "efficiency", "workflow", "optimization"),
    "education": ("education", "learning", "tutorial", "course", "teaching"),
    "business": ("business", "entrepreneur", "startup", "growth", "strategy"),
    "tech": ("technology", "software", "digital", "innovation", "ai"),
    "lifestyle": ("lifestyle", "wellness", "health", "mindfulness", "balance"),
}

_AUDIENCE_RULES: Tuple[Tuple[Tuple[str, ...], Tuple[Tuple[str, float], ...]], ...] = (
    (("north america", "usa", "canada"), (("adventure", 0.05), ("urban", 0.05), ("luxury", 0.04))),
    (("europe",), (("culture", 0.06), ("luxury", 0.05), ("urban", 0.04))),
    (("asia",), (("culture", 0.05), ("food", 0.06), ("urban", 0.04))),
    (("global", "worldwide"), (("culture", 0.03), ("urban", 0.03), ("adventure", 0.03))),
)


@dataclass
class Signal:
    """A partial contribution to the taste vector.

    ``deltas`` are raw category deltas; the category weight is applied by
    :meth:`weighted` so the builder never has to know per-category constants.
    ``floors`` hold ``(dimension, reduction, minimum)`` triples for categories
    that pull a dimension down instead of up.
    """

    category: SignalCategory
    weight: float
    deltas: List[Tuple[str, float]] = field(default_factory=list)
    floors: List[Tuple[str, float, float]] = field(default_factory=list)
    label: str = ""

    def weighted(self) -> List[Tuple[str, float]]:
        return [(dim, delta * self.weight) for dim, delta in self.deltas]


def extract_signals(profile: WebsiteProfile) -> List[Signal]:
    """Return every signal for ``profile`` in application order."""
    signals: List[Signal] = []
    signals.extend(theme_signals(profile.themes))
    content = content_type_signal(profile.content_type)
    if content is not None:
        signals.append(content)
    signals.extend(hint_signals(profile.hints))
    signals.extend(social_signals(link.platform for link in profile.social_links))
    metadata = metadata_signal(profile.title, profile.description, profile.keywords)
    if metadata is not None:
        signals.append(metadata)
    audience = audience_signal(profile.audience_location)
    if audience is not None:
        signals.append(audience)
    logger.debug(
        "Extracted %d signals (%s)",
        len(signals),
        ", ".join(sorted({signal.category for signal in signals})) or "none",
    )
    return signals


def theme_signals(themes: Iterable[str]) -> List[Signal]:
    signals: List[Signal] = []
    for theme in themes:
        lowered = (theme or "").lower()
        if not lowered:
            continue
        for dimension, keywords in TAXONOMY:
            if not _matches(lowered, keywords):
                continue
            signal = Signal(category="theme", weight=THEME_WEIGHT, label=theme)
            if dimension == "adventure":
                signal.deltas = [("adventure", 1.0), ("nature", 0.6)]
            elif dimension == "food":
                signal.deltas = [("food", 1.0), ("culture", 0.4)]
            elif dimension == "luxury":
                signal.deltas = [("luxury", 1.0)]
                signal.floors = [("budget", 0.5, 0.1)]
            elif dimension == "budget":
                signal.deltas = [("budget", 1.0)]
                signal.floors = [("luxury", 0.6, 0.1)]
            else:
                signal.deltas = [(dimension, 1.0)]
            signals.append(signal)
        if _matches(lowered, CREATOR_KEYWORDS):
            signals.append(
                Signal(
                    category="theme",
                    weight=THEME_WEIGHT,
                    deltas=[("urban", 0.8), ("culture", 0.6), ("luxury", 0.4)],
                    label=theme,
                )
            )
    return signals


def content_type_signal(content_type: Optional[str]) -> Optional[Signal]:
    lowered = (content_type or "").lower()
    if not lowered:
        return None
    for keywords, deltas in _CONTENT_TYPE_RULES:
        if _matches(lowered, keywords):
            return Signal(
                category="content-type",
                weight=CONTENT_TYPE_WEIGHT,
                deltas=list(deltas),
                label=content_type or "",
            )
    return None


def hint_signals(hints: Iterable[str]) -> List[Signal]:
    """One signal per hint carrying every taxonomy category the hint mentions."""
    signals: List[Signal] = []
    for hint in hints:
        lowered = (hint or "").lower()
        deltas = [(dimension, 0.15) for dimension in matched_categories(lowered)]
        if deltas:
            signals.append(Signal(category="hint", weight=HINT_WEIGHT, deltas=deltas, label=hint))
    return signals


def social_signals(platforms: Iterable[str]) -> List[Signal]:
    """Platforms are summed into a single signal before weighting."""
    totals: Dict[str, float] = {}
    labels: List[str] = []
    for platform in platforms:
        key = (platform or "").lower()
        for name, deltas in _SOCIAL_RULES.items():
            if name in key:
                labels.append(name)
                for dimension, delta in deltas:
                    totals[dimension] = totals.get(dimension, 0.0) + delta
                break
    if not totals:
        return []
    return [
        Signal(
            category="social-platform",
            weight=SOCIAL_WEIGHT,
            deltas=list(totals.items()),
            label=",".join(labels),
        )
    ]


def metadata_signal(
    title: Optional[str],
    description: Optional[str],
    keywords: Iterable[str] | None,
) -> Optional[Signal]:
    text = " ".join([title or "", description or "", " ".join(keywords or [])]).lower().strip()
    if not text:
        return None
    totals: Dict[str, float] = {}
    for group, patterns in _METADATA_KEYWORDS.items():
        if not _matches(text, patterns):
            continue
        if group in ("productivity", "business", "tech"):
            pairs = (("urban", 0.08), ("luxury", 0.06))
        elif group == "education":
            pairs = (("culture", 0.08), ("urban", 0.06))
        else:
            pairs = (("luxury", 0.08), ("nature", 0.06))
        for dimension, delta in pairs:
            totals[dimension] = totals.get(dimension, 0.0) + delta
    if not totals:
        return None
    return Signal(category="metadata-text", weight=METADATA_WEIGHT, deltas=list(totals.items()), label="metadata")


def audience_signal(audience_location: Optional[str]) -> Optional[Signal]:
    location = (audience_location or "").lower()
    if not location:
        return None
    for needles, deltas in _AUDIENCE_RULES:
        if _matches(location, needles):
            return Signal(category="audience-location", weight=AUDIENCE_WEIGHT, deltas=list(deltas), label=location)
    return None


def matched_categories(text: str) -> List[str]:
    """Return the taxonomy dimensions whose keywords occur in ``text``."""
    lowered = (text or "").lower()
    return [dimension for dimension, keywords in TAXONOMY if _matches(lowered, keywords)]


def _matches(text: str, keywords: Iterable[str]) -> bool:
    return any(keyword in text for keyword in keywords)
