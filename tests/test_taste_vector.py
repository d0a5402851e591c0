import pytest

from tastetrip.agents.signal_extractor import (
    content_type_signal,
    extract_signals,
    hint_signals,
    social_signals,
)
from tastetrip.agents.taste_vector import (
    BASE_VECTOR,
    blend_vectors,
    build_taste_profile,
    build_taste_vector,
    calculate_confidence,
    vector_from_entities,
)
from tastetrip.schemas import DIMENSIONS, QlooEntity, TasteVector, WebsiteProfile


def _rich_profile() -> WebsiteProfile:
    return WebsiteProfile.model_validate(
        {
            "url": "https://example.com",
            "themes": ["adventure", "food", "photography", "luxury", "culture", "budget", "nightlife"],
            "hints": ["content creator", "hiking and mountain trips", "street food", "museum tours", "hostel reviews"],
            "contentType": "Travel photography",
            "socialLinks": [
                {"platform": "Instagram", "url": "https://instagram.com/x"},
                {"platform": "YouTube", "url": "https://youtube.com/x"},
                {"platform": "TikTok", "url": "https://tiktok.com/x"},
                {"platform": "LinkedIn", "url": "https://linkedin.com/x"},
            ],
            "title": "Wandering Lens travel studio",
            "description": "Productivity tips, business strategy and lifestyle wellness for creators who travel the world.",
            "keywords": ["travel", "education", "technology", "wellness"],
            "audienceLocation": "Global",
        }
    )


def test_empty_profile_keeps_base_vector_and_floor_confidence():
    vector, confidence = build_taste_vector(WebsiteProfile())

    assert vector.as_dict() == pytest.approx(BASE_VECTOR)
    assert confidence == pytest.approx(0.3)


def test_adventure_theme_raises_adventure_and_nature():
    vector, _ = build_taste_vector(WebsiteProfile(themes=["adventure"]))

    assert vector.adventure == pytest.approx(0.45)
    assert vector.nature == pytest.approx(0.35)
    assert vector.culture == pytest.approx(BASE_VECTOR["culture"])


def test_luxury_theme_pulls_budget_down():
    vector, _ = build_taste_vector(WebsiteProfile(themes=["luxury"]))

    assert vector.luxury == pytest.approx(0.5)
    assert vector.budget == pytest.approx(0.475)


def test_rich_profile_stays_within_bounds():
    vector, confidence = build_taste_vector(_rich_profile())

    for dim in DIMENSIONS:
        assert 0.05 <= getattr(vector, dim) <= 0.95
    assert 0.3 <= confidence <= 0.92


def test_confidence_is_capped():
    assert calculate_confidence(_rich_profile()) == pytest.approx(0.92)


def test_adventure_profile_beats_luxury_profile_outdoors():
    adventure, _ = build_taste_vector(WebsiteProfile(themes=["adventure", "hiking", "nature"]))
    luxury, _ = build_taste_vector(WebsiteProfile(themes=["luxury", "premium"]))

    assert adventure.adventure > luxury.adventure
    assert adventure.nature > luxury.nature
    assert luxury.luxury > adventure.luxury


def test_signals_follow_application_order():
    profile = WebsiteProfile.model_validate(
        {
            "themes": ["food"],
            "hints": ["culture"],
            "contentType": "photography",
            "socialLinks": [{"platform": "instagram"}],
            "description": "A learning and tutorial hub",
            "audienceLocation": "Europe",
        }
    )

    categories = [signal.category for signal in extract_signals(profile)]

    assert categories == [
        "theme",
        "content-type",
        "hint",
        "social-platform",
        "metadata-text",
        "audience-location",
    ]


def test_only_first_content_type_rule_applies():
    signal = content_type_signal("food photography")

    # photography is declared before food
    assert signal is not None
    assert signal.deltas[0] == ("culture", 0.3)
    assert content_type_signal("knitting") is None


def test_hints_and_social_platforms_are_weighted():
    hint = hint_signals(["beach and city breaks"])[0]
    assert dict(hint.weighted()) == pytest.approx({"nature": 0.0225, "urban": 0.0225})

    social = social_signals(["Instagram", "instagram", "LinkedIn"])
    assert len(social) == 1
    weighted = dict(social[0].weighted())
    assert weighted["food"] == pytest.approx(0.02)
    assert weighted["urban"] == pytest.approx(0.012)


def test_entity_blend_is_dominated_by_taste_graph():
    entities = [
        QlooEntity.model_validate(
            {"name": "Reykjavik", "tags": [{"name": "Scenic nature"}], "popularity": 0.9, "query": {"affinity": 0.7}}
        )
    ]
    entity_vector = vector_from_entities(entities, ["photography"])
    assert entity_vector.nature == pytest.approx(0.2 + 0.8 * 0.3)

    website = TasteVector(**{dim: 0.05 for dim in DIMENSIONS})
    blended = blend_vectors(entity_vector, website)
    assert blended.nature == pytest.approx(entity_vector.nature * 0.9 + 0.005)


def test_taste_profile_reports_source_and_metadata():
    profile = _rich_profile()

    local = build_taste_profile(profile)
    assert local.metadata.source == "website-analysis"
    assert local.metadata.profile_completeness == pytest.approx(1.0)
    assert local.metadata.confidence_level == "High"
    assert len(local.cultural_affinities) <= 8

    entity = QlooEntity(name="Tokyo", popularity=0.8)
    live = build_taste_profile(profile, [entity])
    assert live.metadata.source == "qloo-api"
    assert live.metadata.entity_count == 1


def test_entity_payload_keeps_absent_and_empty_apart():
    absent = QlooEntity.model_validate({"name": "Lima"})
    empty = QlooEntity.model_validate({"name": "Lima", "tags": []})

    assert absent.tags is None
    assert empty.tags == []
