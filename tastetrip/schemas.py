from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DIMENSIONS: Tuple[str, ...] = ("adventure", "culture", "luxury", "food", "nature", "urban", "budget")

DataSource = Literal["qloo-api", "social-apis", "estimated", "insufficient", "static"]
OutcomeStatus = Literal["accepted", "accepted_with_advisory", "rejected"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ------- Profile models -------
class SocialLink(_CamelModel):
    platform: str
    url: str = ""


class WebsiteProfile(_CamelModel):
    url: str = ""
    themes: List[str] = Field(default_factory=list)
    hints: List[str] = Field(default_factory=list)
    content_type: str = ""
    social_links: List[SocialLink] = Field(default_factory=list)
    title: Optional[str] = None
    description: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    audience_location: Optional[str] = None


class TasteVector(BaseModel):
    """Seven-dimension affinity profile. Every value sits inside [0.05, 0.95]."""

    model_config = ConfigDict(frozen=True)

    adventure: float = Field(..., ge=0.05, le=0.95)
    culture: float = Field(..., ge=0.05, le=0.95)
    luxury: float = Field(..., ge=0.05, le=0.95)
    food: float = Field(..., ge=0.05, le=0.95)
    nature: float = Field(..., ge=0.05, le=0.95)
    urban: float = Field(..., ge=0.05, le=0.95)
    budget: float = Field(..., ge=0.05, le=0.95)

    def as_dict(self) -> Dict[str, float]:
        return {dim: getattr(self, dim) for dim in DIMENSIONS}


class ProfileMetadata(_CamelModel):
    source: str = "website-analysis"
    data_richness: int = 0
    profile_completeness: float = 0.0
    confidence_level: Literal["High", "Medium", "Low"] = "Low"
    entity_count: int = 0


class TasteProfile(_CamelModel):
    taste_vector: TasteVector
    confidence: float
    cultural_affinities: List[str] = Field(default_factory=list)
    metadata: ProfileMetadata = ProfileMetadata()


# ------- Taste-graph payloads -------
class QlooTag(_CamelModel):
    name: str = ""


class QlooQuery(_CamelModel):
    affinity: Optional[float] = None


class QlooEntity(_CamelModel):
    """One taste-graph entity. Absent fields stay None; empty lists stay empty."""

    name: str
    tags: Optional[List[QlooTag]] = None
    popularity: Optional[float] = None
    query: Optional[QlooQuery] = None
    country: Optional[str] = None
    followers: Optional[int] = None


# ------- Scoring models -------
class CandidateDestination(_CamelModel):
    name: str
    country: str
    attributes: Dict[str, float] = Field(default_factory=dict)
    popularity: Optional[float] = None
    source: str = "catalogue"
    reason: Optional[str] = None


class ScoreComponent(_CamelModel):
    score: float
    weight: float
    contribution: float


class CompositeScore(_CamelModel):
    score: float                     # 0-1 after bonus and re-clamp
    total: float                     # 0-100, one decimal
    breakdown: Dict[str, ScoreComponent] = Field(default_factory=dict)
    bonus: float = 0.0


# ------- Creator community -------
class CreatorProfile(_CamelModel):
    name: str
    followers: str
    niche: str = "Travel"
    collaboration: str = "Contact for partnerships"
    platform: str = "Multi-platform"


class CreatorCommunityRecord(_CamelModel):
    total_active_creators: int = 0
    top_creators: List[CreatorProfile] = Field(default_factory=list)
    collaboration_opportunities: List[str] = Field(default_factory=list)
    minimum_threshold: int = 10
    data_source: DataSource = "insufficient"
    last_updated: str = ""


# ------- Question flow -------
class QuestionContext(_CamelModel):
    themes: List[str] = Field(default_factory=list)
    content_type: str = ""
    hints: List[str] = Field(default_factory=list)
    social_links: List[SocialLink] = Field(default_factory=list)
    audience_location: Optional[str] = None
    budget: Optional[int] = None
    currency: Optional[str] = None
    duration: Optional[int] = None
    daily_budget: Optional[int] = None
    previous_answers: Dict[str, Any] = Field(default_factory=dict)


class Question(_CamelModel):
    id: str
    number: int
    text: str
    options: List[str] = Field(default_factory=list)
    multi_select: bool = False
    budget_sensitive: bool = False


class AnswerOutcome(_CamelModel):
    status: OutcomeStatus
    context: QuestionContext
    message: Optional[str] = None
    advisory: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.status != "rejected"


class UserPreferences(_CamelModel):
    budget: Optional[float] = None
    currency: Optional[str] = None
    duration: Optional[int] = None
    daily_budget: Optional[float] = None
    content_format: Optional[str] = None
    climate: List[str] = Field(default_factory=list)

    @classmethod
    def from_context(cls, context: QuestionContext) -> "UserPreferences":
        answers = context.previous_answers
        climate = answers.get("climate") or []
        if isinstance(climate, str):
            climate = [climate]
        return cls(
            budget=context.budget,
            currency=context.currency,
            duration=context.duration,
            daily_budget=context.daily_budget,
            content_format=answers.get("contentFormat"),
            climate=list(climate),
        )


class ValueChange(_CamelModel):
    old: Any = None
    new: Any = None


class PreferenceDelta(_CamelModel):
    changed: Dict[str, ValueChange] = Field(default_factory=dict)
    added: Dict[str, Any] = Field(default_factory=dict)
    removed: Dict[str, Any] = Field(default_factory=dict)

    def keys(self) -> List[str]:
        return [*self.changed.keys(), *self.added.keys(), *self.removed.keys()]

    @property
    def total_changes(self) -> int:
        return len(self.changed) + len(self.added) + len(self.removed)


# ------- Recommendation output -------
class BudgetEstimate(_CamelModel):
    range: str
    daily_range: str
    tier: str
    breakdown: Dict[str, str] = Field(default_factory=dict)


class CreatorDetails(_CamelModel):
    total_active_creators: int = 0
    top_creators: List[CreatorProfile] = Field(default_factory=list)
    data_source: DataSource = "estimated"
    minimum_threshold: int = 10
    collaboration_opportunities: List[str] = Field(default_factory=list)
    insights: str = ""
    show_collaboration: bool = False
    collaboration_score: float = 0.0


class Engagement(_CamelModel):
    potential: str
    reason: str


class Recommendation(_CamelModel):
    destination: str
    country: str
    match_score: float
    budget: BudgetEstimate
    creator_details: CreatorDetails
    tags: List[str] = Field(default_factory=list)
    best_months: List[str] = Field(default_factory=list)
    highlights: List[str] = Field(default_factory=list)
    engagement: Optional[Engagement] = None
    score_breakdown: Dict[str, ScoreComponent] = Field(default_factory=dict)
    confidence: float = 0.6


class ResultMetadata(_CamelModel):
    fallback: bool
    source: str
    operation: str = "recommendations"
    generated_at: str
    total_destinations: int = 0
    confidence: Optional[float] = None
    error: Optional[str] = None


class RecommendationResult(_CamelModel):
    recommendations: List[Recommendation] = Field(default_factory=list)
    metadata: ResultMetadata


class RecommendationRequest(_CamelModel):
    profile: WebsiteProfile
    preferences: Optional[UserPreferences] = None
    limit: int = Field(5, ge=1, le=20)
