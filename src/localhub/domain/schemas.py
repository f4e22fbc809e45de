"""Pydantic v2 schemas shared by the assistant core and the API layer."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from localhub.domain.enums import (
    AllowanceKind,
    ConversationRole,
    DateRange,
    ImageDimension,
    Likelihood,
    ModerationAction,
    ModerationCategory,
    Personality,
    PriceRange,
)

MIN_RESPONSE_LENGTH = 50
MAX_RESPONSE_LENGTH = 1000
DEFAULT_RESPONSE_LENGTH = 300
DEFAULT_MONTHLY_QUERIES = 500


# ---------------------------------------------------------------------------
# Records (read-only projections supplied by storage)
# ---------------------------------------------------------------------------


class EventRecord(BaseModel):
    """An event as the assistant core reads it."""

    model_config = ConfigDict(from_attributes=True)

    id: str | None = None
    title: str = ""
    description: str | None = None
    category: str | None = None
    location: str | None = None
    start_date: datetime | date | str | None = None
    start_time: str | None = None
    is_free: bool = False
    cost: float | None = None
    view_count: int = 0


class ListingRecord(BaseModel):
    """A community or marketplace listing as the assistant core reads it."""

    model_config = ConfigDict(from_attributes=True)

    id: str | None = None
    title: str = ""
    description: str | None = None
    category: str | None = None
    location: str | None = None
    listing_type: str | None = None
    start_date: datetime | date | str | None = None
    is_free: bool = False
    cost: float | None = None


class BusinessRecord(BaseModel):
    """A business profile row."""

    model_config = ConfigDict(from_attributes=True)

    id: str | None = None
    name: str = ""
    category: str | None = None
    description: str | None = None
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    operating_hours: dict | str | None = None


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


class FilterDescriptor(BaseModel):
    """Structured search intent derived from a free-text query.

    Always total: every field has a neutral default so filtering code never
    sees ``None``.
    """

    date_range: DateRange = DateRange.NONE
    categories: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    price_range: PriceRange = PriceRange.NONE

    @field_validator("date_range", "price_range", mode="before")
    @classmethod
    def _none_means_unconstrained(cls, value):
        if value is None or value == "":
            return "none"
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("categories", mode="before")
    @classmethod
    def _dedupe_categories(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        seen: list[str] = []
        for item in value:
            label = str(item).strip()
            if label and label not in seen:
                seen.append(label)
        return seen

    @field_validator("keywords", mode="before")
    @classmethod
    def _lowercase_keywords(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        return [str(k).strip().lower() for k in value if str(k).strip()]


class SearchResponse(BaseModel):
    """Result of a general site search. Never carries an exception."""

    message: str
    events: list[EventRecord] = Field(default_factory=list)
    listings: list[ListingRecord] = Field(default_factory=list)
    total_results: int = 0
    filters: FilterDescriptor = Field(default_factory=FilterDescriptor)
    degraded: bool = False


# ---------------------------------------------------------------------------
# Business agent configuration
# ---------------------------------------------------------------------------


class BusinessInfo(BaseModel):
    """Business facts held in the agent knowledge base."""

    name: str = ""
    category: str | None = None
    description: str | None = None
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    operating_hours: dict | str | None = None


class MenuItem(BaseModel):
    name: str
    description: str | None = None
    price: str | float | None = None


class MenuCategory(BaseModel):
    name: str
    items: list[MenuItem] = Field(default_factory=list)


class MenuData(BaseModel):
    categories: list[MenuCategory] = Field(default_factory=list)


class FaqEntry(BaseModel):
    question: str
    answer: str


class Policies(BaseModel):
    return_policy: str | None = None
    cancellation_policy: str | None = None
    privacy_policy: str | None = None


class KnowledgeBase(BaseModel):
    """Primary knowledge a business assistant answers from."""

    business_info: BusinessInfo = Field(default_factory=BusinessInfo)
    menu_data: MenuData = Field(default_factory=MenuData)
    faq_data: list[FaqEntry] = Field(default_factory=list)
    policies: Policies = Field(default_factory=Policies)


class QuotaAllowance(BaseModel):
    """Monthly query allowance. ``limit`` is ignored when unlimited."""

    kind: AllowanceKind = AllowanceKind.METERED
    limit: int = Field(default=DEFAULT_MONTHLY_QUERIES, ge=0)

    @property
    def is_unlimited(self) -> bool:
        return self.kind == AllowanceKind.UNLIMITED

    @classmethod
    def unlimited(cls) -> "QuotaAllowance":
        return cls(kind=AllowanceKind.UNLIMITED, limit=0)


class AgentConfig(BaseModel):
    """Per-business assistant configuration."""

    model_config = ConfigDict(from_attributes=True)

    business_id: str
    agent_name: str = ""
    enabled: bool = False
    personality: Personality = Personality.PROFESSIONAL
    welcome_message: str | None = None
    max_response_length: int = Field(
        default=DEFAULT_RESPONSE_LENGTH, ge=MIN_RESPONSE_LENGTH, le=MAX_RESPONSE_LENGTH,
    )
    allowance: QuotaAllowance = Field(default_factory=QuotaAllowance)
    queries_used: int = Field(default=0, ge=0)
    knowledge_base: KnowledgeBase = Field(default_factory=KnowledgeBase)
    include_platform_context: bool = False


class UsageSnapshot(BaseModel):
    """Current consumption against a business's allowance."""

    used: int = Field(ge=0)
    allowance: QuotaAllowance


class QuotaCheck(BaseModel):
    """Answer from the quota gate. ``limit`` is None for unlimited agents."""

    can_proceed: bool
    used: int
    limit: int | None = None


# ---------------------------------------------------------------------------
# Conversations
# ---------------------------------------------------------------------------


class ConversationTurn(BaseModel):
    role: ConversationRole
    content: str
    timestamp: datetime


class TurnUsage(BaseModel):
    queries_used: int
    queries_limit: int | None = None


class TurnResult(BaseModel):
    """Outcome of one business-assistant turn."""

    success: bool
    message: str
    usage: TurnUsage | None = None
    error_code: str | None = None


class ConversationSummary(BaseModel):
    """Stored conversation as read back for analytics."""

    model_config = ConfigDict(from_attributes=True)

    id: str | None = None
    business_id: str
    session_id: str
    user_id: str | None = None
    messages: list[ConversationTurn] = Field(default_factory=list)
    total_tokens_used: int = 0
    user_satisfaction_rating: int | None = None
    resolved_query: bool = False
    created_at: datetime | None = None


class PopularTopic(BaseModel):
    topic: str
    count: int


class PeakHour(BaseModel):
    hour: int
    count: int


class AgentAnalytics(BaseModel):
    total_conversations: int = 0
    unique_users: int = 0
    average_rating: float = 0.0
    resolved_queries: int = 0
    total_tokens_used: int = 0
    popular_topics: list[PopularTopic] = Field(default_factory=list)
    peak_hours: list[PeakHour] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------


class ClassifierScores(BaseModel):
    """Raw text-classifier output."""

    flagged: bool = False
    category_scores: dict[str, float] = Field(default_factory=dict)


class ModerationVerdict(BaseModel):
    """Decision for one piece of text."""

    approved: bool
    action: ModerationAction
    flagged: bool = False
    flagged_categories: set[ModerationCategory] = Field(default_factory=set)
    scores: dict[ModerationCategory, float] = Field(default_factory=dict)
    error: str | None = None


class ImageClassification(BaseModel):
    """Raw image-classifier output."""

    safe_search: dict[ImageDimension, Likelihood] = Field(default_factory=dict)
    labels: list[str] = Field(default_factory=list)


class ImageModerationVerdict(BaseModel):
    """Decision for one uploaded image."""

    approved: bool
    action: ModerationAction
    safe_search: dict[ImageDimension, Likelihood] = Field(default_factory=dict)
    labels: list[str] = Field(default_factory=list)
    error: str | None = None


class ContentModerationResult(BaseModel):
    """Combined text + image verdicts for an event or listing."""

    text: ModerationVerdict | None = None
    images: list[ImageModerationVerdict] = Field(default_factory=list)
    overall_approved: bool = True


class BatchModerationItem(BaseModel):
    id: str
    status: str  # fulfilled, rejected
    value: ModerationVerdict | ImageModerationVerdict | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# API requests
# ---------------------------------------------------------------------------


class SearchRequest(BaseModel):
    query: str
    user_id: str | None = None


class ChatRequest(BaseModel):
    message: str
    session_id: str
    user_id: str | None = None


class RatingRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    resolved: bool | None = None


class EnhanceRequest(BaseModel):
    text: str
    kind: str = "general"
