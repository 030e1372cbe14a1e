"""
Campaign, Content, ABTest and Persona shapes — request bodies and the plain
domain records that stores return and services pass around.

Wire format is camelCase; attributes are snake_case.
"""

import enum
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Optional

from pydantic import (
    BaseModel, ConfigDict, Field, StringConstraints, computed_field,
    field_validator, model_validator,
)
from pydantic.alias_generators import to_camel

from app.utils import utcnow


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,
        str_strip_whitespace=True,
    )

    def to_api(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


ObjectId = Annotated[str, StringConstraints(pattern=r"^[0-9a-fA-F]{24}$")]


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Store everything as naive UTC (DB columns are TIMESTAMP WITHOUT TIME ZONE)."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# ══════════════════════════════════════════════════════════════════════
#  ENUMS
# ══════════════════════════════════════════════════════════════════════

class ContentType(str, enum.Enum):
    EMAIL = "email"
    SOCIAL_POST = "social_post"
    AD_COPY = "ad_copy"
    BLOG_POST = "blog_post"


class Platform(str, enum.Enum):
    EMAIL = "email"
    LINKEDIN = "linkedin"
    FACEBOOK = "facebook"
    TWITTER = "twitter"
    INSTAGRAM = "instagram"
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"


SOCIAL_PLATFORMS = [p.value for p in Platform if p != Platform.EMAIL]
SocialPlatform = Literal["linkedin", "facebook", "twitter", "instagram", "youtube", "tiktok"]
GeneratedContentType = Literal["email", "social_post", "ad_copy"]


class Objective(str, enum.Enum):
    AWARENESS = "awareness"
    ENGAGEMENT = "engagement"
    CONVERSION = "conversion"
    RETENTION = "retention"
    LEAD_GENERATION = "lead_generation"


class CampaignStatus(str, enum.Enum):
    DRAFT = "draft"
    GENERATING = "generating"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class Currency(str, enum.Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    INR = "INR"
    CAD = "CAD"
    AUD = "AUD"


class Tone(str, enum.Enum):
    PROFESSIONAL = "professional"
    CASUAL = "casual"
    FRIENDLY = "friendly"
    URGENT = "urgent"
    HUMOROUS = "humorous"
    INSPIRING = "inspiring"
    AUTHORITATIVE = "authoritative"


class CollaboratorRole(str, enum.Enum):
    VIEWER = "viewer"
    EDITOR = "editor"
    ADMIN = "admin"


class JobStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ABTestType(str, enum.Enum):
    SUBJECT_LINE = "subject_line"
    CONTENT_BODY = "content_body"
    VISUAL = "visual"
    CTA = "cta"
    SEND_TIME = "send_time"


class ABTestStatus(str, enum.Enum):
    DRAFT = "draft"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ABTestWinner(str, enum.Enum):
    VARIANT_A = "variant_a"
    VARIANT_B = "variant_b"
    INCONCLUSIVE = "inconclusive"


class Channel(str, enum.Enum):
    EMAIL = "email"
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    TWITTER = "twitter"
    LINKEDIN = "linkedin"
    TIKTOK = "tiktok"
    YOUTUBE = "youtube"
    GOOGLE_ADS = "google-ads"
    SMS = "sms"
    WHATSAPP = "whatsapp"
    TECH_BLOGS = "tech-blogs"
    NEWSPAPERS = "newspapers"
    RADIO = "radio"
    TV = "tv"
    PODCASTS = "podcasts"


class UserRole(str, enum.Enum):
    USER = "user"
    MANAGER = "manager"
    ADMIN = "admin"


class SubscriptionTier(str, enum.Enum):
    FREE = "free"
    BASIC = "basic"
    PRO = "pro"
    ENTERPRISE = "enterprise"


# ══════════════════════════════════════════════════════════════════════
#  IDENTITY
# ══════════════════════════════════════════════════════════════════════

class Actor(CamelModel):
    """Resolved caller identity. Every core operation trusts user_id as the actor."""
    user_id: str
    role: UserRole = UserRole.USER
    subscription_tier: SubscriptionTier = SubscriptionTier.FREE
    is_active: bool = True


# ══════════════════════════════════════════════════════════════════════
#  PERSONAS
# ══════════════════════════════════════════════════════════════════════

NonBlank = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
ShortItem = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]


class Demographics(CamelModel):
    age: NonBlank
    income: NonBlank
    location: NonBlank


class Psychographics(CamelModel):
    values: list[str] = Field(default_factory=list)
    interests: list[str] = Field(default_factory=list)


class PersonaCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    demographics: Demographics
    psychographics: Psychographics = Field(default_factory=Psychographics)
    pain_points: list[ShortItem]
    goals: list[ShortItem]
    preferred_channels: list[Channel]

    @field_validator("pain_points")
    @classmethod
    def _pain_points_required(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("At least one pain point is required")
        return v

    @field_validator("goals")
    @classmethod
    def _goals_required(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("At least one goal is required")
        return v

    @field_validator("preferred_channels")
    @classmethod
    def _channels_required(cls, v: list) -> list:
        if not v:
            raise ValueError("At least one preferred channel is required")
        return v


class PersonaUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    demographics: Optional[Demographics] = None
    psychographics: Optional[Psychographics] = None
    pain_points: Optional[list[ShortItem]] = Field(None, min_length=1)
    goals: Optional[list[ShortItem]] = Field(None, min_length=1)
    preferred_channels: Optional[list[Channel]] = Field(None, min_length=1)


class Persona(PersonaCreate):
    id: str
    user_id: Optional[str] = None
    is_predefined: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @computed_field
    @property
    def summary(self) -> dict:
        return {
            "name": self.name,
            "ageRange": self.demographics.age,
            "primaryChannels": list(self.preferred_channels[:3]),
            "keyValues": list(self.psychographics.values[:3]),
        }


class PredefinedPersonaSeed(PersonaCreate):
    """Seed-file record. Never carries an owner."""
    is_predefined: Literal[True] = True


# ══════════════════════════════════════════════════════════════════════
#  CONTENT
# ══════════════════════════════════════════════════════════════════════

class EngagementMetrics(CamelModel):
    views: int = Field(0, ge=0)
    clicks: int = Field(0, ge=0)
    shares: int = Field(0, ge=0)
    comments: int = Field(0, ge=0)
    likes: int = Field(0, ge=0)


class ContentCreate(CamelModel):
    content_type: ContentType
    platform: Platform
    subject_line: Optional[str] = Field(None, max_length=200)
    content_body: str = Field(..., min_length=1, max_length=5000)
    visual_url: Optional[str] = None
    hashtags: list[str] = Field(default_factory=list)
    quality_score: int = Field(0, ge=0, le=100)
    engagement_metrics: EngagementMetrics = Field(default_factory=EngagementMetrics)
    is_published: bool = False
    published_at: Optional[datetime] = None
    generation_prompt: Optional[str] = None

    @field_validator("hashtags")
    @classmethod
    def _hashtags_prefixed(cls, v: list[str]) -> list[str]:
        tags = [t.strip() for t in v]
        for tag in tags:
            if not tag.startswith("#"):
                raise ValueError("All hashtags must start with #")
        return tags

    @field_validator("published_at")
    @classmethod
    def _published_naive(cls, v):
        return _naive_utc(v)


class Content(ContentCreate):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ══════════════════════════════════════════════════════════════════════
#  A/B TESTS
# ══════════════════════════════════════════════════════════════════════

class VariantMetrics(CamelModel):
    participants: int = Field(0, ge=0)
    conversions: int = Field(0, ge=0)
    conversion_rate: float = Field(0, ge=0)


class ABTestMetrics(CamelModel):
    variant_a: VariantMetrics = Field(default_factory=VariantMetrics)
    variant_b: VariantMetrics = Field(default_factory=VariantMetrics)


class ABTestCreate(CamelModel):
    test_name: str = Field(..., min_length=1, max_length=100)
    test_type: ABTestType
    status: ABTestStatus = ABTestStatus.DRAFT
    variant_a: Any
    variant_b: Any
    winner: ABTestWinner = ABTestWinner.INCONCLUSIVE
    confidence: float = Field(0, ge=0, le=100)
    metrics: ABTestMetrics = Field(default_factory=ABTestMetrics)
    end_date: Optional[datetime] = None

    @field_validator("variant_a", "variant_b")
    @classmethod
    def _variant_required(cls, v, info):
        if v is None or v == "" or v == {} or v == []:
            label = "Variant A" if info.field_name == "variant_a" else "Variant B"
            raise ValueError(f"{label} is required")
        return v

    @field_validator("end_date")
    @classmethod
    def _end_date_naive(cls, v):
        return _naive_utc(v)


class ABTest(ABTestCreate):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ══════════════════════════════════════════════════════════════════════
#  CAMPAIGNS
# ══════════════════════════════════════════════════════════════════════

class TargetAudience(CamelModel):
    size: Optional[int] = Field(None, ge=0)
    demographics: Optional[Any] = None
    interests: list[str] = Field(default_factory=list)


class CampaignMetrics(CamelModel):
    total_reach: int = Field(0, ge=0)
    total_impressions: int = Field(0, ge=0)
    total_clicks: int = Field(0, ge=0)
    total_conversions: int = Field(0, ge=0)
    total_spent: float = Field(0, ge=0)
    ctr: float = 0
    cpc: float = 0
    cpa: float = 0
    roi: float = 0


class MetricsPatch(CamelModel):
    """Counter updates accepted on campaign update. Ratios are always derived."""
    total_reach: Optional[int] = Field(None, ge=0)
    total_impressions: Optional[int] = Field(None, ge=0)
    total_clicks: Optional[int] = Field(None, ge=0)
    total_conversions: Optional[int] = Field(None, ge=0)
    total_spent: Optional[float] = Field(None, ge=0)
    roi: Optional[float] = None


class GenerationSettings(CamelModel):
    content_types: list[ContentType] = Field(default_factory=list)
    platforms: list[Platform] = Field(default_factory=list)
    creativity_level: int = Field(5, ge=0, le=10)
    include_visuals: bool = False
    custom_instructions: Optional[str] = Field(None, max_length=1000)


class GenerationJob(CamelModel):
    job_id: Optional[str] = None
    status: JobStatus = JobStatus.PENDING
    progress: int = Field(0, ge=0, le=100)
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class Collaborator(CamelModel):
    user_id: str
    role: CollaboratorRole = CollaboratorRole.VIEWER
    added_at: Optional[datetime] = None


class CollaboratorRequest(CamelModel):
    user_id: ObjectId
    role: CollaboratorRole = CollaboratorRole.VIEWER


def _normalize_tags(tags: list[str]) -> list[str]:
    return [t.strip().lower() for t in tags if t and t.strip()]


class CampaignCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    objective: Objective
    persona_id: ObjectId
    budget: float = Field(0, ge=0)
    currency: Currency = Currency.USD
    start_date: datetime
    end_date: datetime
    tone: Tone = Tone.PROFESSIONAL
    keywords: Optional[str] = Field(None, max_length=500)
    target_audience: TargetAudience = Field(default_factory=TargetAudience)
    generation_settings: GenerationSettings = Field(default_factory=GenerationSettings)
    tags: list[str] = Field(default_factory=list)

    @field_validator("start_date", "end_date")
    @classmethod
    def _dates_naive(cls, v):
        return _naive_utc(v)

    @field_validator("tags")
    @classmethod
    def _tags_lower(cls, v: list[str]) -> list[str]:
        return _normalize_tags(v)

    @model_validator(mode="after")
    def _end_after_start(self) -> "CampaignCreate":
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class CampaignUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    objective: Optional[Objective] = None
    persona_id: Optional[ObjectId] = None
    status: Optional[CampaignStatus] = None
    budget: Optional[float] = Field(None, ge=0)
    currency: Optional[Currency] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    tone: Optional[Tone] = None
    keywords: Optional[str] = Field(None, max_length=500)
    target_audience: Optional[TargetAudience] = None
    generation_settings: Optional[GenerationSettings] = None
    generation_job: Optional[GenerationJob] = None
    metrics: Optional[MetricsPatch] = None
    tags: Optional[list[str]] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _dates_naive(cls, v):
        return _naive_utc(v)

    @field_validator("tags")
    @classmethod
    def _tags_lower(cls, v):
        return _normalize_tags(v) if v is not None else v


class Campaign(CamelModel):
    id: str
    user_id: str
    persona_id: str
    name: str
    description: Optional[str] = None
    objective: Objective
    status: CampaignStatus = CampaignStatus.DRAFT
    budget: float = 0
    currency: Currency = Currency.USD
    start_date: datetime
    end_date: datetime
    tone: Tone = Tone.PROFESSIONAL
    keywords: Optional[str] = None
    target_audience: TargetAudience = Field(default_factory=TargetAudience)
    content: list[Content] = Field(default_factory=list)
    ab_tests: list[ABTest] = Field(default_factory=list)
    metrics: CampaignMetrics = Field(default_factory=CampaignMetrics)
    generation_settings: GenerationSettings = Field(default_factory=GenerationSettings)
    generation_job: GenerationJob = Field(default_factory=GenerationJob)
    collaborators: list[Collaborator] = Field(default_factory=list)
    is_archived: bool = False
    tags: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @computed_field
    @property
    def duration(self) -> int:
        """Campaign length in whole days, rounded up."""
        seconds = (self.end_date - self.start_date).total_seconds()
        return max(0, -(-int(seconds) // 86400))

    @computed_field
    @property
    def progress(self) -> int:
        now = utcnow()
        if now < self.start_date:
            return 0
        if now > self.end_date:
            return 100
        total = (self.end_date - self.start_date).total_seconds()
        elapsed = (now - self.start_date).total_seconds()
        return round(elapsed / total * 100) if total else 100

    @computed_field(alias="contentStats")
    @property
    def content_stats(self) -> dict[str, int]:
        stats: dict[str, int] = {}
        for item in self.content:
            stats[item.content_type] = stats.get(item.content_type, 0) + 1
        return stats


# ══════════════════════════════════════════════════════════════════════
#  GENERATION REQUESTS
# ══════════════════════════════════════════════════════════════════════

class GenerateRequest(CamelModel):
    campaign_id: ObjectId
    persona_id: ObjectId
    custom_instructions: Optional[str] = Field(None, max_length=1000)


class SocialGenerateRequest(GenerateRequest):
    platform: SocialPlatform


class AdCopyGenerateRequest(GenerateRequest):
    platform: Optional[SocialPlatform] = None


class VariationsRequest(GenerateRequest):
    content_type: GeneratedContentType
    variations: int = Field(2, ge=2, le=5)
    platform: Optional[SocialPlatform] = None


class BatchGenerateRequest(GenerateRequest):
    content_types: list[GeneratedContentType] = Field(..., min_length=1)
    platforms: list[Platform] = Field(..., min_length=1)
