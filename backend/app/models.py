"""
Marketing Campaign Backend — Database Models
Users, personas, campaigns and the campaign's embedded collections
(content items, A/B tests, collaborators) stored as child tables so that
appending to a collection is a single INSERT.
"""

from datetime import datetime
from sqlalchemy import (
    String, Text, Float, Integer, BigInteger, Boolean, DateTime,
    JSON, ForeignKey, Identity, Index, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.database import Base
from app.utils import new_object_id, utcnow


def _id_column(**kwargs):
    return mapped_column(String(24), primary_key=True, default=new_object_id, **kwargs)


# ══════════════════════════════════════════════════════════════════════
#  USERS — Account owners of personas and campaigns
# ══════════════════════════════════════════════════════════════════════

class User(Base):
    """App user for login and access control."""
    __tablename__ = "users"

    id: Mapped[str] = _id_column()
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    company_name: Mapped[str] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(String(20), default="user")  # user, manager, admin
    subscription_tier: Mapped[str] = mapped_column(String(20), default="free")  # free, basic, pro, enterprise
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_login_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_users_email", "email"),
        Index("ix_users_role", "role"),
    )


# ══════════════════════════════════════════════════════════════════════
#  PERSONAS — Targeting profiles (custom or predefined)
# ══════════════════════════════════════════════════════════════════════

class Persona(Base):
    """Audience persona. user_id is NULL exactly when is_predefined is true."""
    __tablename__ = "personas"

    id: Mapped[str] = _id_column()
    user_id: Mapped[str] = mapped_column(String(24), ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    demographics: Mapped[dict] = mapped_column(JSON, nullable=False)  # {age, income, location}
    psychographics: Mapped[dict] = mapped_column(JSON, default=dict)  # {values[], interests[]}
    pain_points: Mapped[list] = mapped_column(JSON, default=list)
    goals: Mapped[list] = mapped_column(JSON, default=list)
    preferred_channels: Mapped[list] = mapped_column(JSON, default=list)
    is_predefined: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_personas_user_id", "user_id"),
        Index("ix_personas_user_predefined", "user_id", "is_predefined"),
        Index("ix_personas_predefined_created", "is_predefined", "created_at"),
    )


# ══════════════════════════════════════════════════════════════════════
#  CAMPAIGNS
# ══════════════════════════════════════════════════════════════════════

class Campaign(Base):
    """Marketing campaign owned by one user and targeting one persona."""
    __tablename__ = "campaigns"

    id: Mapped[str] = _id_column()
    user_id: Mapped[str] = mapped_column(String(24), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    persona_id: Mapped[str] = mapped_column(String(24), ForeignKey("personas.id", ondelete="RESTRICT"), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(String(1000), nullable=True)
    objective: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="draft")
    budget: Mapped[float] = mapped_column(Float, default=0.0)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    tone: Mapped[str] = mapped_column(String(20), default="professional")
    keywords: Mapped[str] = mapped_column(String(500), nullable=True)
    target_audience: Mapped[dict] = mapped_column(JSON, default=dict)

    # Metric counters; ctr/cpc/cpa are derived from them before every write
    total_reach: Mapped[int] = mapped_column(BigInteger, default=0)
    total_impressions: Mapped[int] = mapped_column(BigInteger, default=0)
    total_clicks: Mapped[int] = mapped_column(BigInteger, default=0)
    total_conversions: Mapped[int] = mapped_column(BigInteger, default=0)
    total_spent: Mapped[float] = mapped_column(Float, default=0.0)
    ctr: Mapped[float] = mapped_column(Float, default=0.0)
    cpc: Mapped[float] = mapped_column(Float, default=0.0)
    cpa: Mapped[float] = mapped_column(Float, default=0.0)
    roi: Mapped[float] = mapped_column(Float, default=0.0)

    generation_settings: Mapped[dict] = mapped_column(JSON, default=dict)
    generation_job: Mapped[dict] = mapped_column(JSON, default=dict)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False)
    tags: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships (selectin-loaded)
    content: Mapped[list["CampaignContent"]] = relationship(
        "CampaignContent", back_populates="campaign", cascade="all, delete-orphan",
        order_by="CampaignContent.seq", lazy="selectin",
    )
    ab_tests: Mapped[list["CampaignABTest"]] = relationship(
        "CampaignABTest", back_populates="campaign", cascade="all, delete-orphan",
        order_by="CampaignABTest.seq", lazy="selectin",
    )
    collaborators: Mapped[list["CampaignCollaborator"]] = relationship(
        "CampaignCollaborator", back_populates="campaign", cascade="all, delete-orphan",
        order_by="CampaignCollaborator.added_at", lazy="selectin",
    )

    __table_args__ = (
        Index("ix_campaigns_user_status", "user_id", "status"),
        Index("ix_campaigns_user_created", "user_id", "created_at"),
        Index("ix_campaigns_dates", "start_date", "end_date"),
        Index("ix_campaigns_objective_status", "objective", "status"),
        Index("ix_campaigns_archived_user", "is_archived", "user_id"),
        Index("ix_campaigns_persona_id", "persona_id"),
    )


class CampaignContent(Base):
    """Content item embedded in a campaign. Append-only; seq preserves insertion order."""
    __tablename__ = "campaign_contents"

    id: Mapped[str] = _id_column()
    seq: Mapped[int] = mapped_column(BigInteger, Identity(), unique=True)
    campaign_id: Mapped[str] = mapped_column(String(24), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False)
    content_type: Mapped[str] = mapped_column(String(20), nullable=False)
    platform: Mapped[str] = mapped_column(String(20), nullable=False)
    subject_line: Mapped[str] = mapped_column(String(200), nullable=True)
    content_body: Mapped[str] = mapped_column(Text, nullable=False)
    visual_url: Mapped[str] = mapped_column(Text, nullable=True)
    hashtags: Mapped[list] = mapped_column(JSON, default=list)
    quality_score: Mapped[int] = mapped_column(Integer, default=0)
    engagement_metrics: Mapped[dict] = mapped_column(JSON, default=dict)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False)
    published_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)
    generation_prompt: Mapped[str] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    campaign: Mapped["Campaign"] = relationship("Campaign", back_populates="content")

    __table_args__ = (
        Index("ix_campaign_contents_campaign_id", "campaign_id"),
        Index("ix_campaign_contents_type", "content_type"),
    )


class CampaignABTest(Base):
    """A/B test embedded in a campaign."""
    __tablename__ = "campaign_ab_tests"

    id: Mapped[str] = _id_column()
    seq: Mapped[int] = mapped_column(BigInteger, Identity(), unique=True)
    campaign_id: Mapped[str] = mapped_column(String(24), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False)
    test_name: Mapped[str] = mapped_column(String(100), nullable=False)
    test_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="draft")
    variant_a: Mapped[dict] = mapped_column(JSON, nullable=False)
    variant_b: Mapped[dict] = mapped_column(JSON, nullable=False)
    winner: Mapped[str] = mapped_column(String(20), default="inconclusive")
    confidence: Mapped[float] = mapped_column(Float, default=0.0)
    metrics: Mapped[dict] = mapped_column(JSON, default=dict)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    campaign: Mapped["Campaign"] = relationship("Campaign", back_populates="ab_tests")

    __table_args__ = (
        Index("ix_campaign_ab_tests_campaign_id", "campaign_id"),
    )


class CampaignCollaborator(Base):
    """Non-owner user granted viewer/editor/admin rights on one campaign."""
    __tablename__ = "campaign_collaborators"

    id: Mapped[str] = _id_column()
    campaign_id: Mapped[str] = mapped_column(String(24), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(24), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default="viewer")
    added_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    campaign: Mapped["Campaign"] = relationship("Campaign", back_populates="collaborators")

    __table_args__ = (
        UniqueConstraint("campaign_id", "user_id", name="uq_collaborator_per_campaign"),
        Index("ix_campaign_collaborators_user_id", "user_id"),
    )
