"""Initial schema: users, personas, campaigns and campaign child collections.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id():
    return sa.Column("id", sa.String(24), nullable=False)


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=True, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), nullable=True, server_default=sa.text("now()")),
    ]


def upgrade() -> None:
    conn = op.get_bind()
    insp = sa.inspect(conn)
    existing = insp.get_table_names()

    if "campaigns" in existing:
        return  # Already applied (e.g. from create_all)

    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("company_name", sa.String(100), nullable=True),
        sa.Column("role", sa.String(20), nullable=True, server_default="user"),
        sa.Column("subscription_tier", sa.String(20), nullable=True, server_default="free"),
        sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.text("true")),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "personas",
        _id(),
        sa.Column("user_id", sa.String(24), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("demographics", sa.JSON(), nullable=False),
        sa.Column("psychographics", sa.JSON(), nullable=True),
        sa.Column("pain_points", sa.JSON(), nullable=True),
        sa.Column("goals", sa.JSON(), nullable=True),
        sa.Column("preferred_channels", sa.JSON(), nullable=True),
        sa.Column("is_predefined", sa.Boolean(), nullable=True, server_default=sa.text("false")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_personas_user_id", "personas", ["user_id"])
    op.create_index("ix_personas_user_predefined", "personas", ["user_id", "is_predefined"])
    op.create_index("ix_personas_predefined_created", "personas", ["is_predefined", "created_at"])

    op.create_table(
        "campaigns",
        _id(),
        sa.Column("user_id", sa.String(24), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("persona_id", sa.String(24), sa.ForeignKey("personas.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("objective", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=True, server_default="draft"),
        sa.Column("budget", sa.Float(), nullable=True, server_default="0"),
        sa.Column("currency", sa.String(3), nullable=True, server_default="USD"),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("end_date", sa.DateTime(), nullable=False),
        sa.Column("tone", sa.String(20), nullable=True, server_default="professional"),
        sa.Column("keywords", sa.String(500), nullable=True),
        sa.Column("target_audience", sa.JSON(), nullable=True),
        sa.Column("total_reach", sa.BigInteger(), nullable=True, server_default="0"),
        sa.Column("total_impressions", sa.BigInteger(), nullable=True, server_default="0"),
        sa.Column("total_clicks", sa.BigInteger(), nullable=True, server_default="0"),
        sa.Column("total_conversions", sa.BigInteger(), nullable=True, server_default="0"),
        sa.Column("total_spent", sa.Float(), nullable=True, server_default="0"),
        sa.Column("ctr", sa.Float(), nullable=True, server_default="0"),
        sa.Column("cpc", sa.Float(), nullable=True, server_default="0"),
        sa.Column("cpa", sa.Float(), nullable=True, server_default="0"),
        sa.Column("roi", sa.Float(), nullable=True, server_default="0"),
        sa.Column("generation_settings", sa.JSON(), nullable=True),
        sa.Column("generation_job", sa.JSON(), nullable=True),
        sa.Column("is_archived", sa.Boolean(), nullable=True, server_default=sa.text("false")),
        sa.Column("tags", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_campaigns_user_status", "campaigns", ["user_id", "status"])
    op.create_index("ix_campaigns_user_created", "campaigns", ["user_id", "created_at"])
    op.create_index("ix_campaigns_dates", "campaigns", ["start_date", "end_date"])
    op.create_index("ix_campaigns_objective_status", "campaigns", ["objective", "status"])
    op.create_index("ix_campaigns_archived_user", "campaigns", ["is_archived", "user_id"])
    op.create_index("ix_campaigns_persona_id", "campaigns", ["persona_id"])

    op.create_table(
        "campaign_contents",
        _id(),
        sa.Column("seq", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column("campaign_id", sa.String(24), sa.ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content_type", sa.String(20), nullable=False),
        sa.Column("platform", sa.String(20), nullable=False),
        sa.Column("subject_line", sa.String(200), nullable=True),
        sa.Column("content_body", sa.Text(), nullable=False),
        sa.Column("visual_url", sa.Text(), nullable=True),
        sa.Column("hashtags", sa.JSON(), nullable=True),
        sa.Column("quality_score", sa.Integer(), nullable=True, server_default="0"),
        sa.Column("engagement_metrics", sa.JSON(), nullable=True),
        sa.Column("is_published", sa.Boolean(), nullable=True, server_default=sa.text("false")),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("generation_prompt", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("seq"),
    )
    op.create_index("ix_campaign_contents_campaign_id", "campaign_contents", ["campaign_id"])
    op.create_index("ix_campaign_contents_type", "campaign_contents", ["content_type"])

    op.create_table(
        "campaign_ab_tests",
        _id(),
        sa.Column("seq", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column("campaign_id", sa.String(24), sa.ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False),
        sa.Column("test_name", sa.String(100), nullable=False),
        sa.Column("test_type", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=True, server_default="draft"),
        sa.Column("variant_a", sa.JSON(), nullable=False),
        sa.Column("variant_b", sa.JSON(), nullable=False),
        sa.Column("winner", sa.String(20), nullable=True, server_default="inconclusive"),
        sa.Column("confidence", sa.Float(), nullable=True, server_default="0"),
        sa.Column("metrics", sa.JSON(), nullable=True),
        sa.Column("end_date", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("seq"),
    )
    op.create_index("ix_campaign_ab_tests_campaign_id", "campaign_ab_tests", ["campaign_id"])

    op.create_table(
        "campaign_collaborators",
        _id(),
        sa.Column("campaign_id", sa.String(24), sa.ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(24), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.String(20), nullable=True, server_default="viewer"),
        sa.Column("added_at", sa.DateTime(), nullable=True, server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("campaign_id", "user_id", name="uq_collaborator_per_campaign"),
    )
    op.create_index("ix_campaign_collaborators_user_id", "campaign_collaborators", ["user_id"])


def downgrade() -> None:
    op.drop_table("campaign_collaborators")
    op.drop_table("campaign_ab_tests")
    op.drop_table("campaign_contents")
    op.drop_table("campaigns")
    op.drop_table("personas")
    op.drop_table("users")
