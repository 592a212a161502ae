"""add profiles.subscription_tier and api_usage

Revision ID: 20250120_api_usage
Revises:
Create Date: 2025-01-20

Daily AI request quota:
- free tier: 5 requests/day, pro tier: 100 requests/day
- api_usage holds one row per user per UTC date
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


revision = '20250120_api_usage'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create profiles (if missing) with subscription_tier, and api_usage."""

    bind = op.get_bind()
    inspector = inspect(bind)

    if not inspector.has_table("profiles"):
        op.create_table(
            "profiles",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("email", sa.String(length=320), nullable=True),
            sa.Column(
                "subscription_tier",
                sa.String(length=16),
                nullable=False,
                server_default="free",
            ),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.CheckConstraint(
                "subscription_tier IN ('free', 'pro')", name="ck_profiles_tier"
            ),
        )
    elif "subscription_tier" not in [c.get("name") for c in inspector.get_columns("profiles")]:
        op.add_column(
            "profiles",
            sa.Column(
                "subscription_tier",
                sa.String(length=16),
                nullable=False,
                server_default="free",
            ),
        )

    op.create_table(
        "api_usage",
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("usage_date", sa.String(length=10), nullable=False),  # YYYY-MM-DD (UTC)
        sa.Column("request_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("user_id", "usage_date"),
        sa.CheckConstraint("request_count >= 0", name="ck_api_usage_count_nonneg"),
    )
    op.create_index(
        "ix_api_usage_user_id", "api_usage", ["user_id"], unique=False
    )


def downgrade() -> None:
    """Drop api_usage; profiles belong to the app and are kept."""

    op.drop_index("ix_api_usage_user_id", table_name="api_usage")
    op.drop_table("api_usage")
