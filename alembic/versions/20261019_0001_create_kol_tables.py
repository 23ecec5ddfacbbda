"""create kols, platforms, metric_snapshots and scrape_attempts tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "kols",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.String(length=1024), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_priority", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "tags",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_kols"),
    )
    op.create_index("ix_kols_is_active", "kols", ["is_active"], unique=False)
    op.create_index("ix_kols_is_priority", "kols", ["is_priority"], unique=False)
    op.create_index("ix_kols_category", "kols", ["category"], unique=False)

    op.create_table(
        "platforms",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("kol_id", sa.Integer(), nullable=False),
        sa.Column("platform_type", sa.String(length=20), nullable=False),
        sa.Column("username", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("profile_url", sa.String(length=1024), nullable=False, server_default=""),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("last_scraped_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("scrape_status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(
            ["kol_id"],
            ["kols.id"],
            name="fk_platforms_kol_id_kols",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_platforms"),
        sa.UniqueConstraint("kol_id", "platform_type", name="uq_platforms_kol_id_platform_type"),
    )
    op.create_index(
        "ix_platforms_scrape_status_last_scraped_at",
        "platforms",
        ["scrape_status", "last_scraped_at"],
        unique=False,
    )
    op.create_index("ix_platforms_platform_type", "platforms", ["platform_type"], unique=False)

    op.create_table(
        "metric_snapshots",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("platform_id", sa.Integer(), nullable=False),
        sa.Column("followers", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("following", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("posts", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("likes", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("engagement_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("avg_views", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("avg_likes", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("avg_comments", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("avg_shares", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column(
            "additional_metrics",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("captured_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(
            ["platform_id"],
            ["platforms.id"],
            name="fk_metric_snapshots_platform_id_platforms",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_metric_snapshots"),
    )
    op.create_index(
        "ix_metric_snapshots_platform_id_captured_at",
        "metric_snapshots",
        ["platform_id", "captured_at"],
        unique=False,
    )

    op.create_table(
        "scrape_attempts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("platform_id", sa.Integer(), nullable=True),
        sa.Column("platform", sa.String(length=20), nullable=False),
        sa.Column("outcome", sa.String(length=16), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(
            ["platform_id"],
            ["platforms.id"],
            name="fk_scrape_attempts_platform_id_platforms",
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_scrape_attempts"),
    )
    op.create_index(
        "ix_scrape_attempts_platform_id_started_at",
        "scrape_attempts",
        ["platform_id", "started_at"],
        unique=False,
    )
    op.create_index(
        "ix_scrape_attempts_outcome_created_at",
        "scrape_attempts",
        ["outcome", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_scrape_attempts_outcome_created_at", table_name="scrape_attempts")
    op.drop_index("ix_scrape_attempts_platform_id_started_at", table_name="scrape_attempts")
    op.drop_table("scrape_attempts")

    op.drop_index("ix_metric_snapshots_platform_id_captured_at", table_name="metric_snapshots")
    op.drop_table("metric_snapshots")

    op.drop_index("ix_platforms_platform_type", table_name="platforms")
    op.drop_index("ix_platforms_scrape_status_last_scraped_at", table_name="platforms")
    op.drop_table("platforms")

    op.drop_index("ix_kols_category", table_name="kols")
    op.drop_index("ix_kols_is_priority", table_name="kols")
    op.drop_index("ix_kols_is_active", table_name="kols")
    op.drop_table("kols")
