"""churches, memberships, sessions and feature entitlements

Revision ID: 0001_init
Revises:
Create Date: 2026-09-28
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "features",
        sa.Column("key", sa.String(), primary_key=True, nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "plans",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Plan membership of a feature, optionally with plan-level config.
    op.create_table(
        "plan_features",
        sa.Column("plan_id", sa.String(), sa.ForeignKey("plans.id"), primary_key=True),
        sa.Column("feature_key", sa.String(), primary_key=True),
        sa.Column("enabled", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("config", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "churches",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_churches_slug", "churches", ["slug"], unique=True)

    op.create_table(
        "church_settings",
        sa.Column("church_id", sa.String(), sa.ForeignKey("churches.id"), primary_key=True),
        sa.Column("campus_mode", sa.String(), server_default="off", nullable=False),
        sa.Column("giving_url", sa.String(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "church_subscriptions",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("church_id", sa.String(), sa.ForeignKey("churches.id"), nullable=False),
        sa.Column("plan_id", sa.String(), sa.ForeignKey("plans.id"), nullable=False),
        sa.Column("status", sa.String(), server_default="active", nullable=False),
        sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_church_subscriptions_church_id",
        "church_subscriptions",
        ["church_id"],
        unique=False,
    )
    # Superseded subscriptions are canceled; at most one row per church is current.
    op.create_index(
        "uq_church_subscriptions_current",
        "church_subscriptions",
        ["church_id"],
        unique=True,
        postgresql_where=sa.text("status <> 'canceled'"),
        sqlite_where=sa.text("status <> 'canceled'"),
    )

    op.create_table(
        "church_feature_overrides",
        sa.Column("church_id", sa.String(), sa.ForeignKey("churches.id"), primary_key=True),
        sa.Column("feature_key", sa.String(), primary_key=True),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("config", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "church_users",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("church_id", sa.String(), sa.ForeignKey("churches.id"), nullable=False),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("status", sa.String(), server_default="active", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_church_users_church_id", "church_users", ["church_id"], unique=False)
    op.create_index("ix_church_users_user_status", "church_users", ["user_id", "status"], unique=False)

    # Only token hashes are stored; raw tokens never touch the database.
    op.create_table(
        "user_sessions",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("token_prefix", sa.String(), nullable=False),
        sa.Column("token_hash", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_user_sessions_user_id", "user_sessions", ["user_id"], unique=False)
    op.create_index("ix_user_sessions_token_hash", "user_sessions", ["token_hash"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_user_sessions_token_hash", table_name="user_sessions")
    op.drop_index("ix_user_sessions_user_id", table_name="user_sessions")
    op.drop_table("user_sessions")
    op.drop_index("ix_church_users_user_status", table_name="church_users")
    op.drop_index("ix_church_users_church_id", table_name="church_users")
    op.drop_table("church_users")
    op.drop_table("users")
    op.drop_table("church_feature_overrides")
    op.drop_index(
        "uq_church_subscriptions_current",
        table_name="church_subscriptions",
        postgresql_where=sa.text("status <> 'canceled'"),
        sqlite_where=sa.text("status <> 'canceled'"),
    )
    op.drop_index("ix_church_subscriptions_church_id", table_name="church_subscriptions")
    op.drop_table("church_subscriptions")
    op.drop_table("church_settings")
    op.drop_index("ix_churches_slug", table_name="churches")
    op.drop_table("churches")
    op.drop_table("plan_features")
    op.drop_table("plans")
    op.drop_table("features")
