from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    String,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


SUBSCRIPTION_STATUS_ACTIVE = "active"
SUBSCRIPTION_STATUS_TRIAL = "trial"
SUBSCRIPTION_STATUS_PAST_DUE = "past_due"
SUBSCRIPTION_STATUS_CANCELED = "canceled"

MEMBERSHIP_STATUS_ACTIVE = "active"


class Base(DeclarativeBase):
    pass


class Feature(Base):
    __tablename__ = "features"

    # Catalog-wide feature keys; dot-namespaced and never reused.
    key: Mapped[str] = mapped_column(String, primary_key=True)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Plan(Base):
    __tablename__ = "plans"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class PlanFeature(Base):
    __tablename__ = "plan_features"

    # A plan includes a feature only when the row exists and is enabled.
    plan_id: Mapped[str] = mapped_column(String, ForeignKey("plans.id"), primary_key=True)
    feature_key: Mapped[str] = mapped_column(String, primary_key=True)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    config: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Church(Base):
    __tablename__ = "churches"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String)
    slug: Mapped[str] = mapped_column(String, unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class ChurchSettings(Base):
    __tablename__ = "church_settings"

    church_id: Mapped[str] = mapped_column(String, ForeignKey("churches.id"), primary_key=True)
    # One of off | optional | required.
    campus_mode: Mapped[str] = mapped_column(String, default="off", nullable=False)
    giving_url: Mapped[str | None] = mapped_column(String, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class ChurchSubscription(Base):
    __tablename__ = "church_subscriptions"
    __table_args__ = (
        # Superseded rows are canceled, never deleted; only one may be current.
        Index(
            "uq_church_subscriptions_current",
            "church_id",
            unique=True,
            postgresql_where=text("status <> 'canceled'"),
            sqlite_where=text("status <> 'canceled'"),
        ),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    church_id: Mapped[str] = mapped_column(String, ForeignKey("churches.id"), index=True)
    plan_id: Mapped[str] = mapped_column(String, ForeignKey("plans.id"))
    status: Mapped[str] = mapped_column(String, default=SUBSCRIPTION_STATUS_ACTIVE, nullable=False)
    current_period_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class ChurchFeatureOverride(Base):
    __tablename__ = "church_feature_overrides"

    # The composite key enforces one override per church and feature.
    church_id: Mapped[str] = mapped_column(String, ForeignKey("churches.id"), primary_key=True)
    feature_key: Mapped[str] = mapped_column(String, primary_key=True)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False)
    config: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class ChurchUser(Base):
    __tablename__ = "church_users"
    __table_args__ = (
        Index("ix_church_users_user_status", "user_id", "status"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    church_id: Mapped[str] = mapped_column(String, ForeignKey("churches.id"), index=True)
    user_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"))
    # One of admin | leader | member.
    role: Mapped[str] = mapped_column(String)
    status: Mapped[str] = mapped_column(String, default=MEMBERSHIP_STATUS_ACTIVE, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class UserSession(Base):
    __tablename__ = "user_sessions"

    # Sessions are issued by the auth service; only the token hash is stored.
    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), index=True)
    token_prefix: Mapped[str] = mapped_column(String)
    token_hash: Mapped[str] = mapped_column(String, unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
