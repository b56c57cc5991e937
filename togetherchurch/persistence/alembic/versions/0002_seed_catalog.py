"""seed the feature catalog and the plan tiers

Revision ID: 0002_seed_catalog
Revises: 0001_init
Create Date: 2026-09-28
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0002_seed_catalog"
down_revision = "0001_init"
branch_labels = None
depends_on = None


FEATURES = [
    ("core.people", "People directory and households"),
    ("core.events", "Events and RSVPs"),
    ("core.announcements", "Announcements"),
    ("core.forms", "Forms and submissions inbox"),
    ("core.giving", "Online giving links"),
    ("core.messaging_sms", "SMS messaging"),
    ("engage.groups", "Small groups"),
    ("engage.care_meals", "Care meal trains"),
    ("engage.events.tickets", "Paid event tickets"),
    ("org.campuses", "Multiple campuses"),
    ("services.kids_checkin", "Kids check-in"),
    ("services.kids_checkin.labels", "Printed check-in labels"),
]

STARTER = [
    "core.people",
    "core.events",
    "core.announcements",
    "core.forms",
    "core.giving",
]
GROWTH = STARTER + [
    "core.messaging_sms",
    "engage.groups",
    "engage.care_meals",
    "engage.events.tickets",
    "services.kids_checkin",
    "services.kids_checkin.labels",
]
MULTISITE = GROWTH + ["org.campuses"]

PLAN_CONFIG = {
    ("growth", "core.messaging_sms"): {"monthly_segments": 1000},
    ("multisite", "core.messaging_sms"): {"monthly_segments": 5000},
    ("growth", "services.kids_checkin.labels"): {"label_format": "2x4"},
    ("multisite", "services.kids_checkin.labels"): {"label_format": "2x4"},
}


def upgrade() -> None:
    op.bulk_insert(
        sa.table(
            "features",
            sa.column("key", sa.String()),
            sa.column("description", sa.String()),
        ),
        [{"key": key, "description": description} for key, description in FEATURES],
    )
    op.bulk_insert(
        sa.table(
            "plans",
            sa.column("id", sa.String()),
            sa.column("name", sa.String()),
            sa.column("is_active", sa.Boolean()),
        ),
        [
            {"id": "starter", "name": "Starter", "is_active": True},
            {"id": "growth", "name": "Growth", "is_active": True},
            {"id": "multisite", "name": "Multisite", "is_active": True},
        ],
    )
    rows = []
    for plan_id, keys in (("starter", STARTER), ("growth", GROWTH), ("multisite", MULTISITE)):
        for key in keys:
            rows.append(
                {
                    "plan_id": plan_id,
                    "feature_key": key,
                    "enabled": True,
                    "config": PLAN_CONFIG.get((plan_id, key)),
                }
            )
    op.bulk_insert(
        sa.table(
            "plan_features",
            sa.column("plan_id", sa.String()),
            sa.column("feature_key", sa.String()),
            sa.column("enabled", sa.Boolean()),
            sa.column("config", sa.JSON()),
        ),
        rows,
    )


def downgrade() -> None:
    op.execute(sa.text("DELETE FROM plan_features WHERE plan_id IN ('starter', 'growth', 'multisite')"))
    op.execute(sa.text("DELETE FROM plans WHERE id IN ('starter', 'growth', 'multisite')"))
    keys = ", ".join(f"'{key}'" for key, _ in FEATURES)
    op.execute(sa.text(f"DELETE FROM features WHERE key IN ({keys})"))
