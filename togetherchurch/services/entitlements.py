from __future__ import annotations

import logging
from typing import Any, Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from togetherchurch.core.errors import FeatureNotEnabledError
from togetherchurch.domain.features import (
    CatalogFeature,
    ChurchPlan,
    FeatureMap,
    FeatureState,
    OverrideRecord,
    ResolvedPlan,
)
from togetherchurch.persistence.repos import features as features_repo
from togetherchurch.persistence.repos import overrides as overrides_repo
from togetherchurch.persistence.repos import subscriptions as subscriptions_repo


logger = logging.getLogger(__name__)

# Read failures that mean "the store is unavailable" rather than a bug.
STORE_ERRORS: tuple[type[BaseException], ...] = (SQLAlchemyError, OSError)

FEATURE_PEOPLE = "core.people"
FEATURE_EVENTS = "core.events"
FEATURE_ANNOUNCEMENTS = "core.announcements"
FEATURE_FORMS = "core.forms"
FEATURE_GIVING = "core.giving"
FEATURE_MESSAGING_SMS = "core.messaging_sms"
FEATURE_GROUPS = "engage.groups"
FEATURE_CARE_MEALS = "engage.care_meals"
FEATURE_EVENT_TICKETS = "engage.events.tickets"
FEATURE_CAMPUSES = "org.campuses"
FEATURE_KIDS_CHECKIN = "services.kids_checkin"
FEATURE_KIDS_CHECKIN_LABELS = "services.kids_checkin.labels"


async def list_features(session: AsyncSession) -> list[CatalogFeature]:
    # Catalog read failures yield an empty catalog, which resolves to nothing enabled.
    try:
        rows = await features_repo.list_catalog(session)
    except STORE_ERRORS as exc:
        logger.warning("feature_catalog_unavailable", exc_info=exc)
        return []
    return [CatalogFeature(key=row.key, description=row.description) for row in rows]


async def get_feature_description(session: AsyncSession, key: str) -> str | None:
    try:
        row = await features_repo.get_feature(session, key)
    except STORE_ERRORS as exc:
        logger.warning("feature_catalog_unavailable feature_key=%s", key, exc_info=exc)
        return None
    return row.description if row else None


async def get_church_plan(session: AsyncSession, church_id: str) -> ChurchPlan | None:
    # Subscription summary for display; no entitlement decisions hang on it.
    try:
        subscription = await subscriptions_repo.get_current_subscription(session, church_id)
    except STORE_ERRORS as exc:
        logger.warning("subscription_unavailable church_id=%s", church_id, exc_info=exc)
        return None
    if subscription is None:
        return None
    return ChurchPlan(
        plan_id=subscription.plan_id,
        status=subscription.status,
        current_period_end=subscription.current_period_end,
    )


async def resolve_plan(session: AsyncSession, church_id: str) -> ResolvedPlan | None:
    """Return the plan behind the church's active subscription.

    None when there is no active subscription, when the referenced plan row is
    missing, or when the store cannot be read. Callers treat None as "the plan
    grants nothing".
    """
    try:
        subscription = await subscriptions_repo.get_current_subscription(session, church_id)
        if subscription is None:
            return None
        plan = await features_repo.get_plan(session, subscription.plan_id)
        if plan is None:
            logger.warning(
                "subscription_plan_missing church_id=%s plan_id=%s",
                church_id,
                subscription.plan_id,
            )
            return None
        plan_features = await features_repo.list_plan_features(session, plan.id)
    except STORE_ERRORS as exc:
        logger.warning("plan_resolution_unavailable church_id=%s", church_id, exc_info=exc)
        return None
    return ResolvedPlan(
        id=plan.id,
        name=plan.name,
        status=subscription.status,
        features={
            feature.feature_key: dict(feature.config or {}) for feature in plan_features if feature.enabled
        },
        configs={feature.feature_key: dict(feature.config or {}) for feature in plan_features},
    )


async def list_override_records(session: AsyncSession, church_id: str) -> list[OverrideRecord]:
    try:
        rows = await overrides_repo.list_for_church(session, church_id)
    except STORE_ERRORS as exc:
        logger.warning("overrides_unavailable church_id=%s", church_id, exc_info=exc)
        return []
    return [
        OverrideRecord(feature_key=row.feature_key, enabled=bool(row.enabled), config=row.config)
        for row in rows
    ]


async def list_overrides(session: AsyncSession, church_id: str) -> dict[str, bool]:
    records = await list_override_records(session, church_id)
    return {record.feature_key: record.enabled for record in records}


def merge_features(
    catalog: Iterable[CatalogFeature],
    plan: ResolvedPlan | None,
    overrides: Iterable[OverrideRecord],
) -> FeatureMap:
    """Merge plan membership and overrides over the catalog key set.

    Overrides replace the plan's answer in both directions. Override config is
    layered on top of the plan config. Overrides for keys outside the catalog
    are dropped.
    """
    features: FeatureMap = {}
    for feature in catalog:
        included = plan is not None and plan.includes_feature(feature.key)
        config = plan.feature_config(feature.key) if plan is not None else {}
        features[feature.key] = FeatureState(enabled=included, config=config)

    for override in overrides:
        current = features.get(override.feature_key)
        if current is None:
            continue
        features[override.feature_key] = FeatureState(
            enabled=bool(override.enabled),
            config={**current.config, **(override.config or {})},
        )
    return features


async def resolve_features(session: AsyncSession, church_id: str) -> FeatureMap:
    # Recomputed on every call; plan and overrides may change between requests.
    catalog = await list_features(session)
    plan = await resolve_plan(session, church_id)
    overrides = await list_override_records(session, church_id)
    return merge_features(catalog, plan, overrides)


def has_feature(features: FeatureMap, key: str) -> bool:
    # Keys missing from the map (typos, retired features) are disabled.
    entry = features.get(key)
    return entry is not None and entry.enabled is True


def has_all_features(features: FeatureMap, keys: Iterable[str]) -> bool:
    return all(has_feature(features, key) for key in keys)


def has_any_feature(features: FeatureMap, keys: Iterable[str]) -> bool:
    return any(has_feature(features, key) for key in keys)


def get_feature_config(features: FeatureMap, key: str) -> dict[str, Any]:
    entry = features.get(key)
    return dict(entry.config) if entry else {}


def feature_map_to_dict(features: FeatureMap) -> dict[str, dict[str, Any]]:
    return {
        key: {"enabled": state.enabled, "config": dict(state.config)}
        for key, state in sorted(features.items())
    }


async def is_feature_enabled(session: AsyncSession, church_id: str, key: str) -> bool:
    features = await resolve_features(session, church_id)
    return has_feature(features, key)


async def get_feature_config_for_church(
    session: AsyncSession, church_id: str, key: str
) -> dict[str, Any]:
    features = await resolve_features(session, church_id)
    return get_feature_config(features, key)


async def require_feature_for_church(session: AsyncSession, church_id: str, key: str) -> None:
    if not await is_feature_enabled(session, church_id, key):
        raise FeatureNotEnabledError(key)
