from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from togetherchurch.core.errors import ChurchNotFoundError, PlanNotFoundError, UnknownFeatureError
from togetherchurch.domain.models import (
    SUBSCRIPTION_STATUS_ACTIVE,
    SUBSCRIPTION_STATUS_CANCELED,
    SUBSCRIPTION_STATUS_PAST_DUE,
    SUBSCRIPTION_STATUS_TRIAL,
    Church,
    ChurchFeatureOverride,
    ChurchSubscription,
)
from togetherchurch.persistence.repos import features as features_repo
from togetherchurch.persistence.repos import overrides as overrides_repo
from togetherchurch.persistence.repos import subscriptions as subscriptions_repo


logger = logging.getLogger(__name__)

ASSIGNABLE_STATUSES = (
    SUBSCRIPTION_STATUS_ACTIVE,
    SUBSCRIPTION_STATUS_TRIAL,
    SUBSCRIPTION_STATUS_PAST_DUE,
)


async def _ensure_church(session: AsyncSession, church_id: str) -> Church:
    church = await session.get(Church, church_id)
    if church is None:
        raise ChurchNotFoundError(church_id)
    return church


async def _ensure_feature(session: AsyncSession, feature_key: str) -> None:
    # Writes are validated against the catalog; reads silently ignore unknown keys.
    if await features_repo.get_feature(session, feature_key) is None:
        raise UnknownFeatureError(feature_key)


async def set_override(
    *,
    session: AsyncSession,
    church_id: str,
    feature_key: str,
    enabled: bool,
    config: dict[str, Any] | None = None,
    commit: bool = True,
) -> ChurchFeatureOverride:
    await _ensure_church(session, church_id)
    await _ensure_feature(session, feature_key)

    row = await overrides_repo.get_for_church(session, church_id, feature_key)
    if row is None:
        row = ChurchFeatureOverride(church_id=church_id, feature_key=feature_key, enabled=enabled)
        session.add(row)
    row.enabled = enabled
    row.config = config
    if commit:
        await session.commit()
    else:
        await session.flush()
    logger.info(
        "feature_override_set church_id=%s feature_key=%s enabled=%s",
        church_id,
        feature_key,
        enabled,
    )
    return row


async def clear_override(
    *,
    session: AsyncSession,
    church_id: str,
    feature_key: str,
    commit: bool = True,
) -> bool:
    row = await overrides_repo.get_for_church(session, church_id, feature_key)
    if row is None:
        return False
    await session.delete(row)
    if commit:
        await session.commit()
    else:
        await session.flush()
    logger.info("feature_override_cleared church_id=%s feature_key=%s", church_id, feature_key)
    return True


async def assign_plan(
    *,
    session: AsyncSession,
    church_id: str,
    plan_id: str,
    current_period_end: datetime | None = None,
    status: str = SUBSCRIPTION_STATUS_ACTIVE,
    commit: bool = True,
) -> ChurchSubscription:
    """Move a church onto ``plan_id``.

    The current subscription, if any, is canceled rather than deleted so plan
    history survives. Reassigning the plan a church already has is a no-op.
    """
    if status not in ASSIGNABLE_STATUSES:
        raise ValueError(f"Unsupported subscription status: {status}")
    await _ensure_church(session, church_id)
    plan = await features_repo.get_plan(session, plan_id)
    if plan is None or not plan.is_active:
        raise PlanNotFoundError(plan_id)

    current = await subscriptions_repo.get_current_subscription(session, church_id)
    if current is not None and current.plan_id == plan_id and current.status == status:
        return current

    now = datetime.now(timezone.utc)
    if current is not None:
        current.status = SUBSCRIPTION_STATUS_CANCELED
        current.updated_at = now
        # The partial unique index only admits the new row once the old one is canceled.
        await session.flush()

    subscription = ChurchSubscription(
        id=uuid4().hex,
        church_id=church_id,
        plan_id=plan_id,
        status=status,
        current_period_end=current_period_end,
        created_at=now,
        updated_at=now,
    )
    session.add(subscription)
    if commit:
        await session.commit()
    else:
        await session.flush()
    logger.info(
        "church_plan_assigned church_id=%s plan_id=%s previous_plan_id=%s",
        church_id,
        plan_id,
        current.plan_id if current else None,
    )
    return subscription
