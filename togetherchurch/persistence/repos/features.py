from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from togetherchurch.domain.models import Feature, Plan, PlanFeature


async def list_catalog(session: AsyncSession) -> list[Feature]:
    # Stable key ordering keeps admin listings deterministic.
    result = await session.execute(select(Feature).order_by(Feature.key))
    return list(result.scalars().all())


async def get_feature(session: AsyncSession, key: str) -> Feature | None:
    result = await session.execute(select(Feature).where(Feature.key == key))
    return result.scalar_one_or_none()


async def get_plan(session: AsyncSession, plan_id: str) -> Plan | None:
    result = await session.execute(select(Plan).where(Plan.id == plan_id))
    return result.scalar_one_or_none()


async def list_plan_features(session: AsyncSession, plan_id: str) -> list[PlanFeature]:
    # Disabled rows are returned too; their config still applies under an override.
    result = await session.execute(
        select(PlanFeature)
        .where(PlanFeature.plan_id == plan_id)
        .order_by(PlanFeature.feature_key)
    )
    return list(result.scalars().all())
