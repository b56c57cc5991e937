from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from togetherchurch.domain.models import ChurchFeatureOverride


async def list_for_church(session: AsyncSession, church_id: str) -> list[ChurchFeatureOverride]:
    result = await session.execute(
        select(ChurchFeatureOverride)
        .where(ChurchFeatureOverride.church_id == church_id)
        .order_by(ChurchFeatureOverride.feature_key)
    )
    return list(result.scalars().all())


async def get_for_church(
    session: AsyncSession, church_id: str, feature_key: str
) -> ChurchFeatureOverride | None:
    result = await session.execute(
        select(ChurchFeatureOverride).where(
            ChurchFeatureOverride.church_id == church_id,
            ChurchFeatureOverride.feature_key == feature_key,
        )
    )
    return result.scalar_one_or_none()
