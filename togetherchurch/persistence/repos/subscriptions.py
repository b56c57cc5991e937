from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from togetherchurch.domain.models import SUBSCRIPTION_STATUS_CANCELED, ChurchSubscription


async def get_current_subscription(session: AsyncSession, church_id: str) -> ChurchSubscription | None:
    # Canceled rows are history; the newest remaining row is current.
    result = await session.execute(
        select(ChurchSubscription)
        .where(
            ChurchSubscription.church_id == church_id,
            ChurchSubscription.status != SUBSCRIPTION_STATUS_CANCELED,
        )
        .order_by(ChurchSubscription.created_at.desc(), ChurchSubscription.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()
