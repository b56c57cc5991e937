from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from togetherchurch.domain.models import (
    MEMBERSHIP_STATUS_ACTIVE,
    ChurchSettings,
    ChurchUser,
    User,
    UserSession,
)


async def get_session_with_user(session: AsyncSession, token_hash: str) -> tuple[UserSession, User] | None:
    result = await session.execute(
        select(UserSession, User)
        .join(User, User.id == UserSession.user_id)
        .where(UserSession.token_hash == token_hash)
    )
    row = result.first()
    if row is None:
        return None
    return row[0], row[1]


async def get_first_active_membership(session: AsyncSession, user_id: str) -> ChurchUser | None:
    # Users in several churches land in the one they joined first.
    result = await session.execute(
        select(ChurchUser)
        .where(ChurchUser.user_id == user_id, ChurchUser.status == MEMBERSHIP_STATUS_ACTIVE)
        .order_by(ChurchUser.created_at, ChurchUser.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_church_settings(session: AsyncSession, church_id: str) -> ChurchSettings | None:
    result = await session.execute(select(ChurchSettings).where(ChurchSettings.church_id == church_id))
    return result.scalar_one_or_none()
