from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from togetherchurch.domain.models import ChurchSettings, ChurchUser
from togetherchurch.services.auth.sessions import (
    NoChurch,
    ResolvedAccess,
    Unauthenticated,
    create_user_session,
    get_session_user,
    get_user_church_context,
    resolve_access,
)
from togetherchurch.tests.utils.seed import seed_catalog, seed_church, seed_plan, seed_user


@pytest.mark.asyncio
async def test_resolve_access_for_church_member(session) -> None:
    await seed_catalog(session)
    await seed_plan(session, "starter", ["core.people"])
    church_id, token = await seed_church(
        session, plan_id="starter", role="leader", campus_mode="optional", giving_url="https://give.example.com"
    )

    access = await resolve_access(session, token)

    assert isinstance(access, ResolvedAccess)
    assert access.church.church_id == church_id
    assert access.church.role == "leader"
    assert access.church.plan_id == "starter"
    assert access.church.campus_mode == "optional"
    assert access.church.giving_url == "https://give.example.com"


@pytest.mark.asyncio
async def test_resolve_access_without_membership(session) -> None:
    user_id = await seed_user(session)
    token, _row = await create_user_session(session=session, user_id=user_id, ttl_hours=1)
    await session.commit()

    access = await resolve_access(session, token)

    assert isinstance(access, NoChurch)
    assert access.user.id == user_id
    assert isinstance(await resolve_access(session, None), Unauthenticated)
    assert isinstance(await resolve_access(session, "tcs_unknown"), Unauthenticated)


@pytest.mark.asyncio
async def test_sessions_without_expiry_stay_valid(session) -> None:
    user_id = await seed_user(session)
    token, _row = await create_user_session(session=session, user_id=user_id, ttl_hours=None)
    await session.commit()

    user = await get_session_user(session, token)

    assert user is not None
    assert user.id == user_id


@pytest.mark.asyncio
async def test_expired_session_is_rejected(session) -> None:
    user_id = await seed_user(session)
    token, row = await create_user_session(session=session, user_id=user_id, ttl_hours=1)
    row.expires_at = datetime.now(timezone.utc) - timedelta(seconds=5)
    await session.commit()

    assert await get_session_user(session, token) is None


@pytest.mark.asyncio
async def test_oldest_active_membership_wins(session) -> None:
    first_church, token = await seed_church(session, role="member")
    second_church, _other = await seed_church(session, with_member=False)
    access = await resolve_access(session, token)
    assert isinstance(access, ResolvedAccess)
    user_id = access.user.id
    session.add(
        ChurchUser(
            id=uuid4().hex,
            church_id=second_church,
            user_id=user_id,
            role="admin",
            created_at=datetime.now(timezone.utc) + timedelta(days=1),
        )
    )
    await session.commit()

    context = await get_user_church_context(session, user_id)

    assert context is not None
    assert context.church_id == first_church
    assert context.role == "member"
    assert context.plan_id is None


@pytest.mark.asyncio
async def test_church_context_defaults_for_odd_settings(session) -> None:
    church_id, token = await seed_church(session, role="owner", campus_mode="sometimes")
    access = await resolve_access(session, token)
    assert isinstance(access, ResolvedAccess)
    assert access.church.role == "member"
    assert access.church.campus_mode == "off"

    settings_row = await session.get(ChurchSettings, church_id)
    await session.delete(settings_row)
    await session.commit()

    context = await get_user_church_context(session, access.user.id)
    assert context is not None
    assert context.campus_mode == "off"
    assert context.giving_url is None
