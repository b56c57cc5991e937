from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import hashlib
import logging
import secrets
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from togetherchurch.domain.models import UserSession
from togetherchurch.persistence.repos import memberships as memberships_repo
from togetherchurch.services.entitlements import STORE_ERRORS, get_church_plan


logger = logging.getLogger(__name__)

TOKEN_PREFIX = "tcs_"
CHURCH_ROLES = {"admin", "leader", "member"}
CAMPUS_MODES = {"off", "optional", "required"}


@dataclass(frozen=True)
class SessionUser:
    id: str
    email: str | None


@dataclass(frozen=True)
class ChurchContext:
    church_id: str
    role: str
    plan_id: str | None
    campus_mode: str
    giving_url: str | None


@dataclass(frozen=True)
class Unauthenticated:
    pass


@dataclass(frozen=True)
class NoChurch:
    user: SessionUser


@dataclass(frozen=True)
class ResolvedAccess:
    user: SessionUser
    church: ChurchContext


# Outcome of establishing who is asking and for which church.
AccessResult = Unauthenticated | NoChurch | ResolvedAccess


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # Some drivers hand back naive timestamps; stored values are always UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def hash_session_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def generate_session_token() -> tuple[str, str, str, str]:
    token_id = uuid4().hex
    raw_token = f"{TOKEN_PREFIX}{token_id}_{secrets.token_urlsafe(32)}"
    return token_id, raw_token, raw_token[:12], hash_session_token(raw_token)


async def create_user_session(
    *,
    session: AsyncSession,
    user_id: str,
    ttl_hours: int | None,
) -> tuple[str, UserSession]:
    # Mirrors what the auth service writes; used by seeding and tests.
    token_id, raw_token, token_prefix, token_hash = generate_session_token()
    now = _utc_now()
    row = UserSession(
        id=token_id,
        user_id=user_id,
        token_prefix=token_prefix,
        token_hash=token_hash,
        created_at=now,
        expires_at=None if ttl_hours is None else now + timedelta(hours=ttl_hours),
        revoked_at=None,
    )
    session.add(row)
    await session.flush()
    return raw_token, row


async def get_session_user(session: AsyncSession, raw_token: str | None) -> SessionUser | None:
    if not raw_token:
        return None
    try:
        row = await memberships_repo.get_session_with_user(session, hash_session_token(raw_token))
    except STORE_ERRORS as exc:
        logger.warning("session_lookup_unavailable", exc_info=exc)
        return None
    if row is None:
        return None
    user_session, user = row
    if user_session.revoked_at is not None:
        return None
    if user_session.expires_at is not None and _as_utc(user_session.expires_at) <= _utc_now():
        return None
    return SessionUser(id=user.id, email=user.email)


async def get_user_church_context(session: AsyncSession, user_id: str) -> ChurchContext | None:
    try:
        membership = await memberships_repo.get_first_active_membership(session, user_id)
        if membership is None:
            return None
        settings_row = await memberships_repo.get_church_settings(session, membership.church_id)
    except STORE_ERRORS as exc:
        logger.warning("membership_lookup_unavailable user_id=%s", user_id, exc_info=exc)
        return None
    plan = await get_church_plan(session, membership.church_id)
    campus_mode = settings_row.campus_mode if settings_row else "off"
    return ChurchContext(
        church_id=membership.church_id,
        role=membership.role if membership.role in CHURCH_ROLES else "member",
        plan_id=plan.plan_id if plan else None,
        campus_mode=campus_mode if campus_mode in CAMPUS_MODES else "off",
        giving_url=settings_row.giving_url if settings_row else None,
    )


async def resolve_access(session: AsyncSession, raw_token: str | None) -> AccessResult:
    user = await get_session_user(session, raw_token)
    if user is None:
        return Unauthenticated()
    church = await get_user_church_context(session, user.id)
    if church is None:
        return NoChurch(user=user)
    return ResolvedAccess(user=user, church=church)
