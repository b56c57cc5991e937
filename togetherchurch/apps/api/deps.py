from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import AsyncGenerator, Iterable
from urllib.parse import urlencode

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from togetherchurch.core.config import get_settings
from togetherchurch.core.errors import FeatureNotEnabledError, RedirectRequired
from togetherchurch.domain.features import FeatureMap
from togetherchurch.persistence.db import get_session
from togetherchurch.services.auth.sessions import (
    AccessResult,
    ChurchContext,
    NoChurch,
    ResolvedAccess,
    SessionUser,
    resolve_access,
)
from togetherchurch.services.entitlements import has_feature, resolve_features


logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"
UPGRADE_PATH = "/admin/upgrade"


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    # One AsyncSession per request; context manager ensures close on success/error.
    async with get_session() as session:
        yield session


def _parse_bearer_token(header_value: str | None) -> str | None:
    if not header_value:
        return None
    parts = header_value.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def session_token_from_request(request: Request) -> str | None:
    # Browsers send the session cookie; API clients may send it as a bearer token.
    settings = get_settings()
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        return token
    return _parse_bearer_token(request.headers.get("Authorization"))


def upgrade_url(feature_key: str) -> str:
    return f"{UPGRADE_PATH}?{urlencode({'feature': feature_key})}"


async def get_request_access(request: Request, db: AsyncSession) -> AccessResult:
    # Memoized per request only; every new request re-reads the session.
    cached = getattr(request.state, "access", None)
    if cached is not None:
        return cached
    access = await resolve_access(db, session_token_from_request(request))
    request.state.access = access
    return access


async def get_request_features(request: Request, db: AsyncSession, church_id: str) -> FeatureMap:
    cached = getattr(request.state, "features", None)
    if cached is not None and cached[0] == church_id:
        return cached[1]
    features = await resolve_features(db, church_id)
    request.state.features = (church_id, features)
    return features


async def check_route_feature(request: Request, db: AsyncSession, feature_key: str) -> ResolvedAccess:
    """Gate a page behind ``feature_key``.

    Visitors without a session, or without an active church membership, are
    sent to the login page. Members whose church lacks the feature are sent to
    the upgrade page for that key. On success the resolved access is returned
    so the page can use it without looking it up again.
    """
    access = await get_request_access(request, db)
    if not isinstance(access, ResolvedAccess):
        reason = "no_church" if isinstance(access, NoChurch) else "unauthenticated"
        logger.info("route_guard_login path=%s reason=%s", request.url.path, reason)
        raise RedirectRequired(LOGIN_PATH)

    features = await get_request_features(request, db, access.church.church_id)
    if not has_feature(features, feature_key):
        logger.info(
            "route_guard_upgrade path=%s church_id=%s feature_key=%s",
            request.url.path,
            access.church.church_id,
            feature_key,
        )
        raise RedirectRequired(upgrade_url(feature_key))
    return access


def route_feature(feature_key: str):
    # Dependency factory for pages gated on a single feature.
    async def _dependency(request: Request, db: AsyncSession = Depends(get_db)) -> ResolvedAccess:
        return await check_route_feature(request, db, feature_key)

    return _dependency


async def require_page_access(request: Request, db: AsyncSession = Depends(get_db)) -> ResolvedAccess:
    # Pages without a feature gate still need a signed-in church member.
    access = await get_request_access(request, db)
    if not isinstance(access, ResolvedAccess):
        raise RedirectRequired(LOGIN_PATH)
    return access


async def require_church_admin(access: ResolvedAccess = Depends(require_page_access)) -> ResolvedAccess:
    if access.church.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "AUTH_FORBIDDEN", "message": "Admin access required."},
        )
    return access


@dataclass(frozen=True)
class FeatureGrant:
    user: SessionUser
    church: ChurchContext
    features: FeatureMap


def _auth_error(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "AUTH_UNAUTHORIZED", "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_all_features(feature_keys: Iterable[str]):
    # Action guard: API callers get status codes instead of page redirects.
    keys = tuple(feature_keys)

    async def _dependency(request: Request, db: AsyncSession = Depends(get_db)) -> FeatureGrant:
        access = await get_request_access(request, db)
        if not isinstance(access, ResolvedAccess):
            message = "No active church membership" if isinstance(access, NoChurch) else "Not authenticated"
            raise _auth_error(message)
        features = await get_request_features(request, db, access.church.church_id)
        for key in keys:
            if not has_feature(features, key):
                raise FeatureNotEnabledError(key)
        return FeatureGrant(user=access.user, church=access.church, features=features)

    return _dependency


def require_feature(feature_key: str):
    return require_all_features((feature_key,))
