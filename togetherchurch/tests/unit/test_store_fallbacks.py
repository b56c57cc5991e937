from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from togetherchurch.core.errors import FeatureNotEnabledError
from togetherchurch.services.auth.sessions import Unauthenticated, get_session_user, resolve_access
from togetherchurch.services.entitlements import (
    get_church_plan,
    get_feature_description,
    has_feature,
    list_features,
    list_overrides,
    require_feature_for_church,
    resolve_features,
    resolve_plan,
)


class UnavailableSession:
    # Stands in for an AsyncSession whose database cannot be reached.
    def __init__(self) -> None:
        self.calls = 0

    async def execute(self, *args, **kwargs):
        self.calls += 1
        raise OperationalError("SELECT 1", {}, Exception("could not connect to server"))


@pytest.mark.asyncio
async def test_catalog_read_failure_yields_empty_catalog() -> None:
    session = UnavailableSession()
    assert await list_features(session) == []
    assert await get_feature_description(session, "engage.groups") is None
    assert session.calls == 2


@pytest.mark.asyncio
async def test_plan_and_override_read_failures_yield_nothing() -> None:
    session = UnavailableSession()
    assert await resolve_plan(session, "church-1") is None
    assert await get_church_plan(session, "church-1") is None
    assert await list_overrides(session, "church-1") == {}


@pytest.mark.asyncio
async def test_unavailable_store_never_enables_features() -> None:
    features = await resolve_features(UnavailableSession(), "church-1")
    assert features == {}
    assert has_feature(features, "core.people") is False
    with pytest.raises(FeatureNotEnabledError) as excinfo:
        await require_feature_for_church(UnavailableSession(), "church-1", "core.people")
    assert excinfo.value.feature_key == "core.people"


@pytest.mark.asyncio
async def test_session_read_failure_is_treated_as_signed_out() -> None:
    assert await get_session_user(UnavailableSession(), "tcs_token") is None
    assert isinstance(await resolve_access(UnavailableSession(), "tcs_token"), Unauthenticated)


@pytest.mark.asyncio
async def test_missing_token_skips_the_store() -> None:
    session = UnavailableSession()
    assert isinstance(await resolve_access(session, None), Unauthenticated)
    assert session.calls == 0
