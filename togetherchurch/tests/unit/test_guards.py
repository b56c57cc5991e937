from __future__ import annotations

import pytest
from starlette.requests import Request

from togetherchurch.apps.api import deps
from togetherchurch.core.errors import RedirectRequired
from togetherchurch.domain.features import FeatureState
from togetherchurch.services.auth.sessions import ChurchContext, NoChurch, ResolvedAccess, SessionUser


def _request(headers: dict[str, str] | None = None) -> Request:
    raw_headers = [(key.lower().encode(), value.encode()) for key, value in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/admin/groups", "headers": raw_headers})


def _access(church_id: str = "church-1") -> ResolvedAccess:
    return ResolvedAccess(
        user=SessionUser(id="user-1", email="pastor@example.com"),
        church=ChurchContext(
            church_id=church_id, role="admin", plan_id="starter", campus_mode="off", giving_url=None
        ),
    )


def test_upgrade_url_encodes_the_feature_key() -> None:
    assert deps.upgrade_url("engage.groups") == "/admin/upgrade?feature=engage.groups"
    assert deps.upgrade_url("odd key&x=1") == "/admin/upgrade?feature=odd+key%26x%3D1"


def test_session_token_prefers_cookie_over_bearer() -> None:
    request = _request({"Cookie": "tc_session=cookie-token", "Authorization": "Bearer header-token"})
    assert deps.session_token_from_request(request) == "cookie-token"
    assert deps.session_token_from_request(_request({"Authorization": "Bearer header-token"})) == "header-token"
    assert deps.session_token_from_request(_request({"Authorization": "Basic abc"})) is None
    assert deps.session_token_from_request(_request()) is None


@pytest.mark.asyncio
async def test_route_guard_uses_request_memo(monkeypatch) -> None:
    calls = {"access": 0, "features": 0}

    async def fake_resolve_access(session, raw_token):
        calls["access"] += 1
        return _access()

    async def fake_resolve_features(session, church_id):
        calls["features"] += 1
        return {"engage.groups": FeatureState(enabled=True)}

    monkeypatch.setattr(deps, "resolve_access", fake_resolve_access)
    monkeypatch.setattr(deps, "resolve_features", fake_resolve_features)
    request = _request()

    first = await deps.check_route_feature(request, None, "engage.groups")
    with pytest.raises(RedirectRequired) as excinfo:
        await deps.check_route_feature(request, None, "org.campuses")

    assert first.church.church_id == "church-1"
    assert excinfo.value.location == "/admin/upgrade?feature=org.campuses"
    assert excinfo.value.status_code == 302
    assert calls == {"access": 1, "features": 1}

    # A new request starts from scratch.
    await deps.check_route_feature(_request(), None, "engage.groups")
    assert calls == {"access": 2, "features": 2}


@pytest.mark.asyncio
async def test_route_guard_sends_churchless_users_to_login(monkeypatch) -> None:
    async def fake_resolve_access(session, raw_token):
        return NoChurch(user=SessionUser(id="user-1", email=None))

    monkeypatch.setattr(deps, "resolve_access", fake_resolve_access)

    with pytest.raises(RedirectRequired) as excinfo:
        await deps.check_route_feature(_request(), None, "core.people")

    assert excinfo.value.location == "/login"
