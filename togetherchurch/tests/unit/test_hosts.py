from __future__ import annotations

from dataclasses import replace

import pytest

from togetherchurch.core.config import Settings
from togetherchurch.services.hosts import (
    ACTION_NOT_FOUND,
    ACTION_PASS,
    ACTION_REDIRECT,
    HostConfig,
    classify_host,
    is_alias_host,
    normalize_host,
    route_request,
)


CONFIG = HostConfig(
    canonical_app_host="com.example.app",
    alias_hosts=("app.example.com",),
    app_hosts=("members.example.org",),
    marketing_hosts=("example.com", "www.example.com"),
    api_host="api.example.com",
    local_hosts=("localhost", "127.0.0.1"),
    preview_host_suffixes=(".preview.example.net",),
)


def _route(host: str | None, path: str, query: str = "", config: HostConfig = CONFIG):
    return route_request(raw_host=host, path=path, query=query, config=config)


def test_normalize_host_strips_port_and_case() -> None:
    assert normalize_host("Example.COM:8443") == "example.com"
    assert normalize_host(None) == "localhost"
    assert normalize_host("[::1]:3000") == "[::1]"


@pytest.mark.parametrize(
    ("host", "kind"),
    [
        ("example.com", "marketing"),
        ("www.example.com:443", "marketing"),
        ("com.example.app", "app"),
        ("app.example.com", "app"),
        ("members.example.org", "app"),
        ("localhost:8000", "app"),
        ("pr-12.preview.example.net", "app"),
        ("api.example.com", "api"),
        ("evil.example.org", "unknown"),
    ],
)
def test_classify_host(host: str, kind: str) -> None:
    assert classify_host(host, CONFIG).kind == kind


def test_is_alias_host() -> None:
    assert is_alias_host("APP.example.com:443", CONFIG) is True
    assert is_alias_host("com.example.app", CONFIG) is False


def test_alias_host_redirects_permanently_with_query() -> None:
    decision = _route("app.example.com", "/dashboard", "tab=events&page=2")
    assert decision.action == ACTION_REDIRECT
    assert decision.status_code == 301
    assert decision.location == "https://com.example.app/dashboard?tab=events&page=2"


def test_alias_host_redirect_without_query_has_no_question_mark() -> None:
    assert _route("app.example.com", "/admin/groups").location == "https://com.example.app/admin/groups"


def test_alias_redirect_keeps_encoded_path() -> None:
    decision = route_request(
        raw_host="app.example.com",
        path="/files/a/b?c",
        query="q=1",
        config=CONFIG,
        raw_path="/files/a%2Fb%3Fc",
    )
    assert decision.location == "https://com.example.app/files/a%2Fb%3Fc?q=1"


@pytest.mark.parametrize("path", ["/login", "/dashboard", "/admin", "/admin/settings/plan", "/api/features"])
def test_marketing_host_sends_app_paths_to_login(path: str) -> None:
    decision = _route("example.com", path)
    assert decision.action == ACTION_REDIRECT
    assert decision.status_code == 302
    assert decision.location == "https://com.example.app/login"


@pytest.mark.parametrize("path", ["/", "/pricing", "/administrator", "/apis", "/login-help"])
def test_marketing_host_serves_its_own_pages(path: str) -> None:
    assert _route("example.com", path).action == ACTION_PASS


@pytest.mark.parametrize("path", ["/static/app.css", "/_next/chunk.js", "/favicon.ico", "/health"])
def test_passthrough_prefixes_skip_classification(path: str) -> None:
    production = replace(CONFIG, production=True)
    assert _route("app.example.com", path).action == ACTION_PASS
    assert _route("evil.example.org", path, config=production).action == ACTION_PASS


def test_api_host_only_serves_api_paths() -> None:
    assert _route("api.example.com", "/api/features").action == ACTION_PASS
    assert _route("api.example.com", "/api").action == ACTION_PASS
    decision = _route("api.example.com", "/dashboard")
    assert decision.action == ACTION_NOT_FOUND
    assert decision.status_code == 404


def test_unknown_host_passes_outside_production() -> None:
    assert _route("evil.example.org", "/dashboard").action == ACTION_PASS
    production = replace(CONFIG, production=True)
    assert _route("evil.example.org", "/dashboard", config=production).action == ACTION_NOT_FOUND


def test_app_and_preview_hosts_pass() -> None:
    assert _route("com.example.app", "/admin").action == ACTION_PASS
    assert _route("pr-7.preview.example.net", "/admin").action == ACTION_PASS
    assert _route(None, "/dashboard").action == ACTION_PASS


def test_host_config_from_settings() -> None:
    settings = Settings(
        app_env="Production",
        canonical_app_host="Com.Example.App",
        app_alias_hosts="app.example.com, APP2.example.com",
        app_hosts="",
        marketing_hosts="example.com,www.example.com,example.com",
        api_host=" API.example.com ",
        local_hosts="localhost",
        preview_host_suffixes=".vercel.app",
    )
    config = HostConfig.from_settings(settings)
    assert config.canonical_app_host == "com.example.app"
    assert config.alias_hosts == ("app.example.com", "app2.example.com")
    assert config.app_hosts == ()
    assert config.marketing_hosts == ("example.com", "www.example.com")
    assert config.api_host == "api.example.com"
    assert config.production is True


def test_blank_api_host_disables_api_classification() -> None:
    config = HostConfig.from_settings(Settings(api_host="", app_env="development"))
    assert config.api_host is None
    assert classify_host("api.example.com", config).kind == "unknown"
