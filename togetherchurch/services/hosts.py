"""Host classification for the marketing site, the app and the API surface.

The router is pure: it takes a :class:`HostConfig` built once at startup and
returns a :class:`HostDecision`; the HTTP middleware in ``apps.api.main`` turns
decisions into responses.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Literal

from togetherchurch.core.config import Settings, split_csv


HostKind = Literal["marketing", "app", "api", "unknown"]

ACTION_PASS = "pass"
ACTION_REDIRECT = "redirect"
ACTION_NOT_FOUND = "not_found"

# Static assets and health checks are served on every host.
PASSTHROUGH_PREFIXES = (
    "/static",
    "/_next",
    "/favicon.ico",
    "/robots.txt",
    "/sitemap.xml",
    "/health",
)

# Paths that belong to the app surface and never render on marketing hosts.
APP_ROUTE_PATTERN = re.compile(r"^/(login|dashboard|admin|api)(/|$)")


@dataclass(frozen=True)
class HostConfig:
    canonical_app_host: str
    alias_hosts: tuple[str, ...] = ()
    app_hosts: tuple[str, ...] = ()
    marketing_hosts: tuple[str, ...] = ()
    api_host: str | None = None
    local_hosts: tuple[str, ...] = ("localhost", "127.0.0.1")
    preview_host_suffixes: tuple[str, ...] = ()
    production: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "HostConfig":
        api_host = (settings.api_host or "").strip().lower() or None
        return cls(
            canonical_app_host=settings.canonical_app_host.strip().lower(),
            alias_hosts=split_csv(settings.app_alias_hosts),
            app_hosts=split_csv(settings.app_hosts),
            marketing_hosts=split_csv(settings.marketing_hosts),
            api_host=api_host,
            local_hosts=split_csv(settings.local_hosts),
            preview_host_suffixes=split_csv(settings.preview_host_suffixes),
            production=settings.is_production,
        )


@dataclass(frozen=True)
class HostContext:
    kind: HostKind
    host: str


@dataclass(frozen=True)
class HostDecision:
    action: str
    status_code: int | None = None
    location: str | None = None


PASS = HostDecision(action=ACTION_PASS)
NOT_FOUND = HostDecision(action=ACTION_NOT_FOUND, status_code=404)


def normalize_host(raw_host: str | None) -> str:
    # Drop the port and case; a missing Host header is treated as local.
    host = (raw_host or "localhost").strip().lower()
    if host.startswith("["):
        return host.split("]", 1)[0] + "]"
    return host.split(":", 1)[0]


def is_alias_host(raw_host: str | None, config: HostConfig) -> bool:
    return normalize_host(raw_host) in config.alias_hosts


def classify_host(raw_host: str | None, config: HostConfig) -> HostContext:
    host = normalize_host(raw_host)
    if host in config.marketing_hosts:
        return HostContext(kind="marketing", host=host)
    if (
        host == config.canonical_app_host
        or host in config.alias_hosts
        or host in config.app_hosts
        or host in config.local_hosts
        or any(host.endswith(suffix) for suffix in config.preview_host_suffixes)
    ):
        return HostContext(kind="app", host=host)
    if config.api_host and host == config.api_host:
        return HostContext(kind="api", host=host)
    return HostContext(kind="unknown", host=host)


def route_request(
    *,
    raw_host: str | None,
    path: str,
    query: str,
    config: HostConfig,
    raw_path: str | None = None,
) -> HostDecision:
    # ``path`` is decoded and drives matching; ``raw_path`` keeps the client's
    # percent-encoding for redirect targets.
    if path.startswith(PASSTHROUGH_PREFIXES):
        return PASS

    context = classify_host(raw_host, config)

    if context.host in config.alias_hosts:
        suffix = f"?{query}" if query else ""
        return HostDecision(
            action=ACTION_REDIRECT,
            status_code=301,
            location=f"https://{config.canonical_app_host}{raw_path or path}{suffix}",
        )

    if context.kind == "marketing":
        if APP_ROUTE_PATTERN.match(path):
            return HostDecision(
                action=ACTION_REDIRECT,
                status_code=302,
                location=f"https://{config.canonical_app_host}/login",
            )
        return PASS

    if context.kind == "app":
        return PASS

    if context.kind == "api":
        if path == "/api" or path.startswith("/api/"):
            return PASS
        return NOT_FOUND

    if config.production:
        return NOT_FOUND
    return PASS
