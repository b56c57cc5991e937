from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping


@dataclass(frozen=True)
class FeatureState:
    # Effective state of one feature for one church.
    enabled: bool
    config: dict[str, Any] = field(default_factory=dict)


# Request-scoped effective feature map keyed by catalog feature key.
FeatureMap = dict[str, FeatureState]


@dataclass(frozen=True)
class CatalogFeature:
    key: str
    description: str | None


@dataclass(frozen=True)
class ResolvedPlan:
    """The plan behind a church's active subscription.

    ``features`` holds only the plan's enabled feature keys, mapped to the
    plan-level config payload for that key. ``configs`` carries the config of
    every plan row, enabled or not.
    """

    id: str
    name: str
    status: str
    features: Mapping[str, dict[str, Any]] = field(default_factory=dict)
    configs: Mapping[str, dict[str, Any]] = field(default_factory=dict)

    def includes_feature(self, key: str) -> bool:
        return key in self.features

    def feature_config(self, key: str) -> dict[str, Any]:
        if key in self.configs:
            return dict(self.configs[key] or {})
        return dict(self.features.get(key) or {})


@dataclass(frozen=True)
class OverrideRecord:
    feature_key: str
    enabled: bool
    config: dict[str, Any] | None = None


@dataclass(frozen=True)
class ChurchPlan:
    plan_id: str
    status: str
    current_period_end: datetime | None
