from __future__ import annotations

import pytest

from togetherchurch.domain.models import PlanFeature
from togetherchurch.services.entitlements import has_feature, resolve_features, resolve_plan
from togetherchurch.tests.utils.seed import CATALOG, add_override, seed_catalog, seed_church, seed_plan


@pytest.mark.asyncio
async def test_resolve_features_is_repeatable(session) -> None:
    await seed_catalog(session)
    await seed_plan(session, "starter", {"core.people": None, "core.messaging_sms": {"monthly_segments": 500}})
    church_id, _token = await seed_church(session, plan_id="starter")
    await add_override(session, church_id, "engage.groups", True, {"max_groups": 5})
    await add_override(session, church_id, "core.people", False)

    first = await resolve_features(session, church_id)
    second = await resolve_features(session, church_id)

    assert first == second
    assert set(first) == set(CATALOG)


@pytest.mark.asyncio
async def test_resolve_features_applies_plan_and_overrides_from_store(session) -> None:
    await seed_catalog(session)
    await seed_plan(session, "starter", ["core.people", "core.events"], disabled=["org.campuses"])
    church_id, _token = await seed_church(session, plan_id="starter")
    await add_override(session, church_id, "engage.groups", True)
    await add_override(session, church_id, "core.events", False)
    await add_override(session, church_id, "legacy.bulletins", True)

    features = await resolve_features(session, church_id)

    # Plan membership decides keys without an override.
    assert has_feature(features, "core.people") is True
    assert has_feature(features, "org.campuses") is False
    # Overrides win in both directions.
    assert has_feature(features, "engage.groups") is True
    assert has_feature(features, "core.events") is False
    # Keys outside the catalog never show up.
    assert "legacy.bulletins" not in features
    assert set(features) == set(CATALOG)


@pytest.mark.asyncio
async def test_override_keeps_config_of_disabled_plan_row(session) -> None:
    await seed_catalog(session)
    await seed_plan(session, "starter", ["core.people"])
    session.add(
        PlanFeature(
            plan_id="starter",
            feature_key="core.messaging_sms",
            enabled=False,
            config={"monthly_segments": 200, "sender": "shortcode"},
        )
    )
    await session.commit()
    church_id, _token = await seed_church(session, plan_id="starter")

    plan = await resolve_plan(session, church_id)
    assert plan is not None
    assert plan.includes_feature("core.messaging_sms") is False

    await add_override(session, church_id, "core.messaging_sms", True, {"monthly_segments": 1000})
    features = await resolve_features(session, church_id)

    assert features["core.messaging_sms"].enabled is True
    assert features["core.messaging_sms"].config == {"monthly_segments": 1000, "sender": "shortcode"}
