from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from togetherchurch.apps.api.deps import (
    get_db,
    get_request_features,
    require_church_admin,
    require_page_access,
)
from togetherchurch.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from togetherchurch.apps.api.response import SuccessEnvelope, success_response
from togetherchurch.services.auth.sessions import ResolvedAccess
from togetherchurch.services.entitlements import (
    get_church_plan,
    get_feature_description,
    has_feature,
    list_features,
    list_overrides,
    resolve_plan,
)

router = APIRouter(prefix="/admin", tags=["admin"], responses=DEFAULT_ERROR_RESPONSES)


class FeatureOverrideRow(BaseModel):
    key: str
    description: str | None
    enabled: bool
    overridden: bool
    override_enabled: bool | None


class PlanFeatureRow(BaseModel):
    key: str
    description: str | None
    enabled: bool


class PlanSettingsResponse(BaseModel):
    church_id: str
    plan_id: str | None
    plan_name: str | None
    status: str | None
    current_period_end: datetime | None
    features: list[PlanFeatureRow]


class UpgradeResponse(BaseModel):
    feature: str | None
    description: str | None
    message: str


@router.get("/settings/features", response_model=SuccessEnvelope[list[FeatureOverrideRow]])
async def feature_overrides(
    request: Request,
    access: ResolvedAccess = Depends(require_church_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    # Read-only: overrides are changed by operators, not from this view.
    church_id = access.church.church_id
    catalog = await list_features(db)
    features = await get_request_features(request, db, church_id)
    overrides = await list_overrides(db, church_id)
    rows = [
        FeatureOverrideRow(
            key=feature.key,
            description=feature.description,
            enabled=has_feature(features, feature.key),
            overridden=feature.key in overrides,
            override_enabled=overrides.get(feature.key),
        ).model_dump()
        for feature in catalog
    ]
    return success_response(request=request, data=rows)


@router.get("/settings/plan", response_model=SuccessEnvelope[PlanSettingsResponse])
async def plan_settings(
    request: Request,
    access: ResolvedAccess = Depends(require_page_access),
    db: AsyncSession = Depends(get_db),
) -> dict:
    church_id = access.church.church_id
    subscription = await get_church_plan(db, church_id)
    plan = await resolve_plan(db, church_id)
    catalog = await list_features(db)
    features = await get_request_features(request, db, church_id)
    payload = PlanSettingsResponse(
        church_id=church_id,
        plan_id=subscription.plan_id if subscription else None,
        plan_name=plan.name if plan else None,
        status=subscription.status if subscription else None,
        current_period_end=subscription.current_period_end if subscription else None,
        features=[
            PlanFeatureRow(
                key=feature.key,
                description=feature.description,
                enabled=has_feature(features, feature.key),
            )
            for feature in catalog
        ],
    )
    return success_response(request=request, data=payload.model_dump(mode="json"))


@router.get("/upgrade", response_model=SuccessEnvelope[UpgradeResponse])
async def upgrade(
    request: Request,
    feature: str | None = Query(default=None, max_length=128),
    db: AsyncSession = Depends(get_db),
) -> dict:
    # Landing page for route-guard denials; it must not itself require a feature.
    description = await get_feature_description(db, feature) if feature else None
    if description:
        message = f'"{description}" is not included in your current plan.'
    else:
        message = "This feature is not included in your current plan."
    payload = UpgradeResponse(feature=feature, description=description, message=message)
    return success_response(request=request, data=payload.model_dump())
