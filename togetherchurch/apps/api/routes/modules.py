from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from togetherchurch.apps.api.deps import (
    FeatureGrant,
    get_db,
    get_request_features,
    require_all_features,
    route_feature,
)
from togetherchurch.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from togetherchurch.apps.api.response import SuccessEnvelope, success_response
from togetherchurch.services.auth.sessions import ResolvedAccess
from togetherchurch.services.entitlements import (
    FEATURE_CAMPUSES,
    FEATURE_CARE_MEALS,
    FEATURE_EVENT_TICKETS,
    FEATURE_GROUPS,
    FEATURE_KIDS_CHECKIN,
    FEATURE_KIDS_CHECKIN_LABELS,
    FEATURE_MESSAGING_SMS,
    feature_map_to_dict,
    get_feature_config,
)

# Feature-gated pages. Each one only renders once the route guard has passed.
router = APIRouter(tags=["modules"], responses=DEFAULT_ERROR_RESPONSES)
# Action endpoints report denials as 401/403 instead of redirecting.
api_router = APIRouter(prefix="/api", tags=["features"], responses=DEFAULT_ERROR_RESPONSES)


class ModulePage(BaseModel):
    feature: str
    church_id: str
    role: str
    config: dict[str, Any]


class FeatureStateResponse(BaseModel):
    enabled: bool
    config: dict[str, Any]


class LabelSettingsResponse(BaseModel):
    church_id: str
    config: dict[str, Any]


async def _module_page(
    request: Request, db: AsyncSession, access: ResolvedAccess, feature_key: str
) -> dict:
    # Reuses the map the guard already resolved for this request.
    features = await get_request_features(request, db, access.church.church_id)
    payload = ModulePage(
        feature=feature_key,
        church_id=access.church.church_id,
        role=access.church.role,
        config=get_feature_config(features, feature_key),
    )
    return success_response(request=request, data=payload.model_dump())


@router.get("/admin/groups", response_model=SuccessEnvelope[ModulePage])
async def admin_groups(
    request: Request,
    access: ResolvedAccess = Depends(route_feature(FEATURE_GROUPS)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await _module_page(request, db, access, FEATURE_GROUPS)


@router.get("/admin/care-meals", response_model=SuccessEnvelope[ModulePage])
async def admin_care_meals(
    request: Request,
    access: ResolvedAccess = Depends(route_feature(FEATURE_CARE_MEALS)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await _module_page(request, db, access, FEATURE_CARE_MEALS)


@router.get("/admin/campuses", response_model=SuccessEnvelope[ModulePage])
async def admin_campuses(
    request: Request,
    access: ResolvedAccess = Depends(route_feature(FEATURE_CAMPUSES)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await _module_page(request, db, access, FEATURE_CAMPUSES)


@router.get("/admin/kids", response_model=SuccessEnvelope[ModulePage])
async def admin_kids(
    request: Request,
    access: ResolvedAccess = Depends(route_feature(FEATURE_KIDS_CHECKIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await _module_page(request, db, access, FEATURE_KIDS_CHECKIN)


@router.get("/admin/messaging", response_model=SuccessEnvelope[ModulePage])
async def admin_messaging(
    request: Request,
    access: ResolvedAccess = Depends(route_feature(FEATURE_MESSAGING_SMS)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await _module_page(request, db, access, FEATURE_MESSAGING_SMS)


@router.get("/admin/events/{event_id}/tickets", response_model=SuccessEnvelope[ModulePage])
async def admin_event_tickets(
    event_id: str,
    request: Request,
    access: ResolvedAccess = Depends(route_feature(FEATURE_EVENT_TICKETS)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await _module_page(request, db, access, FEATURE_EVENT_TICKETS)


@router.get("/dashboard/groups", response_model=SuccessEnvelope[ModulePage])
async def dashboard_groups(
    request: Request,
    access: ResolvedAccess = Depends(route_feature(FEATURE_GROUPS)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await _module_page(request, db, access, FEATURE_GROUPS)


@api_router.get("/features", response_model=SuccessEnvelope[dict[str, FeatureStateResponse]])
async def church_features(
    request: Request, grant: FeatureGrant = Depends(require_all_features(()))
) -> dict:
    # Serialized map for clients that hide navigation for disabled features.
    return success_response(request=request, data=feature_map_to_dict(grant.features))


@api_router.get("/kids-checkin/labels", response_model=SuccessEnvelope[LabelSettingsResponse])
async def kids_checkin_labels(
    request: Request,
    grant: FeatureGrant = Depends(
        require_all_features((FEATURE_KIDS_CHECKIN, FEATURE_KIDS_CHECKIN_LABELS))
    ),
) -> dict:
    payload = LabelSettingsResponse(
        church_id=grant.church.church_id,
        config=get_feature_config(grant.features, FEATURE_KIDS_CHECKIN_LABELS),
    )
    return success_response(request=request, data=payload.model_dump())
