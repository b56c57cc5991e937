from __future__ import annotations

import logging
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from togetherchurch.apps.api.errors import (
    feature_not_enabled_handler,
    http_exception_handler,
    redirect_required_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from togetherchurch.apps.api.response import REQUEST_ID_HEADER, error_response
from togetherchurch.apps.api.routes.admin import router as admin_router
from togetherchurch.apps.api.routes.health import router as health_router
from togetherchurch.apps.api.routes.modules import api_router as features_api_router
from togetherchurch.apps.api.routes.modules import router as modules_router
from togetherchurch.core.config import Settings, get_settings
from togetherchurch.core.errors import FeatureNotEnabledError, RedirectRequired
from togetherchurch.core.logging import configure_logging
from togetherchurch.services.hosts import (
    ACTION_NOT_FOUND,
    ACTION_REDIRECT,
    HostConfig,
    route_request,
)


logger = logging.getLogger(__name__)


def _raw_path(request: Request) -> str | None:
    # Some servers include the query string in raw_path.
    raw = request.scope.get("raw_path")
    if not raw:
        return None
    return raw.decode("latin-1").partition("?")[0] or None


def create_app(settings: Settings | None = None, host_config: HostConfig | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    app = FastAPI(title="TogetherChurch API")
    # Host rules are fixed for the lifetime of the app; tests pass their own.
    app.state.host_config = host_config or HostConfig.from_settings(settings)

    @app.middleware("http")
    async def host_routing_middleware(request: Request, call_next):  # type: ignore[override]
        decision = route_request(
            raw_host=request.headers.get("host"),
            path=request.url.path,
            query=request.url.query,
            config=app.state.host_config,
            raw_path=_raw_path(request),
        )
        if decision.action == ACTION_REDIRECT:
            return RedirectResponse(url=decision.location, status_code=decision.status_code)
        if decision.action == ACTION_NOT_FOUND:
            logger.info("host_not_served host=%s path=%s", request.headers.get("host"), request.url.path)
            payload = error_response(request=request, code="NOT_FOUND", message="Not Found")
            return JSONResponse(content=payload, status_code=404)
        return await call_next(request)

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):  # type: ignore[override]
        # Preserve incoming request IDs or assign a new one for traceability.
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def _starlette_http_exception_handler(request: Request, exc: StarletteHTTPException):
        return await http_exception_handler(request, exc)

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(request: Request, exc: HTTPException):
        return await http_exception_handler(request, exc)

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(request: Request, exc: RequestValidationError):
        return await validation_exception_handler(request, exc)

    @app.exception_handler(FeatureNotEnabledError)
    async def _feature_not_enabled_handler(request: Request, exc: FeatureNotEnabledError):
        return await feature_not_enabled_handler(request, exc)

    @app.exception_handler(RedirectRequired)
    async def _redirect_required_handler(request: Request, exc: RedirectRequired):
        return await redirect_required_handler(request, exc)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        return await unhandled_exception_handler(request, exc)

    app.include_router(health_router)
    app.include_router(admin_router)
    app.include_router(modules_router)
    app.include_router(features_api_router)

    return app


app = create_app()
