from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from togetherchurch.apps.api.response import REQUEST_ID_HEADER, error_response, get_request_id
from togetherchurch.core.errors import FeatureNotEnabledError, RedirectRequired


logger = logging.getLogger(__name__)

_DEFAULT_ERROR_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "AUTH_UNAUTHORIZED",
    403: "AUTH_FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_ERROR",
    503: "SERVICE_UNAVAILABLE",
}


def _default_code(status_code: int) -> str:
    return _DEFAULT_ERROR_CODES.get(status_code, "UNKNOWN_ERROR")


def _split_detail(detail: Any, status_code: int) -> tuple[str, str, dict[str, Any] | None]:
    # Accept both {"code", "message", ...} dicts and plain string details.
    if isinstance(detail, dict):
        code = str(detail.get("code") or _default_code(status_code))
        message = str(detail.get("message") or "Request failed")
        details = {k: v for k, v in detail.items() if k not in {"code", "message"}}
        return code, message, details or None
    if isinstance(detail, str):
        return _default_code(status_code), detail, None
    return _default_code(status_code), "Request failed", None


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code, message, details = _split_detail(exc.detail, exc.status_code)
    payload = error_response(request=request, code=code, message=message, details=details)
    return JSONResponse(content=payload, status_code=exc.status_code, headers=exc.headers)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    payload = error_response(
        request=request,
        code="REQUEST_VALIDATION_ERROR",
        message="Validation error",
        details={"errors": jsonable_encoder(exc.errors())},
    )
    return JSONResponse(content=payload, status_code=422)


async def feature_not_enabled_handler(
    request: Request, exc: FeatureNotEnabledError
) -> JSONResponse:
    logger.info("feature_denied feature_key=%s path=%s", exc.feature_key, request.url.path)
    payload = error_response(
        request=request,
        code="FEATURE_NOT_ENABLED",
        message=str(exc),
        details={"feature_key": exc.feature_key},
    )
    return JSONResponse(content=payload, status_code=403)


async def redirect_required_handler(request: Request, exc: RedirectRequired) -> RedirectResponse:
    return RedirectResponse(url=exc.location, status_code=exc.status_code)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Log the traceback server-side only; clients get a stable envelope.
    logger.exception("unhandled_exception path=%s", request.url.path, exc_info=exc)
    payload = error_response(
        request=request,
        code="INTERNAL_ERROR",
        message="Internal server error",
    )
    # Runs outside the request-context middleware, so the id header is set here.
    return JSONResponse(
        content=payload,
        status_code=500,
        headers={REQUEST_ID_HEADER: get_request_id(request)},
    )

