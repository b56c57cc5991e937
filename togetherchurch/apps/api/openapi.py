from __future__ import annotations

from typing import Any

from togetherchurch.apps.api.response import ErrorEnvelope


def _error_example(*, code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "error": {"code": code, "message": message},
        "meta": {"request_id": "req_example"},
    }
    if details:
        payload["error"]["details"] = details
    return payload


def _response(description: str, code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "model": ErrorEnvelope,
        "description": description,
        "content": {
            "application/json": {
                "example": _error_example(code=code, message=message, details=details),
            }
        },
    }


DEFAULT_ERROR_RESPONSES: dict[int, dict[str, Any]] = {
    401: _response("Unauthorized", "AUTH_UNAUTHORIZED", "Not authenticated"),
    403: _response(
        "Forbidden",
        "FEATURE_NOT_ENABLED",
        'Feature "engage.groups" is not available on your current plan.',
        {"feature_key": "engage.groups"},
    ),
    404: _response("Not found", "NOT_FOUND", "Not Found"),
    422: _response("Validation error", "REQUEST_VALIDATION_ERROR", "Validation error"),
    500: _response("Internal error", "INTERNAL_ERROR", "Internal server error"),
}
