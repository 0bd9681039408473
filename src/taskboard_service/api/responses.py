"""Response envelope shared by every endpoint."""

from typing import Any

from fastapi.responses import JSONResponse

from taskboard_service.core.errors import ServiceError
from taskboard_service.models import BaseDocument


def envelope(status_code: int, message: str | None = None, **payload: Any) -> JSONResponse:
    """Build ``{statusCode, message, ...payload}``.

    Entities in the payload are projected with ``to_response`` so secret
    fields never reach the wire.
    """
    content: dict[str, Any] = {"statusCode": status_code}
    if message is not None:
        content["message"] = message
    for key, value in payload.items():
        content[key] = project(value)
    return JSONResponse(content=content, status_code=status_code)


def project(value: Any) -> Any:
    """Recursively convert entities to their public projection."""
    if isinstance(value, BaseDocument):
        return value.to_response()
    if isinstance(value, dict):
        return {k: project(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [project(v) for v in value]
    return value


def error_envelope(error: ServiceError) -> JSONResponse:
    payload: dict[str, Any] = {"error": error.code}
    if isinstance(error.details, str):
        payload["error"] = error.details
    elif error.details is not None:
        payload["details"] = error.details
    return envelope(error.status_code, error.message, **payload)
