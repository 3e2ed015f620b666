"""Wire responses with the CORS headers the dashboard origin needs."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from src.core.config import settings
from src.domain.models import MetricsSnapshot

JSON_CONTENT_TYPE = "application/json"


def allowed_origin(origin: Optional[str]) -> str:
    allowed = settings.cors_allowed_origins
    if origin and origin in allowed:
        return origin
    return allowed[0] if allowed else "*"


def cors_headers(request: Request) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": allowed_origin(request.headers.get("origin")),
        "Access-Control-Allow-Methods": ", ".join(settings.cors_allowed_methods),
        "Access-Control-Allow-Headers": ", ".join(settings.cors_allowed_headers),
        "Access-Control-Allow-Credentials": "true",
        "Vary": "Origin",
    }


def preflight_response(request: Request) -> Response:
    return Response(status_code=204, headers=cors_headers(request))


def json_response(request: Request, body: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        content=body,
        status_code=status_code,
        headers=cors_headers(request),
        media_type=JSON_CONTENT_TYPE,
    )


def snapshot_body(snapshot: MetricsSnapshot) -> Dict[str, Any]:
    """Flatten a snapshot: sections become top-level fields in registry order."""
    body: Dict[str, Any] = {
        "timestamp": iso_timestamp(snapshot.timestamp),
        "subscriptionId": snapshot.subscription_id,
        "resourceGroup": snapshot.resource_group,
    }
    body.update(snapshot.sections)
    body["errors"] = [e.model_dump() for e in snapshot.errors]
    return body


def snapshot_response(request: Request, snapshot: MetricsSnapshot) -> JSONResponse:
    # partial or total source failure is still a completed aggregation
    return json_response(request, snapshot_body(snapshot))


def error_response(
    request: Request, message: str, status_code: int = 400
) -> JSONResponse:
    return json_response(request, {"error": message}, status_code)


def fault_response(
    request: Request, exc: BaseException, error: str = "Internal server error"
) -> JSONResponse:
    return json_response(
        request,
        {
            "error": error,
            "message": str(exc) or type(exc).__name__,
            "timestamp": iso_timestamp(utcnow()),
        },
        500,
    )


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
