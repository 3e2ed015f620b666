import time

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from src.api.responses import iso_timestamp, utcnow
from src.core.config import settings

router = APIRouter()


@router.get("/healthz")
async def healthz(request: Request):
    body = {
        "status": "healthy",
        "timestamp": iso_timestamp(utcnow()),
        "uptime": round(time.monotonic() - request.app.state.started_at, 3),
        "service": settings.otel_service_name,
        "version": settings.service_version,
        "cache": settings.cache_backend,
    }
    try:
        healthy = await request.app.state.cache.ping()
    except Exception as e:
        healthy = False
        body["error"] = str(e)
    if not healthy:
        body["status"] = "unhealthy"
        return JSONResponse(status_code=503, content=body)
    return body


@router.get("/readyz")
async def readyz(request: Request):
    if request.app.state.ready_event.is_set():
        return {"status": "ready"}
    return Response(status_code=503, content="not ready")
