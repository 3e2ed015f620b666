from fastapi import APIRouter, Depends, Request
from src.api.dependencies import get_metrics_service
from src.api.requests import parse_metrics_request
from src.api.responses import (
    error_response,
    fault_response,
    preflight_response,
    snapshot_response,
)
from src.core.errors import RequestMalformed
from src.core.logger import get_logger
from src.services.aggregator import MetricsService

logger = get_logger("metrics.api")

router = APIRouter()


@router.api_route("/metrics", methods=["GET", "POST", "OPTIONS"])
async def aggregate_metrics(
    request: Request, svc: MetricsService = Depends(get_metrics_service)
):
    if request.method == "OPTIONS":
        return preflight_response(request)
    try:
        metrics_request = await parse_metrics_request(request)
        snapshot = await svc.collect(metrics_request)
    except RequestMalformed as e:
        logger.info("metrics_request_rejected", extra={"error": str(e)})
        return error_response(request, str(e), 400)
    except Exception as e:
        logger.error("metrics_handler_fault", extra={"error": str(e)}, exc_info=True)
        return fault_response(request, e)
    return snapshot_response(request, snapshot)
