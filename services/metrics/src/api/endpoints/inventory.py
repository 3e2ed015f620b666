from fastapi import APIRouter, Depends, Request
from src.api.dependencies import get_inventory_service
from src.api.requests import validate_resource_group, validate_subscription
from src.api.responses import (
    error_response,
    fault_response,
    iso_timestamp,
    json_response,
    preflight_response,
    utcnow,
)
from src.core.config import settings
from src.core.errors import RequestMalformed
from src.core.logger import get_logger
from src.services.inventory import InventoryService

logger = get_logger("metrics.api.inventory")

router = APIRouter()


def _subscription(request: Request) -> str:
    return validate_subscription(
        request.query_params.get("subscriptionId") or settings.azure_subscription_id
    )


@router.api_route("/resourceGroups", methods=["GET", "OPTIONS"])
async def resource_groups(
    request: Request, svc: InventoryService = Depends(get_inventory_service)
):
    if request.method == "OPTIONS":
        return preflight_response(request)
    try:
        subscription_id = _subscription(request)
        groups = await svc.resource_groups(subscription_id)
    except RequestMalformed as e:
        return error_response(request, str(e), 400)
    except Exception as e:
        logger.error("resource_groups_fault", extra={"error": str(e)}, exc_info=True)
        return fault_response(request, e, error="Failed to fetch resource groups")
    return json_response(
        request,
        {
            "subscriptionId": subscription_id,
            "resourceGroups": [g.to_payload() for g in groups],
            "timestamp": iso_timestamp(utcnow()),
        },
    )


@router.api_route("/resources", methods=["GET", "OPTIONS"])
async def resources(
    request: Request, svc: InventoryService = Depends(get_inventory_service)
):
    if request.method == "OPTIONS":
        return preflight_response(request)
    try:
        resource_group = validate_resource_group(
            request.query_params.get("resourceGroup") or None
        )
        if resource_group is None:
            raise RequestMalformed("resourceGroup parameter is required")
        subscription_id = _subscription(request)
        items = await svc.resources(subscription_id, resource_group)
    except RequestMalformed as e:
        return error_response(request, str(e), 400)
    except Exception as e:
        logger.error("resources_fault", extra={"error": str(e)}, exc_info=True)
        return fault_response(request, e, error="Failed to fetch resources")
    return json_response(
        request,
        {
            "subscriptionId": subscription_id,
            "resourceGroup": resource_group,
            "resources": [r.to_payload() for r in items],
            "count": len(items),
            "timestamp": iso_timestamp(utcnow()),
        },
    )
