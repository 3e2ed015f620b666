import json
import re
from typing import Any, Dict, Optional

from fastapi import Request
from src.core.config import settings
from src.core.errors import RequestMalformed
from src.domain.models import MetricsRequest

from shared.constants import Sources

SUBSCRIPTION_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)
# ARM naming rules; values are interpolated into Resource Graph queries
RESOURCE_GROUP_RE = re.compile(r"^[-\w\.\(\)]{1,90}$")

MISSING_SUBSCRIPTION = "Subscription ID is required"


async def read_json_body(request: Request) -> Dict[str, Any]:
    if request.method != "POST":
        return {}
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except ValueError as e:
        raise RequestMalformed("Request body is not valid JSON") from e
    if not isinstance(body, dict):
        raise RequestMalformed("Request body must be a JSON object")
    return body


def _pick(query: Any, body: Dict[str, Any], name: str) -> Optional[str]:
    value = query.get(name)
    if value is None:
        value = body.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise RequestMalformed(f"{name} must be a string")
    return value.strip() or None


def validate_subscription(value: Optional[str]) -> str:
    if not value:
        raise RequestMalformed(MISSING_SUBSCRIPTION)
    if not SUBSCRIPTION_RE.match(value):
        raise RequestMalformed("Subscription ID must be a GUID")
    return value


def validate_resource_group(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not RESOURCE_GROUP_RE.match(value) or value.endswith("."):
        raise RequestMalformed("Invalid resource group name")
    return value


async def parse_metrics_request(request: Request) -> MetricsRequest:
    """Merge query string and JSON body (query wins) into a MetricsRequest."""
    body = await read_json_body(request)
    query = request.query_params
    subscription = (
        _pick(query, body, "subscriptionId") or settings.azure_subscription_id
    )
    resource_group = (
        _pick(query, body, "resourceGroup") or settings.azure_resource_group
    )
    metric_type = _pick(query, body, "type") or Sources.ALL_TYPE
    return MetricsRequest(
        subscription_id=validate_subscription(subscription),
        resource_group=validate_resource_group(resource_group),
        metric_type=metric_type,
    )
