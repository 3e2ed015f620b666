"""Active Service Health events for the subscription."""

from src.core.config import settings
from src.domain.models import ServiceHealthSummary

from .base import SourceContext

ACTIVE = "Active"

# eventType -> summary field
EVENT_FIELDS = {
    "ServiceIssue": "active_issues",
    "PlannedMaintenance": "planned_maintenance",
    "HealthAdvisory": "health_advisories",
    "SecurityAdvisory": "security_advisories",
}


async def fetch_service_health(ctx: SourceContext) -> ServiceHealthSummary:
    path = f"{ctx.subscription_path}/providers/Microsoft.ResourceHealth/events"
    events = await ctx.arm.list_all(path, settings.resource_health_api_version)
    counts = dict.fromkeys(EVENT_FIELDS.values(), 0)
    for event in events:
        props = event.get("properties") or {}
        if props.get("status") != ACTIVE:
            continue
        field = EVENT_FIELDS.get(props.get("eventType"))
        if field:
            counts[field] += 1
    return ServiceHealthSummary(**counts)


def fallback() -> ServiceHealthSummary:
    return ServiceHealthSummary(source="fallback")
