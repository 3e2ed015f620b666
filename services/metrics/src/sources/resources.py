"""Resource counts by kind via Azure Resource Graph."""

from typing import Optional

from src.domain.models import ResourceCounts

from .base import SourceContext


def build_counts_query(resource_group: Optional[str]) -> str:
    # resource_group is validated upstream against the ARM naming rules
    scope = "Resources"
    if resource_group:
        scope += f"\n| where resourceGroup =~ '{resource_group}'"
    return (
        f"{scope}\n"
        "| summarize "
        "staticSites = countif(type =~ 'microsoft.web/staticsites'), "
        "functionApps = countif(type =~ 'microsoft.web/sites' "
        "and kind contains 'functionapp'), "
        "webApps = countif(type =~ 'microsoft.web/sites' "
        "and not(kind contains 'functionapp')), "
        "storageAccounts = countif(type =~ 'microsoft.storage/storageaccounts'), "
        "totalResources = count()"
    )


async def fetch_resource_counts(ctx: SourceContext) -> ResourceCounts:
    rows = await ctx.arm.resource_graph(
        build_counts_query(ctx.resource_group), [ctx.subscription_id]
    )
    if not rows:
        return ResourceCounts()
    row = rows[0]
    return ResourceCounts(
        static_sites=int(row.get("staticSites") or 0),
        function_apps=int(row.get("functionApps") or 0),
        web_apps=int(row.get("webApps") or 0),
        storage_accounts=int(row.get("storageAccounts") or 0),
        total_resources=int(row.get("totalResources") or 0),
    )


def fallback() -> ResourceCounts:
    return ResourceCounts(source="fallback")
