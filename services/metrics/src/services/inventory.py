"""Resource group and per-group resource listings."""

from typing import Any, Dict, List, Optional

from src.core.config import settings
from src.domain.models import ResourceGroupInfo, ResourceInfo
from src.sources.base import ArmReader

RESOURCE_LIMIT = 1000


def resources_query(resource_group: str) -> str:
    # resource_group is validated upstream against the ARM naming rules
    return (
        "Resources\n"
        f"| where resourceGroup =~ '{resource_group}'\n"
        "| project name, type, location, id, kind, properties, tags\n"
        "| order by type asc, name asc\n"
        f"| limit {RESOURCE_LIMIT}"
    )


def public_url(resource: Dict[str, Any]) -> Optional[str]:
    """Browsable endpoint for web apps, static sites and storage accounts."""
    kind = (resource.get("type") or "").lower()
    name = resource.get("name")
    props = resource.get("properties") or {}
    if kind == "microsoft.web/sites":
        return f"https://{name}.azurewebsites.net"
    if kind == "microsoft.web/staticsites":
        host = props.get("defaultHostname")
        return f"https://{host}" if host else f"https://{name}.azurestaticapps.net"
    if kind == "microsoft.storage/storageaccounts":
        endpoints = props.get("primaryEndpoints") or {}
        return endpoints.get("web") or endpoints.get("blob")
    return None


class InventoryService:
    def __init__(self, arm: ArmReader):
        self.arm = arm

    async def resource_groups(self, subscription_id: str) -> List[ResourceGroupInfo]:
        items = await self.arm.list_all(
            f"/subscriptions/{subscription_id}/resourcegroups",
            settings.resources_api_version,
        )
        return [
            ResourceGroupInfo(
                name=rg.get("name", ""),
                location=rg.get("location"),
                id=rg.get("id"),
                tags=rg.get("tags") or {},
            )
            for rg in items
        ]

    async def resources(
        self, subscription_id: str, resource_group: str
    ) -> List[ResourceInfo]:
        rows = await self.arm.resource_graph(
            resources_query(resource_group), [subscription_id]
        )
        return [
            ResourceInfo(
                name=row.get("name", ""),
                type=row.get("type", ""),
                short_type=(row.get("type") or "").split("/")[-1],
                location=row.get("location"),
                id=row.get("id"),
                kind=row.get("kind"),
                url=public_url(row),
                tags=row.get("tags") or {},
            )
            for row in rows
        ]
