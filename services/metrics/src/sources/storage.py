import asyncio
from datetime import timedelta
from typing import Any, Dict, List, Optional

from src.core.config import settings
from src.core.errors import SourceUnavailable
from src.core.logger import get_logger
from src.domain.models import StorageAccount, StorageContainer, StorageSummary
from src.infrastructure.azure.parsing import (
    latest_value,
    metric_points,
    resource_group_from_id,
)

from .base import SourceContext, timespan

logger = get_logger("metrics.sources.storage")

USED_CAPACITY = "UsedCapacity"
CONTAINERS_PATH = "{account_id}/blobServices/default/containers"
# ARM reports anonymous access disabled as "None"
PRIVATE_ACCESS = "private"


async def fetch_storage(ctx: SourceContext) -> StorageSummary:
    path = f"{ctx.subscription_path}/providers/Microsoft.Storage/storageAccounts"
    accounts = await ctx.arm.list_all(path, settings.storage_api_version)
    if ctx.resource_group:
        accounts = [
            a
            for a in accounts
            if (resource_group_from_id(a.get("id")) or "").lower()
            == ctx.resource_group.lower()
        ]

    now = ctx.utcnow()
    window = timespan(now - timedelta(hours=24), now)
    used, containers = await asyncio.gather(
        asyncio.gather(*(_used_capacity(ctx, a.get("id"), window) for a in accounts)),
        asyncio.gather(*(_containers(ctx, a.get("id")) for a in accounts)),
    )

    rows = [
        StorageAccount(
            name=a.get("name", ""),
            location=a.get("location"),
            sku=(a.get("sku") or {}).get("name"),
            kind=a.get("kind"),
            resource_group=resource_group_from_id(a.get("id")),
            used_bytes=u,
            containers=c,
        )
        for a, u, c in zip(accounts, used, containers)
    ]
    return StorageSummary(
        accounts=rows, total_used_bytes=sum(a.used_bytes or 0 for a in rows)
    )


async def _used_capacity(
    ctx: SourceContext, resource_id: Optional[str], window: str
) -> Optional[int]:
    if not resource_id:
        return None
    try:
        metrics = await ctx.arm.metrics(
            resource_id, [USED_CAPACITY], window, "Average", "PT1H"
        )
    except SourceUnavailable as e:
        logger.warning(
            "storage_capacity_unavailable",
            extra={"resource_id": resource_id, "error": str(e)},
        )
        return None
    value = latest_value(metric_points(metrics, USED_CAPACITY), "average")
    return int(value) if value is not None else None


async def _containers(
    ctx: SourceContext, resource_id: Optional[str]
) -> List[StorageContainer]:
    if not resource_id:
        return []
    try:
        items = await ctx.arm.list_all(
            CONTAINERS_PATH.format(account_id=resource_id),
            settings.storage_api_version,
        )
    except SourceUnavailable as e:
        logger.warning(
            "storage_containers_unavailable",
            extra={"resource_id": resource_id, "error": str(e)},
        )
        return []
    return [_container(item) for item in items]


def _container(item: Dict[str, Any]) -> StorageContainer:
    props = item.get("properties") or {}
    access = props.get("publicAccess")
    return StorageContainer(
        name=item.get("name", ""),
        public_access=PRIVATE_ACCESS if access in (None, "None") else access,
        last_modified=props.get("lastModifiedTime"),
    )


def fallback() -> StorageSummary:
    return StorageSummary(source="fallback")
