"""AKS clusters, their agent pools and recent node utilisation."""

import asyncio
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

from src.core.config import settings
from src.core.errors import SourceUnavailable
from src.core.logger import get_logger
from src.domain.models import AgentPool, KubernetesCluster, KubernetesSummary
from src.infrastructure.azure.parsing import (
    mean_value,
    metric_points,
    resource_group_from_id,
)

from .base import SourceContext, timespan

logger = get_logger("metrics.sources.kubernetes")

CPU_METRIC = "node_cpu_usage_percentage"
MEMORY_METRIC = "node_memory_working_set_percentage"
DEFAULT_MAX_PODS = 30


async def fetch_kubernetes(ctx: SourceContext) -> KubernetesSummary:
    path = (
        f"{ctx.subscription_path}/providers/Microsoft.ContainerService/managedClusters"
    )
    items = await ctx.arm.list_all(path, settings.container_service_api_version)
    if ctx.resource_group:
        items = [
            c
            for c in items
            if (resource_group_from_id(c.get("id")) or "").lower()
            == ctx.resource_group.lower()
        ]
    if not items:
        return KubernetesSummary()

    now = ctx.utcnow()
    window = timespan(now - timedelta(hours=1), now)
    usage = await asyncio.gather(
        *(_node_usage(ctx, c.get("id"), window) for c in items)
    )
    clusters = [
        _cluster(item, cpu, memory) for item, (cpu, memory) in zip(items, usage)
    ]
    return summarize_clusters(clusters)


def summarize_clusters(clusters: List[KubernetesCluster]) -> KubernetesSummary:
    cpu = [c.cpu_usage for c in clusters if c.cpu_usage is not None]
    memory = [c.memory_usage for c in clusters if c.memory_usage is not None]
    return KubernetesSummary(
        cluster_count=len(clusters),
        clusters=clusters,
        total_nodes=sum(c.node_count for c in clusters),
        total_pods_capacity=sum(
            p.count * p.max_pods for c in clusters for p in c.agent_pools
        ),
        avg_cpu_usage=round(sum(cpu) / len(cpu), 2) if cpu else 0.0,
        avg_memory_usage=round(sum(memory) / len(memory), 2) if memory else 0.0,
    )


def _cluster(
    item: Dict[str, Any], cpu: Optional[float], memory: Optional[float]
) -> KubernetesCluster:
    props = item.get("properties") or {}
    pools = [
        AgentPool(
            name=p.get("name", ""),
            count=int(p.get("count") or 0),
            vm_size=p.get("vmSize"),
            mode=p.get("mode"),
            os_type=p.get("osType"),
            max_pods=int(p.get("maxPods") or DEFAULT_MAX_PODS),
        )
        for p in props.get("agentPoolProfiles") or []
    ]
    return KubernetesCluster(
        name=item.get("name", ""),
        location=item.get("location"),
        resource_group=resource_group_from_id(item.get("id")),
        kubernetes_version=props.get("kubernetesVersion"),
        node_count=sum(p.count for p in pools),
        status=props.get("provisioningState"),
        power_state=(props.get("powerState") or {}).get("code"),
        agent_pools=pools,
        cpu_usage=_rounded(cpu),
        memory_usage=_rounded(memory),
    )


async def _node_usage(
    ctx: SourceContext, resource_id: Optional[str], window: str
) -> Tuple[Optional[float], Optional[float]]:
    if not resource_id:
        return None, None
    try:
        metrics = await ctx.arm.metrics(
            resource_id, [CPU_METRIC, MEMORY_METRIC], window, "Average", "PT5M"
        )
    except SourceUnavailable as e:
        logger.warning(
            "cluster_metrics_unavailable",
            extra={"resource_id": resource_id, "error": str(e)},
        )
        return None, None
    return (
        mean_value(metric_points(metrics, CPU_METRIC), "average"),
        mean_value(metric_points(metrics, MEMORY_METRIC), "average"),
    )


def _rounded(value: Optional[float]) -> Optional[float]:
    return round(value, 2) if value is not None else None


def fallback() -> KubernetesSummary:
    return KubernetesSummary(source="fallback")
