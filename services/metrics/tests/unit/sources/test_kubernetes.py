import pytest
from src.core.errors import SourceUnavailable
from src.sources.kubernetes import CPU_METRIC, MEMORY_METRIC, fetch_kubernetes

CLUSTER_ID = (
    "/subscriptions/{sub}/resourceGroups/rg-aks/providers/"
    "Microsoft.ContainerService/managedClusters/aks-prod"
)


def _clusters_path(sub):
    return f"/subscriptions/{sub}/providers/Microsoft.ContainerService/managedClusters"


def _cluster(sub):
    return {
        "id": CLUSTER_ID.format(sub=sub),
        "name": "aks-prod",
        "location": "eastus",
        "properties": {
            "kubernetesVersion": "1.29.2",
            "provisioningState": "Succeeded",
            "powerState": {"code": "Running"},
            "agentPoolProfiles": [
                {
                    "name": "system",
                    "count": 2,
                    "vmSize": "Standard_D2s_v3",
                    "mode": "System",
                    "osType": "Linux",
                    "maxPods": 110,
                },
                {
                    "name": "user",
                    "count": 3,
                    "vmSize": "Standard_D4s_v3",
                    "mode": "User",
                    "osType": "Linux",
                },
            ],
        },
    }


@pytest.mark.asyncio
async def test_zero_clusters_yields_empty_summary(arm, make_ctx, subscription_id):
    arm.lists[_clusters_path(subscription_id)] = []
    summary = await fetch_kubernetes(make_ctx())

    payload = summary.to_payload()
    assert payload["clusterCount"] == 0
    assert payload["clusters"] == []
    assert payload["totalNodes"] == 0
    assert payload["totalPodsCapacity"] == 0
    assert payload["avgCpuUsage"] == 0.0
    assert payload["avgMemoryUsage"] == 0.0


@pytest.mark.asyncio
async def test_cluster_summary_with_metrics(
    arm, make_ctx, subscription_id, metric_series
):
    cluster = _cluster(subscription_id)
    arm.lists[_clusters_path(subscription_id)] = [cluster]
    arm.metric_values[cluster["id"]] = [
        metric_series(CPU_METRIC, [{"average": 20.0}, {"average": 40.0}]),
        metric_series(MEMORY_METRIC, [{"average": 50.0}, {"average": None}]),
    ]

    summary = await fetch_kubernetes(make_ctx())

    assert summary.cluster_count == 1
    assert summary.total_nodes == 5
    # 2 * 110 + 3 * default 30
    assert summary.total_pods_capacity == 310
    assert summary.avg_cpu_usage == 30.0
    assert summary.avg_memory_usage == 50.0
    c = summary.clusters[0]
    assert c.resource_group == "rg-aks"
    assert c.power_state == "Running"
    assert [p.max_pods for p in c.agent_pools] == [110, 30]


@pytest.mark.asyncio
async def test_cluster_metrics_failure_is_contained(arm, make_ctx, subscription_id):
    cluster = _cluster(subscription_id)
    arm.lists[_clusters_path(subscription_id)] = [cluster]
    arm.failing.add(cluster["id"])

    summary = await fetch_kubernetes(make_ctx())
    assert summary.clusters[0].cpu_usage is None
    assert summary.avg_cpu_usage == 0.0
    assert summary.total_nodes == 5


@pytest.mark.asyncio
async def test_resource_group_filter(arm, make_ctx, subscription_id):
    arm.lists[_clusters_path(subscription_id)] = [_cluster(subscription_id)]
    summary = await fetch_kubernetes(make_ctx(resource_group="rg-other"))
    assert summary.cluster_count == 0


@pytest.mark.asyncio
async def test_listing_failure_propagates(arm, make_ctx, subscription_id):
    arm.failing.add(_clusters_path(subscription_id))
    with pytest.raises(SourceUnavailable):
        await fetch_kubernetes(make_ctx())
