from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

PayloadSource = Literal["live", "fallback"]


class WireModel(BaseModel):
    """Serialises with the camelCase keys the dashboard expects."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, protected_namespaces=()
    )

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class SectionModel(WireModel):
    """Top-level payload of one source, tagged live or fallback."""

    source: PayloadSource = "live"


# Costs


class DailyCost(WireModel):
    date: int  # yyyymmdd
    date_str: str
    cost: float
    services: Dict[str, float] = {}


class CostSummary(SectionModel):
    month_to_date: float = 0.0
    yesterday: float = 0.0
    currency: str = "USD"
    historical: List[DailyCost] = []
    cost_breakdown: Dict[str, float] = {}


# Inventory


class ResourceCounts(SectionModel):
    static_sites: int = 0
    function_apps: int = 0
    web_apps: int = 0
    storage_accounts: int = 0
    total_resources: int = 0


class StorageContainer(WireModel):
    name: str
    public_access: str = "private"
    last_modified: Optional[str] = None


class StorageAccount(WireModel):
    name: str
    location: Optional[str] = None
    sku: Optional[str] = None
    kind: Optional[str] = None
    resource_group: Optional[str] = None
    used_bytes: Optional[int] = None
    containers: List[StorageContainer] = []


class StorageSummary(SectionModel):
    accounts: List[StorageAccount] = []
    total_used_bytes: int = 0


class AgentPool(WireModel):
    name: str
    count: int = 0
    vm_size: Optional[str] = None
    mode: Optional[str] = None
    os_type: Optional[str] = None
    max_pods: int = 30


class KubernetesCluster(WireModel):
    name: str
    location: Optional[str] = None
    resource_group: Optional[str] = None
    kubernetes_version: Optional[str] = None
    node_count: int = 0
    status: Optional[str] = None
    power_state: Optional[str] = None
    agent_pools: List[AgentPool] = []
    cpu_usage: Optional[float] = None
    memory_usage: Optional[float] = None


class KubernetesSummary(SectionModel):
    cluster_count: int = 0
    clusters: List[KubernetesCluster] = []
    total_nodes: int = 0
    total_pods_capacity: int = 0
    avg_cpu_usage: float = 0.0
    avg_memory_usage: float = 0.0


class VirtualMachineHealth(SectionModel):
    total_vms: int = Field(0, alias="totalVMs")
    healthy_vms: int = Field(0, alias="healthyVMs")
    unhealthy_vms: int = Field(0, alias="unhealthyVMs")


class ServiceHealthSummary(SectionModel):
    active_issues: int = 0
    planned_maintenance: int = 0
    health_advisories: int = 0
    security_advisories: int = 0


class BackupVault(WireModel):
    name: str
    type: Optional[str] = None
    location: Optional[str] = None
    resource_group: Optional[str] = None


class BackupSummaryCounts(WireModel):
    total_vaults: int = 0
    total_protected_items: int = 0
    successful_jobs: int = 0
    failed_jobs: int = 0
    status: str = "Unknown"


class BackupStatus(SectionModel):
    vaults: List[BackupVault] = []
    summary: BackupSummaryCounts = Field(default_factory=BackupSummaryCounts)


# Azure OpenAI


class OpenAIDeployment(WireModel):
    name: str
    model: str = "Unknown"
    version: Optional[str] = None
    capacity: Optional[int] = None


class OpenAIAccount(WireModel):
    name: str
    location: Optional[str] = None
    resource_group: Optional[str] = None
    endpoint: Optional[str] = None
    deployments: List[OpenAIDeployment] = []


class ModelUsage(WireModel):
    tokens: int = 0
    cost: float = 0.0


class OpenAIUsage(SectionModel):
    accounts: List[OpenAIAccount] = []
    model_usage: Dict[str, ModelUsage] = {}
    daily_usage: Dict[str, int] = {}
    total_tokens: int = 0
    estimated_cost: float = 0.0
    period: str = "7d"


# Inventory listings


class ResourceGroupInfo(WireModel):
    name: str
    location: Optional[str] = None
    id: Optional[str] = None
    tags: Dict[str, str] = {}


class ResourceInfo(WireModel):
    name: str
    type: str
    short_type: str
    location: Optional[str] = None
    id: Optional[str] = None
    kind: Optional[str] = None
    url: Optional[str] = None
    tags: Dict[str, str] = {}


# Aggregate


class SourceError(BaseModel):
    source: str
    message: str


class MetricsSnapshot(BaseModel):
    """Aggregate assembled for one request.

    ``sections`` always holds every registered source name; a value of
    ``None`` means no data was available for that source.
    """

    timestamp: datetime
    subscription_id: str
    resource_group: Optional[str] = None
    sections: Dict[str, Optional[Dict[str, Any]]]
    errors: List[SourceError] = []


class CacheEntry(BaseModel):
    """Last known-good payload for one cache key."""

    key: str
    value: Any
    stored_at: float  # epoch seconds from the cache clock


class MetricsRequest(BaseModel):
    """Validated inputs of one aggregation request."""

    subscription_id: str
    resource_group: Optional[str] = None
    metric_type: str = "all"
