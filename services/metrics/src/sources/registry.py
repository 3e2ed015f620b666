from typing import Dict, List

from src.core.config import Settings
from src.core.errors import RequestMalformed

from shared.constants import Sources

from . import (
    backups,
    costs,
    kubernetes,
    openai_usage,
    resources,
    service_health,
    storage,
    virtual_machines,
)
from .base import SourceSpec


class SourceRegistry:
    """Ordered mapping of source name to its spec."""

    def __init__(self):
        self._specs: Dict[str, SourceSpec] = {}

    def register(self, spec: SourceSpec) -> None:
        if spec.name in self._specs:
            raise ValueError(f"Source already registered: {spec.name}")
        self._specs[spec.name] = spec

    def names(self) -> List[str]:
        return list(self._specs)

    def get(self, name: str) -> SourceSpec:
        return self._specs[name]

    def select(self, request_type: str) -> List[SourceSpec]:
        """Specs fetched for a ``type`` request parameter."""
        if request_type.lower() == Sources.ALL_TYPE:
            return list(self._specs.values())
        try:
            name = Sources.for_request_type(request_type)
        except ValueError as e:
            raise RequestMalformed(str(e)) from e
        if name not in self._specs:
            raise RequestMalformed(f"Metric type not enabled: {request_type}")
        return [self._specs[name]]

    def __len__(self) -> int:
        return len(self._specs)


_FETCHERS = {
    Sources.COSTS: (costs.fetch_costs, costs.fallback),
    Sources.RESOURCES: (resources.fetch_resource_counts, resources.fallback),
    Sources.STORAGE: (storage.fetch_storage, storage.fallback),
    Sources.KUBERNETES: (kubernetes.fetch_kubernetes, kubernetes.fallback),
    Sources.VIRTUAL_MACHINES: (
        virtual_machines.fetch_virtual_machines,
        virtual_machines.fallback,
    ),
    Sources.SERVICE_HEALTH: (
        service_health.fetch_service_health,
        service_health.fallback,
    ),
    Sources.OPENAI_USAGE: (openai_usage.fetch_openai_usage, openai_usage.fallback),
    Sources.BACKUP_STATUS: (backups.fetch_backup_status, backups.fallback),
}


def build_default_registry(config: Settings) -> SourceRegistry:
    registry = SourceRegistry()
    for name in Sources.all_sources():
        fetcher, fallback = _FETCHERS[name]
        registry.register(
            SourceSpec(
                name=name,
                fetcher=fetcher,
                ttl_seconds=config.ttl_for(name),
                read_through=config.is_read_through(name),
                fallback=fallback,
            )
        )
    return registry
