from fastapi import Request
from src.cache.ttl_cache import TTLCache
from src.services.aggregator import MetricsService
from src.services.inventory import InventoryService


def get_metrics_service(request: Request) -> MetricsService:
    return request.app.state.metrics_service  # type: ignore[return-value]


def get_inventory_service(request: Request) -> InventoryService:
    return request.app.state.inventory_service  # type: ignore[return-value]


def get_cache(request: Request) -> TTLCache:
    return request.app.state.cache  # type: ignore[return-value]
