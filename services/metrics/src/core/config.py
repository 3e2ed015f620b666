from shared.config import BaseServiceConfig
from shared.constants import Sources


class Settings(BaseServiceConfig):
    otel_service_name: str = "metrics"
    service_version: str = "1.0.0"

    # Azure Resource Manager
    arm_request_timeout_seconds: float = 15.0
    arm_retries: int = 3
    arm_retry_base_delay_seconds: float = 0.5
    arm_retry_max_delay_seconds: float = 4.0

    # API versions per resource provider
    cost_management_api_version: str = "2023-11-01"
    resource_graph_api_version: str = "2022-10-01"
    resources_api_version: str = "2021-04-01"
    storage_api_version: str = "2023-01-01"
    monitor_metrics_api_version: str = "2023-10-01"
    container_service_api_version: str = "2024-02-01"
    compute_api_version: str = "2024-03-01"
    resource_health_api_version: str = "2022-10-01"
    cognitive_services_api_version: str = "2023-05-01"

    # Aggregation
    request_timeout_seconds: float = 25.0  # shared deadline for one fan-out
    cost_history_days: int = 30
    openai_usage_days: int = 7
    enable_static_fallbacks: bool = False

    # Cache
    cache_backend: str = "memory"  # memory|redis
    redis_host: str = "redis"
    redis_port: int = 6379
    redis_db: int = 0
    default_source_ttl_seconds: int = 60
    source_ttl_seconds: dict[str, int] = {
        Sources.COSTS: 3600,  # provider data has daily granularity
        Sources.OPENAI_USAGE: 3600,
    }
    read_through_sources: list[str] = [Sources.COSTS, Sources.OPENAI_USAGE]
    cache_warm_interval_seconds: int = 0  # 0 disables the keep-warm loop

    # CORS
    cors_allowed_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8080",
    ]
    cors_allowed_methods: list[str] = ["GET", "POST", "OPTIONS"]
    cors_allowed_headers: list[str] = [
        "Content-Type",
        "Authorization",
        "x-ms-client-principal",
    ]

    def ttl_for(self, source: str) -> int:
        return self.source_ttl_seconds.get(source, self.default_source_ttl_seconds)

    def is_read_through(self, source: str) -> bool:
        return source in self.read_through_sources


settings = Settings()
