import asyncio
from typing import Optional

from src.core.logger import get_logger
from src.domain.models import MetricsRequest

from shared.constants import Sources

from .aggregator import MetricsService

logger = get_logger("metrics.cache_warmer")


class CacheWarmingService:
    """Periodically runs a full aggregation so cached sections stay fresh."""

    def __init__(
        self,
        metrics_service: MetricsService,
        subscription_id: Optional[str],
        resource_group: Optional[str] = None,
    ):
        self.metrics_service = metrics_service
        self.subscription_id = subscription_id
        self.resource_group = resource_group

    async def warm_once(self) -> bool:
        """Run one aggregation; returns False when it could not run."""
        if not self.subscription_id:
            logger.info("cache_warming_skipped", extra={"reason": "no subscription"})
            return False
        try:
            snapshot = await self.metrics_service.collect(
                MetricsRequest(
                    subscription_id=self.subscription_id,
                    resource_group=self.resource_group,
                    metric_type=Sources.ALL_TYPE,
                )
            )
        except Exception as e:
            logger.error("cache_warming_failed", extra={"error": str(e)})
            return False
        logger.info(
            "cache_warmed",
            extra={"failed": [e.source for e in snapshot.errors]},
        )
        return True

    async def run_forever(self, interval_seconds: float):
        logger.info(
            "cache_warming_started", extra={"interval_seconds": interval_seconds}
        )
        while True:
            await self.warm_once()
            await asyncio.sleep(interval_seconds)
