import asyncio
import time
from typing import Callable, Optional

from src.core.logger import get_logger
from src.domain.models import MetricsRequest, MetricsSnapshot
from src.sources.base import ArmReader, SourceContext
from src.sources.registry import SourceRegistry

from .executor import FanOutExecutor
from .merger import ResultMerger
from .telemetry import AGGREGATION_LATENCY, AGGREGATIONS, LAST_AGGREGATION_ERRORS

logger = get_logger("metrics.aggregator")


class MetricsService:
    """Runs one aggregation: select sources, fan out, merge."""

    def __init__(
        self,
        arm: ArmReader,
        registry: SourceRegistry,
        executor: FanOutExecutor,
        merger: ResultMerger,
        request_timeout_seconds: Optional[float] = None,
        ready_event: Optional[asyncio.Event] = None,
        context_factory: Callable[..., SourceContext] = SourceContext,
    ):
        self.arm = arm
        self.registry = registry
        self.executor = executor
        self.merger = merger
        self.request_timeout_seconds = request_timeout_seconds
        self.ready_event = ready_event or asyncio.Event()
        self.context_factory = context_factory

    async def collect(self, request: MetricsRequest) -> MetricsSnapshot:
        # RequestMalformed surfaces before any fetcher runs
        specs = self.registry.select(request.metric_type)
        ctx = self.context_factory(
            arm=self.arm,
            subscription_id=request.subscription_id,
            resource_group=request.resource_group,
            deadline=self._deadline(),
        )

        started = time.perf_counter()
        results = await self.executor.run(specs, ctx)
        snapshot = await self.merger.merge(results, specs, ctx)
        elapsed = time.perf_counter() - started

        AGGREGATIONS.inc()
        AGGREGATION_LATENCY.observe(elapsed)
        LAST_AGGREGATION_ERRORS.set(len(snapshot.errors))
        logger.info(
            "aggregation_completed",
            extra={
                "metric_type": request.metric_type,
                "sources": len(specs),
                "failed": [e.source for e in snapshot.errors],
                "duration_ms": round(elapsed * 1000, 1),
            },
        )
        self.ready_event.set()
        return snapshot

    def _deadline(self) -> Optional[float]:
        if not self.request_timeout_seconds:
            return None
        loop = asyncio.get_running_loop()
        return loop.time() + self.request_timeout_seconds
