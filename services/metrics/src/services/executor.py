import asyncio
import time
from typing import Any, Dict, List, Optional, Sequence

from src.cache.ttl_cache import TTLCache
from src.core.logger import get_logger
from src.domain.models import SectionModel
from src.domain.outcomes import Failure, Outcome, SourceResult, Success
from src.sources.base import SourceContext, SourceSpec

from shared.constants import RedisKeys

from .telemetry import CACHE_HITS, SOURCE_FETCHES, SOURCE_LATENCY

logger = get_logger("metrics.executor")

TIMEOUT_REASON = "timeout"


class FanOutExecutor:
    """Runs every selected fetcher concurrently and settles all of them.

    A failing or slow source never affects the others: each one is bounded by
    the time left until the context deadline and every exception is turned
    into a ``Failure`` outcome. Results come back in the order of ``specs``.
    """

    def __init__(self, cache: TTLCache):
        self.cache = cache

    async def run(
        self, specs: Sequence[SourceSpec], ctx: SourceContext
    ) -> List[SourceResult]:
        settled = await asyncio.gather(
            *(self._guarded(spec, ctx) for spec in specs), return_exceptions=True
        )
        results: List[SourceResult] = []
        for spec, item in zip(specs, settled):
            if isinstance(item, BaseException):
                # _guarded only lets non-Exception errors escape
                item = SourceResult(spec.name, Failure(_describe(item)))
            results.append(item)
        return results

    async def _guarded(self, spec: SourceSpec, ctx: SourceContext) -> SourceResult:
        started = time.perf_counter()

        if spec.read_through:
            cached = await self._cached(spec, ctx)
            if cached is not None:
                CACHE_HITS.labels(source=spec.name).inc()
                logger.debug("source_cache_hit", extra={"source": spec.name})
                return SourceResult(
                    spec.name, Success(cached, from_cache=True), _elapsed(started)
                )

        outcome = await self._invoke(spec, ctx)
        duration_ms = _elapsed(started)
        SOURCE_LATENCY.labels(source=spec.name).observe(duration_ms / 1000)
        SOURCE_FETCHES.labels(
            source=spec.name,
            outcome="success" if isinstance(outcome, Success) else "failure",
        ).inc()
        if isinstance(outcome, Failure):
            logger.warning(
                "source_fetch_failed",
                extra={
                    "source": spec.name,
                    "reason": outcome.reason,
                    "duration_ms": round(duration_ms, 1),
                },
            )
        return SourceResult(spec.name, outcome, duration_ms)

    async def _invoke(self, spec: SourceSpec, ctx: SourceContext) -> Outcome:
        remaining = ctx.remaining()
        if remaining is not None and remaining <= 0:
            return Failure(TIMEOUT_REASON)
        try:
            value = await asyncio.wait_for(spec.fetcher(ctx), remaining)
        except asyncio.TimeoutError:
            return Failure(TIMEOUT_REASON)
        except Exception as e:
            return Failure(_describe(e))
        payload = _normalise(value)
        if payload is None:
            return Failure(f"invalid payload: {type(value).__name__}")
        return Success(payload)

    async def _cached(self, spec: SourceSpec, ctx: SourceContext) -> Optional[Any]:
        key = RedisKeys.source_cache_key(
            ctx.subscription_id, ctx.resource_group, spec.name
        )
        try:
            return await self.cache.get(key, spec.ttl_seconds)
        except Exception as e:
            logger.warning(
                "cache_read_failed", extra={"source": spec.name, "error": str(e)}
            )
            return None


def _normalise(value: Any) -> Optional[Dict[str, Any]]:
    if isinstance(value, SectionModel):
        return value.to_payload()
    if isinstance(value, dict):
        return value
    return None


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def _elapsed(started: float) -> float:
    return (time.perf_counter() - started) * 1000
