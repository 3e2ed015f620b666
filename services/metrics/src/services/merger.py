from datetime import datetime
from typing import Dict, List, Optional, Sequence

from src.cache.ttl_cache import TTLCache
from src.core.logger import get_logger
from src.domain.models import MetricsSnapshot, SourceError
from src.domain.outcomes import Failure, SourceResult, Success
from src.sources.base import FALLBACK_VERSION, SourceContext, SourceSpec
from src.sources.registry import SourceRegistry

from shared.constants import RedisKeys

from .telemetry import STALE_SERVED

logger = get_logger("metrics.merger")


class ResultMerger:
    """Folds settled source results into one ``MetricsSnapshot``.

    Every registered source gets a section. Sources that were not selected
    stay ``None`` without an error. A failed source is answered, in order, by
    a fresh cache entry, by its static fallback when those are enabled, or by
    ``None``; the last two also record an error entry.
    """

    def __init__(
        self,
        cache: TTLCache,
        registry: SourceRegistry,
        enable_static_fallbacks: bool = False,
    ):
        self.cache = cache
        self.registry = registry
        self.enable_static_fallbacks = enable_static_fallbacks

    async def merge(
        self,
        results: Sequence[SourceResult],
        specs: Sequence[SourceSpec],
        ctx: SourceContext,
        timestamp: Optional[datetime] = None,
    ) -> MetricsSnapshot:
        settled = _last_success_wins(results)
        selected = {spec.name: spec for spec in specs}
        sections: Dict[str, Optional[dict]] = {}
        errors: List[SourceError] = []

        for name in self.registry.names():
            spec = selected.get(name)
            outcome = settled.get(name)
            if spec is None or outcome is None:
                sections[name] = None
                continue

            if isinstance(outcome, Success):
                sections[name] = outcome.value
                if not outcome.from_cache:
                    await self._remember(spec, ctx, outcome.value)
                continue

            sections[name] = await self._recover(spec, ctx, outcome, errors)

        return MetricsSnapshot(
            timestamp=timestamp or ctx.utcnow(),
            subscription_id=ctx.subscription_id,
            resource_group=ctx.resource_group,
            sections=sections,
            errors=errors,
        )

    async def _recover(
        self,
        spec: SourceSpec,
        ctx: SourceContext,
        failure: Failure,
        errors: List[SourceError],
    ) -> Optional[dict]:
        key = RedisKeys.source_cache_key(
            ctx.subscription_id, ctx.resource_group, spec.name
        )
        try:
            cached = await self.cache.get(key, spec.ttl_seconds)
        except Exception as e:
            logger.warning(
                "cache_read_failed", extra={"source": spec.name, "error": str(e)}
            )
            cached = None
        if cached is not None:
            STALE_SERVED.labels(source=spec.name).inc()
            logger.info(
                "stale_cache_served",
                extra={"source": spec.name, "reason": failure.reason},
            )
            return cached

        errors.append(SourceError(source=spec.name, message=failure.reason))
        if self.enable_static_fallbacks and spec.fallback is not None:
            logger.info(
                "static_fallback_served",
                extra={"source": spec.name, "fallback_version": FALLBACK_VERSION},
            )
            return spec.fallback().to_payload()
        return None

    async def _remember(self, spec: SourceSpec, ctx: SourceContext, value: dict):
        key = RedisKeys.source_cache_key(
            ctx.subscription_id, ctx.resource_group, spec.name
        )
        try:
            await self.cache.set(key, value)
        except Exception as e:
            # the response is still served from the live value
            logger.warning(
                "cache_write_failed", extra={"source": spec.name, "error": str(e)}
            )


def _last_success_wins(results: Sequence[SourceResult]) -> Dict[str, object]:
    settled: Dict[str, object] = {}
    for result in results:
        current = settled.get(result.name)
        if isinstance(current, Success) and not result.ok:
            continue
        settled[result.name] = result.outcome
    return settled
