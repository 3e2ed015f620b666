import asyncio
import time
from contextlib import asynccontextmanager

import aiohttp
import redis.asyncio as redis
from azure.identity.aio import DefaultAzureCredential
from fastapi import FastAPI
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from src.api.router import api_router
from src.cache.memory_store import InMemoryCacheStore
from src.cache.ttl_cache import TTLCache
from src.core.config import settings
from src.core.logger import configure_logging, get_logger
from src.infrastructure.azure.client import ArmClient
from src.infrastructure.redis.repository import RedisCacheStore
from src.services.aggregator import MetricsService
from src.services.cache_warming import CacheWarmingService
from src.services.executor import FanOutExecutor
from src.services.inventory import InventoryService
from src.services.merger import ResultMerger
from src.sources.registry import build_default_registry

from shared.constants import Environment
from shared.utils.retry import retry_async

# Configure logging once and get service logger
configure_logging()
logger = get_logger("metrics.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("metrics_service_starting", extra={"cache": settings.cache_backend})
    app.state.started_at = time.monotonic()
    app.state.redis = None
    if settings.cache_backend == "redis":
        app.state.redis = await _init_redis_with_retry()
        store = RedisCacheStore(app.state.redis)
    else:
        store = InMemoryCacheStore()
    app.state.cache = TTLCache(store)

    app.state.http = aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=settings.arm_request_timeout_seconds)
    )
    app.state.credential = DefaultAzureCredential()
    arm = ArmClient(app.state.http, app.state.credential)

    registry = build_default_registry(settings)
    app.state.ready_event = asyncio.Event()
    app.state.metrics_service = MetricsService(
        arm,
        registry,
        FanOutExecutor(app.state.cache),
        ResultMerger(app.state.cache, registry, settings.enable_static_fallbacks),
        request_timeout_seconds=settings.request_timeout_seconds,
        ready_event=app.state.ready_event,
    )
    app.state.inventory_service = InventoryService(arm)

    app.state.warm_task = None
    if settings.cache_warm_interval_seconds > 0:
        warmer = CacheWarmingService(
            app.state.metrics_service,
            settings.azure_subscription_id,
            settings.azure_resource_group,
        )
        app.state.warm_task = asyncio.create_task(
            warmer.run_forever(settings.cache_warm_interval_seconds)
        )
    try:
        yield
    finally:
        logger.info("metrics_service_stopping")
        if app.state.warm_task is not None:
            app.state.warm_task.cancel()
            try:
                await app.state.warm_task
            except asyncio.CancelledError:  # expected during shutdown
                logger.debug("warm_task_cancelled")
            except Exception:  # noqa
                logger.debug("warm_task_non_critical_exit", exc_info=True)
        await app.state.http.close()
        await app.state.credential.close()
        if app.state.redis is not None:
            await app.state.redis.aclose()


_docs_enabled = not Environment.is_production(settings.app_environment)

app = FastAPI(
    title="Azure Metrics Aggregator",
    version=settings.service_version,
    lifespan=lifespan,
    docs_url="/docs" if _docs_enabled else None,
    redoc_url=None,
    openapi_url="/openapi.json" if _docs_enabled else None,
)
app.include_router(api_router)


async def _init_redis_with_retry():
    async def _connect():
        r = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            decode_responses=True,
        )
        await r.ping()
        return r

    async def _on_retry(attempt: int, exc: BaseException, sleep_for: float):
        logger.warning(
            "redis_connect_retry",
            extra={
                "attempt": attempt,
                "error": str(exc),
                "sleep_for": round(sleep_for, 2),
            },
        )

    r = await retry_async(
        _connect,
        retries=6,
        base_delay=0.5,
        max_delay=8.0,
        jitter=0.2,
        on_retry=_on_retry,
    )
    logger.info("redis_connected")
    return r


@app.get("/prometheus")
async def prometheus():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
