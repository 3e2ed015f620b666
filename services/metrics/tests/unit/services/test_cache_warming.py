from unittest.mock import AsyncMock

import pytest
from src.domain.models import MetricsSnapshot, SourceError
from src.services.cache_warming import CacheWarmingService


def _snapshot(subscription_id):
    return MetricsSnapshot(
        timestamp="2025-08-15T12:00:00Z",
        subscription_id=subscription_id,
        sections={"costs": None},
        errors=[SourceError(source="costs", message="timeout")],
    )


@pytest.mark.asyncio
async def test_warm_once_runs_full_aggregation(subscription_id):
    svc = AsyncMock()
    svc.collect.return_value = _snapshot(subscription_id)
    warmer = CacheWarmingService(svc, subscription_id, "rg-web")

    assert await warmer.warm_once() is True
    request = svc.collect.await_args.args[0]
    assert request.subscription_id == subscription_id
    assert request.resource_group == "rg-web"
    assert request.metric_type == "all"


@pytest.mark.asyncio
async def test_warm_once_skips_without_subscription():
    svc = AsyncMock()
    assert await CacheWarmingService(svc, None).warm_once() is False
    svc.collect.assert_not_awaited()


@pytest.mark.asyncio
async def test_warm_once_survives_errors(subscription_id):
    svc = AsyncMock()
    svc.collect.side_effect = RuntimeError("boom")
    assert await CacheWarmingService(svc, subscription_id).warm_once() is False
