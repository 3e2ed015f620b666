"""Azure OpenAI deployments and their token consumption.

Usage is read from the account level ``ProcessedPromptTokens`` and
``GeneratedCompletionTokens`` metrics. Azure Monitor does not split those per
deployment, so each day's total is spread evenly across the account's
deployments when attributing usage to models.
"""

import asyncio
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Tuple

from src.core.config import settings
from src.core.errors import SourceUnavailable
from src.core.logger import get_logger
from src.domain.models import ModelUsage, OpenAIAccount, OpenAIDeployment, OpenAIUsage
from src.infrastructure.azure.parsing import metric_points, resource_group_from_id

from .base import SourceContext, timespan

logger = get_logger("metrics.sources.openai")

OPENAI_KIND = "OpenAI"
USAGE_METRICS = ["ProcessedPromptTokens", "GeneratedCompletionTokens"]

# USD per 1K units, matched by substring of the model name in order
MODEL_RATES: List[Tuple[str, float]] = [
    ("gpt-4", 0.03),
    ("gpt-3.5", 0.002),
    ("davinci", 0.02),
]
DEFAULT_RATE = 0.002


def rate_for(model: str) -> float:
    lowered = model.lower()
    for fragment, rate in MODEL_RATES:
        if fragment in lowered:
            return rate
    return DEFAULT_RATE


async def fetch_openai_usage(ctx: SourceContext) -> OpenAIUsage:
    path = f"{ctx.subscription_path}/providers/Microsoft.CognitiveServices/accounts"
    items = await ctx.arm.list_all(path, settings.cognitive_services_api_version)
    items = [a for a in items if a.get("kind") == OPENAI_KIND]
    if ctx.resource_group:
        items = [
            a
            for a in items
            if (resource_group_from_id(a.get("id")) or "").lower()
            == ctx.resource_group.lower()
        ]

    now = ctx.utcnow()
    window = timespan(now - timedelta(days=settings.openai_usage_days), now)
    per_account = await asyncio.gather(*(_account_usage(ctx, a, window) for a in items))

    model_units: Dict[str, float] = defaultdict(float)
    daily: Dict[str, float] = defaultdict(float)
    accounts = []
    for account, account_daily in per_account:
        accounts.append(account)
        for model in {d.model for d in account.deployments}:
            model_units.setdefault(model, 0.0)
        for day, units in account_daily.items():
            daily[day] += units
            if account.deployments:
                share = units / len(account.deployments)
                for deployment in account.deployments:
                    model_units[deployment.model] += share

    model_usage = {
        model: ModelUsage(
            tokens=int(round(units)),
            cost=round(units / 1000 * rate_for(model), 4),
        )
        for model, units in sorted(model_units.items())
    }
    return OpenAIUsage(
        accounts=accounts,
        model_usage=model_usage,
        daily_usage={day: int(round(v)) for day, v in sorted(daily.items())},
        total_tokens=int(round(sum(daily.values()))),
        estimated_cost=round(sum(m.cost for m in model_usage.values()), 4),
        period=f"{settings.openai_usage_days}d",
    )


async def _account_usage(
    ctx: SourceContext, item: Dict[str, Any], window: str
) -> Tuple[OpenAIAccount, Dict[str, float]]:
    resource_id = item.get("id") or ""
    account = OpenAIAccount(
        name=item.get("name", ""),
        location=item.get("location"),
        resource_group=resource_group_from_id(resource_id),
        endpoint=(item.get("properties") or {}).get("endpoint"),
    )

    try:
        deployments = await ctx.arm.list_all(
            f"{resource_id}/deployments", settings.cognitive_services_api_version
        )
    except SourceUnavailable as e:
        logger.warning(
            "openai_deployments_unavailable",
            extra={"account": account.name, "error": str(e)},
        )
        deployments = []
    account.deployments = [_deployment(d) for d in deployments]

    daily: Dict[str, float] = defaultdict(float)
    try:
        metrics = await ctx.arm.metrics(
            resource_id, USAGE_METRICS, window, "Total", "P1D"
        )
    except SourceUnavailable as e:
        logger.warning(
            "openai_metrics_unavailable",
            extra={"account": account.name, "error": str(e)},
        )
        return account, daily
    for name in USAGE_METRICS:
        for point in metric_points(metrics, name):
            if point.get("total") is None or not point.get("timeStamp"):
                continue
            day = _day_of(point["timeStamp"])
            daily[day] += float(point["total"])
    return account, dict(daily)


def _deployment(item: Dict[str, Any]) -> OpenAIDeployment:
    model = (item.get("properties") or {}).get("model") or {}
    return OpenAIDeployment(
        name=item.get("name", ""),
        model=model.get("name") or "Unknown",
        version=model.get("version"),
        capacity=(item.get("sku") or {}).get("capacity"),
    )


def _day_of(stamp: str) -> str:
    return datetime.fromisoformat(stamp.replace("Z", "+00:00")).date().isoformat()


def fallback() -> OpenAIUsage:
    return OpenAIUsage(source="fallback")
