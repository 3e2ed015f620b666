"""Daily cost history from the Cost Management query API."""

from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from src.core.config import settings
from src.core.errors import SourceUnavailable
from src.core.logger import get_logger
from src.domain.models import CostSummary, DailyCost

from .base import SourceContext

logger = get_logger("metrics.sources.costs")

_COST_COLUMNS = ("PreTaxCost", "Cost", "CostUSD")
_DATE_COLUMNS = ("UsageDate", "BillingMonth")


def build_cost_query(start: date, end: date) -> Dict[str, Any]:
    return {
        "type": "ActualCost",
        "timeframe": "Custom",
        "timePeriod": {"from": start.isoformat(), "to": end.isoformat()},
        "dataset": {
            "granularity": "Daily",
            "aggregation": {"totalCost": {"name": "PreTaxCost", "function": "Sum"}},
            "grouping": [{"type": "Dimension", "name": "ServiceName"}],
        },
    }


async def fetch_costs(ctx: SourceContext) -> CostSummary:
    today = ctx.utcnow().date()
    start = today - timedelta(days=settings.cost_history_days)
    query = build_cost_query(start, today + timedelta(days=1))
    path = f"{ctx.subscription_path}/providers/Microsoft.CostManagement/query"

    data = await ctx.arm.post(path, settings.cost_management_api_version, query)
    props = data.get("properties")
    if props is None:
        raise SourceUnavailable("Cost query returned no properties")
    columns = [c.get("name") for c in props.get("columns") or []]
    rows: List[Sequence[Any]] = list(props.get("rows") or [])
    next_link = props.get("nextLink")
    while next_link:
        page = await ctx.arm.post(
            next_link, settings.cost_management_api_version, query
        )
        page_props = page.get("properties") or {}
        rows.extend(page_props.get("rows") or [])
        next_link = page_props.get("nextLink")

    return summarize_cost_rows(columns, rows, today)


def summarize_cost_rows(
    columns: Sequence[Optional[str]], rows: Sequence[Sequence[Any]], today: date
) -> CostSummary:
    """Fold grouped daily rows into totals, history and a service breakdown."""
    cost_idx = _column_index(columns, _COST_COLUMNS, default=0)
    date_idx = _column_index(columns, _DATE_COLUMNS, default=1)
    service_idx = _column_index(columns, ("ServiceName",), default=2)
    currency_idx = _column_index(columns, ("Currency",), default=None)

    month_start = today.replace(day=1)
    yesterday = today - timedelta(days=1)
    daily: Dict[date, Dict[str, float]] = {}
    breakdown: Dict[str, float] = {}
    month_to_date = 0.0
    currency = "USD"

    for row in rows:
        day = parse_usage_date(_cell(row, date_idx))
        if day is None:
            logger.debug("cost_row_skipped", extra={"row": list(row)})
            continue
        try:
            cost = float(_cell(row, cost_idx) or 0)
        except (TypeError, ValueError):
            continue
        service = str(_cell(row, service_idx) or "Unknown")
        if currency_idx is not None and _cell(row, currency_idx):
            currency = str(_cell(row, currency_idx))

        services = daily.setdefault(day, {})
        services[service] = services.get(service, 0.0) + cost
        breakdown[service] = breakdown.get(service, 0.0) + cost
        if day >= month_start:
            month_to_date += cost

    historical = [
        DailyCost(
            date=int(day.strftime("%Y%m%d")),
            date_str=day.isoformat(),
            cost=round(sum(services.values()), 2),
            services={k: round(v, 2) for k, v in services.items()},
        )
        for day, services in sorted(daily.items())
    ]
    return CostSummary(
        month_to_date=round(month_to_date, 2),
        yesterday=round(sum(daily.get(yesterday, {}).values()), 2),
        currency=currency,
        historical=historical,
        cost_breakdown={k: round(v, 2) for k, v in sorted(breakdown.items())},
    )


def parse_usage_date(value: Any) -> Optional[date]:
    """Accept ``20250807`` (int or str) or an ISO date/datetime string."""
    if value is None:
        return None
    text = str(value).strip()
    try:
        if text.isdigit() and len(text) == 8:
            return datetime.strptime(text, "%Y%m%d").date()
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def _column_index(
    columns: Sequence[Optional[str]], names: Sequence[str], default: Optional[int]
) -> Optional[int]:
    lowered = [(c or "").lower() for c in columns]
    for name in names:
        if name.lower() in lowered:
            return lowered.index(name.lower())
    return default


def _cell(row: Sequence[Any], idx: Optional[int]) -> Any:
    if idx is None or idx >= len(row):
        return None
    return row[idx]


def fallback() -> CostSummary:
    return CostSummary(source="fallback")
