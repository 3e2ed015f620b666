from datetime import date

import pytest
from src.core.errors import SourceUnavailable
from src.sources.costs import (
    build_cost_query,
    fallback,
    fetch_costs,
    parse_usage_date,
    summarize_cost_rows,
)

COLUMNS = ["PreTaxCost", "UsageDate", "ServiceName", "Currency"]
TODAY = date(2025, 8, 15)


def test_summarize_rows_totals_and_history():
    rows = [
        [10.0, 20250814, "Storage", "USD"],
        [5.0, 20250814, "Compute", "USD"],
        [2.5, 20250801, "Storage", "USD"],
        [100.0, 20250731, "Compute", "USD"],
    ]
    summary = summarize_cost_rows(COLUMNS, rows, TODAY)

    assert summary.month_to_date == 17.5
    assert summary.yesterday == 15.0
    assert summary.currency == "USD"
    assert [d.date for d in summary.historical] == [20250731, 20250801, 20250814]
    assert summary.historical[-1].date_str == "2025-08-14"
    assert summary.historical[-1].services == {"Storage": 10.0, "Compute": 5.0}
    assert summary.cost_breakdown == {"Compute": 105.0, "Storage": 12.5}


def test_summarize_skips_unparseable_rows():
    rows = [
        [1.0, "not-a-date", "Storage", "USD"],
        [2.0, None, "Storage", "USD"],
        ["abc", 20250814, "Storage", "USD"],
        [3.0, "2025-08-14T00:00:00", "Storage", "EUR"],
    ]
    summary = summarize_cost_rows(COLUMNS, rows, TODAY)
    assert summary.month_to_date == 3.0
    assert summary.currency == "EUR"
    assert len(summary.historical) == 1


def test_summarize_looks_columns_up_by_name():
    columns = ["ServiceName", "UsageDate", "Cost"]
    rows = [["Network", 20250814, 1.234]]
    summary = summarize_cost_rows(columns, rows, TODAY)
    assert summary.cost_breakdown == {"Network": 1.23}
    assert summary.yesterday == 1.23


def test_summarize_empty_rows():
    summary = summarize_cost_rows(COLUMNS, [], TODAY)
    assert summary.month_to_date == 0.0
    assert summary.historical == []
    assert summary.source == "live"


@pytest.mark.parametrize(
    "value, expected",
    [
        (20250807, date(2025, 8, 7)),
        ("20250807", date(2025, 8, 7)),
        ("2025-08-07T00:00:00Z", date(2025, 8, 7)),
        ("garbage", None),
        (None, None),
    ],
)
def test_parse_usage_date(value, expected):
    assert parse_usage_date(value) == expected


def test_cost_query_shape():
    query = build_cost_query(date(2025, 7, 16), date(2025, 8, 16))
    assert query["type"] == "ActualCost"
    assert query["timePeriod"] == {"from": "2025-07-16", "to": "2025-08-16"}
    assert query["dataset"]["granularity"] == "Daily"
    grouping = query["dataset"]["grouping"]
    assert grouping == [{"type": "Dimension", "name": "ServiceName"}]


@pytest.mark.asyncio
async def test_fetch_costs_follows_next_link(arm, make_ctx, subscription_id):
    path = f"/subscriptions/{subscription_id}/providers/Microsoft.CostManagement/query"
    next_link = "https://management.azure.com/next?api-version=2023-11-01&page=2"
    arm.posts[path] = {
        "properties": {
            "columns": [{"name": c} for c in COLUMNS],
            "rows": [[4.0, 20250814, "Storage", "USD"]],
            "nextLink": next_link,
        }
    }
    arm.posts[next_link] = {
        "properties": {"rows": [[6.0, 20250814, "Compute", "USD"]], "nextLink": None}
    }

    summary = await fetch_costs(make_ctx())
    assert summary.yesterday == 10.0
    assert summary.cost_breakdown == {"Compute": 6.0, "Storage": 4.0}


@pytest.mark.asyncio
async def test_fetch_costs_without_properties_fails(arm, make_ctx, subscription_id):
    path = f"/subscriptions/{subscription_id}/providers/Microsoft.CostManagement/query"
    arm.posts[path] = {}
    with pytest.raises(SourceUnavailable):
        await fetch_costs(make_ctx())


def test_fallback_is_tagged():
    payload = fallback().to_payload()
    assert payload["source"] == "fallback"
    assert payload["monthToDate"] == 0.0
