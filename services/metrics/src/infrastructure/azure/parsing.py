"""Helpers for reading ARM resource ids and Azure Monitor payloads."""

from typing import Any, Dict, Iterable, List, Optional


def resource_group_from_id(resource_id: Optional[str]) -> Optional[str]:
    # /subscriptions/{sub}/resourceGroups/{rg}/providers/...
    if not resource_id:
        return None
    parts = resource_id.split("/")
    for i, part in enumerate(parts[:-1]):
        if part.lower() == "resourcegroups":
            return parts[i + 1]
    return None


def metric_points(
    metrics: Iterable[Dict[str, Any]], metric_name: str
) -> List[Dict[str, Any]]:
    """Datapoints of the first timeseries for ``metric_name``."""
    for metric in metrics:
        name = (metric.get("name") or {}).get("value")
        if name != metric_name:
            continue
        series = metric.get("timeseries") or []
        if not series:
            return []
        return list(series[0].get("data") or [])
    return []


def latest_value(points: List[Dict[str, Any]], field: str) -> Optional[float]:
    for point in reversed(points):
        value = point.get(field)
        if value is not None:
            return float(value)
    return None


def mean_value(points: List[Dict[str, Any]], field: str) -> Optional[float]:
    values = [float(p[field]) for p in points if p.get(field) is not None]
    if not values:
        return None
    return sum(values) / len(values)
