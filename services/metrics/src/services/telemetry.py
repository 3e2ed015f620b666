"""Prometheus metrics for the aggregation pipeline."""

from shared.metrics import get_counter, get_gauge, get_histogram

SERVICE = "metrics"

SOURCE_FETCHES = get_counter(
    "source_fetch_total",
    "Fetcher invocations by source and outcome",
    service=SERVICE,
    labelnames=("source", "outcome"),
)
SOURCE_LATENCY = get_histogram(
    "source_fetch_latency_seconds",
    "Time spent in one fetcher",
    service=SERVICE,
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 25.0],
    labelnames=("source",),
)
CACHE_HITS = get_counter(
    "cache_hits_total",
    "Read-through sources answered from the cache",
    service=SERVICE,
    labelnames=("source",),
)
STALE_SERVED = get_counter(
    "cache_fallback_served_total",
    "Failed fetches answered with a cached payload",
    service=SERVICE,
    labelnames=("source",),
)
AGGREGATIONS = get_counter(
    "aggregations_total", "Completed aggregation runs", service=SERVICE
)
AGGREGATION_LATENCY = get_histogram(
    "aggregation_latency_seconds",
    "End-to-end time of one aggregation run",
    service=SERVICE,
)
LAST_AGGREGATION_ERRORS = get_gauge(
    "last_aggregation_errors",
    "Sources reported as failed by the most recent run",
    service=SERVICE,
)
