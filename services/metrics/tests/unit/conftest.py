from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest
from src.cache.memory_store import InMemoryCacheStore
from src.cache.ttl_cache import TTLCache
from src.core.errors import SourceUnavailable
from src.sources.base import SourceContext, SourceSpec

SUBSCRIPTION_ID = "00000000-1111-2222-3333-444444444444"
FIXED_NOW = datetime(2025, 8, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeArm:
    """In-memory stand-in for ArmClient keyed by request path.

    Unknown paths raise SourceUnavailable like a 404 would.
    """

    def __init__(self):
        self.lists: Dict[str, List[Dict[str, Any]]] = {}
        self.posts: Dict[str, Dict[str, Any]] = {}
        self.metric_values: Dict[str, List[Dict[str, Any]]] = {}
        self.graph_rows: List[List[Dict[str, Any]]] = []
        self.graph_by_fragment: Dict[str, List[Dict[str, Any]]] = {}
        self.failing: set = set()
        self.calls: List[tuple] = []

    def _check(self, path: str):
        if path in self.failing:
            raise SourceUnavailable(f"GET {path} returned 500", status=500)

    async def get(self, path, api_version, params=None):
        self.calls.append(("get", path))
        self._check(path)
        raise SourceUnavailable(f"GET {path} returned 404", status=404)

    async def post(self, path, api_version, body, params=None):
        self.calls.append(("post", path))
        self._check(path)
        if path not in self.posts:
            raise SourceUnavailable(f"POST {path} returned 404", status=404)
        return self.posts[path]

    async def list_all(self, path, api_version, params=None):
        self.calls.append(("list", path))
        self._check(path)
        if path not in self.lists:
            raise SourceUnavailable(f"GET {path} returned 404", status=404)
        return self.lists[path]

    async def metrics(
        self, resource_id, metric_names, timespan, aggregation, interval=None
    ):
        self.calls.append(("metrics", resource_id))
        self._check(resource_id)
        return self.metric_values.get(resource_id, [])

    async def resource_graph(self, query, subscriptions):
        self.calls.append(("graph", query))
        if "graph" in self.failing:
            raise SourceUnavailable("POST resources returned 500", status=500)
        for fragment, rows in self.graph_by_fragment.items():
            if fragment in query:
                return rows
        return self.graph_rows.pop(0) if self.graph_rows else []


def metric(name: str, points: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"name": {"value": name}, "timeseries": [{"data": points}]}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(InMemoryCacheStore(), clock=clock)


@pytest.fixture
def arm():
    return FakeArm()


@pytest.fixture
def make_ctx(arm):
    def _make(resource_group: Optional[str] = None, deadline: Optional[float] = None):
        return SourceContext(
            arm=arm,
            subscription_id=SUBSCRIPTION_ID,
            resource_group=resource_group,
            deadline=deadline,
            utcnow=lambda: FIXED_NOW,
        )

    return _make


@pytest.fixture
def make_spec():
    def _make(name, fetcher, ttl_seconds=60, read_through=False, fallback=None):
        return SourceSpec(
            name=name,
            fetcher=fetcher,
            ttl_seconds=ttl_seconds,
            read_through=read_through,
            fallback=fallback,
        )

    return _make


@pytest.fixture
def metric_series():
    return metric


@pytest.fixture
def subscription_id():
    return SUBSCRIPTION_ID
