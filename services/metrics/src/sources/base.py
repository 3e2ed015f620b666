import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Union

from src.domain.models import SectionModel

# Bumped whenever a static fallback payload changes shape or content
FALLBACK_VERSION = "2025-09"


class ArmReader(Protocol):
    """Read-only ARM operations available to fetchers."""

    async def get(
        self, path: str, api_version: str, params: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]: ...

    async def post(
        self,
        path: str,
        api_version: str,
        body: Dict[str, Any],
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]: ...

    async def list_all(
        self, path: str, api_version: str, params: Optional[Dict[str, str]] = None
    ) -> List[Dict[str, Any]]: ...

    async def metrics(
        self,
        resource_id: str,
        metric_names: List[str],
        timespan: str,
        aggregation: str,
        interval: Optional[str] = None,
    ) -> List[Dict[str, Any]]: ...

    async def resource_graph(
        self, query: str, subscriptions: List[str]
    ) -> List[Dict[str, Any]]: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SourceContext:
    """Execution scope shared by every fetcher of one request."""

    arm: ArmReader
    subscription_id: str
    resource_group: Optional[str] = None
    deadline: Optional[float] = None  # event loop time
    utcnow: Callable[[], datetime] = field(default=_utcnow)

    @property
    def subscription_path(self) -> str:
        return f"/subscriptions/{self.subscription_id}"

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when unbounded."""
        if self.deadline is None:
            return None
        return self.deadline - asyncio.get_running_loop().time()


# fetchers may also return a plain camelCase payload dict
Payload = Union[SectionModel, Dict[str, Any]]
Fetcher = Callable[[SourceContext], Awaitable[Payload]]


@dataclass(frozen=True)
class SourceSpec:
    """A registered source and its cache policy.

    read_through: serve a fresh cache entry instead of calling the fetcher.
    fallback: static payload factory used when a fetch fails with no fresh
        cache entry and static fallbacks are enabled.
    """

    name: str
    fetcher: Fetcher
    ttl_seconds: float
    read_through: bool = False
    fallback: Optional[Callable[[], SectionModel]] = None


def timespan(start: datetime, end: datetime) -> str:
    """ISO-8601 interval accepted by Azure Monitor."""
    fmt = "%Y-%m-%dT%H:%M:%SZ"
    return f"{start.strftime(fmt)}/{end.strftime(fmt)}"
