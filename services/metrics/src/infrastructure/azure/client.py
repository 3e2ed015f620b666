from typing import Any, Dict, List, Optional, Protocol

import aiohttp
from src.core.config import settings
from src.core.errors import SourceUnavailable, TransientSourceError
from src.core.logger import get_logger

from shared.utils.retry import retry_async

logger = get_logger("metrics.arm")

RETRYABLE_STATUSES = {408, 429, 500, 502, 503, 504}


class AccessTokenProvider(Protocol):
    async def get_token(self, *scopes: str, **kwargs: Any) -> Any: ...


class ArmClient:
    """Thin async client for the Azure Resource Manager REST API.

    Only read operations are issued. Non-2xx answers raise
    ``SourceUnavailable``; throttling and server errors are retried first.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        credential: AccessTokenProvider,
        base_url: str = settings.arm_base_url,
        retries: int = settings.arm_retries,
    ):
        self.session = session
        self.credential = credential
        self.base_url = base_url.rstrip("/")
        self.retries = retries

    async def get(
        self, path: str, api_version: str, params: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        return await self._request(
            "GET", self._url(path), _query(path, api_version, params)
        )

    async def post(
        self,
        path: str,
        api_version: str,
        body: Dict[str, Any],
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            self._url(path),
            _query(path, api_version, params),
            body,
        )

    async def list_all(
        self, path: str, api_version: str, params: Optional[Dict[str, str]] = None
    ) -> List[Dict[str, Any]]:
        """Collect ``value`` items across every ``nextLink`` page."""
        page = await self.get(path, api_version, params)
        items: List[Dict[str, Any]] = list(page.get("value") or [])
        next_link = page.get("nextLink")
        while next_link:
            # nextLink already carries the query string, api-version included
            page = await self._request("GET", next_link, None)
            items.extend(page.get("value") or [])
            next_link = page.get("nextLink")
        return items

    async def metrics(
        self,
        resource_id: str,
        metric_names: List[str],
        timespan: str,
        aggregation: str,
        interval: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Azure Monitor metric definitions with their timeseries."""
        params = {
            "metricnames": ",".join(metric_names),
            "timespan": timespan,
            "aggregation": aggregation,
        }
        if interval:
            params["interval"] = interval
        data = await self.get(
            f"{resource_id}/providers/Microsoft.Insights/metrics",
            settings.monitor_metrics_api_version,
            params,
        )
        return list(data.get("value") or [])

    async def resource_graph(
        self, query: str, subscriptions: List[str]
    ) -> List[Dict[str, Any]]:
        """Run a Resource Graph query, following ``$skipToken`` pages."""
        rows: List[Dict[str, Any]] = []
        body: Dict[str, Any] = {"subscriptions": subscriptions, "query": query}
        while True:
            page = await self.post(
                "/providers/Microsoft.ResourceGraph/resources",
                settings.resource_graph_api_version,
                body,
            )
            rows.extend(page.get("data") or [])
            skip_token = page.get("$skipToken")
            if not skip_token:
                return rows
            body = {**body, "options": {"$skipToken": skip_token}}

    async def _authorization(self) -> Dict[str, str]:
        token = await self.credential.get_token(f"{self.base_url}/.default")
        return {"Authorization": f"Bearer {token.token}"}

    def _url(self, path: str) -> str:
        if path.startswith("http"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, str]],
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        headers = await self._authorization()

        async def _call() -> Dict[str, Any]:
            async with self.session.request(
                method, url, params=params, json=body, headers=headers
            ) as resp:
                if resp.status in RETRYABLE_STATUSES:
                    raise TransientSourceError(
                        f"{method} {_path_of(url)} returned {resp.status}",
                        status=resp.status,
                    )
                if resp.status >= 400:
                    detail = await resp.text()
                    raise SourceUnavailable(
                        f"{method} {_path_of(url)} returned {resp.status}: "
                        f"{detail[:200]}",
                        status=resp.status,
                    )
                return await resp.json(content_type=None) or {}

        async def _on_retry(attempt: int, exc: BaseException, sleep_for: float):
            logger.warning(
                "arm_request_retry",
                extra={
                    "attempt": attempt,
                    "error": str(exc),
                    "sleep_for": round(sleep_for, 2),
                },
            )

        try:
            return await retry_async(
                _call,
                retries=self.retries,
                base_delay=settings.arm_retry_base_delay_seconds,
                max_delay=settings.arm_retry_max_delay_seconds,
                jitter=0.2,
                retry_on=(TransientSourceError, aiohttp.ClientConnectionError),
                on_retry=_on_retry,
            )
        except aiohttp.ClientError as e:
            raise SourceUnavailable(f"{method} {_path_of(url)} failed: {e}") from e


def _path_of(url: str) -> str:
    return url.split("?", 1)[0]


def _query(
    path: str, api_version: str, params: Optional[Dict[str, str]]
) -> Dict[str, str]:
    # continuation links already carry api-version
    if "api-version=" in path:
        return dict(params or {})
    return {**(params or {}), "api-version": api_version}
