from types import SimpleNamespace
from unittest.mock import AsyncMock

import aiohttp
import pytest
from src.core.config import settings
from src.core.errors import SourceUnavailable, TransientSourceError
from src.infrastructure.azure.client import ArmClient


class FakeResponse:
    def __init__(self, status=200, payload=None, text=""):
        self.status = status
        self._payload = payload
        self._text = text

    async def json(self, content_type=None):
        return self._payload

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    def request(self, method, url, params=None, json=None, headers=None):
        self.requests.append(
            {
                "method": method,
                "url": url,
                "params": params,
                "json": json,
                "headers": headers,
            }
        )
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(settings, "arm_retry_base_delay_seconds", 0.0)
    monkeypatch.setattr(settings, "arm_retry_max_delay_seconds", 0.0)


@pytest.fixture
def credential():
    cred = AsyncMock()
    cred.get_token.return_value = SimpleNamespace(token="abc", expires_on=0)
    return cred


@pytest.mark.asyncio
async def test_get_sends_bearer_and_api_version(credential):
    session = FakeSession([FakeResponse(payload={"ok": True})])
    client = ArmClient(session, credential, base_url="https://arm.test/")

    assert await client.get("/subscriptions/s1", "2021-04-01") == {"ok": True}
    sent = session.requests[0]
    assert sent["url"] == "https://arm.test/subscriptions/s1"
    assert sent["params"] == {"api-version": "2021-04-01"}
    assert sent["headers"]["Authorization"] == "Bearer abc"
    credential.get_token.assert_awaited_with("https://arm.test/.default")


@pytest.mark.asyncio
async def test_list_all_follows_next_link(credential):
    session = FakeSession(
        [
            FakeResponse(
                payload={"value": [1, 2], "nextLink": "https://arm.test/p2?api-version=x"}
            ),
            FakeResponse(payload={"value": [3]}),
        ]
    )
    client = ArmClient(session, credential, base_url="https://arm.test")

    assert await client.list_all("/things", "x") == [1, 2, 3]
    assert session.requests[1]["url"] == "https://arm.test/p2?api-version=x"
    assert session.requests[1]["params"] is None


@pytest.mark.asyncio
async def test_absolute_continuation_link_keeps_its_query(credential):
    session = FakeSession([FakeResponse(payload={})])
    client = ArmClient(session, credential, base_url="https://arm.test")

    link = "https://arm.test/q?api-version=2023-11-01&skip=1"
    await client.post(link, "2023-11-01", {})
    assert session.requests[0]["params"] == {}


@pytest.mark.asyncio
async def test_throttling_is_retried(credential):
    session = FakeSession(
        [
            FakeResponse(status=429),
            FakeResponse(status=503),
            FakeResponse(payload={"v": 1}),
        ]
    )
    client = ArmClient(session, credential, base_url="https://arm.test", retries=3)

    assert await client.get("/x", "v") == {"v": 1}
    assert len(session.requests) == 3


@pytest.mark.asyncio
async def test_retries_exhausted_raise_transient_error(credential):
    session = FakeSession([FakeResponse(status=500), FakeResponse(status=500)])
    client = ArmClient(session, credential, base_url="https://arm.test", retries=2)

    with pytest.raises(TransientSourceError) as exc:
        await client.get("/x", "v")
    assert exc.value.status == 500


@pytest.mark.asyncio
async def test_client_error_is_not_retried(credential):
    session = FakeSession([FakeResponse(status=403, text="AuthorizationFailed")])
    client = ArmClient(session, credential, base_url="https://arm.test", retries=3)

    with pytest.raises(SourceUnavailable) as exc:
        await client.get("/x", "v")
    assert exc.value.status == 403
    assert "AuthorizationFailed" in str(exc.value)
    assert len(session.requests) == 1


@pytest.mark.asyncio
async def test_transport_error_is_wrapped(credential):
    session = FakeSession([aiohttp.ClientPayloadError("broken")])
    client = ArmClient(session, credential, base_url="https://arm.test", retries=1)

    with pytest.raises(SourceUnavailable):
        await client.get("/x", "v")


@pytest.mark.asyncio
async def test_metrics_builds_monitor_query(credential):
    session = FakeSession([FakeResponse(payload={"value": [{"name": {"value": "m"}}]})])
    client = ArmClient(session, credential, base_url="https://arm.test")

    out = await client.metrics("/sub/r1", ["a", "b"], "t0/t1", "Average", "PT5M")
    assert out == [{"name": {"value": "m"}}]
    sent = session.requests[0]
    assert sent["url"] == "https://arm.test/sub/r1/providers/Microsoft.Insights/metrics"
    assert sent["params"]["metricnames"] == "a,b"
    assert sent["params"]["interval"] == "PT5M"
    assert sent["params"]["aggregation"] == "Average"


@pytest.mark.asyncio
async def test_resource_graph_follows_skip_token(credential):
    session = FakeSession(
        [
            FakeResponse(payload={"data": [{"n": 1}], "$skipToken": "t1"}),
            FakeResponse(payload={"data": [{"n": 2}]}),
        ]
    )
    client = ArmClient(session, credential, base_url="https://arm.test")

    rows = await client.resource_graph("Resources", ["s1"])
    assert rows == [{"n": 1}, {"n": 2}]
    first = session.requests[0]["json"]
    assert first == {"subscriptions": ["s1"], "query": "Resources"}
    assert session.requests[1]["json"]["options"] == {"$skipToken": "t1"}
