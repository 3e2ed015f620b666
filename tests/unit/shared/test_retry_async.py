import pytest

from shared.utils.retry import retry_async


@pytest.mark.asyncio
async def test_returns_after_transient_failures():
    attempts = []

    async def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise ConnectionError("not yet")
        return "ok"

    seen = []
    result = await retry_async(
        flaky,
        retries=5,
        base_delay=0,
        max_delay=0,
        on_retry=lambda attempt, exc, sleep_for: seen.append(attempt),
    )
    assert result == "ok"
    assert seen == [1, 2]


@pytest.mark.asyncio
async def test_reraises_last_error_when_exhausted():
    async def always_fails():
        raise ConnectionError("down")

    with pytest.raises(ConnectionError):
        await retry_async(always_fails, retries=2, base_delay=0, max_delay=0)


@pytest.mark.asyncio
async def test_unlisted_errors_are_not_retried():
    calls = []

    async def bad_input():
        calls.append(1)
        raise ValueError("bad")

    with pytest.raises(ValueError):
        await retry_async(
            bad_input, retries=5, base_delay=0, retry_on=[ConnectionError]
        )
    assert calls == [1]


@pytest.mark.asyncio
async def test_async_on_retry_callback_is_awaited():
    seen = []

    async def on_retry(attempt, exc, sleep_for):
        seen.append(str(exc))

    state = {"n": 0}

    async def once_flaky():
        state["n"] += 1
        if state["n"] == 1:
            raise ConnectionError("first")
        return state["n"]

    assert await retry_async(once_flaky, base_delay=0, on_retry=on_retry) == 2
    assert seen == ["first"]


@pytest.mark.asyncio
async def test_rejects_non_positive_retries():
    async def noop():
        return None

    with pytest.raises(ValueError):
        await retry_async(noop, retries=0)
