# File: tests/test_retry.py
from __future__ import annotations

import pytest

from registry_scout.crawler.retry import RetryExecutor, retrying
from registry_scout.errors import ExhaustedRetries


class Flaky:
    """Fails ``failures`` times, then returns ``value``."""

    def __init__(self, failures: int, value: str = "ok", exc: type = TimeoutError) -> None:
        self.failures = failures
        self.value = value
        self.exc = exc
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc(f"attempt {self.calls}")
        return self.value


@pytest.fixture()
def sleeps():
    return []


@pytest.fixture()
def executor(sleeps):
    async def fake_sleep(seconds):
        sleeps.append(seconds)

    return RetryExecutor(3, 0.5, sleep=fake_sleep)


@pytest.mark.asyncio()
@pytest.mark.parametrize("failures", [0, 1, 2])
async def test_success_within_budget(executor, sleeps, failures):
    op = Flaky(failures)
    assert await executor.run(op) == "ok"
    assert op.calls == failures + 1
    assert sleeps == [0.5] * failures


@pytest.mark.asyncio()
async def test_exhaustion_carries_last_cause(executor, sleeps):
    op = Flaky(5)
    with pytest.raises(ExhaustedRetries) as excinfo:
        await executor.run(op)
    assert op.calls == 3
    assert excinfo.value.attempts == 3
    assert str(excinfo.value.cause) == "attempt 3"
    assert excinfo.value.__cause__ is excinfo.value.cause
    # no pause after the final attempt
    assert sleeps == [0.5, 0.5]


@pytest.mark.asyncio()
async def test_per_call_overrides(executor, sleeps):
    op = Flaky(4)
    assert await executor.run(op, max_attempts=5, delay=0.1) == "ok"
    assert sleeps == [0.1] * 4


@pytest.mark.asyncio()
async def test_escalating_delay_is_capped(sleeps):
    async def fake_sleep(seconds):
        sleeps.append(seconds)

    executor = RetryExecutor(5, 1.0, backoff=2.0, max_delay=3.0, sleep=fake_sleep)
    with pytest.raises(ExhaustedRetries):
        await executor.run(Flaky(10))
    assert sleeps == [1.0, 2.0, 3.0, 3.0]


@pytest.mark.asyncio()
async def test_non_retryable_error_propagates_immediately(sleeps):
    async def fake_sleep(seconds):
        sleeps.append(seconds)

    executor = RetryExecutor(3, 1.0, retry_on=(TimeoutError,), sleep=fake_sleep)
    op = Flaky(1, exc=KeyError)
    with pytest.raises(KeyError):
        await executor.run(op)
    assert op.calls == 1
    assert sleeps == []


def test_invalid_budget():
    with pytest.raises(ValueError):
        RetryExecutor(0)


@pytest.mark.asyncio()
async def test_invalid_per_call_budget(executor):
    op = Flaky(0)
    with pytest.raises(ValueError):
        await executor.run(op, max_attempts=0)
    assert op.calls == 0


@pytest.mark.asyncio()
async def test_retrying_decorator_uses_instance_executor(executor):
    class Client:
        def __init__(self):
            self.retry = executor
            self.op = Flaky(2, value="page")

        @retrying("load")
        async def load(self, suffix):
            return await self.op() + suffix

    client = Client()
    assert await client.load("!") == "page!"
    assert client.op.calls == 3
