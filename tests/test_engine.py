# File: tests/test_engine.py
from __future__ import annotations

import asyncio

import pytest

from conftest import FakeSession, make_row
from registry_scout.cache.policy import InterceptionPolicy
from registry_scout.cache.store import CacheEntry, TtlResourceCache
from registry_scout.crawler.models import TableResult
from registry_scout.engine import Engine
from registry_scout.errors import InvalidQuery


class FakeBrowser:
    """Hands out pre-built sessions and records the policy they were given."""

    def __init__(self, *sessions: FakeSession) -> None:
        self.sessions = list(sessions)
        self.policies = []
        self.started = False
        self.closed = False

    async def start(self) -> None:
        self.started = True

    async def close(self) -> None:
        self.closed = True

    async def new_session(self, policy: InterceptionPolicy) -> FakeSession:
        self.policies.append(policy)
        return self.sessions.pop(0)


class SlowSession(FakeSession):
    async def goto(self, url: str) -> None:
        await asyncio.sleep(10)


@pytest.mark.asyncio()
async def test_search_runs_one_session_per_query(fast_config):
    sessions = [FakeSession(fast_config, pages=[[make_row(1)]]) for _ in range(2)]
    browser = FakeBrowser(*sessions)

    async with Engine(fast_config, browser=browser) as engine:
        results = await asyncio.gather(engine.search("Acme"), engine.search("Beta"))

    assert all(isinstance(r, TableResult) for r in results)
    assert all(s.closed for s in sessions)
    assert browser.policies[0] is browser.policies[1] is engine.policy
    assert browser.started and browser.closed


@pytest.mark.asyncio()
async def test_cache_is_opened_and_flushed(fast_config, tmp_path):
    snapshot = tmp_path / "resources.json"
    cache = TtlResourceCache(snapshot)
    engine = Engine(fast_config, browser=FakeBrowser(), cache=cache)

    await engine.start()
    assert engine.policy.cache is cache
    cache.store("https://registry.example/app.js", CacheEntry(200, {}, b"x"))
    await engine.close()

    assert snapshot.is_file()


@pytest.mark.asyncio()
async def test_search_requires_started_engine(fast_config):
    engine = Engine(fast_config, browser=FakeBrowser())
    with pytest.raises(RuntimeError):
        await engine.search("Acme")


@pytest.mark.asyncio()
async def test_invalid_query_does_not_open_session(fast_config):
    browser = FakeBrowser()
    async with Engine(fast_config, browser=browser) as engine:
        with pytest.raises(InvalidQuery):
            await engine.search("  ")
    assert browser.policies == []


@pytest.mark.asyncio()
async def test_deadline_still_tears_down_session(fast_config):
    config = fast_config.model_copy(update={"crawl_timeout": 0.05})
    session = SlowSession(config)
    async with Engine(config, browser=FakeBrowser(session)) as engine:
        with pytest.raises(asyncio.TimeoutError):
            await engine.search("Acme")
    assert session.closed
