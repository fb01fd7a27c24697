# File: registry_scout/engine.py
"""registry_scout.engine: оркестрация кеша ресурсов, браузера и обходов."""

from __future__ import annotations

import asyncio
from typing import Any, Optional, Union

from registry_scout.cache.policy import InterceptionPolicy, summarize
from registry_scout.cache.store import ResourceCache, build_cache
from registry_scout.config import ScraperConfig
from registry_scout.crawler.crawler import CrawlStateMachine
from registry_scout.crawler.models import CrawlQuery, CrawlResult
from registry_scout.crawler.session import BrowserEngine, BrowserSession
from registry_scout.logger import logger

__all__ = ["Engine", "run_search"]


class Engine:
    """Фасад для CLI, HTTP-сервера и тестов.

    Владеет одним ResourceCache и одним процессом браузера; каждый вызов
    :meth:`search` получает собственную сессию (контекст браузера).
    """

    def __init__(
        self,
        config: ScraperConfig,
        *,
        browser: Optional[Any] = None,
        cache: Optional[ResourceCache] = None,
    ) -> None:
        """Инициализирует Engine; *browser* и *cache* можно подменить в тестах."""
        self.config = config
        self.cache = cache if cache is not None else build_cache(config.cache)
        self.policy = InterceptionPolicy.from_config(self.cache, config.cache)
        self.browser = browser if browser is not None else BrowserEngine(config.browser)
        self._started = False

    async def start(self) -> None:
        if self._started:
            return
        self.cache.open()
        await self.browser.start()
        self._started = True
        logger.info("Engine started (cache=%s)", self.config.cache.mode)

    async def close(self) -> None:
        if not self._started:
            return
        self._started = False
        try:
            await self.browser.close()
        finally:
            self.cache.close()
            logger.info("Engine stopped (%s)", summarize(self.policy.stats))

    async def __aenter__(self) -> Engine:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _new_session(self) -> BrowserSession:
        return await self.browser.new_session(self.policy)

    async def search(self, query: Union[str, CrawlQuery]) -> CrawlResult:
        """Запускает один обход; при заданном crawl_timeout ограничивает его по времени."""
        if not self._started:
            raise RuntimeError("Engine not started")
        machine = CrawlStateMachine(self.config, self._new_session)
        if self.config.crawl_timeout is None:
            return await machine.run(query)
        try:
            return await asyncio.wait_for(machine.run(query), timeout=self.config.crawl_timeout)
        except asyncio.TimeoutError:
            logger.error("Crawl did not finish within %s seconds", self.config.crawl_timeout)
            raise


async def run_search(config: ScraperConfig, query: str) -> CrawlResult:
    """Одноразовый запуск: поднимает Engine, выполняет обход и освобождает ресурсы."""
    async with Engine(config) as engine:
        return await engine.search(query)
