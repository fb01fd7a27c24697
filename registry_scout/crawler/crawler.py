# === FILE: registry_scout/crawler/crawler.py ===
from __future__ import annotations

import asyncio
import enum
import time
from typing import Any, Awaitable, Callable, List, Optional, Union

from registry_scout.crawler.models import (
    CrawlQuery,
    CrawlResult,
    NotFound,
    PageClassification,
    ProfileResult,
    TableResult,
)
from registry_scout.crawler.navigation import NavigationController
from registry_scout.crawler.profile import ProfileExtractor
from registry_scout.crawler.retry import RetryExecutor
from registry_scout.crawler.session import BrowserSession
from registry_scout.crawler.table import TableExtractor
from registry_scout.errors import InvalidQuery
from registry_scout.logger import get_logger

__all__ = ("CrawlState", "CrawlStateMachine", "SessionFactory")

SessionFactory = Callable[[], Awaitable[BrowserSession]]
Sleep = Callable[[float], Awaitable[Any]]


class CrawlState(enum.Enum):
    IDLE = "idle"
    SUBMITTED = "submitted"
    CLASSIFIED = "classified"
    EXTRACTING = "extracting"
    DONE = "done"
    FAILED = "failed"


class CrawlStateMachine:
    """Один обход: отправка запроса, классификация страницы и извлечение данных.

    Each instance runs one query end to end on its own session. The session is
    closed before ``run`` returns or raises.
    """

    def __init__(
        self,
        config,
        session_factory: SessionFactory,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.config = config
        self._session_factory = session_factory
        self._sleep = sleep
        self.state = CrawlState.IDLE
        self.history: List[CrawlState] = [CrawlState.IDLE]
        self.classification: Optional[PageClassification] = None
        self.error: Optional[BaseException] = None
        self.pages_read: List[int] = []
        self.logger = get_logger("crawl")

    def _enter(self, state: CrawlState) -> None:
        self.logger.debug("%s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    async def run(self, query: Union[str, CrawlQuery]) -> CrawlResult:
        if self.state is not CrawlState.IDLE:
            raise RuntimeError("CrawlStateMachine instances are single-use")
        try:
            crawl_query = query if isinstance(query, CrawlQuery) else CrawlQuery(query)
        except InvalidQuery as exc:
            self._fail(query, exc)
            raise

        self.logger.info("Старт обхода: %r", crawl_query.text)
        start = time.monotonic()
        try:
            session = await self._session_factory()
        except BaseException as exc:
            self._fail(crawl_query.text, exc)
            raise
        try:
            result = await self._crawl(session, crawl_query)
        except BaseException as exc:
            self._fail(crawl_query.text, exc)
            raise
        finally:
            await self._teardown(session)
        self._enter(CrawlState.DONE)
        self.logger.info(
            "Завершено: %s за %.2f с", type(result).__name__, time.monotonic() - start
        )
        return result

    def _fail(self, query: Any, exc: BaseException) -> None:
        self.error = exc
        self._enter(CrawlState.FAILED)
        self.logger.error("Crawl for %r failed: %s", query, exc)

    async def _teardown(self, session: BrowserSession) -> None:
        try:
            await session.close()
        except Exception as exc:
            self.logger.warning("Session teardown failed: %s", exc)

    async def _crawl(self, session: BrowserSession, query: CrawlQuery) -> CrawlResult:
        nav = NavigationController(
            session,
            self.config.selectors,
            self.config.timings,
            RetryExecutor.from_config(self.config.retry, sleep=self._sleep),
            sleep=self._sleep,
        )
        await nav.open_landing(str(self.config.base_url))
        await nav.submit_query(query.text)
        self._enter(CrawlState.SUBMITTED)

        self.classification = nav.classify_result()
        self._enter(CrawlState.CLASSIFIED)
        self.logger.debug("Result page classified as %s", self.classification.value)

        self._enter(CrawlState.EXTRACTING)
        if self.classification is PageClassification.PROFILE:
            captures = await ProfileExtractor(nav).extract()
            return ProfileResult(tuple(captures))

        run = await TableExtractor(nav, max_pages=self.config.max_pages).extract()
        self.pages_read = run.pages
        if run.rows_seen == 0:
            return NotFound()
        return TableResult(tuple(run.records))
