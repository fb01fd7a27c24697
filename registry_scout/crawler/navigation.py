# registry_scout/crawler/navigation.py
"""
Navigation controller: the browser primitives the crawl needs, each run
through a :class:`RetryExecutor`, plus the composite steps of the target
site (query submission, hover menus, result classification).
"""
from __future__ import annotations

import asyncio
import base64
from typing import Any, Awaitable, Callable, Optional

from registry_scout.crawler.models import PageClassification
from registry_scout.crawler.retry import RetryExecutor, retrying
from registry_scout.crawler.session import BrowserSession, ElementState
from registry_scout.errors import ExhaustedRetries, NavigationError
from registry_scout.logger import get_logger

__all__ = ("NavigationController", "classify_url")

log = get_logger("navigation")

Sleep = Callable[[float], Awaitable[Any]]


class _TableNotRefreshed(Exception):
    pass


def classify_url(url: str, profile_marker: str) -> PageClassification:
    """A URL containing the profile marker is a single-entity profile; anything else is a list."""
    return PageClassification.PROFILE if profile_marker in url else PageClassification.LIST


class NavigationController:
    """Owns one browsing session and exposes retried primitives over it.

    Every retried primitive raises :class:`NavigationError` once its attempt
    budget is spent; the last underlying error is kept as ``cause``.
    """

    def __init__(
        self,
        session: BrowserSession,
        selectors,
        timings,
        retry: Optional[RetryExecutor] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.session = session
        self.selectors = selectors
        self.timings = timings
        self.retry = retry or RetryExecutor()
        self._sleep = sleep

    async def settle(self, seconds: float) -> None:
        if seconds > 0:
            await self._sleep(seconds)

    async def _guard(self, action: str, step: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await step()
        except ExhaustedRetries as exc:
            raise NavigationError(action, exc.cause) from exc

    # retried primitives ----------------------------------------------------
    @retrying("goto")
    async def _goto(self, url: str) -> None:
        await self.session.goto(url)

    @retrying("click")
    async def _click(self, selector: str) -> None:
        await self.session.click(selector)

    @retrying("hover")
    async def _hover(self, selector: str) -> None:
        await self.session.hover(selector)

    @retrying("type")
    async def _type(self, selector: str, text: str) -> None:
        await self.session.type(selector, text)

    @retrying("press")
    async def _press(self, selector: str, key: str) -> None:
        await self.session.press(selector, key)

    @retrying("wait_for_selector")
    async def _wait_for(self, selector: str, visible: bool = True) -> None:
        await self.session.wait_for_selector(selector, visible=visible)

    @retrying("wait_for_navigation")
    async def _wait_for_navigation(self, from_url: str) -> None:
        await self.session.wait_for_navigation(from_url)

    @retrying("screenshot")
    async def _screenshot(self, selector: str) -> Optional[bytes]:
        return await self.session.screenshot(selector)

    async def goto(self, url: str) -> None:
        await self._guard(f"goto {url}", lambda: self._goto(url))

    async def click(self, selector: str) -> None:
        await self._guard(f"click {selector}", lambda: self._click(selector))

    async def hover(self, selector: str) -> None:
        await self._guard(f"hover {selector}", lambda: self._hover(selector))

    async def type(self, selector: str, text: str) -> None:
        await self._guard(f"type into {selector}", lambda: self._type(selector, text))

    async def wait_for(self, selector: str, visible: bool = True) -> None:
        await self._guard(f"wait for {selector}", lambda: self._wait_for(selector, visible))

    async def wait_for_navigation(self, from_url: str) -> None:
        await self._guard("wait for navigation", lambda: self._wait_for_navigation(from_url))

    # composite steps -------------------------------------------------------
    async def open_landing(self, url: str) -> None:
        await self.goto(url)
        await self.settle(self.timings.landing)

    async def dismiss_interstitials(self) -> int:
        """Click away warning/consent prompts that are present; return how many were closed."""
        dismissed = 0
        for selector in self.selectors.interstitials:
            if not await self.session.exists(selector):
                continue
            try:
                await self.session.click(selector)
            except Exception as exc:  # prompt vanished or is not clickable
                log.debug("Could not dismiss %s: %s", selector, exc)
                continue
            dismissed += 1
        return dismissed

    async def submit_query(self, text: str) -> str:
        """Type *text* into the query field, submit and wait for the result page. Returns its URL."""
        await self.dismiss_interstitials()
        field = self.selectors.query_field
        await self.wait_for(field)
        await self.type(field, text)
        await self.settle(self.timings.typing)
        origin = self.session.url
        await self._guard("submit query", lambda: self._press(field, self.selectors.submit_key))
        await self.wait_for_navigation(origin)
        log.debug("Query %r landed on %s", text, self.session.url)
        return self.session.url

    async def hover_then_activate(
        self, hover_target: str, activate_target: str, *, require_content: bool = True
    ) -> bool:
        """
        Open a panel behind a hover menu: hover, click, then wait for the content
        region. The site renders its hover menu asynchronously, hence the settle
        delays around the hover.

        Returns False when the content region never appeared and
        *require_content* is off; raises :class:`NavigationError` otherwise.
        """
        await self.settle(self.timings.hover)
        await self.hover(hover_target)
        await self.settle(self.timings.hover)
        await self.click(activate_target)
        try:
            await self.wait_for(self.selectors.content_region)
        except NavigationError:
            if require_content:
                raise
            log.warning("Content region did not appear after activating %s", activate_target)
            return False
        await self.settle(self.timings.panel)
        return True

    def classify_result(self) -> PageClassification:
        return classify_url(self.session.url, self.selectors.profile_marker)

    # reads -----------------------------------------------------------------
    async def table_html(self) -> Optional[str]:
        return await self.session.outer_html(self.selectors.table)

    @retrying("wait_for_table_refresh")
    async def _table_refreshed(self, previous: str) -> str:
        html = await self.session.outer_html(self.selectors.table)
        if html is None or html == previous:
            raise _TableNotRefreshed(self.selectors.table)
        return html

    async def wait_for_table_refresh(self, previous: str) -> str:
        """Wait until the table markup differs from *previous*; return the new markup."""
        return await self._guard("wait for table refresh", lambda: self._table_refreshed(previous))

    async def next_page_state(self) -> Optional[ElementState]:
        return await self.session.element_state(self.selectors.next_page)

    async def capture(self, selector: str) -> str:
        """Screenshot *selector* as base64; an absent element gives an empty string."""
        data = await self._guard(f"capture {selector}", lambda: self._screenshot(selector))
        return base64.b64encode(data).decode("ascii") if data else ""

    async def scroll_to_origin(self) -> None:
        await self.session.scroll_to_origin()
