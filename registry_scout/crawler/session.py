# registry_scout/crawler/session.py
"""
Browser-session contract and its Playwright implementation.

A session is one isolated browser context with a single page. The crawler
only talks to the :class:`BrowserSession` protocol, so tests can replace the
browser with an in-memory double.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Optional, Protocol, runtime_checkable

from playwright.async_api import Browser, BrowserContext, Page, Playwright, Route, async_playwright
from playwright.async_api import Error as PlaywrightError

from registry_scout.cache.policy import Action, InterceptionPolicy, RequestInfo, ResponseInfo
from registry_scout.logger import get_logger

__all__ = ("ElementState", "BrowserSession", "PlaywrightSession", "BrowserEngine")

log = get_logger("session")

_ELEMENT_STATE_JS = """
el => ({
    classes: Array.from(el.classList),
    disabled: el.hasAttribute('disabled') || el.getAttribute('aria-disabled') === 'true',
})
"""


@dataclass(frozen=True, slots=True)
class ElementState:
    """Snapshot of a control the crawler has to decide on (e.g. the next-page link)."""

    visible: bool = True
    disabled: bool = False
    classes: FrozenSet[str] = frozenset()

    def inactive(self, hidden_class: str) -> bool:
        return not self.visible or self.disabled or hidden_class in self.classes


@runtime_checkable
class BrowserSession(Protocol):
    """Primitive browser actions used by the navigation controller."""

    @property
    def url(self) -> str: ...

    async def goto(self, url: str) -> None: ...

    async def exists(self, selector: str) -> bool: ...

    async def click(self, selector: str) -> None: ...

    async def hover(self, selector: str) -> None: ...

    async def type(self, selector: str, text: str) -> None: ...

    async def press(self, selector: str, key: str) -> None: ...

    async def wait_for_selector(self, selector: str, visible: bool = True) -> None: ...

    async def wait_for_navigation(self, from_url: str) -> None: ...

    async def outer_html(self, selector: str) -> Optional[str]: ...

    async def element_state(self, selector: str) -> Optional[ElementState]: ...

    async def screenshot(self, selector: str) -> Optional[bytes]: ...

    async def scroll_to_origin(self) -> None: ...

    async def close(self) -> None: ...


class PlaywrightSession:
    """:class:`BrowserSession` backed by one Playwright context and page."""

    def __init__(self, context: BrowserContext, page: Page, timeout: float) -> None:
        self.context = context
        self.page = page
        self._timeout_ms = timeout * 1000
        self._policy: Optional[InterceptionPolicy] = None
        self.closed = False

    @property
    def url(self) -> str:
        return self.page.url

    async def install_interceptor(self, policy: InterceptionPolicy) -> None:
        self._policy = policy
        await self.page.route("**/*", self._route)

    async def _route(self, route: Route) -> None:
        request = route.request
        info = RequestInfo(url=request.url, resource_type=request.resource_type, method=request.method)
        try:
            decision = self._policy.on_request(info)  # type: ignore[union-attr]
        except Exception as exc:
            log.warning("Interception failed for %s, passing through: %s", request.url, exc)
            await route.continue_()
            return
        if decision.action is Action.ABORT:
            await route.abort()
            return
        if decision.action is Action.SERVE and decision.entry is not None:
            entry = decision.entry
            await route.fulfill(status=entry.status, headers=dict(entry.headers), body=entry.body)
            return
        try:
            response = await route.fetch()
        except PlaywrightError as exc:
            log.debug("Fetch through route failed for %s: %s", request.url, exc)
            await route.continue_()
            return
        try:
            body: Optional[bytes] = await response.body()
        except PlaywrightError as exc:
            log.debug("Response body unavailable for %s: %s", request.url, exc)
            await route.fulfill(response=response)
            return
        try:
            self._policy.on_response(  # type: ignore[union-attr]
                ResponseInfo(
                    url=request.url,
                    resource_type=request.resource_type,
                    status=response.status,
                    headers=response.headers,
                    body=body,
                )
            )
        except Exception as exc:
            log.warning("Could not cache %s: %s", request.url, exc)
        await route.fulfill(response=response, body=body)

    async def goto(self, url: str) -> None:
        await self.page.goto(url, wait_until="networkidle", timeout=self._timeout_ms)

    async def exists(self, selector: str) -> bool:
        return await self.page.query_selector(selector) is not None

    async def click(self, selector: str) -> None:
        await self.page.click(selector, timeout=self._timeout_ms)

    async def hover(self, selector: str) -> None:
        await self.page.hover(selector, timeout=self._timeout_ms)

    async def type(self, selector: str, text: str) -> None:
        field = self.page.locator(selector)
        await field.focus(timeout=self._timeout_ms)
        await field.press_sequentially(text, timeout=self._timeout_ms)

    async def press(self, selector: str, key: str) -> None:
        await self.page.press(selector, key, timeout=self._timeout_ms)

    async def wait_for_selector(self, selector: str, visible: bool = True) -> None:
        state = "visible" if visible else "attached"
        await self.page.wait_for_selector(selector, state=state, timeout=self._timeout_ms)

    async def wait_for_navigation(self, from_url: str) -> None:
        await self.page.wait_for_url(
            lambda url: url != from_url, wait_until="networkidle", timeout=self._timeout_ms
        )

    async def outer_html(self, selector: str) -> Optional[str]:
        handle = await self.page.query_selector(selector)
        if handle is None:
            return None
        return await handle.evaluate("el => el.outerHTML")

    async def element_state(self, selector: str) -> Optional[ElementState]:
        handle = await self.page.query_selector(selector)
        if handle is None:
            return None
        raw = await handle.evaluate(_ELEMENT_STATE_JS)
        return ElementState(
            visible=await handle.is_visible(),
            disabled=bool(raw["disabled"]),
            classes=frozenset(raw["classes"]),
        )

    async def screenshot(self, selector: str) -> Optional[bytes]:
        handle = await self.page.query_selector(selector)
        if handle is None:
            return None
        return await handle.screenshot(timeout=self._timeout_ms)

    async def scroll_to_origin(self) -> None:
        await self.page.evaluate("() => window.scrollTo(0, 0)")

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        await self.context.close()


class BrowserEngine:
    """One Chromium process shared by many isolated sessions."""

    def __init__(self, browser_config) -> None:
        self.config = browser_config
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def start(self) -> None:
        if self._browser is not None:
            return
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self.config.headless)
        log.info("Browser started (headless=%s)", self.config.headless)

    async def new_session(self, policy: Optional[InterceptionPolicy] = None) -> PlaywrightSession:
        if self._browser is None:
            raise RuntimeError("Browser not started")
        context = await self._browser.new_context(
            viewport={"width": self.config.viewport_width, "height": self.config.viewport_height},
            user_agent=self.config.user_agent,
        )
        try:
            page = await context.new_page()
            session = PlaywrightSession(context, page, self.config.action_timeout)
            if policy is not None:
                await session.install_interceptor(policy)
        except BaseException:
            await context.close()
            raise
        return session

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
            log.info("Browser stopped")

    async def __aenter__(self) -> BrowserEngine:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
