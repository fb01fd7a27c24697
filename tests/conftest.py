# File: tests/conftest.py
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

import pytest

from registry_scout.config import ScraperConfig
from registry_scout.crawler.session import ElementState

LANDING_URL = "https://registry.example/index"
LIST_URL = "https://registry.example/searchresult"
PROFILE_URL = "https://registry.example/company/profile/5"


class FakeTimeout(Exception):
    """Stands in for a browser timeout."""


def make_row(n: int, width: int = 14) -> List[str]:
    """Cells of one table row: counter followed by ``r<n>c<i>`` values."""
    return [str(n)] + [f"r{n}c{i}" for i in range(1, width)]


def render_table(rows: Iterable[Sequence[str]]) -> str:
    header = "<tr>" + "".join(f"<th>h{i}</th>" for i in range(14)) + "</tr>"
    body = "".join("<tr>" + "".join(f"<td> {c} </td>" for c in row) + "</tr>" for row in rows)
    return f'<table id="fixTable">{header}{body}</table>'


class FakeSession:
    """In-memory stand-in for a browser session on the registry site.

    ``pages`` lists the rows shown on each results page; the next-page control
    is hidden on the last one; the table container is absent for the first
    ``late_table_reads`` reads. ``failures`` maps a method name to the number of
    times it raises :class:`FakeTimeout` before it starts working.
    """

    def __init__(
        self,
        config: ScraperConfig,
        *,
        result_url: str = LIST_URL,
        pages: Sequence[Sequence[Sequence[str]]] = ((),),
        failures: Optional[Dict[str, int]] = None,
        blank_reads: Optional[Dict[int, int]] = None,
        missing_tabs: Iterable[str] = (),
        missing_table: bool = False,
        late_table_reads: int = 0,
        next_control: bool = True,
        interstitials: Iterable[str] = ("#btnWarning",),
    ) -> None:
        self.sel = config.selectors
        self.url = "about:blank"
        self.result_url = result_url
        self.pages = [list(p) for p in pages]
        self.page_index = 0
        self.failures = dict(failures or {})
        self.blank_reads = dict(blank_reads or {})
        self.missing_tabs = set(missing_tabs)
        self.missing_table = missing_table
        self.late_table_reads = late_table_reads
        self.next_control = next_control
        self.present = set(interstitials)
        self.calls: List[tuple] = []
        self.served_pages: List[int] = []
        self.typed = ""
        self.submitted = False
        self.active_tab: Optional[str] = None
        self.closed = False

    def _maybe_fail(self, name: str) -> None:
        remaining = self.failures.get(name, 0)
        if remaining:
            self.failures[name] = remaining - 1
            raise FakeTimeout(f"{name} timed out")

    def _tab_name(self, selector: str) -> Optional[str]:
        for name, tab_selector in self.sel.profile_tabs.items():
            if tab_selector == selector:
                return name
        return None

    async def goto(self, url: str) -> None:
        self.calls.append(("goto", url))
        self._maybe_fail("goto")
        self.url = url

    async def exists(self, selector: str) -> bool:
        return selector in self.present

    async def click(self, selector: str) -> None:
        self.calls.append(("click", selector))
        self._maybe_fail("click")
        self.present.discard(selector)
        if selector == self.sel.next_page:
            self.page_index += 1
        tab = self._tab_name(selector)
        if tab is not None:
            self.active_tab = tab

    async def hover(self, selector: str) -> None:
        self.calls.append(("hover", selector))
        self._maybe_fail("hover")

    async def type(self, selector: str, text: str) -> None:
        self.calls.append(("type", selector, text))
        self._maybe_fail("type")
        self.typed += text

    async def press(self, selector: str, key: str) -> None:
        self.calls.append(("press", selector, key))
        self._maybe_fail("press")
        self.submitted = True

    async def wait_for_selector(self, selector: str, visible: bool = True) -> None:
        self.calls.append(("wait_for_selector", selector))
        self._maybe_fail("wait_for_selector")
        if selector == self.sel.table and self.missing_table:
            raise FakeTimeout("no table")
        if selector == self.sel.table_rows and not self.pages[self.page_index]:
            raise FakeTimeout("no rows")
        if selector == self.sel.content_region and self.active_tab in self.missing_tabs:
            raise FakeTimeout("no content")

    async def wait_for_navigation(self, from_url: str) -> None:
        self.calls.append(("wait_for_navigation", from_url))
        self._maybe_fail("wait_for_navigation")
        if not self.submitted:
            raise FakeTimeout("nothing submitted")
        self.url = self.result_url

    async def outer_html(self, selector: str) -> Optional[str]:
        if selector != self.sel.table or self.missing_table:
            return None
        if self.late_table_reads:
            self.late_table_reads -= 1
            return None
        self.served_pages.append(self.page_index)
        blanks = self.blank_reads.get(self.page_index, 0)
        if blanks:
            self.blank_reads[self.page_index] = blanks - 1
            return render_table([])
        return render_table(self.pages[self.page_index])

    async def element_state(self, selector: str) -> Optional[ElementState]:
        if selector != self.sel.next_page or not self.next_control:
            return None
        if self.page_index >= len(self.pages) - 1:
            return ElementState(classes=frozenset({self.sel.next_hidden_class}))
        return ElementState()

    async def screenshot(self, selector: str) -> Optional[bytes]:
        self.calls.append(("screenshot", selector))
        self._maybe_fail("screenshot")
        if selector != self.sel.content_region or self.active_tab is None:
            return None
        return f"{self.active_tab}-capture".encode()

    async def scroll_to_origin(self) -> None:
        self.calls.append(("scroll_to_origin",))

    async def close(self) -> None:
        self.calls.append(("close",))
        self.closed = True


async def no_sleep(_seconds: float) -> None:
    return None


@pytest.fixture()
def fast_config() -> ScraperConfig:
    """Configuration with every delay switched off."""
    return ScraperConfig(
        base_url=LANDING_URL,
        timings={"landing": 0, "typing": 0, "hover": 0, "panel": 0, "page": 0},
        retry={"attempts": 3, "delay": 0},
        cache={"mode": "off"},
    )


@pytest.fixture()
def fake_session(fast_config):
    """Factory for :class:`FakeSession` bound to ``fast_config``."""

    def _make(**kwargs) -> FakeSession:
        return FakeSession(fast_config, **kwargs)

    return _make
