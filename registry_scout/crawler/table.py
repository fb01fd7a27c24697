# registry_scout/crawler/table.py
"""Paginated extraction of the search-results table."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup

from registry_scout.crawler.models import ROW_WIDTH, Record
from registry_scout.crawler.navigation import NavigationController
from registry_scout.errors import ExtractionError, NavigationError
from registry_scout.logger import get_logger

__all__ = ("parse_rows", "TableExtractor", "TableRun")

log = get_logger("table")


def parse_rows(html: str) -> List[List[str]]:
    """Return the cell texts of every data row; the first row is the header and is skipped."""
    soup = BeautifulSoup(html, "html.parser")
    rows = soup.find_all("tr")[1:]
    return [[td.get_text(" ", strip=True) for td in row.find_all("td")] for row in rows]


@dataclass
class TableRun:
    """Bookkeeping of one paginated read."""

    records: List[Record] = field(default_factory=list)
    pages: List[int] = field(default_factory=list)
    row_counts: List[int] = field(default_factory=list)
    malformed_rows: int = 0

    @property
    def rows_seen(self) -> int:
        return sum(self.row_counts)


class TableExtractor:
    """
    Reads the table page by page until the next-page control is absent or
    inactive. Pages are visited in order, once each; records are only ever
    appended.
    """

    def __init__(self, nav: NavigationController, max_pages: Optional[int] = None) -> None:
        self.nav = nav
        self.max_pages = max_pages

    def _missing(self, page_no: int) -> ExtractionError:
        return ExtractionError(f"table {self.nav.selectors.table!r} not found on page {page_no}")

    async def _initial_html(self, page_no: int) -> str:
        html = await self.nav.table_html()
        if html is not None:
            return html
        # the container can mount after the navigation has already settled
        try:
            await self.nav.wait_for(self.nav.selectors.table, visible=False)
        except NavigationError as exc:
            raise self._missing(page_no) from exc
        html = await self.nav.table_html()
        if html is None:
            raise self._missing(page_no)
        return html

    async def _read_page(self, page_no: int, html: Optional[str]) -> Tuple[str, List[List[str]]]:
        if html is None:
            html = await self._initial_html(page_no)
        rows = parse_rows(html)
        if rows or page_no == 1:
            return html, rows
        # a freshly paginated table can render empty for a moment
        try:
            await self.nav.wait_for(self.nav.selectors.table_rows)
        except NavigationError:
            log.info("Page %d has no rows", page_no)
            return html, rows
        html = await self.nav.table_html()
        if html is None:
            raise self._missing(page_no)
        return html, parse_rows(html)

    async def _has_next(self) -> bool:
        state = await self.nav.next_page_state()
        if state is None:
            return False
        return not state.inactive(self.nav.selectors.next_hidden_class)

    async def _advance(self, previous_html: str) -> str:
        await self.nav.click(self.nav.selectors.next_page)
        await self.nav.settle(self.nav.timings.page)
        return await self.nav.wait_for_table_refresh(previous_html)

    async def extract(self) -> TableRun:
        run = TableRun()
        page_no = 1
        html: Optional[str] = None
        while True:
            html, rows = await self._read_page(page_no, html)
            for cells in rows:
                if len(cells) < ROW_WIDTH:
                    run.malformed_rows += 1
                    log.warning(
                        "Row with %d cell(s) on page %d, expected %d", len(cells), page_no, ROW_WIDTH
                    )
                run.records.append(Record.from_cells(cells))
            run.pages.append(page_no)
            run.row_counts.append(len(rows))
            log.debug("Page %d: %d row(s)", page_no, len(rows))

            if self.max_pages is not None and page_no >= self.max_pages:
                log.warning("Stopping at page limit %d", self.max_pages)
                break
            if not await self._has_next():
                break

            html = await self._advance(html)
            page_no += 1

        log.info("Table read: %d record(s) over %d page(s)", len(run.records), len(run.pages))
        return run
