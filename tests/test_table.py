# File: tests/test_table.py
from __future__ import annotations

import pytest

from conftest import make_row, no_sleep, render_table
from registry_scout.crawler.models import Record
from registry_scout.crawler.navigation import NavigationController
from registry_scout.crawler.retry import RetryExecutor
from registry_scout.crawler.table import TableExtractor, parse_rows
from registry_scout.errors import ExtractionError


def controller(config, session) -> NavigationController:
    return NavigationController(
        session,
        config.selectors,
        config.timings,
        RetryExecutor(3, 0, sleep=no_sleep),
        sleep=no_sleep,
    )


def test_parse_rows_skips_header_and_strips_text():
    html = render_table([make_row(1), make_row(2)])
    rows = parse_rows(html)
    assert len(rows) == 2
    assert rows[0][0] == "1"
    assert rows[1][13] == "r2c13"


def test_parse_rows_keeps_cell_text_verbatim():
    html = (
        '<table id="fixTable"><tr><th>#</th></tr>'
        "<tr><td>1</td><td>0105</td><td>ACME <b>CO.,LTD.</b></td><td>1,000,000.00</td></tr></table>"
    )
    assert parse_rows(html) == [["1", "0105", "ACME CO.,LTD.", "1,000,000.00"]]


def test_record_from_short_row_fills_blanks():
    record = Record.from_cells(["1", "ID-1", "0105"])
    assert record.identifier == "ID-1"
    assert record.registration_number == "0105"
    assert record.name == ""
    assert record.shareholder_equity == ""


def test_record_labels_follow_column_order():
    record = Record.from_cells(make_row(7))
    assert list(record.as_dict()) == [
        "ID", "Number", "Name", "Type", "Status", "TSIC", "Industry",
        "Province", "Capital", "TotalRevenue", "NetProfit", "TotalAssets",
        "ShareholderEquity",
    ]
    assert record.as_dict()["ShareholderEquity"] == "r7c13"


@pytest.mark.asyncio()
@pytest.mark.parametrize("sizes", [[10, 4], [10, 10, 10, 1], [3]])
async def test_reads_every_page_exactly_once(fast_config, fake_session, sizes):
    counter = iter(range(1, sum(sizes) + 1))
    pages = [[make_row(next(counter)) for _ in range(size)] for size in sizes]
    session = fake_session(pages=pages)

    run = await TableExtractor(controller(fast_config, session)).extract()

    assert len(run.records) == sum(sizes)
    assert run.row_counts == sizes
    assert run.pages == list(range(1, len(sizes) + 1))
    # no page beyond the last one is ever requested
    assert max(session.served_pages) == len(sizes) - 1
    assert session.served_pages == sorted(session.served_pages)
    assert [r.identifier for r in run.records] == [f"r{n}c1" for n in range(1, sum(sizes) + 1)]


@pytest.mark.asyncio()
async def test_absent_next_control_stops_after_first_page(fast_config, fake_session):
    session = fake_session(pages=[[make_row(1)], [make_row(2)]], next_control=False)
    run = await TableExtractor(controller(fast_config, session)).extract()
    assert run.pages == [1]
    assert ("click", fast_config.selectors.next_page) not in session.calls


@pytest.mark.asyncio()
async def test_malformed_row_degrades_to_empty_fields(fast_config, fake_session):
    session = fake_session(pages=[[make_row(1), ["2", "ID-2"]]])
    run = await TableExtractor(controller(fast_config, session)).extract()

    assert len(run.records) == 2
    assert run.malformed_rows == 1
    assert run.records[1].identifier == "ID-2"
    assert run.records[1].name == ""


@pytest.mark.asyncio()
async def test_transient_blank_page_is_waited_out(fast_config, fake_session):
    session = fake_session(pages=[[make_row(1)], [make_row(2), make_row(3)]], blank_reads={1: 1})
    run = await TableExtractor(controller(fast_config, session)).extract()

    assert run.row_counts == [1, 2]
    assert ("wait_for_selector", fast_config.selectors.table_rows) in session.calls


@pytest.mark.asyncio()
async def test_genuinely_empty_intermediate_page_is_accepted(fast_config, fake_session):
    session = fake_session(pages=[[make_row(1)], [], [make_row(2)]])
    run = await TableExtractor(controller(fast_config, session)).extract()

    assert run.row_counts == [1, 0, 1]
    assert [r.identifier for r in run.records] == ["r1c1", "r2c1"]


@pytest.mark.asyncio()
async def test_page_limit_bounds_the_loop(fast_config, fake_session):
    session = fake_session(pages=[[make_row(n)] for n in range(1, 6)])
    run = await TableExtractor(controller(fast_config, session), max_pages=2).extract()
    assert run.pages == [1, 2]


@pytest.mark.asyncio()
async def test_missing_table_raises(fast_config, fake_session):
    session = fake_session(missing_table=True)
    with pytest.raises(ExtractionError):
        await TableExtractor(controller(fast_config, session)).extract()
    assert session.calls.count(("wait_for_selector", fast_config.selectors.table)) == 3


@pytest.mark.asyncio()
async def test_late_table_container_is_waited_for(fast_config, fake_session):
    session = fake_session(pages=[[make_row(1)]], late_table_reads=1)
    run = await TableExtractor(controller(fast_config, session)).extract()

    assert [r.identifier for r in run.records] == ["r1c1"]
    assert ("wait_for_selector", fast_config.selectors.table) in session.calls
