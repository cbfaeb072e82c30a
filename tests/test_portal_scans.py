from __future__ import annotations

import httpx
import pytest

from recordwatch.core import metrics
from recordwatch.portal.client import PortalClient
from recordwatch.portal.fetcher import PORTAL_PAGE_SIZE
from recordwatch.portal.models import ListType, Record
from recordwatch.portal.scans import scan_all, scan_month
from recordwatch.portal.session import PortalSession
from tests.factories import PORTAL_BASE_URL, FakeClock, make_record_payload


class FeedSource:
    """Serve a fixed, already ordered feed the way the portal pages it."""

    def __init__(self, feed: list[Record]) -> None:
        self.feed = feed
        self.calls: list[tuple[ListType, int, int]] = []

    async def fetch_page_block(
        self, list_type: ListType, page: int, page_count: int
    ) -> list[Record]:
        self.calls.append((list_type, page, page_count))
        start = (page - 1) * PORTAL_PAGE_SIZE
        return self.feed[start : start + page_count * PORTAL_PAGE_SIZE]


def _records(count: int, report_date: str, prefix: str = "r") -> list[Record]:
    return [
        Record.from_wire(make_record_payload(id=f"{prefix}{index}", lastReportDate=report_date))
        for index in range(count)
    ]


@pytest.mark.asyncio
async def test_scan_all_exact_multiple_costs_one_empty_superblock() -> None:
    source = FeedSource(_records(110, "01/03/2024 08:00"))

    records = await scan_all(source, ListType.UNREPORTED)

    assert len(records) == 110
    assert source.calls == [
        (ListType.UNREPORTED, 1, 10),
        (ListType.UNREPORTED, 11, 10),
    ]
    assert metrics.get("portal.scan", policy="all") == 1


@pytest.mark.asyncio
async def test_scan_all_stops_on_short_superblock() -> None:
    source = FeedSource(_records(115, "01/03/2024 08:00"))

    records = await scan_all(source, ListType.UNREPORTED)

    assert [r.id for r in records] == [f"r{i}" for i in range(115)]
    assert len(source.calls) == 2


@pytest.mark.asyncio
async def test_scan_all_single_partial_superblock() -> None:
    source = FeedSource(_records(42, "01/03/2024 08:00"))

    records = await scan_all(source, ListType.REPORTED)

    assert len(records) == 42
    assert source.calls == [(ListType.REPORTED, 1, 10)]


@pytest.mark.asyncio
async def test_scan_all_empty_feed() -> None:
    source = FeedSource([])

    assert await scan_all(source, ListType.REPORTED) == []
    assert len(source.calls) == 1


@pytest.mark.asyncio
async def test_scan_month_stops_after_superblock_without_matches() -> None:
    feed = (
        _records(3, "25/03/2024 14:30", prefix="mar")
        + _records(107, "28/02/2024 10:00", prefix="feb")
        + _records(110, "15/01/2024 10:00", prefix="jan")
    )
    source = FeedSource(feed)

    records = await scan_month(source, ListType.REPORTED, 3)

    assert [r.id for r in records] == ["mar0", "mar1", "mar2"]
    assert [call[1] for call in source.calls] == [1, 11]
    assert metrics.get("portal.scan", policy="month") == 1


@pytest.mark.asyncio
async def test_scan_month_continues_while_superblocks_match() -> None:
    feed = _records(130, "20/03/2024 09:00", prefix="mar") + _records(
        50, "10/02/2024 09:00", prefix="feb"
    )
    source = FeedSource(feed)

    records = await scan_month(source, ListType.REPORTED, 3)

    assert len(records) == 130
    assert [call[1] for call in source.calls] == [1, 11, 21]


@pytest.mark.asyncio
async def test_scan_month_skips_records_without_report_date() -> None:
    feed = _records(2, "NA", prefix="na") + _records(2, "05/03/2024 11:00", prefix="mar")
    source = FeedSource(feed)

    records = await scan_month(source, ListType.REPORTED, 3)

    assert [r.id for r in records] == ["mar0", "mar1"]


@pytest.mark.asyncio
async def test_scan_month_with_year_ignores_same_month_of_other_years() -> None:
    source = FeedSource(_records(5, "12/03/2023 11:00"))

    assert await scan_month(source, ListType.REPORTED, 3, year=2024) == []
    assert len(await scan_month(source, ListType.REPORTED, 3)) == 5


@pytest.mark.asyncio
@pytest.mark.parametrize("month", [0, 13])
async def test_scan_month_rejects_invalid_month(month: int) -> None:
    source = FeedSource([])

    with pytest.raises(ValueError):
        await scan_month(source, ListType.REPORTED, month)

    assert source.calls == []


@pytest.mark.asyncio
async def test_portal_client_scan_all_end_to_end(clock: FakeClock) -> None:
    total = 110
    requests: list[httpx.Request] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == "/login_handler":
            return httpx.Response(200)
        counter = int(request.url.params["counter"])
        ids = range(counter, min(counter + PORTAL_PAGE_SIZE, total + 1))
        payload = {
            "count": len(ids),
            "counter": counter,
            "list": [make_record_payload(id=str(i)) for i in ids],
        }
        return httpx.Response(200, json=payload)

    session = PortalSession(
        "doctor",
        "secret",
        base_url=PORTAL_BASE_URL,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        clock=clock,
    )
    client = PortalClient(session)

    records = await client.scan_all(ListType.UNREPORTED)
    await client.close()

    assert [r.id for r in records] == [str(i) for i in range(1, total + 1)]
    listing = [r for r in requests if r.url.path != "/login_handler"]
    assert len(listing) == 20
    assert len(requests) == 21
