from __future__ import annotations

import asyncio
import logging

import httpx

from recordwatch.core import metrics
from recordwatch.portal.errors import MalformedResponseError, PortalTransportError
from recordwatch.portal.models import ListType, Record, parse_listing
from recordwatch.portal.session import PortalSession

logger = logging.getLogger(__name__)

LISTING_PATH = "/manage/ecg/get_other_records"
DEFAULT_TYPE_LOG = "physician"
PORTAL_PAGE_SIZE = 11  # records returned per listing call
MAX_PARALLEL_REQUESTS = 10


def page_counters(page: int, page_count: int) -> list[int]:
    """Translate a logical page range into the portal's 1-based record offsets."""
    if page < 1:
        msg = f"page must be >= 1, got {page}"
        raise ValueError(msg)
    if page_count < 1:
        msg = f"page_count must be >= 1, got {page_count}"
        raise ValueError(msg)
    first = (page - 1) * PORTAL_PAGE_SIZE + 1
    return [first + index * PORTAL_PAGE_SIZE for index in range(page_count)]


class PageFetcher:
    """Fetch blocks of listing pages concurrently while keeping submission order.

    A block is served by at most ``concurrency`` workers pulling ``(slot, counter)``
    pairs from a queue; each result lands in its slot so the flattened output
    follows counter order no matter which request finishes first. One failed
    request cancels the rest and fails the whole block.
    """

    def __init__(
        self,
        session: PortalSession,
        *,
        concurrency: int = MAX_PARALLEL_REQUESTS,
    ) -> None:
        if concurrency < 1:
            msg = f"concurrency must be >= 1, got {concurrency}"
            raise ValueError(msg)
        self._session = session
        self._concurrency = concurrency

    @property
    def concurrency(self) -> int:
        return self._concurrency

    async def fetch_page_block(
        self, list_type: ListType, page: int, page_count: int
    ) -> list[Record]:
        counters = page_counters(page, page_count)
        async with self._session.authenticated() as client:
            slots = await self._fan_out(client, list_type, counters)

        records = [record for chunk in slots for record in chunk]
        logger.debug(
            "Fetched %s records for %s pages %s-%s",
            len(records),
            list_type.value,
            page,
            page + page_count - 1,
        )
        return records

    async def _fan_out(
        self, client: httpx.AsyncClient, list_type: ListType, counters: list[int]
    ) -> list[list[Record]]:
        queue: asyncio.Queue[tuple[int, int]] = asyncio.Queue()
        for slot, counter in enumerate(counters):
            queue.put_nowait((slot, counter))
        slots: list[list[Record]] = [[] for _ in counters]

        async def _worker() -> None:
            while True:
                try:
                    slot, counter = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                slots[slot] = await self._fetch_counter(client, list_type, counter)

        workers = [
            asyncio.create_task(_worker())
            for _ in range(min(self._concurrency, len(counters)))
        ]
        try:
            await asyncio.gather(*workers)
        except BaseException:
            for task in workers:
                task.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            raise
        return slots

    async def _fetch_counter(
        self, client: httpx.AsyncClient, list_type: ListType, counter: int
    ) -> list[Record]:
        url = f"{self._session.base_url}{LISTING_PATH}"
        params = {
            "counter": counter,
            "type_log": DEFAULT_TYPE_LOG,
            "list_type": list_type.to_wire(),
            "record_types_filter": "",
            "searchFilter": "",
        }
        try:
            response = await client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise PortalTransportError(
                f"listing request failed for counter {counter}: {exc}"
            ) from exc

        if not response.is_success:
            logger.warning(
                "Portal listing returned status %s for counter %s",
                response.status_code,
                counter,
            )
            raise PortalTransportError(
                f"listing returned status {response.status_code} for counter {counter}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                f"listing body for counter {counter} is not valid JSON"
            ) from exc

        records = parse_listing(payload)
        metrics.increment("portal.page_fetch", list_type=list_type.value)
        return records


__all__ = [
    "DEFAULT_TYPE_LOG",
    "LISTING_PATH",
    "MAX_PARALLEL_REQUESTS",
    "PORTAL_PAGE_SIZE",
    "PageFetcher",
    "page_counters",
]
