"""Termination policies layered on repeated page-block fetches.

Both scans start at logical page 1 and advance by ``page_count`` pages per
iteration, so each iteration covers one superblock of
``page_count * PORTAL_PAGE_SIZE`` records.
"""

from __future__ import annotations

import logging
from typing import Protocol

from recordwatch.core import metrics
from recordwatch.portal.fetcher import MAX_PARALLEL_REQUESTS, PORTAL_PAGE_SIZE
from recordwatch.portal.models import ListType, Record

logger = logging.getLogger(__name__)

FIRST_PAGE = 1


class PageBlockSource(Protocol):
    async def fetch_page_block(
        self, list_type: ListType, page: int, page_count: int
    ) -> list[Record]: ...


def _reported_in(record: Record, month: int, year: int | None) -> bool:
    reported_at = record.last_report_date
    if reported_at is None:
        return False
    if reported_at.month != month:
        return False
    return year is None or reported_at.year == year


async def scan_month(
    source: PageBlockSource,
    list_type: ListType,
    month: int,
    *,
    year: int | None = None,
    page_count: int = MAX_PARALLEL_REQUESTS,
) -> list[Record]:
    """Collect records whose report date falls in ``month`` (and ``year`` if given).

    Precondition: the portal lists records newest first. The scan stops at the
    first superblock without a single match, since older superblocks cannot
    contain any. Records without a report date never match.
    """
    if not 1 <= month <= 12:
        msg = f"month must be within 1..12, got {month}"
        raise ValueError(msg)

    records: list[Record] = []
    page = FIRST_PAGE
    superblocks = 0
    while True:
        block = await source.fetch_page_block(list_type, page, page_count)
        superblocks += 1
        matches = [record for record in block if _reported_in(record, month, year)]
        if not matches:
            break
        records.extend(matches)
        page += page_count

    metrics.increment("portal.scan", policy="month")
    logger.info(
        "Month scan of %s for %02d/%s found %s records in %s superblocks",
        list_type.value,
        month,
        year if year is not None else "*",
        len(records),
        superblocks,
    )
    return records


async def scan_all(
    source: PageBlockSource,
    list_type: ListType,
    *,
    page_count: int = MAX_PARALLEL_REQUESTS,
) -> list[Record]:
    """Collect every record of ``list_type``.

    The feed is exhausted once a superblock comes back short of full capacity.
    A feed whose size is an exact multiple of the capacity costs one extra,
    empty superblock fetch.
    """
    capacity = page_count * PORTAL_PAGE_SIZE
    records: list[Record] = []
    page = FIRST_PAGE
    superblocks = 0
    while True:
        block = await source.fetch_page_block(list_type, page, page_count)
        superblocks += 1
        records.extend(block)
        if len(block) < capacity:
            break
        page += page_count

    metrics.increment("portal.scan", policy="all")
    logger.info(
        "Exhaustive scan of %s found %s records in %s superblocks",
        list_type.value,
        len(records),
        superblocks,
    )
    return records


__all__ = ["FIRST_PAGE", "PageBlockSource", "scan_all", "scan_month"]
