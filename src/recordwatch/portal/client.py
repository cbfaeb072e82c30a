from __future__ import annotations

import httpx

from recordwatch.core.settings import Settings
from recordwatch.portal.fetcher import MAX_PARALLEL_REQUESTS, PageFetcher
from recordwatch.portal.models import ListType, Record
from recordwatch.portal.scans import scan_all, scan_month
from recordwatch.portal.session import PortalSession


class PortalClient:
    """Entry point to the records portal: one session, one fetcher, two scans."""

    def __init__(
        self,
        session: PortalSession,
        *,
        concurrency: int = MAX_PARALLEL_REQUESTS,
    ) -> None:
        self._session = session
        self._fetcher = PageFetcher(session, concurrency=concurrency)

    @classmethod
    def from_settings(
        cls, settings: Settings, *, http_client: httpx.AsyncClient | None = None
    ) -> PortalClient:
        session = PortalSession(
            settings.portal_username,
            settings.portal_password,
            base_url=settings.portal_base_url,
            client=http_client,
            timeout=settings.portal_timeout_seconds,
        )
        return cls(session, concurrency=settings.portal_max_parallel_requests)

    @property
    def concurrency(self) -> int:
        return self._fetcher.concurrency

    async def close(self) -> None:
        await self._session.close()

    async def fetch_page_block(
        self, list_type: ListType, page: int, page_count: int
    ) -> list[Record]:
        return await self._fetcher.fetch_page_block(list_type, page, page_count)

    async def scan_month(
        self, list_type: ListType, month: int, *, year: int | None = None
    ) -> list[Record]:
        return await scan_month(
            self._fetcher, list_type, month, year=year, page_count=self.concurrency
        )

    async def scan_all(self, list_type: ListType) -> list[Record]:
        return await scan_all(self._fetcher, list_type, page_count=self.concurrency)


__all__ = ["PortalClient"]
