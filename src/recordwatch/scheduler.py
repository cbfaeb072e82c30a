from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from recordwatch.core import metrics
from recordwatch.core.settings import Settings
from recordwatch.portal.client import PortalClient
from recordwatch.portal.errors import PortalError
from recordwatch.services.reports import BillingReportService, UnreportedCheckService
from recordwatch.services.telegram import TelegramNotifier

logger = logging.getLogger(__name__)

BILLING_REPORT_JOB = "billing_report"
UNREPORTED_CHECK_JOB = "unreported_check"


class ReportScheduler:
    def __init__(
        self,
        settings: Settings,
        portal: PortalClient | None = None,
        notifier: TelegramNotifier | None = None,
    ) -> None:
        self._settings = settings
        self._portal = portal or PortalClient.from_settings(settings)
        self._notifier = notifier or TelegramNotifier.from_settings(settings)
        self._scheduler = AsyncIOScheduler(timezone=settings.timezone)
        billing = BillingReportService(
            self._portal,
            self._notifier,
            timezone=settings.timezone,
            tax_rate=settings.tax_rate,
        )
        unreported = UnreportedCheckService(self._portal, self._notifier)
        self._jobs: dict[str, Callable[[], Awaitable[Any]]] = {
            BILLING_REPORT_JOB: billing.run,
            UNREPORTED_CHECK_JOB: unreported.run,
        }
        self._locks = {job_id: asyncio.Lock() for job_id in self._jobs}

    @property
    def job_ids(self) -> list[str]:
        return list(self._jobs)

    async def start(self) -> None:
        logger.info("Starting APScheduler")
        tz = ZoneInfo(self._settings.timezone)
        now = datetime.now(tz)
        self._scheduler.add_job(
            self._run_job,
            IntervalTrigger(hours=self._settings.billing_report_interval_hours, timezone=tz),
            args=[BILLING_REPORT_JOB],
            id=BILLING_REPORT_JOB,
            next_run_time=now,
            replace_existing=True,
        )
        self._scheduler.add_job(
            self._run_job,
            IntervalTrigger(
                minutes=self._settings.unreported_check_interval_minutes, timezone=tz
            ),
            args=[UNREPORTED_CHECK_JOB],
            id=UNREPORTED_CHECK_JOB,
            next_run_time=now,
            replace_existing=True,
        )
        self._scheduler.start()

    async def stop(self) -> None:
        logger.info("Stopping APScheduler")
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        await self._portal.close()
        logger.info("Counters at shutdown: %s", metrics.snapshot())

    async def trigger_now(self, job_id: str) -> bool:
        if job_id not in self._jobs:
            msg = f"unknown job: {job_id}"
            raise ValueError(msg)
        return await self._run_job(job_id)

    async def _run_job(self, job_id: str) -> bool:
        lock = self._locks[job_id]
        if lock.locked():
            logger.info("Job %s already running; skipping new trigger", job_id)
            return False
        async with lock:
            metrics.increment("job.run", job=job_id)
            logger.info("Running job %s", job_id)
            try:
                await self._jobs[job_id]()
            except PortalError as exc:
                metrics.increment("job.failed", job=job_id)
                logger.exception("Job %s failed; retrying next cycle: %s", job_id, exc)
                return False
        return True


__all__ = ["BILLING_REPORT_JOB", "ReportScheduler", "UNREPORTED_CHECK_JOB"]
