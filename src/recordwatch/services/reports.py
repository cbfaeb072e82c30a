from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from recordwatch.portal.client import PortalClient
from recordwatch.portal.models import ListType, Record
from recordwatch.services.billing import (
    DEFAULT_TAX_RATE,
    BillingSummary,
    format_billing_message,
    summarize_billing,
)
from recordwatch.services.telegram import TelegramNotifier

logger = logging.getLogger(__name__)

_DIGEST_MAX_LINES = 20


def format_unreported_message(
    records: Sequence[Record], *, limit: int = _DIGEST_MAX_LINES
) -> str:
    lines = [f"Registrazioni non refertate: {len(records)}"]
    for record in records[:limit]:
        lines.append(
            f"{record.record_type_id.label} - {record.full_name} - {record.reception_date}"
        )
    remaining = len(records) - limit
    if remaining > 0:
        lines.append(f"… e altre {remaining}")
    return "\n".join(lines)


class BillingReportService:
    """Sum this month's reported records into a billing message."""

    def __init__(
        self,
        portal: PortalClient,
        notifier: TelegramNotifier | None = None,
        *,
        timezone: str = "Europe/Rome",
        tax_rate: float = DEFAULT_TAX_RATE,
    ) -> None:
        self._portal = portal
        self._notifier = notifier
        self._timezone = ZoneInfo(timezone)
        self._tax_rate = tax_rate

    async def run(self, now: datetime | None = None) -> BillingSummary:
        current = (now or datetime.now(UTC)).astimezone(self._timezone)
        records = await self._portal.scan_month(
            ListType.REPORTED, current.month, year=current.year
        )
        summary = summarize_billing(records, tax_rate=self._tax_rate)
        message = format_billing_message(summary)
        logger.info(
            "Billing report for %02d/%s: %s records, %.2f taxed",
            current.month,
            current.year,
            summary.record_count,
            summary.taxed_total,
        )

        if self._notifier is None:
            logger.debug("No notifier configured; billing report not sent")
        else:
            await self._notifier.send_message(message)
        return summary


class UnreportedCheckService:
    """List every record still waiting for a report."""

    def __init__(self, portal: PortalClient, notifier: TelegramNotifier | None = None) -> None:
        self._portal = portal
        self._notifier = notifier

    async def run(self) -> list[Record]:
        records = await self._portal.scan_all(ListType.UNREPORTED)
        logger.info("Found %s unreported records", len(records))
        if not records:
            return records

        if self._notifier is None:
            logger.debug("No notifier configured; unreported digest not sent")
        else:
            await self._notifier.send_message(format_unreported_message(records))
        return records


__all__ = ["BillingReportService", "UnreportedCheckService", "format_unreported_message"]
