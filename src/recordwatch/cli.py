from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from recordwatch.core.settings import Settings, get_settings
from recordwatch.portal.client import PortalClient
from recordwatch.portal.errors import PortalError
from recordwatch.scheduler import ReportScheduler
from recordwatch.services.billing import format_billing_message
from recordwatch.services.reports import BillingReportService, UnreportedCheckService
from recordwatch.services.telegram import TelegramNotifier

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="recordwatch",
        description="Poll the Biotechware portal and report over Telegram.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("run", help="Run the scheduled jobs until interrupted")
    subparsers.add_parser("report", help="Send this month's billing report once")
    subparsers.add_parser("unreported", help="Check unreported records once")
    return parser


async def _serve(settings: Settings) -> None:
    scheduler = ReportScheduler(settings)
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await scheduler.start()
    logger.info("recordwatch running; jobs=%s", ", ".join(scheduler.job_ids))
    try:
        await stop.wait()
    finally:
        await scheduler.stop()
        logger.info("recordwatch stopped")


async def _report_once(settings: Settings) -> None:
    portal = PortalClient.from_settings(settings)
    try:
        service = BillingReportService(
            portal,
            TelegramNotifier.from_settings(settings),
            timezone=settings.timezone,
            tax_rate=settings.tax_rate,
        )
        summary = await service.run()
    finally:
        await portal.close()
    print(format_billing_message(summary))


async def _unreported_once(settings: Settings) -> None:
    portal = PortalClient.from_settings(settings)
    try:
        service = UnreportedCheckService(portal, TelegramNotifier.from_settings(settings))
        records = await service.run()
    finally:
        await portal.close()
    print(f"{len(records)} unreported records")


_COMMANDS = {
    "run": _serve,
    "report": _report_once,
    "unreported": _unreported_once,
}


def main(argv: list[str] | None = None) -> int:
    """Entry point for the recordwatch console script."""

    args = build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level, format="[%(levelname)s] %(name)s: %(message)s"
    )

    try:
        asyncio.run(_COMMANDS[args.command](settings))
    except PortalError as exc:
        logger.error("recordwatch %s failed: %s", args.command, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
