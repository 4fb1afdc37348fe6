"""Entry point for the calendar watch agent."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

import structlog
from pydantic import ValidationError

from .artifacts import ArtifactStore
from .config import Settings
from .orchestrator import ScanOrchestrator, Scanner
from .session import CalendarScanner
from .telegram import Notifier, TelegramNotifier, format_fatal


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structlog + stdlib logging."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stdout,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


LOGGER = structlog.get_logger(__name__)


async def run(
    settings: Settings,
    *,
    scanner: Optional[Scanner] = None,
    notifier: Optional[Notifier] = None,
) -> int:
    """Scan every target and return the process exit code.

    Errors escaping the orchestrator are logged, written to the log
    directory and reported to Telegram before the exit code is chosen.
    """
    artifacts = ArtifactStore(settings.screenshot_dir, settings.log_dir, screenshots=settings.screenshots)
    notifier = notifier or TelegramNotifier(settings)
    scanner = scanner or CalendarScanner(settings, settings.heuristics(), artifacts=artifacts)

    try:
        await ScanOrchestrator(settings, scanner, notifier, artifacts=artifacts).run()
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("agent.failed", error=str(exc))
        artifacts.write_fatal(exc)
        try:
            await notifier.send(format_fatal(f"{type(exc).__name__}: {exc}"))
        except Exception as notify_exc:  # noqa: BLE001
            LOGGER.error("agent.fatal_notice_failed", error=str(notify_exc))
        return 1 if settings.exit_nonzero_on_fatal else 0
    return 0


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """CLI argument parsing."""
    parser = argparse.ArgumentParser(
        description="Check reservation calendars for selectable dates and report them to Telegram."
    )
    parser.add_argument(
        "--url",
        dest="urls",
        action="append",
        help="Reservation page to scan; repeat for several. Overrides CALENDAR_WATCH_TARGET_URLS.",
    )
    parser.add_argument(
        "--months-ahead",
        type=int,
        help="Number of months to page forward after the current one.",
    )
    parser.add_argument(
        "--no-screenshots",
        action="store_true",
        help="Do not save per-month screenshots.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def load_settings(args: argparse.Namespace) -> Settings:
    """Build settings from the environment, applying CLI overrides."""
    overrides: dict[str, object] = {}
    if args.urls:
        overrides["target_urls"] = args.urls
    if args.months_ahead is not None:
        overrides["scan_months_ahead"] = args.months_ahead
    if args.no_screenshots:
        overrides["screenshots"] = False
    return Settings(**overrides)


def cli(argv: Optional[list[str]] = None) -> None:
    """Console script entrypoint."""
    args = parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        settings = load_settings(args)
    except ValidationError as exc:
        LOGGER.error("settings.error", error=str(exc))
        raise SystemExit(2) from exc

    raise SystemExit(asyncio.run(run(settings)))


if __name__ == "__main__":  # pragma: no cover
    cli()
