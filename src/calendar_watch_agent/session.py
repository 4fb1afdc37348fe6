"""Scan one reservation page across the current and following months."""

from __future__ import annotations

from typing import AsyncContextManager, Callable, Optional, Protocol

import structlog
from playwright.async_api import Page

from .artifacts import ArtifactStore
from .classifier import extract_available_dates
from .config import CalendarHeuristics, Settings
from .models import ScanTarget
from .navigator import click_next_month
from .playwright_client import CalendarBrowser, dismiss_overlays, stabilise, wait_for_calendar

LOGGER = structlog.get_logger(__name__)


class BrowserSession(Protocol):
    page: Page


BrowserFactory = Callable[[Settings], AsyncContextManager[BrowserSession]]


class CalendarScanner:
    """Owns a browser session per target and collects its available dates."""

    def __init__(
        self,
        settings: Settings,
        heuristics: Optional[CalendarHeuristics] = None,
        *,
        artifacts: Optional[ArtifactStore] = None,
        browser_factory: BrowserFactory = CalendarBrowser,
    ):
        self._settings = settings
        self._heuristics = heuristics or settings.heuristics()
        self._artifacts = artifacts or ArtifactStore(
            settings.screenshot_dir,
            settings.log_dir,
            screenshots=settings.screenshots,
        )
        self._browser_factory = browser_factory

    async def scan(self, target: ScanTarget) -> list[str]:
        """Return the target's available dates, sorted ascending.

        Errors while loading or paging propagate to the caller; the browser
        is released either way.
        """
        settings = self._settings
        LOGGER.info("session.start", url=target.url, index=target.index)

        async with self._browser_factory(settings) as browser:
            page = browser.page
            await page.goto(
                target.url,
                wait_until="domcontentloaded",
                timeout=settings.navigation_timeout_seconds * 1000,
            )
            await page.wait_for_timeout(settings.wait_ms)
            await dismiss_overlays(
                page,
                self._heuristics,
                click_timeout_ms=settings.overlay_click_timeout_seconds * 1000,
            )
            await self._wait_for_calendar(page)
            await self._artifacts.screenshot(page, month=0, target=target)

            dates = await self._classify(page, month=0)

            for month in range(1, settings.scan_months_ahead + 1):
                moved = await click_next_month(
                    page,
                    self._heuristics,
                    click_timeout_ms=settings.click_timeout_seconds * 1000,
                )
                if not moved:
                    LOGGER.info("session.paging_stopped", url=target.url, months_visited=month)
                    break
                await stabilise(
                    page,
                    settings.wait_ms,
                    idle_timeout_ms=settings.network_idle_timeout_seconds * 1000,
                )
                await self._wait_for_calendar(page)
                await self._artifacts.screenshot(page, month=month, target=target)
                dates |= await self._classify(page, month=month)

        result = sorted(dates)
        LOGGER.info("session.complete", url=target.url, available=len(result))
        return result

    async def _classify(self, page: Page, *, month: int) -> set[str]:
        html = await page.content()
        found = extract_available_dates(html, self._heuristics)
        LOGGER.info("session.month_classified", month=month, dates=sorted(found))
        return found

    async def _wait_for_calendar(self, page: Page) -> None:
        if self._settings.calendar_wait_seconds > 0:
            await wait_for_calendar(
                page,
                self._heuristics,
                timeout_ms=self._settings.calendar_wait_seconds * 1000,
            )
