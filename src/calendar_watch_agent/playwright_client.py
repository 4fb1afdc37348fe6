"""Playwright browser lifecycle and page stabilisation helpers."""

from __future__ import annotations

from contextlib import suppress
from typing import Optional

import structlog
from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from .config import CalendarHeuristics, Settings

LOGGER = structlog.get_logger(__name__)


class CalendarBrowser:
    """One isolated Chromium session, opened and closed per scan target."""

    def __init__(self, settings: Settings):
        self._settings = settings
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    @property
    def page(self) -> Page:
        if not self._page:
            raise RuntimeError("Playwright page has not been initialised")
        return self._page

    async def __aenter__(self) -> "CalendarBrowser":
        try:
            self._playwright = await async_playwright().start()
            LOGGER.info("browser.launch", headless=self._settings.headless)
            self._browser = await self._playwright.chromium.launch(
                headless=self._settings.headless,
                args=[
                    "--disable-dev-shm-usage",
                    "--no-sandbox",
                ],
            )
            self._context = await self._browser.new_context(
                timezone_id=self._settings.timezone,
                locale=self._settings.locale,
            )
            self._page = await self._context.new_page()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the context, browser and driver; safe to call twice."""
        context, browser, playwright = self._context, self._browser, self._playwright
        self._page = self._context = self._browser = self._playwright = None
        if context:
            with suppress(PlaywrightError):
                await context.close()
        if browser:
            with suppress(PlaywrightError):
                await browser.close()
        if playwright:
            await playwright.stop()
        LOGGER.debug("browser.closed")


async def stabilise(page: Page, wait_ms: int, *, idle_timeout_ms: int = 4000) -> None:
    """Wait for network traffic to idle, ignoring timeouts, then settle."""
    with suppress(PlaywrightError):
        await page.wait_for_load_state("networkidle", timeout=idle_timeout_ms)
    await page.wait_for_timeout(wait_ms)


async def dismiss_overlays(page: Page, heuristics: CalendarHeuristics, *, click_timeout_ms: int = 2000) -> int:
    """Close consent banners and notice popups that cover the calendar."""
    dismissed = 0
    for selector in heuristics.overlay_selectors:
        with suppress(PlaywrightError):
            element = await page.query_selector(selector)
            if element is None or not await element.is_visible():
                continue
            await element.click(timeout=click_timeout_ms)
            dismissed += 1
            LOGGER.info("overlay.dismissed", selector=selector)
    return dismissed


async def wait_for_calendar(page: Page, heuristics: CalendarHeuristics, *, timeout_ms: int) -> bool:
    """Wait until calendar markup is attached; a timeout is not an error."""
    try:
        await page.wait_for_selector(heuristics.calendar_selector, state="attached", timeout=timeout_ms)
    except PlaywrightTimeoutError:
        LOGGER.warning("calendar.wait_timeout", timeout_ms=timeout_ms, url=page.url)
        return False
    return True
