"""Advance a rendered calendar to the following month."""

from __future__ import annotations

from typing import Optional

import structlog
from playwright.async_api import ElementHandle, Error as PlaywrightError, Page

from .config import CalendarHeuristics
from .utils import split_class_tokens

LOGGER = structlog.get_logger(__name__)

CANDIDATE_CONTROLS = "a, button"


async def click_next_month(
    page: Page,
    heuristics: Optional[CalendarHeuristics] = None,
    *,
    click_timeout_ms: int = 5000,
) -> bool:
    """Click the calendar's "next month" control.

    Returns ``False`` when no present and enabled control was found, which
    tells the caller to stop paging. The caller waits for the re-render.
    """
    heuristics = heuristics or CalendarHeuristics()

    for selector in heuristics.next_selectors:
        try:
            element = await page.query_selector(selector)
            if element is None:
                continue
            if await _is_actionable(element, heuristics):
                await element.click(timeout=click_timeout_ms)
                LOGGER.info("navigator.click", strategy="selector", selector=selector)
                return True
        except PlaywrightError as exc:
            LOGGER.debug("navigator.selector_failed", selector=selector, error=str(exc))

    try:
        candidates = await page.query_selector_all(CANDIDATE_CONTROLS)
    except PlaywrightError as exc:
        LOGGER.warning("navigator.scan_failed", error=str(exc))
        return False

    for candidate in candidates:
        try:
            text = (await candidate.text_content() or "").strip()
            if not heuristics.next_text.search(text):
                continue
            if await _is_actionable(candidate, heuristics):
                await candidate.click(timeout=click_timeout_ms)
                LOGGER.info("navigator.click", strategy="text", text=text[:40])
                return True
        except PlaywrightError as exc:
            LOGGER.debug("navigator.candidate_failed", error=str(exc))

    LOGGER.info("navigator.exhausted")
    return False


async def _is_actionable(element: ElementHandle, heuristics: CalendarHeuristics) -> bool:
    if not await element.is_enabled():
        return False
    if (await element.get_attribute("aria-disabled") or "").strip().lower() == "true":
        return False
    classes = split_class_tokens(await element.get_attribute("class"))
    return not any(heuristics.negative_class.search(token) for token in classes)
