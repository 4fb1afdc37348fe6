"""Shared fakes for browser pages, browser sessions and notifiers."""

from __future__ import annotations

from contextlib import asynccontextmanager
from types import SimpleNamespace
from typing import Callable, Optional

import pytest

from calendar_watch_agent.config import Settings


class FakeElement:
    """Minimal stand-in for a Playwright ElementHandle."""

    def __init__(
        self,
        text: str = "",
        *,
        enabled: bool = True,
        visible: bool = True,
        attrs: Optional[dict[str, str]] = None,
        on_click: Optional[Callable[[], None]] = None,
        click_error: Optional[Exception] = None,
    ):
        self.text = text
        self.enabled = enabled
        self.visible = visible
        self.attrs = attrs or {}
        self.on_click = on_click
        self.click_error = click_error
        self.clicks = 0
        self.click_timeouts: list[Optional[float]] = []

    async def is_enabled(self) -> bool:
        return self.enabled

    async def is_visible(self) -> bool:
        return self.visible

    async def get_attribute(self, name: str) -> Optional[str]:
        return self.attrs.get(name)

    async def text_content(self) -> str:
        return self.text

    async def click(self, timeout: Optional[float] = None) -> None:
        self.click_timeouts.append(timeout)
        if self.click_error:
            raise self.click_error
        self.clicks += 1
        if self.on_click:
            self.on_click()


class FakeCalendarPage:
    """Page rendering a fixed list of month snapshots with a ``.next`` control."""

    def __init__(
        self,
        months: list[str],
        *,
        goto_error: Optional[Exception] = None,
        next_selector: str = ".next",
        overlays: Optional[dict[str, FakeElement]] = None,
        calendar_wait_error: Optional[Exception] = None,
        load_state_error: Optional[Exception] = None,
    ):
        self.months = months
        self.month = 0
        self.goto_error = goto_error
        self.next_selector = next_selector
        self.overlays = overlays or {}
        self.calendar_wait_error = calendar_wait_error
        self.load_state_error = load_state_error
        self.selector_waits: list[tuple[str, dict]] = []
        self.load_state_waits: list[tuple[str, dict]] = []
        self.url = "about:blank"
        self.visited: list[str] = []
        self.screenshots: list[str] = []
        self.contents_read = 0
        self.advances = 0
        self.released = 0

    async def goto(self, url: str, **kwargs) -> None:
        self.visited.append(url)
        if self.goto_error:
            raise self.goto_error
        self.url = url

    async def wait_for_timeout(self, timeout: float) -> None:
        return None

    async def wait_for_load_state(self, state: str = "load", **kwargs) -> None:
        self.load_state_waits.append((state, kwargs))
        if self.load_state_error:
            raise self.load_state_error

    async def wait_for_selector(self, selector: str, **kwargs) -> None:
        self.selector_waits.append((selector, kwargs))
        if self.calendar_wait_error:
            raise self.calendar_wait_error

    async def query_selector(self, selector: str) -> Optional[FakeElement]:
        if selector in self.overlays:
            return self.overlays[selector]
        if selector == self.next_selector and self.month < len(self.months) - 1:
            return FakeElement("next", on_click=self._advance)
        return None

    async def query_selector_all(self, selector: str) -> list[FakeElement]:
        return []

    async def screenshot(self, path: Optional[str] = None, full_page: bool = False) -> None:
        self.screenshots.append(path)

    async def content(self) -> str:
        self.contents_read += 1
        return self.months[self.month]

    def _advance(self) -> None:
        self.month += 1
        self.advances += 1


class FakeBrowserFactory:
    """Hands out the given pages in order, one per browser session."""

    def __init__(self, pages: list[FakeCalendarPage]):
        self.pages = list(pages)
        self.opened = 0

    def __call__(self, settings: Settings):
        return self._session(self.pages.pop(0))

    @asynccontextmanager
    async def _session(self, page: FakeCalendarPage):
        self.opened += 1
        try:
            yield SimpleNamespace(page=page)
        finally:
            page.released += 1


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: list[str] = []

    async def send(self, text: str) -> None:
        self.messages.append(text)


def month_html(*cells: str) -> str:
    return "<table class='calendar'><tr>" + "".join(cells) + "</tr></table>"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        telegram_bot_token=None,
        telegram_chat_id=None,
        target_urls=["https://example.test/a", "https://example.test/b"],
        scan_months_ahead=2,
        wait_ms=0,
        calendar_wait_seconds=0,
        screenshots=False,
        screenshot_dir=tmp_path / "out",
        log_dir=tmp_path / "logs",
        notify_start=False,
        debug_notify=True,
        telegram_retry_attempts=1,
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
