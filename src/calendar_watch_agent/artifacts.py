"""Screenshots and error logs written for post-run diagnosis."""

from __future__ import annotations

import traceback
from datetime import datetime
from pathlib import Path
from typing import Optional

import structlog
from playwright.async_api import Error as PlaywrightError, Page

from .models import ScanTarget

LOGGER = structlog.get_logger(__name__)


class ArtifactStore:
    """Best-effort writer for screenshots and error logs.

    Nothing here raises: a diagnostic that cannot be written is logged and
    skipped so it never turns into a scan failure.
    """

    def __init__(self, screenshot_dir: Path, log_dir: Path, *, screenshots: bool = True):
        self.screenshot_dir = Path(screenshot_dir)
        self.log_dir = Path(log_dir)
        self.screenshots = screenshots

    async def screenshot(self, page: Page, *, month: int, target: ScanTarget) -> Optional[Path]:
        """Save a full-page screenshot as ``month<month>_<index>.png``."""
        if not self.screenshots or not _ensure_dir(self.screenshot_dir):
            return None
        path = self.screenshot_dir / f"month{month}_{target.index}.png"
        try:
            await page.screenshot(path=str(path), full_page=True)
        except PlaywrightError as exc:
            LOGGER.warning("artifacts.screenshot_failed", path=str(path), error=str(exc))
            return None
        LOGGER.debug("artifacts.screenshot", path=str(path))
        return path

    def write_error(self, target: ScanTarget, exc: BaseException) -> Optional[Path]:
        """Record a per-target failure."""
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        header = f"target #{target.index}: {target.url}"
        return self._write(f"error_{target.index}_{stamp}.log", header, exc)

    def write_fatal(self, exc: BaseException) -> Optional[Path]:
        """Record an error that escaped the whole run."""
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        return self._write(f"fatal_{stamp}.log", "fatal error", exc)

    def _write(self, name: str, header: str, exc: BaseException) -> Optional[Path]:
        if not _ensure_dir(self.log_dir):
            return None
        path = self.log_dir / name
        body = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        try:
            path.write_text(f"{datetime.now().isoformat()} {header}\n\n{body}", encoding="utf-8")
        except OSError as err:
            LOGGER.warning("artifacts.log_failed", path=str(path), error=str(err))
            return None
        return path


def _ensure_dir(directory: Path) -> bool:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.warning("artifacts.mkdir_failed", path=str(directory), error=str(exc))
        return False
    return True
