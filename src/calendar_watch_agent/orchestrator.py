"""Run a full scan over every configured target and report the outcome."""

from __future__ import annotations

from typing import Optional, Protocol

import structlog

from .artifacts import ArtifactStore
from .config import Settings
from .models import ScanResult, ScanTarget, build_targets
from .telegram import (
    Notifier,
    format_empty_notice,
    format_nothing_anywhere,
    format_start_notice,
    format_summary,
    format_target_block,
    format_target_failure,
)
from .utils import now_in_timezone

LOGGER = structlog.get_logger(__name__)


class Scanner(Protocol):
    async def scan(self, target: ScanTarget) -> list[str]: ...


class ScanOrchestrator:
    """Scans targets one after another and sends the resulting notices."""

    def __init__(
        self,
        settings: Settings,
        scanner: Scanner,
        notifier: Notifier,
        *,
        artifacts: Optional[ArtifactStore] = None,
        targets: Optional[list[ScanTarget]] = None,
    ):
        self._settings = settings
        self._scanner = scanner
        self._notifier = notifier
        self._artifacts = artifacts or ArtifactStore(settings.screenshot_dir, settings.log_dir)
        self._targets = targets if targets is not None else build_targets(settings.target_urls)

    async def run(self) -> list[ScanResult]:
        settings = self._settings
        if settings.notify_start:
            await self._notifier.send(format_start_notice(len(self._targets)))

        results: list[ScanResult] = []
        blocks: list[str] = []

        for target in self._targets:
            try:
                dates = await self._scanner.scan(target)
            except Exception as exc:  # noqa: BLE001
                LOGGER.exception("orchestrator.target_failed", url=target.url, index=target.index, error=str(exc))
                error = f"{type(exc).__name__}: {exc}"
                results.append(ScanResult(target=target, error=error))
                self._artifacts.write_error(target, exc)
                await self._notifier.send(format_target_failure(target, error))
                continue

            results.append(ScanResult(target=target, dates=dates))
            if dates:
                blocks.append(format_target_block(target, dates, settings.locale))
            elif settings.debug_notify:
                await self._notifier.send(format_empty_notice(target))

        if blocks:
            await self._notifier.send(format_summary(blocks, now_in_timezone(settings.timezone)))
        elif settings.debug_notify:
            await self._notifier.send(format_nothing_anywhere())

        LOGGER.info(
            "orchestrator.complete",
            targets=len(results),
            failed=sum(1 for result in results if not result.ok),
            with_dates=len(blocks),
        )
        return results
