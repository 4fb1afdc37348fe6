"""Shared data models used across the calendar watch agent."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class ScanTarget:
    """A monitored reservation page and its position in the configured list."""

    url: str
    index: int


@dataclass
class ScanResult:
    """Outcome of scanning one target during a run."""

    target: ScanTarget
    dates: list[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def build_targets(urls: list[str]) -> list[ScanTarget]:
    """Number the configured URLs in order."""
    return [ScanTarget(url=url, index=index) for index, url in enumerate(urls)]
