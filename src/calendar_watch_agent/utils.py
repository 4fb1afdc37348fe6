"""Utility helpers for dates, timezones and text."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

LOGGER = structlog.get_logger(__name__)

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

WEEKDAY_NAMES = {
    "ko": ("월", "화", "수", "목", "금", "토", "일"),
    "en": ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"),
}


def get_zone(timezone_name: str) -> ZoneInfo:
    """Return a ZoneInfo instance, defaulting to UTC on failure."""
    try:
        return ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError):
        LOGGER.warning("timezone.unknown", timezone=timezone_name, fallback="UTC")
        return ZoneInfo("UTC")


def now_in_timezone(timezone_name: str) -> datetime:
    """Current datetime in the configured timezone."""
    return datetime.now(tz=get_zone(timezone_name))


def parse_iso_date(text: Optional[str]) -> Optional[date]:
    """Parse a strict ``YYYY-MM-DD`` string; anything else yields ``None``."""
    if not text:
        return None
    candidate = text.strip()
    if not ISO_DATE_RE.match(candidate):
        return None
    try:
        return date.fromisoformat(candidate)
    except ValueError:
        return None


def weekday_label(iso: str, locale: str = "ko-KR") -> str:
    """Short weekday name for an ISO date in the given locale."""
    parsed = parse_iso_date(iso)
    if parsed is None:
        return ""
    language = locale.split("-")[0].lower()
    names = WEEKDAY_NAMES.get(language, WEEKDAY_NAMES["en"])
    return names[parsed.weekday()]


def split_class_tokens(value: object) -> list[str]:
    """Class tokens with camelCase words hyphenated ("isSoldOut" -> "is-Sold-Out")."""
    if isinstance(value, str):
        tokens = value.split()
    elif isinstance(value, (list, tuple)):
        tokens = [str(token) for token in value]
    else:
        return []
    return [CAMEL_BOUNDARY_RE.sub("-", token) for token in tokens if token]


def truncate(text: str, limit: int = 900) -> str:
    """Clip text to ``limit`` characters."""
    return text if len(text) <= limit else text[:limit]
