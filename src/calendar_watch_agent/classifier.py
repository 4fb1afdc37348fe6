"""Decide which days of a rendered calendar month can be reserved.

The calendar markup belongs to third-party sites, so the rules go from strong
signals to weak ones:

1. explicit disabled state on the day cell (``aria-disabled``, ``disabled``,
   a negative class token, negative text) rejects the day outright;
2. the cell, or an interactive element inside it, is clickable;
3. fallback for plain table calendars: no disabled-looking class, a bare day
   number in the text and not the currently selected day.

A weaker rule never overrides a disabled signal from rule 1.
"""

from __future__ import annotations

import re
from typing import Optional, Union

import structlog
from bs4 import BeautifulSoup, Tag

from .config import CalendarHeuristics
from .utils import parse_iso_date, split_class_tokens

LOGGER = structlog.get_logger(__name__)

DAY_NUMBER_RE = re.compile(r"(?<!\d)([1-9]|[12]\d|3[01])(?!\d)")

Snapshot = Union[str, Tag]


def extract_available_dates(snapshot: Snapshot, heuristics: Optional[CalendarHeuristics] = None) -> set[str]:
    """Return the ISO dates judged reservable in one rendered month.

    ``snapshot`` is either the page HTML (``page.content()``) or an already
    parsed BeautifulSoup tree. The result is unordered; callers sort.
    """
    heuristics = heuristics or CalendarHeuristics()
    if isinstance(snapshot, str):
        root = BeautifulSoup(snapshot, "html.parser")
    elif isinstance(snapshot, Tag):
        root = snapshot
    else:
        LOGGER.warning("classifier.unsupported_snapshot", kind=type(snapshot).__name__)
        return set()

    available: set[str] = set()
    for cell in root.select(heuristics.day_cell_selector):
        iso = cell_date(cell)
        if iso is None:
            continue
        try:
            accepted = is_available(cell, heuristics)
        except Exception as exc:  # noqa: BLE001
            LOGGER.debug("classifier.cell_failed", date=iso, error=str(exc))
            continue
        if accepted:
            available.add(iso)

    LOGGER.debug("classifier.month_done", candidates=len(available))
    return available


def cell_date(cell: Tag) -> Optional[str]:
    """ISO date carried by a day cell, or ``None`` when absent or malformed."""
    raw = _attr(cell, "data-date") or _attr(cell, "data-day")
    parsed = parse_iso_date(raw)
    return parsed.isoformat() if parsed else None


def is_available(cell: Tag, heuristics: CalendarHeuristics) -> bool:
    """Apply the rule cascade to one day cell."""
    if is_disabled(cell, heuristics):
        return False

    if is_clickable(cell, heuristics):
        return True

    controls = cell.select(f"{heuristics.interactive_selector}, [onclick]")
    if any(is_clickable(element, heuristics) for element in controls):
        return True

    # Interactive markup that is all disabled is a "no"; the fallback is only
    # for calendars that render days as plain cells.
    if controls or is_interactive(cell, heuristics):
        return False
    return _fallback_accepts(cell, heuristics)


def is_disabled(element: Tag, heuristics: CalendarHeuristics) -> bool:
    """True when the element carries any explicit unavailable signal."""
    if (_attr(element, "aria-disabled") or "").strip().lower() == "true":
        return True
    if element.has_attr("disabled"):
        return True
    if any(heuristics.negative_class.search(token) for token in class_tokens(element)):
        return True
    return bool(heuristics.negative_text.search(element.get_text(" ")))


def is_interactive(element: Tag, heuristics: CalendarHeuristics) -> bool:
    """Native control, ARIA button, or an element with a click handler."""
    return bool(element.css.match(heuristics.interactive_selector)) or bool(_attr(element, "onclick"))


def is_clickable(element: Tag, heuristics: CalendarHeuristics) -> bool:
    """True when the element is interactive and not disabled."""
    return is_interactive(element, heuristics) and not is_disabled(element, heuristics)


def class_tokens(element: Tag) -> list[str]:
    return split_class_tokens(element.get("class"))


def _fallback_accepts(cell: Tag, heuristics: CalendarHeuristics) -> bool:
    if any(heuristics.fallback_disabled_class.search(token) for token in class_tokens(cell)):
        return False
    if (_attr(cell, "aria-selected") or "").strip().lower() == "true":
        return False
    text = re.sub(r"\s+", "", cell.get_text())
    return DAY_NUMBER_RE.search(text) is not None


def _attr(element: Tag, name: str) -> Optional[str]:
    value = element.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return value
