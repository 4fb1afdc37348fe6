"""Telegram messaging helper and message formatting."""

from __future__ import annotations

from datetime import datetime
from html import escape
from typing import Optional, Protocol

import httpx
import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import Settings
from .models import ScanTarget
from .utils import truncate, weekday_label

LOGGER = structlog.get_logger(__name__)

TELEGRAM_MESSAGE_LIMIT = 4096


class Notifier(Protocol):
    async def send(self, text: str) -> None: ...


class TelegramNotifier:
    """Delivers HTML-formatted messages through the Telegram Bot API.

    ``send`` never raises: missing credentials degrade to a warning and
    delivery failures are logged.
    """

    def __init__(self, settings: Settings, *, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._settings = settings
        self._transport = transport

    async def send(self, text: str) -> None:
        settings = self._settings
        if not settings.has_telegram_credentials:
            LOGGER.warning("telegram.credentials_missing", preview=text[:80])
            return

        chunks = split_message(text)
        for part, chunk in enumerate(chunks, start=1):
            await self._deliver(chunk, part=part, parts=len(chunks))

    async def _deliver(self, text: str, *, part: int, parts: int) -> None:
        payload = {
            "chat_id": self._settings.telegram_chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }

        LOGGER.info("telegram.send.start", length=len(text), part=part, parts=parts)
        try:
            response = await self._post(payload)
        except httpx.HTTPError as exc:
            LOGGER.error("telegram.send.failed", error=str(exc), part=part)
            return

        if response.is_success:
            LOGGER.info("telegram.send.success", part=part)
            return
        LOGGER.error("telegram.send.failed", status_code=response.status_code, body=response.text, part=part)

    async def _post(self, payload: dict) -> httpx.Response:
        url = f"{self._settings.telegram_api_endpoint}/sendMessage"
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            wait=wait_exponential(multiplier=1, min=1, max=8),
            stop=stop_after_attempt(self._settings.telegram_retry_attempts),
            reraise=True,
        ):
            with attempt:
                async with httpx.AsyncClient(timeout=15.0, transport=self._transport) as client:
                    return await client.post(url, json=payload)
        raise RuntimeError("Telegram send did not run")  # pragma: no cover


def format_dates(dates: list[str], locale: str) -> str:
    """One bullet per date with its weekday, in chronological order."""
    return "\n".join(f"• {iso} ({weekday_label(iso, locale)})" for iso in sorted(dates))


def format_target_block(target: ScanTarget, dates: list[str], locale: str) -> str:
    return f"🎾 <b>Available dates</b>\n{format_dates(dates, locale)}\n🔗 {escape(target.url)}"


def format_summary(blocks: list[str], generated_at: datetime) -> str:
    return "\n\n".join(blocks) + f"\n\n⏰ {generated_at:%Y-%m-%d %H:%M:%S %Z}"


def format_start_notice(target_count: int) -> str:
    return f"🟢 Starting reservation calendar scan ({target_count} target{'s' if target_count != 1 else ''})."


def format_empty_notice(target: ScanTarget) -> str:
    return f"ℹ️ No reservable dates right now\n🔗 {escape(target.url)}"


def format_nothing_anywhere() -> str:
    return "📭 No reservable dates on any monitored page."


def format_target_failure(target: ScanTarget, error: str) -> str:
    return f"⚠️ Scan failed for target #{target.index}\n🔗 {escape(target.url)}\n<code>{escape(truncate(error))}</code>"


def format_fatal(error: str) -> str:
    return f"⚠️ Script error: {escape(truncate(error))}"


def split_message(text: str, limit: int = TELEGRAM_MESSAGE_LIMIT) -> list[str]:
    """Split text into chunks of at most ``limit`` characters.

    Whole blocks (separated by blank lines) are packed together; a block that
    is too long on its own is cut at line breaks, and a single over-long line
    mid-line.
    """
    if len(text) <= limit:
        return [text]

    chunks: list[str] = []
    current = ""
    for block in text.split("\n\n"):
        for piece in _fit(block, limit):
            candidate = f"{current}\n\n{piece}" if current else piece
            if len(candidate) <= limit:
                current = candidate
                continue
            if current:
                chunks.append(current)
            current = piece
    if current:
        chunks.append(current)
    return chunks


def _fit(block: str, limit: int) -> list[str]:
    if len(block) <= limit:
        return [block]
    pieces: list[str] = []
    current = ""
    for line in block.split("\n"):
        while len(line) > limit:
            if current:
                pieces.append(current)
                current = ""
            pieces.append(line[:limit])
            line = line[limit:]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) <= limit:
            current = candidate
        else:
            pieces.append(current)
            current = line
    if current:
        pieces.append(current)
    return pieces
