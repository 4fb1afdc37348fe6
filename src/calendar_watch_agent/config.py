"""Configuration objects for the calendar watch agent."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Optional

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_TARGET_URLS = [
    "https://yeyak.seoul.go.kr/web/reservation/selectReservView.do?rsv_svc_id=S250813165159850005",
]

# Class tokens that mark a day (or an element inside it) as not bookable.
# Lookarounds keep matches to whole words inside a token, so "ui-state-disabled"
# and "day_off" match while "calendar", "weekend" and "popover" do not.
NEGATIVE_CLASS_PATTERN = (
    r"(?<![a-z])(disabled?|dim|dimmed|off|blocked|sold-?out|unavailable|closed|end|"
    r"finish(?:ed)?|over|unselectable|past)(?![a-z])"
)

# Smaller set consulted only by the bare day-number fallback.
FALLBACK_DISABLED_CLASS_PATTERN = r"(?<![a-z])(disabled|soldout|unavailable|off|dim)(?![a-z])"

NEGATIVE_TEXT_PATTERN = (
    r"(예약\s*마감|접수\s*마감|마감되었습니다|마감\b|불가능|불가\b|대기\b|"
    r"sold\s*out|unavailable|fully\s*booked|wait\s*-?list|closed)"
)

NEXT_TEXT_PATTERN = r"(다음|next|▶|≫|»|›|→)"

INTERACTIVE_SELECTOR = 'a, button, input[type="button"], [role="button"]'

DAY_CELL_SELECTOR = "[data-date], [data-day]"

NEXT_SELECTORS = (
    '[aria-label*="다음"]',
    '[aria-label*="next" i]',
    "button.next",
    "a.next",
    ".next",
    ".nextMonth",
    ".ui-datepicker-next",
    ".cal_next",
    'a[onclick*="next"]',
    'button[onclick*="next"]',
)

OVERLAY_DISMISS_SELECTORS = (
    "#onetrust-accept-btn-handler",
    'button:has-text("오늘 하루 보지 않기")',
    'button:has-text("닫기")',
    'a:has-text("닫기")',
    '[aria-label="닫기"]',
    '[aria-label="Close"]',
    'button:has-text("Accept")',
    'button:has-text("Close")',
    ".modal .btn-close",
    ".popup .close",
    ".layer_popup .close",
)

CALENDAR_SELECTOR = (
    "[data-date], [data-day], .ui-datepicker-calendar, table.calendar, .calendar, .fc-daygrid"
)


@dataclass(frozen=True)
class CalendarHeuristics:
    """Patterns and selectors used to read and page through a calendar widget.

    The defaults target Korean municipal booking pages (yeyak.seoul.go.kr and
    similar) but hold up on jQuery UI, FullCalendar and most hand-rolled
    table calendars.
    """

    negative_class: re.Pattern[str] = re.compile(NEGATIVE_CLASS_PATTERN, re.IGNORECASE)
    negative_text: re.Pattern[str] = re.compile(NEGATIVE_TEXT_PATTERN, re.IGNORECASE)
    fallback_disabled_class: re.Pattern[str] = re.compile(FALLBACK_DISABLED_CLASS_PATTERN, re.IGNORECASE)
    next_text: re.Pattern[str] = re.compile(NEXT_TEXT_PATTERN, re.IGNORECASE)
    interactive_selector: str = INTERACTIVE_SELECTOR
    day_cell_selector: str = DAY_CELL_SELECTOR
    next_selectors: tuple[str, ...] = NEXT_SELECTORS
    overlay_selectors: tuple[str, ...] = OVERLAY_DISMISS_SELECTORS
    calendar_selector: str = CALENDAR_SELECTOR


class Settings(BaseSettings):
    """Runtime configuration pulled from environment variables."""

    telegram_bot_token: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("TELEGRAM_BOT_TOKEN", "BOT_TOKEN"),
    )
    telegram_chat_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("TELEGRAM_CHAT_ID", "CHAT_ID"),
    )
    telegram_retry_attempts: int = Field(
        default=3, ge=1, validation_alias="CALENDAR_WATCH_TELEGRAM_RETRY_ATTEMPTS"
    )
    debug_notify: bool = Field(
        default=True,
        validation_alias="DEBUG_NOTIFY",
        description="Report 'no availability' states, not just positive findings.",
    )
    notify_start: bool = Field(default=True, validation_alias="CALENDAR_WATCH_NOTIFY_START")
    target_urls: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_TARGET_URLS),
        validation_alias="CALENDAR_WATCH_TARGET_URLS",
    )
    scan_months_ahead: int = Field(default=2, ge=0, validation_alias="CALENDAR_WATCH_SCAN_MONTHS_AHEAD")
    wait_ms: int = Field(default=1200, ge=0, validation_alias="CALENDAR_WATCH_WAIT_MS")
    navigation_timeout_seconds: int = Field(
        default=60, gt=0, validation_alias="CALENDAR_WATCH_NAVIGATION_TIMEOUT_SECONDS"
    )
    calendar_wait_seconds: int = Field(default=10, ge=0, validation_alias="CALENDAR_WATCH_CALENDAR_WAIT_SECONDS")
    click_timeout_seconds: int = Field(default=5, gt=0, validation_alias="CALENDAR_WATCH_CLICK_TIMEOUT_SECONDS")
    network_idle_timeout_seconds: int = Field(
        default=4, gt=0, validation_alias="CALENDAR_WATCH_NETWORK_IDLE_TIMEOUT_SECONDS"
    )
    overlay_click_timeout_seconds: int = Field(
        default=2, gt=0, validation_alias="CALENDAR_WATCH_OVERLAY_CLICK_TIMEOUT_SECONDS"
    )
    timezone: str = Field(default="Asia/Seoul", validation_alias="CALENDAR_WATCH_TIMEZONE")
    locale: str = Field(default="ko-KR", validation_alias="CALENDAR_WATCH_LOCALE")
    headless: bool = Field(default=True, validation_alias="CALENDAR_WATCH_HEADLESS")
    screenshots: bool = Field(default=True, validation_alias="CALENDAR_WATCH_SCREENSHOTS")
    screenshot_dir: Path = Field(default=Path("out"), validation_alias="CALENDAR_WATCH_SCREENSHOT_DIR")
    log_dir: Path = Field(default=Path("logs"), validation_alias="CALENDAR_WATCH_LOG_DIR")
    exit_nonzero_on_fatal: bool = Field(default=False, validation_alias="CALENDAR_WATCH_EXIT_NONZERO_ON_FATAL")
    negative_class_pattern: str = Field(
        default=NEGATIVE_CLASS_PATTERN, validation_alias="CALENDAR_WATCH_NEGATIVE_CLASS_PATTERN"
    )
    negative_text_pattern: str = Field(
        default=NEGATIVE_TEXT_PATTERN, validation_alias="CALENDAR_WATCH_NEGATIVE_TEXT_PATTERN"
    )
    fallback_disabled_class_pattern: str = Field(
        default=FALLBACK_DISABLED_CLASS_PATTERN,
        validation_alias="CALENDAR_WATCH_FALLBACK_DISABLED_CLASS_PATTERN",
    )

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("target_urls", mode="before")
    @classmethod
    def split_target_urls(cls, value: object) -> object:
        """Accept a comma/newline separated string as well as a JSON list."""
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("["):
                return json.loads(stripped)
            return [item.strip() for item in re.split(r"[,\n]", stripped) if item.strip()]
        return value

    @field_validator("target_urls")
    @classmethod
    def require_targets(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("at least one target URL must be configured")
        return value

    @field_validator("negative_class_pattern", "negative_text_pattern", "fallback_disabled_class_pattern")
    @classmethod
    def check_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid regular expression {value!r}: {exc}") from exc
        return value

    @property
    def has_telegram_credentials(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_bot_token.get_secret_value() and self.telegram_chat_id)

    @property
    def telegram_api_endpoint(self) -> str:
        """Base Telegram Bot API endpoint."""
        token = self.telegram_bot_token.get_secret_value() if self.telegram_bot_token else ""
        return f"https://api.telegram.org/bot{token}"

    def heuristics(self) -> CalendarHeuristics:
        """Build the calendar heuristics from the configured patterns."""
        return CalendarHeuristics(
            negative_class=re.compile(self.negative_class_pattern, re.IGNORECASE),
            negative_text=re.compile(self.negative_text_pattern, re.IGNORECASE),
            fallback_disabled_class=re.compile(self.fallback_disabled_class_pattern, re.IGNORECASE),
        )
