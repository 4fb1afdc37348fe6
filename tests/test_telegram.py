import json
from datetime import datetime

import httpx
import pytest
from pydantic import SecretStr

from calendar_watch_agent.models import ScanTarget
from calendar_watch_agent.telegram import (
    TelegramNotifier,
    format_dates,
    format_summary,
    format_target_block,
    format_target_failure,
    split_message,
)


@pytest.fixture
def telegram_settings(settings):
    return settings.model_copy(
        update={
            "telegram_bot_token": SecretStr("123:abc"),
            "telegram_chat_id": "-1001",
        }
    )


async def test_send_posts_rich_text_payload(telegram_settings):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"ok": True})

    notifier = TelegramNotifier(telegram_settings, transport=httpx.MockTransport(handler))
    await notifier.send("<b>hello</b>")

    assert len(requests) == 1
    assert str(requests[0].url) == "https://api.telegram.org/bot123:abc/sendMessage"
    assert json.loads(requests[0].content) == {
        "chat_id": "-1001",
        "text": "<b>hello</b>",
        "parse_mode": "HTML",
        "disable_web_page_preview": True,
    }


async def test_missing_credentials_is_a_no_op(settings):
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - must not be called
        raise AssertionError("no request expected")

    notifier = TelegramNotifier(settings, transport=httpx.MockTransport(handler))
    await notifier.send("hello")


async def test_http_error_status_is_logged_not_retried(telegram_settings):
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(400, json={"ok": False, "description": "chat not found"})

    settings = telegram_settings.model_copy(update={"telegram_retry_attempts": 3})
    notifier = TelegramNotifier(settings, transport=httpx.MockTransport(handler))
    await notifier.send("hello")

    assert calls == 1


async def test_transport_failure_is_swallowed(telegram_settings):
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        raise httpx.ConnectError("network unreachable", request=request)

    notifier = TelegramNotifier(telegram_settings, transport=httpx.MockTransport(handler))
    await notifier.send("hello")

    assert calls == telegram_settings.telegram_retry_attempts


def test_format_dates_sorted_with_weekdays():
    assert format_dates(["2025-08-02", "2025-08-01"], "ko-KR") == "• 2025-08-01 (금)\n• 2025-08-02 (토)"
    assert format_dates(["2025-08-01"], "en-GB") == "• 2025-08-01 (Fri)"


def test_blocks_escape_urls_and_errors():
    target = ScanTarget(url="https://example.test/?a=1&b=2", index=0)

    block = format_target_block(target, ["2025-08-01"], "en-US")
    assert "a=1&amp;b=2" in block

    failure = format_target_failure(target, "<Timeout> " + "x" * 2000)
    assert "&lt;Timeout&gt;" in failure
    assert len(failure) < 1100


def test_summary_joins_blocks():
    text = format_summary(["one", "two"], datetime(2025, 8, 1, 9, 30))
    assert text.startswith("one\n\ntwo\n\n⏰ 2025-08-01 09:30:00")


def _three_month_summary() -> str:
    dates = [f"2025-{month:02d}-{day:02d}" for month in (6, 7, 8) for day in range(1, 31)]
    blocks = [
        format_target_block(ScanTarget(url=f"https://example.test/court/{index}", index=index), dates, "ko-KR")
        for index in range(3)
    ]
    return format_summary(blocks, datetime(2025, 6, 1, 9, 0))


async def test_long_summary_is_sent_in_chunks(telegram_settings):
    texts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        texts.append(json.loads(request.content)["text"])
        return httpx.Response(200, json={"ok": True})

    summary = _three_month_summary()
    assert len(summary) > 4096

    notifier = TelegramNotifier(telegram_settings, transport=httpx.MockTransport(handler))
    await notifier.send(summary)

    assert len(texts) >= 2
    assert all(len(text) <= 4096 for text in texts)
    assert "\n\n".join(texts) == summary
    assert all(text.startswith(("🎾", "⏰")) for text in texts)


def test_split_message_cuts_long_blocks_at_lines():
    block = "\n".join(f"line {number:03d}" for number in range(100))

    chunks = split_message(block, limit=100)

    assert all(len(chunk) <= 100 for chunk in chunks)
    assert "\n".join(chunks) == block


def test_split_message_cuts_over_long_line():
    assert split_message("x" * 250, limit=100) == ["x" * 100, "x" * 100, "x" * 50]
    assert split_message("short", limit=100) == ["short"]
