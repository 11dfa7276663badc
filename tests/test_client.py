"""
Remote call client tests: envelope normalization, rate limits, pagination.
"""

import asyncio

import aiohttp
import pytest

from fakes import FakeSlack, Sleeps, api_error, rate_limited
from slack_agents.api import SlackApiClient, is_channel_id, resolve_channel
from slack_agents.auth import Credential, CredentialSource
from slack_agents.utils.errors import ConfigError, PlatformError, RateLimited, TransportError

TOKEN = Credential("xoxb-test", CredentialSource.LITERAL)


def make_client(slack: FakeSlack, sleeps: Sleeps | None = None) -> SlackApiClient:
    return SlackApiClient(client_factory=slack.factory, sleep=sleeps or Sleeps())


def numbered_pages(page_size: int, total: int | None = None):
    """conversations.history handler serving ``page_size`` messages per call."""
    served = {"count": 0}

    def handler(params):
        start = served["count"]
        end = start + page_size if total is None else min(start + page_size, total)
        served["count"] = end
        messages = [{"type": "message", "text": f"m{i}", "ts": f"{1000 - i}.000100"} for i in range(start, end)]
        more = total is None or end < total
        return {
            "ok": True,
            "messages": messages,
            "response_metadata": {"next_cursor": f"cursor-{end}" if more else ""},
        }

    return handler


# ======================
# CALL
# ======================

def test_call_returns_payload_and_uses_token():
    slack = FakeSlack({"chat.postMessage": {"ok": True, "ts": "1.1", "channel": "C1"}})
    data = asyncio.run(make_client(slack).call("chat.postMessage", TOKEN, {"channel": "C1", "text": "x"}))
    assert data["ts"] == "1.1"
    assert slack.calls[0].token == "xoxb-test"
    assert slack.calls[0].params == {"channel": "C1", "text": "x"}


def test_ok_false_becomes_platform_error():
    slack = FakeSlack({"chat.postMessage": api_error("channel_not_found")})
    with pytest.raises(PlatformError) as exc:
        asyncio.run(make_client(slack).call("chat.postMessage", TOKEN, {}))
    assert exc.value.code == "channel_not_found"
    assert exc.value.endpoint == "chat.postMessage"


def test_plain_ok_false_payload_becomes_platform_error():
    slack = FakeSlack({"auth.test": {"ok": False, "error": "invalid_auth"}})
    with pytest.raises(PlatformError) as exc:
        asyncio.run(make_client(slack).call("auth.test", TOKEN))
    assert exc.value.code == "invalid_auth"


def test_connection_failure_becomes_transport_error():
    slack = FakeSlack({"auth.test": aiohttp.ClientConnectionError("connection refused")})
    with pytest.raises(TransportError):
        asyncio.run(make_client(slack).call("auth.test", TOKEN))


def test_timeout_becomes_transport_error():
    slack = FakeSlack({"auth.test": asyncio.TimeoutError()})
    with pytest.raises(TransportError):
        asyncio.run(make_client(slack).call("auth.test", TOKEN))


def test_single_rate_limit_is_retried_after_advisory_delay():
    sleeps = Sleeps()
    slack = FakeSlack({"auth.test": [rate_limited("2"), {"ok": True, "user_id": "U1"}]})
    data = asyncio.run(make_client(slack, sleeps).call("auth.test", TOKEN))
    assert data["user_id"] == "U1"
    assert sleeps.delays == [2.0]
    assert len(slack.calls) == 2


def test_two_rate_limits_retry_once_then_fail():
    sleeps = Sleeps()
    slack = FakeSlack({"conversations.history": [rate_limited("3"), rate_limited("7"), {"ok": True}]})
    with pytest.raises(RateLimited) as exc:
        asyncio.run(make_client(slack, sleeps).call("conversations.history", TOKEN, {"channel": "C1"}))
    assert len(slack.calls) == 2
    assert sleeps.delays == [3.0]
    assert exc.value.retry_after == 3.0


def test_rate_limit_delay_is_bounded():
    sleeps = Sleeps()
    slack = FakeSlack({"auth.test": [rate_limited("86400"), {"ok": True}]})
    asyncio.run(make_client(slack, sleeps).call("auth.test", TOKEN))
    assert sleeps.delays == [60.0]


# ======================
# PAGINATION
# ======================

def test_paginate_truncates_to_limit():
    slack = FakeSlack({"conversations.history": numbered_pages(10)})
    items = asyncio.run(
        make_client(slack).paginate("conversations.history", TOKEN, {"channel": "C1"}, "messages", 25)
    )
    assert len(slack.calls) == 3
    assert len(items) == 25
    assert [c.params["limit"] for c in slack.calls] == [25, 15, 5]
    assert [m["text"] for m in items] == [f"m{i}" for i in range(25)]


def test_paginate_passes_cursor_and_stops_without_one():
    slack = FakeSlack({"conversations.history": numbered_pages(10, total=15)})
    items = asyncio.run(
        make_client(slack).paginate("conversations.history", TOKEN, {"channel": "C1"}, "messages", 100)
    )
    assert len(items) == 15
    assert len(slack.calls) == 2
    assert "cursor" not in slack.calls[0].params
    assert slack.calls[1].params["cursor"] == "cursor-10"
    assert slack.calls[1].params["channel"] == "C1"


def test_paginate_zero_limit_makes_no_call():
    slack = FakeSlack()
    assert asyncio.run(make_client(slack).paginate("conversations.list", TOKEN, {}, "channels", 0)) == []
    assert slack.calls == []


# ======================
# CHANNEL RESOLUTION
# ======================

CHANNEL_PAGES = [
    {"ok": True, "channels": [{"id": "C0000001", "name": "random"}], "response_metadata": {"next_cursor": "p2"}},
    {"ok": True, "channels": [{"id": "C0000002", "name": "General"}], "response_metadata": {"next_cursor": ""}},
]


def test_channel_id_passes_through_without_lookup():
    slack = FakeSlack()
    assert asyncio.run(resolve_channel(make_client(slack), TOKEN, "C0123ABCD")) == "C0123ABCD"
    assert slack.calls == []


def test_channel_name_is_resolved_across_pages():
    slack = FakeSlack({"conversations.list": list(CHANNEL_PAGES)})
    assert asyncio.run(resolve_channel(make_client(slack), TOKEN, "#general")) == "C0000002"
    assert len(slack.calls) == 2


def test_unknown_channel_name_fails():
    slack = FakeSlack({"conversations.list": list(CHANNEL_PAGES)})
    with pytest.raises(PlatformError) as exc:
        asyncio.run(resolve_channel(make_client(slack), TOKEN, "#nope"))
    assert exc.value.code == "channel_not_found"


def test_empty_channel_is_config_error():
    with pytest.raises(ConfigError):
        asyncio.run(resolve_channel(make_client(FakeSlack()), TOKEN, "  "))


def test_is_channel_id():
    assert is_channel_id("C0123ABCD")
    assert is_channel_id("G0123ABCD")
    assert is_channel_id("U0123ABCD")
    assert is_channel_id("W0123ABCD")
    assert not is_channel_id("#general")
    assert not is_channel_id("general")
