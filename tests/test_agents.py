"""
Stateless agent tests: Post, History, Channels, ToMessage.
"""

import asyncio

import pytest

from fakes import FakeSlack, Sleeps, api_error, rate_limited
from slack_agents.agents import (
    AGENT_TYPES,
    AgentConfig,
    ChannelsAgent,
    HistoryAgent,
    PostAgent,
    ToMessageAgent,
)
from slack_agents.api import SlackApiClient
from slack_agents.utils.errors import ConfigError

ENV = {"SLACK_BOT_TOKEN": "xoxb-test"}
CHANNEL_ID = "C0123ABCD"


def make_agent(cls, config=None, slack=None, environ=ENV):
    slack = slack or FakeSlack()
    agent = cls(config or {}, api=SlackApiClient(client_factory=slack.factory, sleep=Sleeps()), environ=environ)
    return agent, slack


def history_pages(page_size):
    served = {"count": 0}

    def handler(params):
        start = served["count"]
        served["count"] = start + page_size
        return {
            "ok": True,
            "messages": [
                {"type": "message", "user": "U1", "text": f"m{i}", "ts": f"{2000 - i}.000100"}
                for i in range(start, start + page_size)
            ],
            "has_more": True,
            "response_metadata": {"next_cursor": f"page-{served['count']}"},
        }

    return handler


# ======================
# CONFIG
# ======================

def test_config_from_mapping():
    config = AgentConfig.from_mapping({"channel": " #general ", "limit": "25", "unknown": 1, "token": None})
    assert config.channel == "#general"
    assert config.limit == 25
    assert config.token == ""
    assert config.types == "public_channel"


def test_config_rejects_non_integer_limit():
    with pytest.raises(ConfigError):
        AgentConfig.from_mapping({"limit": "lots"})


def test_agent_registry():
    assert set(AGENT_TYPES) == {"post", "history", "channels", "to_message", "listener"}
    assert AGENT_TYPES["post"] is PostAgent


# ======================
# POST
# ======================

@pytest.mark.parametrize("value", ["hello", {"text": "hello"}])
def test_post_string_and_object_are_equivalent(value):
    slack = FakeSlack({"chat.postMessage": {"ok": True, "ts": "1.5", "channel": CHANNEL_ID}})
    agent, _ = make_agent(PostAgent, {"channel": CHANNEL_ID}, slack)
    result = asyncio.run(agent.process(value))

    assert result.ok
    assert result.value == {"ok": True, "ts": "1.5", "channel": CHANNEL_ID}
    assert slack.calls_to("chat.postMessage")[0].params == {"channel": CHANNEL_ID, "text": "hello"}


def test_post_keeps_thread_and_blocks():
    slack = FakeSlack({"chat.postMessage": {"ok": True, "ts": "1.6", "channel": CHANNEL_ID}})
    agent, _ = make_agent(PostAgent, {"channel": CHANNEL_ID}, slack)
    blocks = [{"type": "section", "text": {"type": "mrkdwn", "text": "*hi*"}}]
    asyncio.run(agent.process({"text": "hi", "blocks": blocks, "thread_ts": "1.1"}))

    params = slack.calls[0].params
    assert params["blocks"] == blocks
    assert params["thread_ts"] == "1.1"


def test_post_other_values_become_code_block():
    slack = FakeSlack({"chat.postMessage": {"ok": True, "ts": "1.7", "channel": CHANNEL_ID}})
    agent, _ = make_agent(PostAgent, {"channel": CHANNEL_ID}, slack)
    asyncio.run(agent.process(42))
    assert slack.calls[0].params["text"] == "```\n42\n```"


def test_post_resolves_channel_name():
    slack = FakeSlack({
        "conversations.list": {"ok": True, "channels": [{"id": "C0000009", "name": "general"}]},
        "chat.postMessage": {"ok": True, "ts": "1.8", "channel": "C0000009"},
    })
    agent, _ = make_agent(PostAgent, {"channel": "#general"}, slack)
    result = asyncio.run(agent.process("hi"))
    assert result.ok
    assert slack.calls_to("chat.postMessage")[0].params["channel"] == "C0000009"


def test_post_to_user_id_skips_lookup():
    slack = FakeSlack({"chat.postMessage": {"ok": True, "ts": "1.8", "channel": "D0000001"}})
    agent, _ = make_agent(PostAgent, {"channel": "U0123ABCD"}, slack)
    result = asyncio.run(agent.process("hi"))
    assert result.ok
    assert slack.calls_to("conversations.list") == []
    assert slack.calls[0].params["channel"] == "U0123ABCD"


def test_post_without_channel_is_config_error():
    agent, slack = make_agent(PostAgent)
    result = asyncio.run(agent.process("hello"))
    assert not result.ok
    assert result.error == "invalid_config"
    assert slack.calls == []


def test_post_without_token_reports_missing_credential():
    agent, slack = make_agent(PostAgent, {"channel": CHANNEL_ID}, environ={})
    result = asyncio.run(agent.process("hello"))
    assert result.error == "missing_credential"
    assert "SLACK_BOT_TOKEN" in result.message
    assert slack.calls == []


def test_post_uses_indirect_token():
    slack = FakeSlack({"chat.postMessage": {"ok": True, "ts": "1.9", "channel": CHANNEL_ID}})
    agent, _ = make_agent(
        PostAgent,
        {"channel": CHANNEL_ID, "token": "$OTHER_BOT"},
        slack,
        environ={"OTHER_BOT": "xoxb-other", "SLACK_BOT_TOKEN": "xoxb-default"},
    )
    asyncio.run(agent.process("hi"))
    assert slack.calls[0].token == "xoxb-other"


def test_post_platform_error_code_passes_through():
    slack = FakeSlack({"chat.postMessage": api_error("not_in_channel")})
    agent, _ = make_agent(PostAgent, {"channel": CHANNEL_ID}, slack)
    result = asyncio.run(agent.process("hello"))
    assert not result.ok
    assert result.error == "not_in_channel"
    assert result.user_message


def test_post_persistent_rate_limit_is_reported():
    slack = FakeSlack({"chat.postMessage": rate_limited("1")})
    agent, _ = make_agent(PostAgent, {"channel": CHANNEL_ID}, slack)
    result = asyncio.run(agent.process("hello"))
    assert result.error == "ratelimited"
    assert len(slack.calls) == 2


# ======================
# HISTORY
# ======================

def test_history_paginates_to_limit():
    slack = FakeSlack({"conversations.history": history_pages(10)})
    agent, _ = make_agent(HistoryAgent, {"channel": CHANNEL_ID, "limit": 25}, slack)
    result = asyncio.run(agent.process())

    assert result.ok
    assert len(slack.calls_to("conversations.history")) == 3
    assert [m["text"] for m in result.value] == [f"m{i}" for i in range(25)]
    assert result.value[0] == {"text": "m0", "user": "U1", "ts": "2000.000100"}


def test_history_default_limit():
    slack = FakeSlack({"conversations.history": history_pages(50)})
    agent, _ = make_agent(HistoryAgent, {"channel": CHANNEL_ID}, slack)
    result = asyncio.run(agent.process())
    assert len(result.value) == 10
    assert slack.calls[0].params["limit"] == 10


def test_history_keeps_thread_ts():
    slack = FakeSlack({
        "conversations.history": {
            "ok": True,
            "messages": [{"text": "reply", "user": "U2", "ts": "5.2", "thread_ts": "5.1"}],
        }
    })
    agent, _ = make_agent(HistoryAgent, {"channel": CHANNEL_ID}, slack)
    result = asyncio.run(agent.process())
    assert result.value == [{"text": "reply", "user": "U2", "ts": "5.2", "thread_ts": "5.1"}]


def test_history_unknown_channel():
    slack = FakeSlack({"conversations.list": {"ok": True, "channels": []}})
    agent, _ = make_agent(HistoryAgent, {"channel": "#nowhere"}, slack)
    result = asyncio.run(agent.process())
    assert result.error == "channel_not_found"
    assert slack.calls_to("conversations.history") == []


# ======================
# CHANNELS
# ======================

def test_channels_are_normalized():
    slack = FakeSlack({
        "conversations.list": {
            "ok": True,
            "channels": [
                {
                    "id": "C1",
                    "name": "general",
                    "is_private": False,
                    "is_archived": False,
                    "is_member": True,
                    "num_members": 12,
                    "topic": {"value": "Company news", "creator": "U1"},
                    "purpose": {"value": "Everyone", "creator": "U1"},
                    "created": 1600000000,
                },
                {"id": "C2", "name": "random"},
            ],
        }
    })
    agent, _ = make_agent(ChannelsAgent, {}, slack)
    result = asyncio.run(agent.process())

    assert result.value == [
        {
            "id": "C1",
            "name": "general",
            "is_private": False,
            "is_archived": False,
            "is_member": True,
            "num_members": 12,
            "topic": "Company news",
            "purpose": "Everyone",
        },
        {"id": "C2", "name": "random"},
    ]
    assert slack.calls[0].params["types"] == "public_channel"
    assert slack.calls[0].params["limit"] == 100


def test_channels_types_are_configurable():
    slack = FakeSlack({"conversations.list": {"ok": True, "channels": []}})
    agent, _ = make_agent(ChannelsAgent, {"types": "public_channel,private_channel", "limit": 5}, slack)
    asyncio.run(agent.process())
    assert slack.calls[0].params["types"] == "public_channel,private_channel"
    assert slack.calls[0].params["limit"] == 5


# ======================
# TO MESSAGE
# ======================

def test_to_message_conversions():
    agent, slack = make_agent(ToMessageAgent)
    assert asyncio.run(agent.process("hi")).value == {"role": "user", "content": "hi"}
    assert asyncio.run(agent.process({"text": "hey", "user": "U1"})).value == {"role": "user", "content": "hey"}
    assert asyncio.run(agent.process({"role": "assistant", "content": "ok"})).value == {
        "role": "assistant",
        "content": "ok",
    }
    assert slack.calls == []


def test_to_message_list_skips_bad_items():
    agent, _ = make_agent(ToMessageAgent)
    result = asyncio.run(agent.process(["a", 3, {"text": "b"}]))
    assert result.value == [{"role": "user", "content": "a"}, {"role": "user", "content": "b"}]


def test_to_message_rejects_other_values():
    agent, _ = make_agent(ToMessageAgent)
    result = asyncio.run(agent.process(3.5))
    assert not result.ok
    assert result.error == "invalid_value"
