"""
Agent Data Models

Normalized shapes the agents exchange with the host pipeline.
"""

import json
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..utils.errors import MalformedFrame

CHANNEL_INFO_FIELDS = ("id", "name", "is_private", "is_archived", "is_member", "num_members")


class LiveEvent(BaseModel):
    """A live message event, deduplicated by ``(channel, ts)``."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    text: str = ""
    user: Optional[str] = None
    channel: str = Field(min_length=1)
    ts: str = Field(min_length=1)
    thread_ts: Optional[str] = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.channel, self.ts)


def decode_live_event(event: Any) -> LiveEvent:
    """
    Decode a Slack ``message`` event.

    Raises:
        MalformedFrame: If required fields are missing or mistyped
    """
    if not isinstance(event, dict):
        raise MalformedFrame(f"event is {type(event).__name__}, not an object")
    try:
        return LiveEvent.model_validate(event)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise MalformedFrame(f"invalid message event ({fields})") from e


def normalize_message_input(value: Any) -> dict:
    """
    Turn a Post agent input into ``chat.postMessage`` arguments.

    - ``"hello"``                    -> ``{"text": "hello"}``
    - ``{"text", "blocks", "thread_ts"}`` -> the same keys
    - list                           -> string entries joined by newlines
    - anything else                  -> pretty JSON in a code block
    """
    if isinstance(value, str):
        return {"text": value}

    if isinstance(value, dict):
        message = {"text": str(value.get("text") or "")}
        if value.get("blocks"):
            message["blocks"] = value["blocks"]
        if value.get("thread_ts"):
            message["thread_ts"] = str(value["thread_ts"])
        return message

    if isinstance(value, (list, tuple)):
        texts = []
        for item in value:
            if isinstance(item, str):
                texts.append(item)
            elif isinstance(item, dict) and isinstance(item.get("text"), str):
                texts.append(item["text"])
        return {"text": "\n".join(texts)}

    return {"text": f"```\n{json.dumps(value, indent=2, default=str)}\n```"}


def normalize_history_message(msg: dict) -> dict:
    """Keep ``text``, ``user``, ``ts`` and ``thread_ts`` of a history message."""
    result = {}
    if msg.get("text") is not None:
        result["text"] = msg["text"]
    if msg.get("user"):
        result["user"] = msg["user"]
    result["ts"] = str(msg.get("ts", ""))
    if msg.get("thread_ts"):
        result["thread_ts"] = msg["thread_ts"]
    return result


def normalize_channel(channel: dict) -> dict:
    """Project a ``conversations.list`` entry onto ChannelInfo."""
    result = {key: channel[key] for key in CHANNEL_INFO_FIELDS if channel.get(key) is not None}
    for key in ("topic", "purpose"):
        section = channel.get(key)
        if isinstance(section, dict) and section.get("value") is not None:
            result[key] = section["value"]
    return result


def to_chat_message(value: Any) -> dict:
    """
    Convert a Slack value into an LLM chat message.

    Raises:
        ValueError: If the value is neither a string nor an object
    """
    if isinstance(value, str):
        return {"role": "user", "content": value}
    if isinstance(value, dict):
        if {"role", "content"} <= value.keys():
            return {"role": value["role"], "content": value["content"]}
        return {"role": "user", "content": str(value.get("text") or "")}
    raise ValueError("Expected string or object for Slack message")
