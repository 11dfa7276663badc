"""
Socket Mode Frames

Decodes websocket messages from Slack's Socket Mode transport into
typed frames. Envelopes are read with slack_sdk's SocketModeRequest and
acked with SocketModeResponse.

Socket Mode traffic:
- ``{"type": "hello", ...}``                      handshake acknowledgement
- ``{"type": "events_api", "envelope_id": ...}``  event payload, must be acked
- ``{"type": "disconnect", "reason": ...}``       server asks us to reconnect
- websocket PING control frames                   must be answered with PONG
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import aiohttp
from slack_sdk.socket_mode.request import SocketModeRequest
from slack_sdk.socket_mode.response import SocketModeResponse

from ..utils.errors import MalformedFrame


class FrameKind(Enum):
    """Kinds of inbound frame the session reacts to."""
    HELLO = "hello"
    EVENT = "event"
    ENVELOPE = "envelope"     # acked but not forwarded (slash commands, interactivity)
    PING = "ping"
    DISCONNECT = "disconnect"
    CLOSED = "closed"
    IGNORED = "ignored"


# Disconnect reasons that mean the app-level connection is gone for good.
PERMANENT_DISCONNECT_REASONS = frozenset({"link_disabled"})


@dataclass(frozen=True)
class Frame:
    """One decoded inbound frame."""
    kind: FrameKind
    envelope_id: Optional[str] = None
    payload: dict = field(default_factory=dict)
    reason: Optional[str] = None
    data: bytes = b""
    retry_attempt: int = 0


def decode_text(text: str) -> Frame:
    """Decode a Socket Mode JSON text frame."""
    try:
        body = json.loads(text)
    except (TypeError, ValueError) as e:
        raise MalformedFrame(f"invalid JSON: {e}") from e

    if not isinstance(body, dict):
        raise MalformedFrame(f"expected object, got {type(body).__name__}")

    frame_type = body.get("type")

    if frame_type == "hello":
        return Frame(FrameKind.HELLO, payload=body)

    if frame_type == "disconnect":
        return Frame(FrameKind.DISCONNECT, reason=body.get("reason"), payload=body)

    envelope_id = body.get("envelope_id")
    if not envelope_id:
        return Frame(FrameKind.IGNORED, payload=body)

    if frame_type != "events_api":
        return Frame(FrameKind.ENVELOPE, envelope_id=envelope_id, payload=body)

    # SocketModeRequest also accepts string payloads; events need an object.
    if not isinstance(body.get("payload"), dict):
        raise MalformedFrame("events_api envelope without payload", envelope_id)

    request = SocketModeRequest.from_dict(body)
    try:
        retry_attempt = int(request.retry_attempt or 0)
    except (TypeError, ValueError) as e:
        raise MalformedFrame(f"invalid retry_attempt {request.retry_attempt!r}", envelope_id) from e

    return Frame(
        FrameKind.EVENT,
        envelope_id=request.envelope_id,
        payload=request.payload,
        retry_attempt=retry_attempt,
    )


def ack_message(envelope_id: str) -> dict:
    """Body acknowledging one envelope."""
    return SocketModeResponse(envelope_id=envelope_id).to_dict()


def decode_message(msg: aiohttp.WSMessage) -> Frame:
    """
    Decode one websocket message.

    Raises:
        MalformedFrame: If a text frame is not a JSON object
    """
    if msg.type == aiohttp.WSMsgType.TEXT:
        return decode_text(msg.data)

    if msg.type == aiohttp.WSMsgType.PING:
        return Frame(FrameKind.PING, data=msg.data or b"")

    if msg.type in (
        aiohttp.WSMsgType.CLOSE,
        aiohttp.WSMsgType.CLOSING,
        aiohttp.WSMsgType.CLOSED,
        aiohttp.WSMsgType.ERROR,
    ):
        reason = str(msg.extra or msg.data or msg.type.name.lower())
        return Frame(FrameKind.CLOSED, reason=reason)

    return Frame(FrameKind.IGNORED)
