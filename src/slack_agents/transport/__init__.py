"""
Transport Module

Slack Socket Mode event transport.

This module provides:
- EventTransportSession: connect, handshake, heartbeat, ack, reconnect
- SessionSettings: timing and buffering constants
- Frame decoding for Socket Mode websocket traffic
"""

from .connection import AiohttpConnector, SocketConnection
from .frames import Frame, FrameKind, ack_message, decode_message, decode_text
from .session import (
    EventEnvelope,
    EventTransportSession,
    SessionSettings,
    SessionSnapshot,
    SessionState,
    compute_backoff,
)

__all__ = [
    "AiohttpConnector",
    "SocketConnection",
    "Frame",
    "FrameKind",
    "ack_message",
    "decode_message",
    "decode_text",
    "EventEnvelope",
    "EventTransportSession",
    "SessionSettings",
    "SessionSnapshot",
    "SessionState",
    "compute_backoff",
]
