"""
Websocket Connection

Thin aiohttp wrapper the session talks to. Every send is bounded by a
timeout, and failures surface as TransportError.
"""

import asyncio
import json
from typing import Any

import aiohttp

from ..utils.errors import TransportError
from ..utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_SEND_TIMEOUT = 5.0


class SocketConnection:
    """One open websocket plus the HTTP session that owns it."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        ws: aiohttp.ClientWebSocketResponse,
        send_timeout: float = DEFAULT_SEND_TIMEOUT,
    ):
        self._session = session
        self._ws = ws
        self._send_timeout = send_timeout

    @property
    def closed(self) -> bool:
        return self._ws.closed

    async def receive(self, timeout: float) -> aiohttp.WSMessage:
        """Wait up to ``timeout`` seconds for the next message."""
        return await self._ws.receive(timeout=timeout)

    async def send_json(self, data: Any) -> None:
        try:
            await asyncio.wait_for(self._ws.send_str(json.dumps(data)), self._send_timeout)
        except (aiohttp.ClientError, ConnectionError, asyncio.TimeoutError) as e:
            raise TransportError("send", str(e) or type(e).__name__) from e

    async def pong(self, data: bytes = b"") -> None:
        try:
            await asyncio.wait_for(self._ws.pong(data), self._send_timeout)
        except (aiohttp.ClientError, ConnectionError, asyncio.TimeoutError) as e:
            raise TransportError("pong", str(e) or type(e).__name__) from e

    async def close(self) -> None:
        try:
            if not self._ws.closed:
                await self._ws.close()
        finally:
            await self._session.close()


class AiohttpConnector:
    """
    Opens Socket Mode websockets with aiohttp.

    Pings are not auto-answered so the session can own the heartbeat.
    """

    def __init__(
        self,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        send_timeout: float = DEFAULT_SEND_TIMEOUT,
    ):
        self.connect_timeout = connect_timeout
        self.send_timeout = send_timeout

    async def connect(self, url: str) -> SocketConnection:
        session = aiohttp.ClientSession()
        try:
            ws = await asyncio.wait_for(
                session.ws_connect(url, autoping=False),
                self.connect_timeout,
            )
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
            await session.close()
            raise TransportError("connect", str(e) or type(e).__name__) from e
        except BaseException:
            await session.close()
            raise

        logger.debug("Websocket connected")
        return SocketConnection(session, ws, self.send_timeout)
