"""
Event Transport Session

Owns one live Socket Mode connection and keeps it alive.

Lifecycle:
    DISCONNECTED -> CONNECTING -> AUTHENTICATING -> CONNECTED
                       ^                                |
                       +---------- RECONNECTING <-------+
    any state -> STOPPED  (only via stop(), or a permanent rejection)

- CONNECTING: resolve the app token, request a fresh single-use URL
  from ``apps.connections.open`` and open the websocket.
- AUTHENTICATING: wait for Slack's ``hello`` frame.
- CONNECTED: ack every envelope, answer every PING, forward events.
- RECONNECTING: exponential backoff with jitter, retried indefinitely.

A single owner task mutates all session state. Events reach the
consumer through a bounded queue; when it is full the oldest queued
event is dropped so the read loop never waits on the consumer.
Delivery is best effort: nothing is replayed across a reconnect.
"""

import asyncio
import os
import random
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Mapping, Optional

import aiohttp

from ..api.client import SlackApiClient
from ..auth.credentials import Credential
from ..utils.errors import (
    ConfigError,
    HandshakeRejected,
    MalformedFrame,
    MissingCredential,
    PlatformError,
    RateLimited,
    TransportError,
)
from ..utils.logger import get_logger
from .connection import AiohttpConnector
from .frames import PERMANENT_DISCONNECT_REASONS, Frame, FrameKind, ack_message, decode_message

logger = get_logger(__name__)

# apps.connections.open errors that retrying cannot fix.
PERMANENT_AUTH_ERRORS = frozenset({
    "invalid_auth",
    "not_authed",
    "account_inactive",
    "token_revoked",
    "token_expired",
    "not_allowed_token_type",
})


class SessionState(Enum):
    """Session lifecycle states."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    STOPPED = "stopped"


@dataclass
class SessionSettings:
    """Transport timing and buffering constants."""
    handshake_timeout: float = 10.0
    heartbeat_timeout: float = 30.0
    backoff_base: float = 1.0
    backoff_cap: float = 30.0
    backoff_jitter: float = 0.5
    queue_size: int = 1000
    dedup_window: int = 5000

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SessionSettings":
        """
        Build settings, honouring ``SLACK_SESSION_<FIELD>`` overrides.

        Raises:
            ConfigError: If an override is not a number of the field's type
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        values = {}
        for name, default in vars(defaults).items():
            env_var = f"SLACK_SESSION_{name.upper()}"
            raw = env.get(env_var)
            if not raw:
                continue
            try:
                values[name] = type(default)(raw)
            except ValueError as e:
                raise ConfigError(env_var, f"expected {type(default).__name__}, got {raw!r}") from e
        return cls(**values)


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of session state for observers."""
    state: SessionState
    retry_count: int
    epoch: int
    events_forwarded: int
    duplicates_dropped: int
    events_displaced: int
    malformed_frames: int


@dataclass(frozen=True)
class EventEnvelope:
    """An ``events_api`` payload handed to the consumer."""
    epoch: int
    envelope_id: str
    payload: dict


def compute_backoff(
    retry_count: int,
    settings: SessionSettings,
    rand: Callable[[], float] = random.random,
) -> float:
    """
    Delay before reconnect attempt ``retry_count``.

    ``base * 2**retry`` capped at ``backoff_cap``, then scaled down by up
    to ``backoff_jitter`` so the result never exceeds the cap.
    """
    exponent = min(retry_count, 32)
    delay = min(settings.backoff_cap, settings.backoff_base * (2 ** exponent))
    return delay * (1 - settings.backoff_jitter * rand())


_CLOSED = object()


class EventTransportSession:
    """
    Live Socket Mode session with transparent reconnects.

    Usage:
        session = EventTransportSession(api, app_credential=lambda: resolve_credential(...))
        session.start()
        async for envelope in session.events():
            ...
        await session.stop()
    """

    def __init__(
        self,
        api: SlackApiClient,
        app_credential: Callable[[], Credential],
        connector: Any = None,
        settings: Optional[SessionSettings] = None,
        on_ready: Optional[Callable[[], Any]] = None,
        on_state: Optional[Callable[[SessionState], None]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rand: Callable[[], float] = random.random,
    ):
        """
        Initialize the session.

        Args:
            api: Client used for ``apps.connections.open``
            app_credential: Resolves the app-level token; called on every connect
            connector: Opens websockets (defaults to AiohttpConnector)
            settings: Timing and buffering constants
            on_ready: Called each time the session reaches CONNECTED
            on_state: Called with every new lifecycle state
            sleep: Coroutine used for backoff waits
            rand: Jitter source in [0, 1)
        """
        self._api = api
        self._app_credential = app_credential
        self._connector = connector or AiohttpConnector()
        self.settings = settings or SessionSettings()
        self._on_ready = on_ready
        self._on_state = on_state
        self._sleep = sleep
        self._rand = rand

        self._state = SessionState.DISCONNECTED
        self._task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._connection = None
        self._stopping = False
        self._retry_count = 0
        self._epoch = 0
        self._seen: OrderedDict = OrderedDict()
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=self.settings.queue_size)
        self._ready = asyncio.Event()

        self._forwarded = 0
        self._duplicates = 0
        self._displaced = 0
        self._malformed = 0

        self.failure: Optional[Exception] = None

    # ======================
    # OBSERVATION
    # ======================

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def stopped(self) -> bool:
        return self._stopping or self._state is SessionState.STOPPED

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self._state,
            retry_count=self._retry_count,
            epoch=self._epoch,
            events_forwarded=self._forwarded,
            duplicates_dropped=self._duplicates,
            events_displaced=self._displaced,
            malformed_frames=self._malformed,
        )

    def _set_state(self, state: SessionState) -> None:
        if state is not self._state:
            logger.debug(f"Session {self._state.value} -> {state.value}")
            self._state = state
            if self._on_state is not None:
                self._on_state(state)

    # ======================
    # LIFECYCLE
    # ======================

    def start(self) -> None:
        """Start the owner task. Must be called from a running event loop."""
        if self._state is SessionState.STOPPED:
            raise RuntimeError("Session already stopped")
        if self._task is not None:
            return

        self._loop = asyncio.get_running_loop()
        self._task = asyncio.create_task(self._run())

    async def wait_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the session is CONNECTED.

        Returns:
            True if connected, False on timeout or stop

        Raises:
            The permanent failure that ended the session, if any
        """
        ready = asyncio.ensure_future(self._ready.wait())
        waiters = {ready}
        if self._task is not None:
            waiters.add(self._task)
        try:
            await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not ready.done():
                ready.cancel()
        if self.failure is not None:
            raise self.failure
        return self._ready.is_set()

    async def stop(self) -> None:
        """
        Stop the session for good.

        Abandons any connect or backoff in progress, closes the socket and
        discards queued events. Nothing is read or forwarded afterwards.
        """
        self._stopping = True
        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self._close_connection()
        self._finish()

    def stop_threadsafe(self, timeout: Optional[float] = None) -> None:
        """Stop from a thread other than the one running the event loop."""
        if self._loop is None:
            self._stopping = True
            self._finish()
            return
        future = asyncio.run_coroutine_threadsafe(self.stop(), self._loop)
        future.result(timeout)

    def _finish(self) -> None:
        self._set_state(SessionState.STOPPED)
        self._ready.clear()
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    async def events(self) -> AsyncIterator[EventEnvelope]:
        """Yield forwarded events in receipt order until the session stops."""
        while True:
            item = await self._queue.get()
            if item is _CLOSED or self.stopped:
                return
            yield item

    # ======================
    # OWNER TASK
    # ======================

    async def _run(self) -> None:
        while not self._stopping:
            try:
                await self._connect_and_read()
            except (HandshakeRejected, MissingCredential) as e:
                self._fail(e)
                return
            except PlatformError as e:
                if e.code in PERMANENT_AUTH_ERRORS:
                    self._fail(HandshakeRejected(e.code))
                    return
                logger.warning(f"Socket Mode connect failed: {e}")
            except (TransportError, RateLimited, aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
                logger.warning(f"Socket Mode connection dropped: {e}")
            except Exception:
                logger.exception("Unexpected error in Socket Mode session")
            finally:
                self._ready.clear()
                await self._close_connection()

            if self._stopping:
                break

            self._set_state(SessionState.RECONNECTING)
            delay = compute_backoff(self._retry_count, self.settings, self._rand)
            self._retry_count += 1
            logger.info(f"Reconnecting in {delay:.1f}s (attempt {self._retry_count})")
            await self._sleep(delay)

    def _fail(self, error: Exception) -> None:
        logger.error(f"Socket Mode session ended: {error}")
        self.failure = error
        self._stopping = True
        self._finish()

    async def _close_connection(self) -> None:
        connection, self._connection = self._connection, None
        if connection is None:
            return
        try:
            await connection.close()
        except (aiohttp.ClientError, OSError) as e:
            logger.debug(f"Error closing websocket: {e}")

    async def _connect_and_read(self) -> None:
        self._set_state(SessionState.CONNECTING)
        credential = self._app_credential()
        url = await self._api.open_connection(credential)
        if self._stopping:
            return
        self._connection = await self._connector.connect(url)

        self._set_state(SessionState.AUTHENTICATING)
        await self._await_hello()

        self._retry_count = 0
        self._epoch += 1
        self._seen.clear()
        self._set_state(SessionState.CONNECTED)
        self._ready.set()
        logger.info(f"Socket Mode connected (epoch {self._epoch})")
        if self._on_ready is not None:
            result = self._on_ready()
            if asyncio.iscoroutine(result):
                await result

        await self._read_loop()

    async def _next_frame(self, timeout: float) -> Optional[Frame]:
        try:
            msg = await self._connection.receive(timeout=timeout)
        except asyncio.TimeoutError as e:
            raise TransportError("heartbeat", f"no frame within {timeout:g}s") from e
        try:
            return decode_message(msg)
        except MalformedFrame as e:
            self._malformed += 1
            logger.warning(str(e))
            if e.envelope_id:
                await self._ack(e.envelope_id)
            return None

    async def _ack(self, envelope_id: str) -> None:
        await self._connection.send_json(ack_message(envelope_id))

    async def _await_hello(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.handshake_timeout
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise TransportError("handshake", "no hello received")
            frame = await self._next_frame(remaining)
            if frame is None:
                continue
            if frame.kind is FrameKind.HELLO:
                return
            if frame.kind is FrameKind.PING:
                await self._connection.pong(frame.data)
            elif frame.kind is FrameKind.DISCONNECT:
                self._check_disconnect(frame)
                raise TransportError("handshake", f"disconnected: {frame.reason}")
            elif frame.kind is FrameKind.CLOSED:
                raise TransportError("handshake", f"socket closed: {frame.reason}")

    def _check_disconnect(self, frame: Frame) -> None:
        if frame.reason in PERMANENT_DISCONNECT_REASONS:
            raise HandshakeRejected(frame.reason)

    async def _read_loop(self) -> None:
        while not self._stopping:
            frame = await self._next_frame(self.settings.heartbeat_timeout)
            if frame is None or self._stopping:
                continue

            if frame.kind is FrameKind.PING:
                await self._connection.pong(frame.data)
            elif frame.kind is FrameKind.EVENT:
                await self._ack(frame.envelope_id)
                self._forward(frame)
            elif frame.kind is FrameKind.ENVELOPE:
                await self._ack(frame.envelope_id)
                logger.debug(f"Acked unhandled envelope type {frame.payload.get('type')}")
            elif frame.kind is FrameKind.DISCONNECT:
                self._check_disconnect(frame)
                logger.info(f"Server requested reconnect ({frame.reason})")
                return
            elif frame.kind is FrameKind.CLOSED:
                raise TransportError("receive", f"socket closed: {frame.reason}")

    def _forward(self, frame: Frame) -> None:
        event = frame.payload.get("event")
        if isinstance(event, dict) and event.get("channel") and event.get("ts"):
            key = (event["channel"], event["ts"])
        else:
            key = ("envelope", frame.envelope_id)

        if key in self._seen:
            self._duplicates += 1
            logger.debug(f"Duplicate event {key} in epoch {self._epoch}")
            return
        self._seen[key] = None
        while len(self._seen) > self.settings.dedup_window:
            self._seen.popitem(last=False)

        if self._queue.full():
            self._queue.get_nowait()
            self._displaced += 1
            logger.warning("Event queue full, dropped oldest event")
        self._queue.put_nowait(EventEnvelope(self._epoch, frame.envelope_id, frame.payload))
        self._forwarded += 1
