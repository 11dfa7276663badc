"""
Listener Agent

Streams live Slack messages via Socket Mode and hands each one to the
host pipeline.

Configuration:
- channel: optional filter (``#name`` or ID); empty listens everywhere
- token: bot token reference (defaults to SLACK_BOT_TOKEN)
- app_token: app-level token with ``connections:write`` (defaults to SLACK_APP_TOKEN)

Output: ``{"text", "user", "channel", "ts", "thread_ts"}`` per message

The agent keeps only its filter. Connection, heartbeat, ack and
reconnect bookkeeping all belong to EventTransportSession.
"""

import asyncio
import inspect
from typing import Any, Callable, Mapping, Optional

from ..api.channels import resolve_channel
from ..api.client import SlackApiClient
from ..transport.session import EventTransportSession, SessionSettings
from ..utils.errors import MalformedFrame
from ..utils.logger import get_logger
from .base import AgentConfig, BaseAgent
from .models import LiveEvent, decode_live_event

logger = get_logger(__name__)


class ListenerAgent(BaseAgent):
    """
    Agent for listening to Slack messages in real time.

    Usage:
        listener = ListenerAgent({"channel": "#general"}, output=handle_event)
        await listener.start()
        ...
        await listener.stop()
    """

    name = "listener"

    def __init__(
        self,
        config: AgentConfig | Mapping[str, Any] | None = None,
        output: Optional[Callable[[dict], Any]] = None,
        api: Optional[SlackApiClient] = None,
        environ: Optional[Mapping[str, str]] = None,
        connector: Any = None,
        settings: Optional[SessionSettings] = None,
    ):
        """
        Args:
            config: AgentConfig or mapping with ``channel``, ``token``, ``app_token``
            output: Called with each event dict; may be a coroutine function
            api: Remote call client
            environ: Environment snapshot for token lookup
            connector: Websocket connector (defaults to aiohttp)
            settings: Session timing constants (defaults to SLACK_SESSION_* env)
        """
        super().__init__(config, api, environ)
        self._output = output
        self._connector = connector
        self._settings = settings
        self._session: Optional[EventTransportSession] = None
        self._drain_task: Optional[asyncio.Task] = None
        self._channel_id: Optional[str] = None
        self._bot_user_id: Optional[str] = None

        self.emitted_count = 0
        self.filtered_count = 0
        self.malformed_count = 0

    @property
    def session(self) -> Optional[EventTransportSession]:
        return self._session

    @property
    def running(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    async def start(self) -> None:
        """
        Resolve tokens and the channel filter, then start streaming.

        Raises:
            ConfigError: If a SLACK_SESSION_* override is invalid
            MissingCredential: If either token cannot be resolved
            PlatformError: If ``auth.test`` or channel lookup fails
        """
        if self._session is not None:
            if not self._session.stopped:
                return
            await self.stop()

        settings = self._settings or SessionSettings.from_env(self._environ)
        bot_credential = self.bot_credential()
        self.app_credential()

        auth = await self.api.auth_test(bot_credential)
        self._bot_user_id = auth.get("user_id")

        if self.config.channel:
            self._channel_id = await resolve_channel(
                self.api, bot_credential, self.config.channel, self.config.types
            )

        self._session = EventTransportSession(
            self.api,
            self.app_credential,
            connector=self._connector,
            settings=settings,
        )
        self._session.start()
        self._drain_task = asyncio.create_task(self._drain())

        scope = f"channel {self._channel_id}" if self._channel_id else "all channels"
        logger.info(f"Listener started on {scope} as {self._bot_user_id}")

    async def stop(self) -> None:
        """
        Stop listening. No event is emitted once this returns.

        The listener can be started again afterwards; the next start
        resolves tokens and the channel filter afresh.
        """
        if self._session is not None:
            await self._session.stop()

        task, self._drain_task = self._drain_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._session = None
        self._channel_id = None
        self._bot_user_id = None
        logger.info("Listener stopped")

    async def wait_closed(self) -> None:
        """
        Wait until the listener ends.

        Raises:
            The permanent failure that ended the session, if any
        """
        if self._drain_task is not None:
            await asyncio.shield(self._drain_task)
        if self._session is not None and self._session.failure is not None:
            raise self._session.failure

    def accepts(self, event: LiveEvent) -> bool:
        """Apply the channel filter and drop the bot's own messages."""
        if self._channel_id and event.channel != self._channel_id:
            return False
        if self._bot_user_id and event.user == self._bot_user_id:
            return False
        return True

    async def _drain(self) -> None:
        session = self._session
        async for envelope in session.events():
            event = envelope.payload.get("event")
            if isinstance(event, dict) and event.get("type") != "message":
                continue

            try:
                live_event = decode_live_event(event)
            except MalformedFrame as e:
                self.malformed_count += 1
                logger.warning(f"Dropped event: {e}")
                continue

            if not self.accepts(live_event):
                self.filtered_count += 1
                continue

            if session.stopped:
                return
            await self._emit(live_event)

    async def _emit(self, event: LiveEvent) -> None:
        self.emitted_count += 1
        if self._output is None:
            return
        try:
            result = self._output(event.model_dump(exclude_none=True))
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Listener output handler failed")
