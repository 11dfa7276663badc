"""
Agent Base Classes

Every agent is built from an explicit AgentConfig. Stateless agents
subclass StatelessAgent, implement ``handle()`` and get back an
AgentResult from ``process()`` so the host pipeline can route on
failure instead of catching exceptions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

from ..api.channels import DEFAULT_CHANNEL_TYPES
from ..api.client import SlackApiClient
from ..auth.credentials import APP_TOKEN_ENV, BOT_TOKEN_ENV, Credential, resolve_credential
from ..utils.errors import ConfigError, SlackAgentError, format_error_for_user
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class AgentConfig:
    """Per-agent configuration supplied by the host at construction."""

    channel: str = ""
    limit: int = 0
    token: str = ""
    """Bot token: empty -> SLACK_BOT_TOKEN, ``$NAME`` -> env var NAME, else literal."""
    app_token: str = ""
    """App-level token for Socket Mode, same syntax, defaults to SLACK_APP_TOKEN."""
    types: str = DEFAULT_CHANNEL_TYPES

    @classmethod
    def from_mapping(cls, values: Optional[Mapping[str, Any]]) -> AgentConfig:
        """Build a config from a host key/value mapping, ignoring unknown keys."""
        values = values or {}
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in values.items() if k in known and v is not None}

        if "limit" in kwargs:
            try:
                kwargs["limit"] = int(kwargs["limit"])
            except (TypeError, ValueError) as e:
                raise ConfigError("limit", f"not an integer: {kwargs['limit']!r}") from e
        for key in ("channel", "token", "app_token", "types"):
            if key in kwargs:
                kwargs[key] = str(kwargs[key]).strip()

        return cls(**kwargs)


@dataclass
class AgentResult:
    """Outcome of one agent invocation."""

    ok: bool
    value: Any = None
    error: Optional[str] = None
    message: Optional[str] = None
    user_message: Optional[str] = None

    @classmethod
    def success(cls, value: Any) -> AgentResult:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: SlackAgentError) -> AgentResult:
        return cls(
            ok=False,
            error=error.code,
            message=str(error),
            user_message=format_error_for_user(error),
        )


class BaseAgent(ABC):
    """
    Shared construction and credential handling.

    Credentials are resolved on every use, so a rotated token in the
    environment is picked up by the next invocation.
    """

    name: str = ""

    def __init__(
        self,
        config: AgentConfig | Mapping[str, Any] | None = None,
        api: Optional[SlackApiClient] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Args:
            config: AgentConfig or a plain mapping of config keys
            api: Remote call client (a default one is created if omitted)
            environ: Environment snapshot for token lookup (``os.environ`` if omitted)
        """
        if not isinstance(config, AgentConfig):
            config = AgentConfig.from_mapping(config)
        self.config = config
        self.api = api or SlackApiClient()
        self._environ = environ

    def bot_credential(self) -> Credential:
        return resolve_credential(self.config.token, BOT_TOKEN_ENV, self._environ)

    def app_credential(self) -> Credential:
        return resolve_credential(self.config.app_token, APP_TOKEN_ENV, self._environ)

    def require_channel(self) -> str:
        if not self.config.channel:
            raise ConfigError("channel", "Channel not configured")
        return self.config.channel


class StatelessAgent(BaseAgent):
    """
    Request/response agent.

    To create a new agent:
    1. Subclass StatelessAgent
    2. Set ``name``
    3. Implement ``handle()``; raise SlackAgentError subclasses on failure
    """

    default_limit: int = 0

    @property
    def limit(self) -> int:
        return self.config.limit if self.config.limit > 0 else self.default_limit

    async def process(self, value: Any = None) -> AgentResult:
        """Run the agent on one input value and never raise agent errors."""
        try:
            return AgentResult.success(await self.handle(value))
        except SlackAgentError as e:
            logger.warning(f"{self.name} agent failed: {e}")
            return AgentResult.failure(e)

    @abstractmethod
    async def handle(self, value: Any) -> Any:
        """Process one input and return the output value."""
        ...
