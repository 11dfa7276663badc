"""
slack-agents

Composable Slack agents (Post, History, Channels, ToMessage, Listener)
for host workflow pipelines.
"""

from .agents import (
    AGENT_TYPES,
    AgentConfig,
    AgentResult,
    ChannelsAgent,
    HistoryAgent,
    ListenerAgent,
    LiveEvent,
    PostAgent,
    ToMessageAgent,
)
from .auth import Credential, resolve_credential

__version__ = "0.1.0"

__all__ = [
    "AGENT_TYPES",
    "AgentConfig",
    "AgentResult",
    "ChannelsAgent",
    "HistoryAgent",
    "ListenerAgent",
    "LiveEvent",
    "PostAgent",
    "ToMessageAgent",
    "Credential",
    "resolve_credential",
]
