"""
Agents Module

Composable Slack agents for a host pipeline.

This module provides:
- PostAgent: post a message to a channel
- HistoryAgent: paginate a channel's history
- ChannelsAgent: list channels
- ToMessageAgent: Slack messages -> chat messages
- ListenerAgent: stream live messages over Socket Mode

Usage:
------
```python
from slack_agents.agents import PostAgent, ListenerAgent

post = PostAgent({"channel": "#general"})
result = await post.process("hello")
if not result.ok:
    print(result.error)

listener = ListenerAgent({"channel": "#general"}, output=print)
await listener.start()
```
"""

from .base import AgentConfig, AgentResult, BaseAgent, StatelessAgent
from .channels import ChannelsAgent
from .history import HistoryAgent
from .listener import ListenerAgent
from .models import LiveEvent
from .post import PostAgent
from .to_message import ToMessageAgent

AGENT_TYPES: dict[str, type[BaseAgent]] = {
    agent.name: agent
    for agent in (PostAgent, HistoryAgent, ChannelsAgent, ToMessageAgent, ListenerAgent)
}

__all__ = [
    "AgentConfig",
    "AgentResult",
    "BaseAgent",
    "StatelessAgent",
    "ChannelsAgent",
    "HistoryAgent",
    "ListenerAgent",
    "LiveEvent",
    "PostAgent",
    "ToMessageAgent",
    "AGENT_TYPES",
]
