"""
ToMessage Agent

Converts Slack message values (from History or the Listener) into chat
messages for downstream LLM agents. Needs no Slack access.
"""

from typing import Any

from ..utils.errors import SlackAgentError
from .base import StatelessAgent
from .models import to_chat_message


class InvalidMessageValue(SlackAgentError):
    code = "invalid_value"


class ToMessageAgent(StatelessAgent):
    """Agent for converting Slack messages to chat message format."""

    name = "to_message"

    async def handle(self, value: Any) -> dict | list[dict]:
        if isinstance(value, (list, tuple)):
            messages = []
            for item in value:
                try:
                    messages.append(to_chat_message(item))
                except ValueError:
                    continue
            return messages

        try:
            return to_chat_message(value)
        except ValueError as e:
            raise InvalidMessageValue(str(e)) from e
