"""
History Agent

Fetches recent messages from the configured channel, newest first as
Slack returns them.

Configuration:
- channel: ``#name`` or channel ID (required)
- limit: maximum number of messages (default: 10)
- token: bot token reference (defaults to SLACK_BOT_TOKEN)

Input: any value; only triggers the fetch
Output: list of ``{"text", "user", "ts", "thread_ts"}`` objects
"""

from typing import Any

from ..api.channels import resolve_channel
from .base import StatelessAgent
from .models import normalize_history_message


class HistoryAgent(StatelessAgent):
    """Agent for fetching message history from a Slack channel."""

    name = "history"
    default_limit = 10

    async def handle(self, value: Any) -> list[dict]:
        channel_ref = self.require_channel()
        credential = self.bot_credential()

        channel_id = await resolve_channel(self.api, credential, channel_ref, self.config.types)
        messages = await self.api.paginate(
            "conversations.history",
            credential,
            {"channel": channel_id},
            key="messages",
            limit=self.limit,
        )
        return [normalize_history_message(m) for m in messages]
