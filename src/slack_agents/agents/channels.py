"""
Channels Agent

Lists workspace channels in Slack's order.

Configuration:
- limit: maximum number of channels (default: 100)
- types: ``conversations.list`` types (default: ``public_channel``)
- token: bot token reference (defaults to SLACK_BOT_TOKEN)

Input: any value; only triggers the fetch
Output: list of ChannelInfo objects
"""

from typing import Any

from .base import StatelessAgent
from .models import normalize_channel


class ChannelsAgent(StatelessAgent):
    """Agent for listing Slack channels."""

    name = "channels"
    default_limit = 100

    async def handle(self, value: Any) -> list[dict]:
        credential = self.bot_credential()
        channels = await self.api.paginate(
            "conversations.list",
            credential,
            {"types": self.config.types},
            key="channels",
            limit=self.limit,
        )
        return [normalize_channel(c) for c in channels]
