"""
Post Agent

Posts a message to the configured channel.

Configuration:
- channel: ``#name`` or channel ID (required)
- token: bot token reference (defaults to SLACK_BOT_TOKEN)

Input: a string, or an object with ``text``, ``blocks``, ``thread_ts``
Output: ``{"ok", "ts", "channel"}`` from Slack's response
"""

from typing import Any

from ..api.channels import resolve_channel
from .base import StatelessAgent
from .models import normalize_message_input


class PostAgent(StatelessAgent):
    """Agent for posting messages to Slack channels."""

    name = "post"

    async def handle(self, value: Any) -> dict:
        channel_ref = self.require_channel()
        credential = self.bot_credential()
        message = normalize_message_input(value)

        channel_id = await resolve_channel(self.api, credential, channel_ref, self.config.types)
        data = await self.api.call("chat.postMessage", credential, {"channel": channel_id, **message})

        return {
            "ok": data.get("ok", False),
            "ts": data.get("ts"),
            "channel": data.get("channel"),
        }
