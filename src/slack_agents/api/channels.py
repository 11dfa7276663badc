"""
Channel Reference Resolution

A configured channel may be a human-readable name (``#general``) or an
opaque ID (``C0123ABCD``). Names are looked up through
``conversations.list``; the two forms are never compared as raw strings.
"""

import re
from contextlib import aclosing

from ..auth.credentials import Credential
from ..utils.errors import ConfigError, PlatformError
from ..utils.logger import get_logger
from .client import SlackApiClient

logger = get_logger(__name__)

# Public channels (C), private channels / legacy groups (G), DMs (D),
# users (U, W) which chat.postMessage accepts as a DM target
CHANNEL_ID_PATTERN = re.compile(r"^[CGDUW][A-Z0-9]{6,}$")

DEFAULT_CHANNEL_TYPES = "public_channel"


def is_channel_id(ref: str) -> bool:
    """Check whether a reference already is a Slack channel ID."""
    return bool(CHANNEL_ID_PATTERN.match(ref))


async def find_channel(
    api: SlackApiClient,
    credential: Credential,
    name: str,
    types: str = DEFAULT_CHANNEL_TYPES,
) -> dict | None:
    """Find a channel by name (with or without ``#``)."""
    wanted = name.lstrip("#").lower()
    pages = api.iter_pages(
        "conversations.list",
        credential,
        {"types": types, "exclude_archived": True},
        key="channels",
    )
    async with aclosing(pages):
        async for page in pages:
            for channel in page:
                if (channel.get("name") or "").lower() == wanted:
                    return channel
    return None


async def resolve_channel(
    api: SlackApiClient,
    credential: Credential,
    ref: str,
    types: str = DEFAULT_CHANNEL_TYPES,
) -> str:
    """
    Resolve a channel reference to its ID.

    Args:
        api: Remote call client
        credential: Bot token
        ref: ``#name``, ``name`` or channel ID
        types: ``conversations.list`` types searched for names

    Returns:
        The channel ID

    Raises:
        ConfigError: If the reference is empty
        PlatformError: ``channel_not_found`` if no channel has that name
    """
    ref = (ref or "").strip()
    if not ref:
        raise ConfigError("channel", "Channel not configured")

    if is_channel_id(ref):
        return ref

    channel = await find_channel(api, credential, ref, types)
    if channel is None:
        raise PlatformError("channel_not_found", f"No channel named {ref}", "conversations.list")

    logger.debug(f"Resolved channel {ref} -> {channel['id']}")
    return channel["id"]
