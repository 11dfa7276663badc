"""
API Module

Request/response access to the Slack Web API.

This module provides:
- SlackApiClient: envelope normalization, bounded rate-limit retry, pagination
- resolve_channel: turn ``#name`` or an ID into a channel ID
"""

from .client import SlackApiClient, MAX_RETRY_AFTER
from .channels import find_channel, is_channel_id, resolve_channel

__all__ = [
    "SlackApiClient",
    "MAX_RETRY_AFTER",
    "find_channel",
    "is_channel_id",
    "resolve_channel",
]
