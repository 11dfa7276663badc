"""
Utilities Module

Logging and error taxonomy shared by the Slack agents.
"""

from .logger import (
    setup_logging,
    get_logger,
    log_api_call,
)

from .errors import (
    SlackAgentError,
    ConfigError,
    MissingCredential,
    PlatformError,
    RateLimited,
    TransportError,
    MalformedFrame,
    HandshakeRejected,
    format_error_for_user,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "log_api_call",
    # Errors
    "SlackAgentError",
    "ConfigError",
    "MissingCredential",
    "PlatformError",
    "RateLimited",
    "TransportError",
    "MalformedFrame",
    "HandshakeRejected",
    "format_error_for_user",
]
