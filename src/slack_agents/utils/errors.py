"""
Error Handling Utilities

Structured error taxonomy shared by every agent.

Stateless agents turn these into explicit error results so the host
pipeline can route on failure. The event transport session turns
connectivity errors into reconnects and only lets permanent
rejections escape.
"""

from typing import Optional


class SlackAgentError(Exception):
    """Base exception for agent errors."""

    code = "agent_error"

    def __init__(self, message: str, user_message: Optional[str] = None):
        """
        Initialize agent error.

        Args:
            message: Technical error message for logging
            user_message: User-friendly message to display
        """
        super().__init__(message)
        self.user_message = user_message or "Sorry, something went wrong. Please try again."


class ConfigError(SlackAgentError):
    """Configuration error."""

    code = "invalid_config"

    def __init__(self, config_name: str, message: str):
        self.config_name = config_name
        super().__init__(
            f"Configuration error for {config_name}: {message}",
            "There's a configuration issue. Please contact the administrator.",
        )


class MissingCredential(ConfigError):
    """A token could not be resolved from configuration or environment."""

    code = "missing_credential"

    def __init__(self, env_var: str):
        self.env_var = env_var
        super().__init__(env_var, f"{env_var} not set")


class PlatformError(SlackAgentError):
    """Slack rejected the call (``ok: false``)."""

    code = "platform_error"

    def __init__(self, code: str, message: str = "", endpoint: Optional[str] = None):
        self.code = code
        self.endpoint = endpoint
        detail = f"Slack {endpoint or 'API'} failed: {code}"
        if message:
            detail += f" ({message})"
        super().__init__(detail, "I couldn't complete the Slack action. Please try again.")


class RateLimited(SlackAgentError):
    """Rate limit still in force after the single built-in retry."""

    code = "ratelimited"

    def __init__(self, endpoint: str, retry_after: Optional[float] = None):
        msg = f"Rate limit exceeded for {endpoint}"
        if retry_after:
            msg += f", retry after {retry_after:g}s"
        super().__init__(
            msg,
            "I'm being rate limited. Please wait a moment and try again.",
        )
        self.endpoint = endpoint
        self.retry_after = retry_after


class TransportError(SlackAgentError):
    """Connectivity failure (DNS, connect, timeout, socket closed)."""

    code = "transport_error"

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(
            f"Transport failure during {operation}: {message}",
            "I couldn't reach Slack. Please try again.",
        )


class MalformedFrame(SlackAgentError):
    """
    An inbound frame could not be decoded into an event.

    ``envelope_id`` is set when the frame still named its envelope, so
    the session can ack it and Slack stops redelivering it.
    """

    code = "malformed_frame"

    def __init__(self, message: str, envelope_id: Optional[str] = None):
        self.envelope_id = envelope_id
        super().__init__(f"Malformed frame: {message}")


class HandshakeRejected(SlackAgentError):
    """The push transport refused the connection and retrying cannot help."""

    code = "handshake_rejected"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(
            f"Socket Mode handshake rejected: {reason}",
            "The Slack app token was rejected. Please check the app configuration.",
        )


def format_error_for_user(error: Exception) -> str:
    """
    Format an error for display to the user.

    Args:
        error: The exception

    Returns:
        User-friendly error message
    """
    if isinstance(error, SlackAgentError):
        return error.user_message

    return "Sorry, I encountered an unexpected error. Please try again."
