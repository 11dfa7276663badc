"""
Logging Utilities

Provides structured logging for the Slack agents.

Features:
- Structured JSON logging for production
- Console logging for development
- Per-module loggers
- Tokens never reach a log record
"""

import os
import sys
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

# Log level from environment
LOG_LEVEL = os.getenv("LOG_LEVEL", "info").upper()

# Whether to use JSON format
JSON_LOGGING = os.getenv("JSON_LOGGING", "false").lower() == "true"


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields if present
        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Console formatter with colors and structure."""

    COLORS = {
        "DEBUG": "\033[36m",    # Cyan
        "INFO": "\033[32m",     # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",    # Red
        "CRITICAL": "\033[35m", # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        reset = self.RESET if color else ""

        timestamp = datetime.now().strftime("%H:%M:%S")

        msg = f"{color}[{timestamp}] [{record.levelname:7}]{reset} [{record.name}] {record.getMessage()}"

        if hasattr(record, "extra_fields") and record.extra_fields:
            extras = " ".join(f"{k}={v}" for k, v in record.extra_fields.items())
            msg += f" ({extras})"

        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)

        return msg


def setup_logging(level: Optional[str] = None, json_logging: Optional[bool] = None) -> None:
    """
    Set up logging for the application.

    Args:
        level: Log level (debug, info, warning, error). Uses LOG_LEVEL env if not provided.
        json_logging: Force JSON output. Uses JSON_LOGGING env if not provided.
    """
    log_level = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)
    use_json = JSON_LOGGING if json_logging is None else json_logging

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)

    if use_json:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ConsoleFormatter())

    root_logger.addHandler(handler)

    # Set level for third-party loggers
    logging.getLogger("slack_sdk").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Module name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_api_call(
    logger: logging.Logger,
    endpoint: str,
    params: Optional[dict] = None,
    error: Optional[str] = None,
    duration_ms: Optional[float] = None,
    attempt: int = 1,
) -> None:
    """
    Log a Slack API call with structured data.

    Only parameter names are recorded, never their values.

    Args:
        logger: Logger instance
        endpoint: Slack API method, e.g. ``chat.postMessage``
        params: Call parameters
        error: Error code (if failed)
        duration_ms: Execution time in milliseconds
        attempt: 1 for the first try, 2 for the rate-limit retry
    """
    extra_fields: dict[str, Any] = {
        "endpoint": endpoint,
        "params": ",".join(sorted(params)) if params else "",
        "attempt": attempt,
    }

    if duration_ms is not None:
        extra_fields["duration_ms"] = round(duration_ms, 1)

    if error:
        extra_fields["error"] = error
        logger.warning(f"Slack call {endpoint} failed", extra={"extra_fields": extra_fields})
    else:
        logger.debug(f"Slack call {endpoint} succeeded", extra={"extra_fields": extra_fields})
