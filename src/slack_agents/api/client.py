"""
Slack Remote Call Client

Authenticated request/response calls against the Slack Web API.

Notes:
- One web client per call: concurrent agents share no mutable state
- The ``{ok, error}`` envelope is normalized into exceptions
- Rate limits get exactly one automatic retry after the advisory delay
- Cursor pagination is bounded by the caller's ``limit``
"""

import asyncio
import time
from contextlib import aclosing
from typing import Any, AsyncIterator, Awaitable, Callable, Mapping, Optional

import aiohttp
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from ..auth.credentials import Credential
from ..utils.errors import PlatformError, RateLimited, TransportError
from ..utils.logger import get_logger, log_api_call

logger = get_logger(__name__)

# Methods that take a JSON body; everything else is sent as query params.
JSON_BODY_METHODS = frozenset({"chat.postMessage"})

DEFAULT_TIMEOUT = 30
DEFAULT_RETRY_AFTER = 1.0
MAX_RETRY_AFTER = 60.0
MAX_PAGE_SIZE = 200


def _default_client_factory(token: str, timeout: int) -> AsyncWebClient:
    # slack_sdk's built-in retry handlers are disabled; retries are ours.
    return AsyncWebClient(token=token, timeout=timeout, retry_handlers=[])


def _response_data(response: Any) -> dict:
    data = getattr(response, "data", response)
    return data if isinstance(data, dict) else {}


def _header(headers: Any, name: str) -> Optional[str]:
    if not headers:
        return None
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            if isinstance(value, (list, tuple)):
                value = value[0] if value else None
            return value
    return None


def _retry_after(response: Any) -> float:
    """Advisory delay from a rate-limit response, bounded to MAX_RETRY_AFTER."""
    raw = _header(getattr(response, "headers", None), "Retry-After")
    try:
        delay = float(raw) if raw is not None else DEFAULT_RETRY_AFTER
    except (TypeError, ValueError):
        delay = DEFAULT_RETRY_AFTER
    return min(max(delay, 0.0), MAX_RETRY_AFTER)


def _is_rate_limited(response: Any) -> bool:
    if getattr(response, "status_code", None) == 429:
        return True
    return _response_data(response).get("error") == "ratelimited"


class SlackApiClient:
    """
    Remote call client for the Slack Web API.

    Usage:
        api = SlackApiClient()
        data = await api.call("chat.postMessage", credential, {"channel": "C123", "text": "hi"})
        messages = await api.paginate(
            "conversations.history", credential, {"channel": "C123"}, key="messages", limit=25
        )
    """

    def __init__(
        self,
        client_factory: Optional[Callable[[str, int], Any]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the client.

        Args:
            client_factory: Builds a web client from ``(token, timeout)``
            sleep: Coroutine used for rate-limit waits
            timeout: Per-request timeout in seconds
        """
        self._client_factory = client_factory or _default_client_factory
        self._sleep = sleep
        self.timeout = timeout

    async def _send(self, endpoint: str, credential: Credential, params: Mapping[str, Any]) -> dict:
        client = self._client_factory(credential.value, self.timeout)
        if endpoint in JSON_BODY_METHODS:
            response = await client.api_call(endpoint, http_verb="POST", json=dict(params))
        else:
            response = await client.api_call(endpoint, http_verb="GET", params=dict(params))
        return _response_data(response)

    async def call(
        self,
        endpoint: str,
        credential: Credential,
        params: Optional[Mapping[str, Any]] = None,
    ) -> dict:
        """
        Issue one logical API call.

        Args:
            endpoint: Slack method name, e.g. ``conversations.history``
            credential: Token to send as ``Authorization: Bearer``
            params: Method arguments

        Returns:
            The response payload (``ok`` is always true)

        Raises:
            PlatformError: Slack answered ``ok: false``
            RateLimited: Rate limited again after the single retry
            TransportError: DNS, connect or timeout failure
        """
        params = params or {}
        first_delay: Optional[float] = None

        for attempt in (1, 2):
            started = time.monotonic()
            try:
                data = await self._send(endpoint, credential, params)
            except SlackApiError as e:
                duration = (time.monotonic() - started) * 1000
                if _is_rate_limited(e.response):
                    log_api_call(logger, endpoint, params, "ratelimited", duration, attempt)
                    if first_delay is not None:
                        raise RateLimited(endpoint, first_delay) from e
                    first_delay = _retry_after(e.response)
                    logger.info(f"Rate limited on {endpoint}, retrying in {first_delay:g}s")
                    await self._sleep(first_delay)
                    continue
                data = _response_data(e.response)
                code = data.get("error") or "unknown_error"
                log_api_call(logger, endpoint, params, code, duration, attempt)
                raise PlatformError(code, _platform_detail(data), endpoint) from e
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                log_api_call(logger, endpoint, params, type(e).__name__, None, attempt)
                raise TransportError(endpoint, str(e) or type(e).__name__) from e

            if not data.get("ok", False):
                code = data.get("error") or "unknown_error"
                log_api_call(logger, endpoint, params, code, None, attempt)
                raise PlatformError(code, _platform_detail(data), endpoint)

            log_api_call(logger, endpoint, params, None, (time.monotonic() - started) * 1000, attempt)
            return data

        raise RateLimited(endpoint, first_delay)

    async def iter_pages(
        self,
        endpoint: str,
        credential: Credential,
        params: Optional[Mapping[str, Any]],
        key: str,
        page_size: int = MAX_PAGE_SIZE,
        limit: Optional[int] = None,
    ) -> AsyncIterator[list]:
        """
        Yield each page's ``key`` list, following ``next_cursor``.

        With a ``limit``, each page asks for ``min(remaining, page_size)``
        items and iteration ends once ``limit`` items have been served.
        """
        cursor: Optional[str] = None
        served = 0
        while True:
            size = page_size if limit is None else min(limit - served, page_size)
            if size <= 0:
                return

            page_params = dict(params or {})
            page_params["limit"] = size
            if cursor:
                page_params["cursor"] = cursor

            data = await self.call(endpoint, credential, page_params)
            page = list(data.get(key) or [])
            served += len(page)
            yield page

            cursor = (data.get("response_metadata") or {}).get("next_cursor")
            if not cursor:
                return

    async def paginate(
        self,
        endpoint: str,
        credential: Credential,
        params: Optional[Mapping[str, Any]],
        key: str,
        limit: int,
    ) -> list:
        """
        Collect up to ``limit`` items across pages, in platform order.

        Stops as soon as ``limit`` is reached or Slack reports no further
        cursor; an overshooting last page is truncated client-side.
        """
        if limit <= 0:
            return []

        items: list = []
        pages = self.iter_pages(endpoint, credential, params, key, limit=limit)
        async with aclosing(pages):
            async for page in pages:
                items.extend(page)
                if len(items) >= limit:
                    break
        return items[:limit]

    async def auth_test(self, credential: Credential) -> dict:
        """Identify the token's bot user (``user_id``, ``team_id``...)."""
        return await self.call("auth.test", credential)

    async def open_connection(self, app_credential: Credential) -> str:
        """
        Request a fresh Socket Mode URL.

        The URL is single-use and short-lived; request a new one for every
        (re)connect.
        """
        data = await self.call("apps.connections.open", app_credential)
        url = data.get("url")
        if not url:
            raise PlatformError("missing_url", "apps.connections.open returned no url", "apps.connections.open")
        return url


def _platform_detail(data: dict) -> str:
    meta = data.get("response_metadata") or {}
    messages = meta.get("messages") or []
    if messages:
        return "; ".join(str(m) for m in messages)
    return str(data.get("needed") or data.get("warning") or "")
