"""
HTTP JSON handler using httpx.

A ready-made request handler for CTRequest that GETs JSON from an API:
- Persistent connection pooling
- Retry with exponential backoff on transport errors, 429 and 5xx
- Errors raised as HandlerError subclasses

Retries happen inside the handler; the mediator itself never retries.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Awaitable

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ctrequest import __app_name__, __version__
from ctrequest.core.errors import HandlerError
from ctrequest.core.logging import get_logger

logger = get_logger("handlers.http")

DEFAULT_USER_AGENT = f"{__app_name__}/{__version__}"

# Status codes that should trigger retry
RETRY_STATUS_CODES = {429, 500, 502, 503, 504}


class FetchError(HandlerError):
    """HTTP request failed or returned an unusable response."""


class TransientStatusError(FetchError):
    """Server answered with a status worth retrying."""


class RateLimitError(TransientStatusError):
    """Rate limit hit (429)."""

    def __init__(self, message: str, url: str | None = None, retry_after: float | None = None):
        super().__init__(message, url=url, status_code=429)
        self.retry_after = retry_after


class HttpJsonHandler:
    """Async handler fetching JSON documents relative to a base URL.

    Usage:
        api = HttpJsonHandler("https://api.example.com/v1")
        req = CTRequest(handler=api.bind("search"), ctype="file", cparams="./cache/")
        data = await req.issue([{"q": "banana"}], check_cache=True)
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_backoff: float = 2.0,
        min_wait: float = 1.0,
        max_wait: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the handler.

        Args:
            base_url: Base URL that request paths are joined to
            headers: Extra headers for every request
            timeout: Request timeout in seconds
            max_retries: Maximum attempts per request
            retry_backoff: Exponential backoff multiplier
            min_wait: Minimum wait between attempts in seconds
            max_wait: Maximum wait between attempts in seconds
            transport: Custom httpx transport (e.g. httpx.MockTransport)
        """
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_backoff = retry_backoff
        self.min_wait = min_wait
        self.max_wait = max_wait
        self.default_headers = {
            "User-Agent": DEFAULT_USER_AGENT,
            "Accept": "application/json",
            **(headers or {}),
        }
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                headers=self.default_headers,
                transport=self._transport,
                limits=httpx.Limits(
                    max_connections=20,
                    max_keepalive_connections=10,
                ),
            )
        return self._client

    def _check_status(self, response: httpx.Response) -> None:
        url = str(response.url)
        status = response.status_code

        if status == 429:
            retry_after = response.headers.get("Retry-After")
            retry_seconds = None
            if retry_after:
                try:
                    retry_seconds = float(retry_after)
                except ValueError:
                    pass
            raise RateLimitError("Rate limit exceeded", url=url, retry_after=retry_seconds)

        if status in RETRY_STATUS_CODES:
            raise TransientStatusError(f"Server error {status}", url=url, status_code=status)

        if not response.is_success:
            raise FetchError(f"Request failed with status {status}", url=url, status_code=status)

    async def __call__(self, path: str = "", query: dict[str, Any] | None = None) -> Any:
        """GET `path` with query parameters and return the decoded JSON body.

        Raises:
            FetchError: On transport failure, error status or invalid JSON
        """
        client = await self._ensure_client()

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries),
                wait=wait_exponential(
                    multiplier=self.retry_backoff,
                    min=self.min_wait,
                    max=self.max_wait,
                ),
                retry=retry_if_exception_type((httpx.TransportError, TransientStatusError)),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    response = await client.get(path, params=query or None)
                    self._check_status(response)
        except httpx.TransportError as e:
            request = client.build_request("GET", path, params=query or None)
            raise FetchError(
                f"Transport error after {self.max_retries} attempts: {e}",
                url=str(request.url),
            ) from e

        try:
            return response.json()
        except ValueError as e:
            raise FetchError(
                "Response is not valid JSON",
                url=str(response.url),
                status_code=response.status_code,
            ) from e

    def bind(self, path: str) -> Callable[..., Awaitable[Any]]:
        """Return a handler fixed to one endpoint path."""
        return functools.partial(self.__call__, path)

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "HttpJsonHandler":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
