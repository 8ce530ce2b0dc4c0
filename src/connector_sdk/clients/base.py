"""Shared plumbing for the REST and GraphQL clients.

Owns the httpx client and applies the optional rate limiter and retry policy
around every outbound call.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

import httpx

from connector_sdk.clients.models.credentials import Credentials
from connector_sdk.resilience.rate_limiter import RateLimiter
from connector_sdk.resilience.retry import RetryHandler, RetryPolicy

if TYPE_CHECKING:
    from connector_sdk.config import SDKSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseHTTPClient:
    def __init__(
        self,
        credentials: Credentials | None = None,
        headers: dict[str, str] | None = None,
        rate_limiter: RateLimiter | None = None,
        retry_policy: RetryPolicy | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            credentials: Auth material; may be shared between clients
            headers: Default headers sent with every request
            rate_limiter: Optional limiter acquired before every attempt
            retry_policy: Optional policy; when set, failed calls are retried
            timeout: HTTP request timeout in seconds
            transport: Optional httpx transport, mainly for tests
        """
        self.credentials = credentials or Credentials()
        self.default_headers = dict(headers or {})
        self.rate_limiter = rate_limiter
        self.retry_policy = retry_policy
        self._http_client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings: SDKSettings, *args, **kwargs):
        """Build a client with the configured timeout and retry policy.

        Positional and keyword arguments go to the constructor; explicit
        ``timeout`` or ``retry_policy`` keywords win over the settings.
        """
        kwargs.setdefault("timeout", settings.http_timeout)
        kwargs.setdefault("retry_policy", settings.retry_policy())
        return cls(*args, **kwargs)

    async def _call(
        self,
        attempt: Callable[[], Awaitable[T]],
        cancel_event: asyncio.Event | None = None,
    ) -> T:
        """Run one logical request under the limiter and retry policy.

        Setting ``cancel_event`` aborts a rate-limit wait or retry backoff
        with OperationCancelledError.
        """

        async def limited() -> T:
            if self.rate_limiter is not None:
                await self.rate_limiter.acquire(cancel_event)
            return await attempt()

        if self.retry_policy is None:
            return await limited()
        return await RetryHandler(self.retry_policy).retry(limited, cancel_event=cancel_event)

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
