"""Authenticated REST client for connector implementations."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import httpx

from connector_sdk.clients.base import BaseHTTPClient
from connector_sdk.clients.models.credentials import Credentials
from connector_sdk.clients.models.errors import ApiRequestError

logger = logging.getLogger(__name__)


class APIClient(BaseHTTPClient):
    """Builds authenticated JSON requests against one API base URL.

    Header precedence, lowest to highest: client defaults, auth header,
    per-call headers. Auth picks the first configured of bearer
    (``Authorization: Bearer``), api key (``X-API-Key``) and basic
    (``Authorization: Basic``).
    """

    def __init__(
        self,
        base_url: str,
        credentials: Credentials | None = None,
        headers: dict[str, str] | None = None,
        **kwargs,
    ):
        super().__init__(credentials=credentials, headers=headers, **kwargs)
        self.base_url = base_url

    def build_headers(self, extra_headers: dict[str, str] | None = None) -> dict[str, str]:
        headers = dict(self.default_headers)
        headers.update(self.credentials.auth_headers())
        if extra_headers:
            headers.update(extra_headers)
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: Any = None,
        params: dict[str, Any] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Args:
            method: HTTP method (GET, POST, etc.)
            path: Path appended verbatim to the base URL
            headers: Per-call headers, override defaults and auth
            body: JSON-serializable body; sets ``Content-Type: application/json``
            params: Query string parameters
            cancel_event: Aborts a rate-limit wait or retry backoff when set

        Returns:
            Parsed JSON, or None for an empty body

        Raises:
            ApiRequestError: On a non-2xx response
            httpx.HTTPError: On transport failures
            OperationCancelledError: If ``cancel_event`` fires while waiting
        """
        url = f"{self.base_url}{path}"
        request_headers = self.build_headers(headers)
        content = None
        if body is not None:
            content = json.dumps(body)
            request_headers["Content-Type"] = "application/json"

        async def attempt() -> Any:
            logger.debug(f"{method} {url}")
            response = await self._http_client.request(
                method,
                url,
                headers=request_headers,
                content=content,
                params=params,
            )
            return self._handle_response(method, url, response)

        return await self._call(attempt, cancel_event)

    def _handle_response(self, method: str, url: str, response: httpx.Response) -> Any:
        if not response.is_success:
            logger.warning(
                f"{method} {url} failed with {response.status_code} {response.reason_phrase}"
            )
            raise ApiRequestError(
                status=response.status_code,
                status_text=response.reason_phrase,
                body=response.text,
            )
        if not response.content:
            return None
        return response.json()

    async def get(self, path: str, **kwargs) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, body: Any = None, **kwargs) -> Any:
        return await self.request("POST", path, body=body, **kwargs)

    async def put(self, path: str, body: Any = None, **kwargs) -> Any:
        return await self.request("PUT", path, body=body, **kwargs)

    async def patch(self, path: str, body: Any = None, **kwargs) -> Any:
        return await self.request("PATCH", path, body=body, **kwargs)

    async def delete(self, path: str, **kwargs) -> Any:
        return await self.request("DELETE", path, **kwargs)
