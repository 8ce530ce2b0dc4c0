"""Authenticated GraphQL client for connector implementations."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any, TypedDict

from connector_sdk.clients.base import BaseHTTPClient
from connector_sdk.clients.models.credentials import Credentials
from connector_sdk.clients.models.errors import GraphQLError, GraphQLHttpError

logger = logging.getLogger(__name__)


class BatchItem(TypedDict, total=False):
    query: str
    variables: dict[str, Any]
    operation_name: str
    headers: dict[str, str]


class GraphQLClient(BaseHTTPClient):
    """Executes queries and mutations against a single GraphQL endpoint.

    Auth supports bearer and api key only; basic credentials are ignored.
    """

    def __init__(
        self,
        endpoint: str,
        credentials: Credentials | None = None,
        headers: dict[str, str] | None = None,
        **kwargs,
    ):
        super().__init__(credentials=credentials, headers=headers, **kwargs)
        self.endpoint = endpoint

    async def query(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
        operation_name: str | None = None,
        headers: dict[str, str] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> Any:
        return await self.request(query, variables, operation_name, headers, cancel_event)

    async def mutation(
        self,
        mutation: str,
        variables: dict[str, Any] | None = None,
        operation_name: str | None = None,
        headers: dict[str, str] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> Any:
        return await self.request(mutation, variables, operation_name, headers, cancel_event)

    async def request(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
        operation_name: str | None = None,
        headers: dict[str, str] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> Any:
        """POST ``{query, variables, operationName}`` and return ``data``.

        Raises:
            GraphQLHttpError: On a non-2xx response
            GraphQLError: If the response has a top-level ``errors`` array or
                its body is not a JSON object
            OperationCancelledError: If ``cancel_event`` fires while waiting
        """
        request_headers = {"Content-Type": "application/json"}
        request_headers.update(self.default_headers)
        request_headers.update(self.credentials.auth_headers(allow_basic=False))
        if headers:
            request_headers.update(headers)

        payload = {
            "query": query,
            "variables": variables or {},
            "operationName": operation_name,
        }

        async def attempt() -> Any:
            logger.debug(f"GraphQL request to {self.endpoint} operation={operation_name}")
            response = await self._http_client.post(
                self.endpoint, json=payload, headers=request_headers
            )

            if not response.is_success:
                logger.warning(
                    f"GraphQL request to {self.endpoint} failed with {response.status_code}"
                )
                raise GraphQLHttpError(response.status_code, body=response.text)

            try:
                result = response.json()
            except ValueError:
                result = None
            if not isinstance(result, dict):
                logger.warning(f"GraphQL response from {self.endpoint} is not a JSON object")
                raise GraphQLError([{"message": "Response body is not a JSON object"}])

            if result.get("errors") is not None:
                logger.warning(f"GraphQL response contained {len(result['errors'])} errors")
                raise GraphQLError(result["errors"], data=result.get("data"))

            return result.get("data")

        return await self._call(attempt, cancel_event)

    async def batch_query(self, queries: Sequence[BatchItem]) -> list[Any]:
        """Run all queries concurrently; results keep the input order."""
        return list(
            await asyncio.gather(
                *(
                    self.query(
                        item["query"],
                        item.get("variables"),
                        item.get("operation_name"),
                        item.get("headers"),
                    )
                    for item in queries
                )
            )
        )
