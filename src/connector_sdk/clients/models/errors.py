"""Exception hierarchy for REST and GraphQL client errors."""

from __future__ import annotations

import json
from typing import Any


class ConnectorClientError(Exception):
    """Base exception for outbound API client errors."""

    pass


class ApiRequestError(ConnectorClientError):
    """Raised when a REST call returns a non-2xx status."""

    def __init__(self, status: int, status_text: str = "", body: str = ""):
        super().__init__(f"API error: {status} {status_text}".rstrip())
        self.status = status
        self.status_text = status_text
        self.body = body


class GraphQLHttpError(ConnectorClientError):
    """Raised when the GraphQL endpoint returns a non-2xx status."""

    def __init__(self, status: int, body: str = ""):
        super().__init__(f"GraphQL HTTP error: {status}")
        self.status = status
        self.body = body


class GraphQLError(ConnectorClientError):
    """Raised when a GraphQL response carries a top-level ``errors`` array.

    Raised even when the HTTP status is 200.
    """

    def __init__(self, errors: list[Any], data: Any = None):
        super().__init__(f"GraphQL errors: {json.dumps(errors, default=str)}")
        self.errors = errors
        self.data = data
