"""Authorization flow models for OAuth 2.0 with PKCE.

Contains models for authorization requests and callback handling.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlencode


class FlowState(str, Enum):
    """Lifecycle of a single authorization attempt."""

    IDLE = "idle"
    AUTHORIZATION_REQUESTED = "authorization_requested"
    CODE_RECEIVED = "code_received"
    TOKEN_EXCHANGED = "token_exchanged"
    EXCHANGE_FAILED = "exchange_failed"


@dataclass(frozen=True)
class AuthorizationRequest:
    """Authorization request parameters for the authorization code + PKCE flow."""

    auth_url: str
    client_id: str
    redirect_uri: str
    code_challenge: str
    state: str | None = None
    scope: str | Sequence[str] | None = None
    code_challenge_method: str = "S256"

    def build_authorization_url(self) -> str:
        """Build the complete authorization URL.

        A scope sequence is joined with single spaces; a string is passed
        through untouched.
        """
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
        }

        if self.scope is not None:
            params["scope"] = (
                self.scope if isinstance(self.scope, str) else " ".join(self.scope)
            )
        if self.state is not None:
            params["state"] = self.state

        params["code_challenge"] = self.code_challenge
        params["code_challenge_method"] = self.code_challenge_method

        return f"{self.auth_url}?{urlencode(params)}"


@dataclass(frozen=True)
class AuthorizationResponse:
    code: str | None = None
    state: str | None = None
    error: str | None = None
    error_description: str | None = None
    error_uri: str | None = None

    def is_success(self) -> bool:
        return self.error is None and self.code is not None

    def is_error(self) -> bool:
        return self.error is not None
