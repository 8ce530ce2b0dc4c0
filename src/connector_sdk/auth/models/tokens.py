"""Token request, response and lifecycle models for OAuth 2.0.

Contains the form-encoded token endpoint requests, the parsed token response
and the mutable token state used to drive refreshes.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class TokenStatus(str, Enum):
    """Refresh lifecycle of an access token."""

    VALID = "valid"
    EXPIRED = "expired"
    REFRESH_REQUESTED = "refresh_requested"
    REFRESH_FAILED = "refresh_failed"


@dataclass
class TokenState:
    """Mutable token state with lifecycle management.

    Owned by a single connector instance. Mutable so a refresh can replace the
    access token without rebuilding the clients that hold a reference to it.
    """

    access_token: str | None = field(default=None, repr=False)
    refresh_token: str | None = field(default=None, repr=False)
    token_type: str = "Bearer"
    expires_at: float | None = None  # Unix timestamp
    scope: str | None = None
    refresh_pending: bool = False
    refresh_failed: bool = False

    def is_valid(self, buffer_seconds: float = 30.0) -> bool:
        """Check if access token is valid with optional buffer.

        Args:
            buffer_seconds: Treat the token as expired this many seconds early
        """
        if not self.access_token:
            return False

        if self.expires_at is None:
            return True  # No expiry means token doesn't expire

        return time.time() < (self.expires_at - buffer_seconds)

    def can_refresh(self) -> bool:
        """Check if token can be refreshed."""
        return bool(self.refresh_token)

    @property
    def status(self) -> TokenStatus:
        if self.refresh_pending:
            return TokenStatus.REFRESH_REQUESTED
        if self.refresh_failed:
            return TokenStatus.REFRESH_FAILED
        return TokenStatus.VALID if self.is_valid() else TokenStatus.EXPIRED

    def clear(self) -> None:
        """Clear all token data."""
        self.access_token = None
        self.refresh_token = None
        self.expires_at = None
        self.scope = None

    def update_from_response(self, token_response: TokenResponse) -> None:
        """Update token state from a successful token response.

        Providers may omit the refresh token on refresh, in which case the
        previous one is kept.
        """
        self.access_token = token_response.access_token
        self.token_type = token_response.token_type
        self.scope = token_response.scope
        if token_response.refresh_token:
            self.refresh_token = token_response.refresh_token
        self.expires_at = token_response.calculate_expires_at()
        self.refresh_failed = False


@dataclass(frozen=True)
class CodeExchangeRequest:
    """Authorization code exchange parameters (RFC 6749 Section 4.1.3).

    Includes the PKCE code_verifier (RFC 7636). ``client_secret`` is only
    sent for confidential clients.
    """

    token_url: str
    client_id: str
    code: str = field(repr=False)
    redirect_uri: str
    code_verifier: str = field(repr=False)
    client_secret: str | None = field(default=None, repr=False)
    grant_type: str = "authorization_code"

    def to_form_data(self) -> dict[str, str]:
        """Convert to form data for application/x-www-form-urlencoded request.

        Token requests must use form encoding, not JSON (RFC 6749 Section 4.1.3).

        Returns:
            Dictionary suitable for httpx data parameter
        """
        data = {
            "grant_type": self.grant_type,
            "code": self.code,
            "redirect_uri": self.redirect_uri,
            "client_id": self.client_id,
            "code_verifier": self.code_verifier,
        }

        if self.client_secret:
            data["client_secret"] = self.client_secret

        return data


@dataclass(frozen=True)
class RefreshTokenRequest:
    """Refresh token request parameters (RFC 6749 Section 6)."""

    token_url: str
    client_id: str
    refresh_token: str = field(repr=False)
    client_secret: str | None = field(default=None, repr=False)
    grant_type: str = "refresh_token"

    def to_form_data(self) -> dict[str, str]:
        """Convert to form data for application/x-www-form-urlencoded request."""
        data = {
            "grant_type": self.grant_type,
            "refresh_token": self.refresh_token,
            "client_id": self.client_id,
        }

        if self.client_secret:
            data["client_secret"] = self.client_secret

        return data


class TokenResponse(BaseModel):
    """Token endpoint response (RFC 6749 Section 5.1).

    Provider-specific members (``id_token``, ``instance_url``, ...) are kept
    as extra fields.
    """

    model_config = ConfigDict(extra="allow")

    access_token: str | None = None
    token_type: str = "Bearer"
    expires_in: int | None = None  # Seconds until expiry
    refresh_token: str | None = None
    scope: str | None = None

    def calculate_expires_at(self) -> float | None:
        """Calculate absolute expiry timestamp from expires_in.

        Returns:
            Unix timestamp when token expires, or None if no expiry
        """
        if self.expires_in is None:
            return None
        return time.time() + self.expires_in

    def to_token_state(self) -> TokenState:
        """Convert the response to mutable TokenState.

        Raises:
            ValueError: If the response carries no access token
        """
        if not self.access_token:
            raise ValueError("Cannot convert a response without access_token to TokenState")

        state = TokenState()
        state.update_from_response(self)
        return state

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
