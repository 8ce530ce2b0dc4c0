"""OAuth 2.0 token exchange and refresh service.

Implements RFC 6749 token endpoint interactions with PKCE (RFC 7636) for
connector authorization setup.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from connector_sdk.auth.models.errors import (
    TokenError,
    TokenExchangeError,
    TokenRefreshError,
)
from connector_sdk.auth.models.tokens import (
    CodeExchangeRequest,
    RefreshTokenRequest,
    TokenResponse,
)

if TYPE_CHECKING:
    from connector_sdk.config import SDKSettings

logger = logging.getLogger(__name__)

_FORM_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded",
    "Accept": "application/json",
}


class OAuth2TokenManager:
    """Manages OAuth 2.0 token exchange and refresh operations.

    Handles the token endpoint interactions including:
    - Authorization code to access token exchange (RFC 6749 Section 4.1.3)
    - Access token refresh (RFC 6749 Section 6)
    - PKCE code verification (RFC 7636)

    Uses application/x-www-form-urlencoded encoding as required by RFC 6749.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize OAuth token manager.

        Args:
            timeout: HTTP request timeout in seconds
            transport: Optional httpx transport, mainly for tests
        """
        self.timeout = timeout
        self._http_client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(
        cls,
        settings: SDKSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> OAuth2TokenManager:
        return cls(timeout=settings.http_timeout, transport=transport)

    async def exchange_code(
        self,
        token_url: str,
        client_id: str,
        code: str,
        redirect_uri: str,
        code_verifier: str,
        client_secret: str | None = None,
    ) -> TokenResponse:
        """Exchange an authorization code for tokens.

        Args:
            token_url: Provider token endpoint
            client_id: OAuth client identifier
            code: Authorization code received on the redirect
            redirect_uri: The redirect URI used in the authorization request
            code_verifier: PKCE verifier matching the challenge that was sent
            client_secret: Only for confidential clients

        Returns:
            TokenResponse: Parsed token response

        Raises:
            TokenExchangeError: If the token endpoint answers with non-2xx
            TokenError: If the request fails or the response is not JSON
        """
        request = CodeExchangeRequest(
            token_url=token_url,
            client_id=client_id,
            code=code,
            redirect_uri=redirect_uri,
            code_verifier=code_verifier,
            client_secret=client_secret,
        )
        return await self.exchange(request)

    async def exchange(self, request: CodeExchangeRequest) -> TokenResponse:
        logger.debug(f"Exchanging authorization code at {request.token_url}")

        form_data = request.to_form_data()
        logger.debug(
            f"Token request: grant_type={form_data['grant_type']}, "
            f"client_id={form_data['client_id']}, "
            f"confidential={'client_secret' in form_data}"
        )

        response = await self._post(request.token_url, form_data, "token exchange")

        if not response.is_success:
            logger.warning(
                f"Token exchange failed with {response.status_code} at {request.token_url}"
            )
            raise TokenExchangeError(
                f"Token exchange failed: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        logger.info("Token exchange successful")
        return self._parse_token_response(response)

    async def refresh_token(
        self,
        token_url: str,
        client_id: str,
        refresh_token: str,
        client_secret: str | None = None,
    ) -> TokenResponse:
        """Refresh an access token using a refresh token.

        Raises:
            TokenRefreshError: If the token endpoint answers with non-2xx. The
                provider body is not exposed.
            TokenError: If the request fails or the response is not JSON
        """
        request = RefreshTokenRequest(
            token_url=token_url,
            client_id=client_id,
            refresh_token=refresh_token,
            client_secret=client_secret,
        )
        return await self.refresh(request)

    async def refresh(self, request: RefreshTokenRequest) -> TokenResponse:
        logger.debug(f"Refreshing access token at {request.token_url}")

        response = await self._post(
            request.token_url, request.to_form_data(), "token refresh"
        )

        if not response.is_success:
            logger.warning(
                f"Token refresh failed with {response.status_code} at {request.token_url}"
            )
            raise TokenRefreshError(status_code=response.status_code)

        logger.info("Token refresh successful")
        return self._parse_token_response(response)

    async def _post(
        self, url: str, form_data: dict[str, str], operation: str
    ) -> httpx.Response:
        try:
            return await self._http_client.post(
                url,
                data=form_data,
                headers=_FORM_HEADERS,
            )
        except httpx.HTTPError as e:
            raise TokenError(f"HTTP error during {operation}: {e}") from e

    def _parse_token_response(self, response: httpx.Response) -> TokenResponse:
        """Parse a successful token endpoint response.

        Raises:
            TokenError: If response cannot be parsed
        """
        try:
            return TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise TokenError(f"Invalid token response format: {e}") from e

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()

    async def __aenter__(self) -> OAuth2TokenManager:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
