"""OAuth 2.0 authorization code flow orchestration.

Coordinates PKCE generation, state validation, callback parsing and token
exchange for a single connector authorization, and keeps the resulting token
fresh afterwards.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from urllib.parse import parse_qs, urlparse

from connector_sdk.auth.models.errors import (
    AuthorizationCallbackError,
    AuthorizationError,
    FlowStateError,
    StateValidationError,
    TokenError,
    TokenExchangeError,
    TokenRefreshError,
)
from connector_sdk.auth.models.flow import AuthorizationResponse, FlowState
from connector_sdk.auth.models.security import PKCEChallenge
from connector_sdk.auth.models.tokens import TokenState
from connector_sdk.auth.pkce import OAuth2PKCE
from connector_sdk.auth.security import validate_state
from connector_sdk.auth.tokens import OAuth2TokenManager
from connector_sdk.clients.models.credentials import Credentials

logger = logging.getLogger(__name__)


class AuthorizationFlow:
    """One authorization attempt against a provider.

    Moves through ``IDLE -> AUTHORIZATION_REQUESTED -> CODE_RECEIVED`` and
    ends in ``TOKEN_EXCHANGED`` or ``EXCHANGE_FAILED``. The PKCE verifier is
    kept only until the exchange completes or the attempt is abandoned.
    """

    def __init__(
        self,
        auth_url: str,
        token_url: str,
        client_id: str,
        redirect_uri: str,
        scope: str | Sequence[str] | None = None,
        client_secret: str | None = None,
        token_manager: OAuth2TokenManager | None = None,
    ):
        self.auth_url = auth_url
        self.token_url = token_url
        self.client_id = client_id
        self.redirect_uri = redirect_uri
        self.scope = scope
        self._client_secret = client_secret
        self._token_manager = token_manager or OAuth2TokenManager()

        self.state = FlowState.IDLE
        self._pkce: PKCEChallenge | None = None
        self._expected_state: str | None = None
        self._code: str | None = None

    def start(self) -> str:
        """Start the flow and return the URL the user should visit."""
        if self.state is not FlowState.IDLE:
            raise FlowStateError(f"Cannot start authorization from state {self.state.value}")

        self._pkce = OAuth2PKCE.generate_challenge()
        self._expected_state = OAuth2PKCE.generate_state()

        url = OAuth2PKCE.build_auth_url(
            auth_url=self.auth_url,
            client_id=self.client_id,
            redirect_uri=self.redirect_uri,
            code_challenge=self._pkce.code_challenge,
            scope=self.scope,
            state=self._expected_state,
        )
        self.state = FlowState.AUTHORIZATION_REQUESTED
        logger.info(f"Generated authorization URL for client {self.client_id}")
        return url

    def handle_callback(self, callback_url: str) -> AuthorizationResponse:
        """Parse the provider redirect and validate its state parameter.

        Raises:
            StateValidationError: If state is missing or doesn't match
            AuthorizationError: If the provider reported an error
            AuthorizationCallbackError: If the callback carries no code
        """
        if self.state is not FlowState.AUTHORIZATION_REQUESTED:
            raise FlowStateError(f"Unexpected callback in state {self.state.value}")

        auth_response = self._parse_callback_url(callback_url)

        try:
            validate_state(self._expected_state, auth_response.state)
        except StateValidationError:
            self._fail()
            raise

        if auth_response.is_error():
            logger.warning(
                f"Authorization callback contained error: {auth_response.error} - "
                f"{auth_response.error_description}"
            )
            self._fail()
            raise AuthorizationError(
                f"Authorization failed: {auth_response.error} "
                f"({auth_response.error_description or ''})"
            )
        if not auth_response.is_success():
            self._fail()
            raise AuthorizationCallbackError("Callback missing both code and error")

        self._code = auth_response.code
        self.state = FlowState.CODE_RECEIVED
        logger.info("Authorization callback successful - received authorization code")
        return auth_response

    async def exchange(self) -> TokenState:
        """Exchange the received code for tokens.

        Raises:
            TokenExchangeError: If the provider rejects the code
        """
        if self.state is not FlowState.CODE_RECEIVED:
            raise FlowStateError(f"Cannot exchange code in state {self.state.value}")

        try:
            token_response = await self._token_manager.exchange_code(
                token_url=self.token_url,
                client_id=self.client_id,
                code=self._code,
                redirect_uri=self.redirect_uri,
                code_verifier=self._pkce.code_verifier,
                client_secret=self._client_secret,
            )
        except TokenError:
            self._fail()
            raise

        if not token_response.access_token:
            # 2xx carrying an error body, e.g. {"error": "bad_verification_code"}
            body = json.dumps(token_response.to_dict(), default=str)
            logger.warning(f"Token exchange returned no access_token: {body}")
            self._fail()
            raise TokenExchangeError(
                f"Token exchange returned no access_token: {body}", body=body
            )

        self._discard_secrets()
        self.state = FlowState.TOKEN_EXCHANGED
        return token_response.to_token_state()

    def abandon(self) -> None:
        """Drop the pending attempt so a new one can be started."""
        self._discard_secrets()
        self.state = FlowState.IDLE

    def _fail(self) -> None:
        self._discard_secrets()
        self.state = FlowState.EXCHANGE_FAILED

    def _discard_secrets(self) -> None:
        self._pkce = None
        self._code = None
        self._expected_state = None

    def _parse_callback_url(self, callback_url: str) -> AuthorizationResponse:
        try:
            query_params = parse_qs(urlparse(callback_url).query)
        except ValueError as e:
            raise AuthorizationCallbackError(f"Failed to parse callback URL: {e}") from e

        def get_single_param(key: str) -> str | None:
            values = query_params.get(key, [])
            return values[0] if values else None

        return AuthorizationResponse(
            code=get_single_param("code"),
            state=get_single_param("state"),
            error=get_single_param("error"),
            error_description=get_single_param("error_description"),
            error_uri=get_single_param("error_uri"),
        )


class TokenSession:
    """Keeps a connector's access token fresh.

    Drives the refresh lifecycle ``VALID -> EXPIRED -> REFRESH_REQUESTED ->
    VALID | REFRESH_FAILED`` on the wrapped TokenState.
    """

    def __init__(
        self,
        token_state: TokenState,
        token_url: str,
        client_id: str,
        client_secret: str | None = None,
        token_manager: OAuth2TokenManager | None = None,
    ):
        self.token_state = token_state
        self.token_url = token_url
        self.client_id = client_id
        self._client_secret = client_secret
        self._token_manager = token_manager or OAuth2TokenManager()

    async def ensure_valid(self) -> str:
        """Return a usable access token, refreshing it first if expired.

        Raises:
            TokenRefreshError: If the token is expired and cannot be refreshed
        """
        if self.token_state.is_valid():
            return self.token_state.access_token

        if not self.token_state.can_refresh():
            logger.warning("Token expired and cannot be refreshed")
            self.token_state.refresh_failed = True
            raise TokenRefreshError("Token expired and no refresh token is available")

        self.token_state.refresh_pending = True
        try:
            token_response = await self._token_manager.refresh_token(
                token_url=self.token_url,
                client_id=self.client_id,
                refresh_token=self.token_state.refresh_token,
                client_secret=self._client_secret,
            )
        except TokenError:
            self.token_state.refresh_failed = True
            raise
        finally:
            self.token_state.refresh_pending = False

        if not token_response.access_token:
            logger.warning("Token refresh response carried no access_token")
            self.token_state.refresh_failed = True
            raise TokenRefreshError("Token refresh returned no access_token")

        self.token_state.update_from_response(token_response)
        logger.info("Successfully refreshed access token")
        return self.token_state.access_token

    async def credentials(self) -> Credentials:
        """Bearer credentials for the API/GraphQL clients."""
        return Credentials(bearer=await self.ensure_valid())
