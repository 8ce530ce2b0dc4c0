"""PKCE (Proof Key for Code Exchange) helper for OAuth 2.0 integrations.

Implements RFC 7636 parameter generation and authorization URL construction
to prevent authorization code interception attacks.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from collections.abc import Sequence

from connector_sdk.auth.models.errors import PKCEError
from connector_sdk.auth.models.flow import AuthorizationRequest
from connector_sdk.auth.models.security import PKCEChallenge
from connector_sdk.auth.security import generate_state


def _base64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


class OAuth2PKCE:
    """Stateless PKCE operations for the authorization code flow.

    This implementation follows RFC 7636 requirements:
    - Uses S256 code challenge method (SHA256 + base64url)
    - Generates code verifiers from 32 bytes of CSPRNG output
    - Derives the challenge deterministically from the verifier
    """

    @staticmethod
    def generate_code_verifier() -> str:
        """Generate a cryptographically secure code verifier.

        32 random bytes, base64url-encoded without padding, which yields a
        43-character string inside the RFC 7636 range of 43-128.
        """
        return _base64url(secrets.token_bytes(32))

    @staticmethod
    def generate_code_challenge(code_verifier: str) -> str:
        """Generate code challenge from code verifier using S256 method.

        RFC 7636 Section 4.2: For S256, the code challenge is:
        BASE64URL-ENCODE(SHA256(ASCII(code_verifier)))

        Args:
            code_verifier: The code verifier to hash

        Returns:
            Base64url-encoded SHA256 hash of the code verifier
        """
        digest = hashlib.sha256(code_verifier.encode("utf-8")).digest()
        return _base64url(digest)

    @classmethod
    def generate_challenge(cls) -> PKCEChallenge:
        """Generate a fresh verifier/challenge pair for one authorization attempt.

        Raises:
            PKCEError: If parameter generation fails
        """
        try:
            code_verifier = cls.generate_code_verifier()
            return PKCEChallenge(
                code_verifier=code_verifier,
                code_challenge=cls.generate_code_challenge(code_verifier),
            )
        except Exception as e:
            raise PKCEError(f"Failed to generate PKCE parameters: {e}") from e

    @staticmethod
    def generate_state() -> str:
        return generate_state()

    @staticmethod
    def build_auth_url(
        auth_url: str,
        client_id: str,
        redirect_uri: str,
        code_challenge: str,
        scope: str | Sequence[str] | None = None,
        state: str | None = None,
    ) -> str:
        """Build the authorization URL with PKCE parameters.

        Args:
            auth_url: Provider authorization endpoint
            client_id: OAuth client identifier
            redirect_uri: Callback URI registered with the provider
            code_challenge: S256 challenge derived from the verifier
            scope: Space-separated string or sequence of scopes
            state: CSRF state to echo back on the callback

        Returns:
            ``auth_url`` with all parameters URL-encoded in the query string
        """
        return AuthorizationRequest(
            auth_url=auth_url,
            client_id=client_id,
            redirect_uri=redirect_uri,
            code_challenge=code_challenge,
            scope=scope,
            state=state,
        ).build_authorization_url()
