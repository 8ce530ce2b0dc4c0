"""Exception hierarchy for OAuth 2.0 authorization errors.

Provides specific exception types for the failure modes of the PKCE
authorization code flow so callers can tell a rejected code exchange apart
from a failed refresh or a tampered callback.
"""

from __future__ import annotations


class OAuth2Error(Exception):
    """Base exception for all OAuth 2.0 related errors."""

    pass


class TokenError(OAuth2Error):
    """Raised when token endpoint operations fail."""

    pass


class TokenExchangeError(TokenError):
    """Raised when authorization code to token exchange fails.

    Carries the provider's raw error body so integrations can surface the
    exact ``error``/``error_description`` the authorization server returned.
    """

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TokenRefreshError(TokenError):
    """Raised when token refresh fails.

    Deliberately generic: the provider body is not attached.
    """

    def __init__(self, message: str = "Token refresh failed", status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PKCEError(OAuth2Error):
    """Raised when PKCE parameter generation fails."""

    pass


class AuthorizationError(OAuth2Error):
    """Raised when the user or authorization server denies authorization."""

    pass


class AuthorizationCallbackError(OAuth2Error):
    """Raised when authorization server callback data is malformed or invalid.

    This indicates the authorization server sent an invalid callback URL,
    not that our callback handling code failed.
    """

    pass


class StateValidationError(AuthorizationCallbackError):
    """Raised when OAuth state parameter validation fails.

    This indicates either a missing state parameter or a state mismatch,
    which could indicate a CSRF attack or authorization server issue.
    """

    pass


class FlowStateError(OAuth2Error):
    """Raised when an authorization flow step is invoked out of order."""

    pass
