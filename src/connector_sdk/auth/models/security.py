"""Security-related models for OAuth 2.0 authorization.

Contains the PKCE challenge pair generated once per authorization attempt.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PKCEChallenge:
    """PKCE (Proof Key for Code Exchange) parameters for one authorization attempt.

    The verifier stays with the client until the code exchange; only the
    challenge travels to the authorization server (RFC 7636).
    """

    code_verifier: str = field(repr=False)
    code_challenge: str = field()
    code_challenge_method: str = field(default="S256")

    def __post_init__(self) -> None:
        """Validate PKCE parameters meet RFC 7636 requirements."""
        if not (43 <= len(self.code_verifier) <= 128):
            raise ValueError("code_verifier must be 43-128 characters")
        if self.code_challenge_method != "S256":
            raise ValueError("Only S256 code challenge method is supported")
