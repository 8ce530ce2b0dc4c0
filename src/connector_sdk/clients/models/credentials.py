"""Auth material for outbound connector requests."""

from __future__ import annotations

import base64

from pydantic import BaseModel, ConfigDict, Field


class Credentials(BaseModel):
    """Opaque credentials owned by one connector instance.

    Exactly one scheme is used per request, picked in the order bearer,
    api_key, basic. Values are excluded from ``repr`` so they don't end up
    in logs.
    """

    model_config = ConfigDict(frozen=True)

    bearer: str | None = Field(default=None, repr=False)
    api_key: str | None = Field(default=None, repr=False)
    basic: str | None = Field(default=None, repr=False)
    """Pre-encoded ``base64(username:password)`` token."""

    @classmethod
    def from_basic(cls, username: str, password: str) -> Credentials:
        token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        return cls(basic=token)

    def auth_headers(self, allow_basic: bool = True) -> dict[str, str]:
        """Headers for the first configured scheme, or an empty dict."""
        if self.bearer:
            return {"Authorization": f"Bearer {self.bearer}"}
        if self.api_key:
            return {"X-API-Key": self.api_key}
        if allow_basic and self.basic:
            return {"Authorization": f"Basic {self.basic}"}
        return {}
