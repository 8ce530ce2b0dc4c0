"""Webhook signature validation for inbound provider callbacks.

Every validator is pure and synchronous and answers with a bool; malformed
headers, stale timestamps and unknown algorithms all come back as ``False``
rather than raising.

The expected digest is ``hash(payload || secret)`` hex-encoded, which is what
existing integrations sign with. This is a concatenated hash, not a keyed
HMAC per RFC 2104, and is weaker than the name suggests (length-extension
style attacks apply to Merkle-Damgard hashes). It is kept for compatibility
with peers that produce this digest.
"""

from __future__ import annotations

import hashlib
import logging
import time
from collections.abc import Mapping
from enum import Enum

logger = logging.getLogger(__name__)

SLACK_TOLERANCE_SECONDS = 300

Payload = str | bytes


class WebhookProvider(str, Enum):
    GENERIC = "generic"
    STRIPE = "stripe"
    GITHUB = "github"
    SLACK = "slack"


def _to_bytes(value: Payload) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


def _digest(payload: Payload, secret: Payload, algorithm: str = "sha256") -> str:
    hasher = hashlib.new(algorithm)
    hasher.update(_to_bytes(payload))
    hasher.update(_to_bytes(secret))
    return hasher.hexdigest()


def secure_compare(a: str, b: str) -> bool:
    """Compare two strings without short-circuiting on the first mismatch.

    Unequal lengths return immediately, so length itself is observable.
    """
    if not isinstance(a, str) or not isinstance(b, str):
        return False
    if len(a) != len(b):
        return False

    result = 0
    for x, y in zip(a, b):
        result |= ord(x) ^ ord(y)
    return result == 0


class WebhookValidator:
    """Signature checks for the providers connectors commonly receive from."""

    secure_compare = staticmethod(secure_compare)

    @staticmethod
    def validate_hmac(
        payload: Payload, signature: str, secret: Payload, algorithm: str = "sha256"
    ) -> bool:
        try:
            expected = _digest(payload, secret, algorithm)
        except (TypeError, ValueError):
            return False
        return secure_compare(signature, expected)

    @staticmethod
    def validate_stripe(payload: Payload, signature: str, secret: Payload) -> bool:
        """Validate a ``Stripe-Signature`` header (``t=<ts>,v1=<sig>[,v1=...]``).

        Any one matching ``v1`` entry is enough.
        """
        try:
            timestamp = None
            candidates = []
            for item in signature.split(","):
                key, sep, value = item.strip().partition("=")
                if not sep:
                    continue
                if key == "t":
                    timestamp = value
                elif key == "v1":
                    candidates.append(value)

            if timestamp is None or not candidates:
                return False

            signed_payload = _to_bytes(timestamp) + b"." + _to_bytes(payload)
            expected = _digest(signed_payload, secret)
        except (AttributeError, TypeError, ValueError):
            return False

        return any(secure_compare(candidate, expected) for candidate in candidates)

    @staticmethod
    def validate_github(payload: Payload, signature: str, secret: Payload) -> bool:
        """Validate an ``X-Hub-Signature-256`` header (``sha256=<hex>``)."""
        try:
            expected = "sha256=" + _digest(payload, secret)
        except (TypeError, ValueError):
            return False
        return secure_compare(signature, expected)

    @staticmethod
    def validate_slack(
        timestamp: str | int,
        signature: str,
        payload: Payload,
        signing_secret: Payload,
        tolerance_seconds: int = SLACK_TOLERANCE_SECONDS,
    ) -> bool:
        """Validate an ``X-Slack-Signature`` header (``v0=<hex>``).

        Requests whose ``X-Slack-Request-Timestamp`` is older than the
        tolerance are rejected before any digest is computed.
        """
        try:
            ts = int(timestamp)
        except (TypeError, ValueError):
            return False

        if ts < int(time.time()) - tolerance_seconds:
            return False

        try:
            base_string = f"v0:{timestamp}:".encode("utf-8") + _to_bytes(payload)
            expected = "v0=" + _digest(base_string, signing_secret)
        except (TypeError, ValueError):
            return False
        return secure_compare(signature, expected)

    @classmethod
    def verify(
        cls,
        provider: WebhookProvider | str,
        headers: Mapping[str, str],
        payload: Payload,
        secret: Payload,
        signature_header: str = "X-Signature",
        tolerance_seconds: int = SLACK_TOLERANCE_SECONDS,
    ) -> bool:
        """Validate an inbound request using the provider's own headers.

        Args:
            provider: Which signature scheme to apply
            headers: Request headers, matched case-insensitively
            payload: Raw request body, exactly as received
            secret: Signing secret shared with the provider
            signature_header: Header carrying the digest for GENERIC
            tolerance_seconds: Maximum Slack timestamp age
        """
        try:
            provider = WebhookProvider(provider)
        except ValueError:
            logger.warning(f"Unknown webhook provider: {provider}")
            return False

        lowered = {k.lower(): v for k, v in headers.items()}

        if provider is WebhookProvider.STRIPE:
            signature = lowered.get("stripe-signature")
            valid = signature is not None and cls.validate_stripe(payload, signature, secret)
        elif provider is WebhookProvider.GITHUB:
            signature = lowered.get("x-hub-signature-256")
            valid = signature is not None and cls.validate_github(payload, signature, secret)
        elif provider is WebhookProvider.SLACK:
            signature = lowered.get("x-slack-signature")
            timestamp = lowered.get("x-slack-request-timestamp")
            valid = (
                signature is not None
                and timestamp is not None
                and cls.validate_slack(
                    timestamp, signature, payload, secret, tolerance_seconds
                )
            )
        else:
            signature = lowered.get(signature_header.lower())
            valid = signature is not None and cls.validate_hmac(payload, signature, secret)

        if not valid:
            logger.warning(f"Rejected {provider.value} webhook: signature did not verify")
        return valid
