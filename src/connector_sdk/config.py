"""Environment-driven settings for connector processes.

Reads ``CONNECTOR_SDK_*`` variables, after loading a ``.env`` file if one is
present.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

from dotenv import load_dotenv

from connector_sdk.resilience.retry import RetryPolicy
from connector_sdk.webhooks.validator import (
    SLACK_TOLERANCE_SECONDS,
    WebhookProvider,
    WebhookValidator,
)

ENV_PREFIX = "CONNECTOR_SDK_"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from e


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from e


@dataclass(frozen=True)
class SDKSettings:
    http_timeout: float = 30.0
    log_level: str = "INFO"
    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    webhook_tolerance: int = SLACK_TOLERANCE_SECONDS

    @classmethod
    def from_env(
        cls, dotenv: bool = True, dotenv_path: str | os.PathLike | None = None
    ) -> SDKSettings:
        """Build settings from the environment.

        Args:
            dotenv: Load a ``.env`` file first (existing variables win)
            dotenv_path: Explicit ``.env`` location; searched for when omitted

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        if dotenv:
            load_dotenv(dotenv_path)

        return cls(
            http_timeout=_env_float("HTTP_TIMEOUT", cls.http_timeout),
            log_level=os.getenv(ENV_PREFIX + "LOG_LEVEL", cls.log_level).upper(),
            max_retries=_env_int("MAX_RETRIES", cls.max_retries),
            initial_delay=_env_float("INITIAL_DELAY", cls.initial_delay),
            max_delay=_env_float("MAX_DELAY", cls.max_delay),
            webhook_tolerance=_env_int("WEBHOOK_TOLERANCE", cls.webhook_tolerance),
        )

    def retry_policy(self, **overrides) -> RetryPolicy:
        values = {
            "max_retries": self.max_retries,
            "initial_delay": self.initial_delay,
            "max_delay": self.max_delay,
        }
        values.update(overrides)
        return RetryPolicy(**values)

    def verify_webhook(
        self,
        provider: WebhookProvider | str,
        headers: Mapping[str, str],
        payload: str | bytes,
        secret: str | bytes,
        **kwargs,
    ) -> bool:
        """``WebhookValidator.verify`` using the configured Slack tolerance."""
        kwargs.setdefault("tolerance_seconds", self.webhook_tolerance)
        return WebhookValidator.verify(provider, headers, payload, secret, **kwargs)

    def configure_logging(self) -> None:
        configure_logging(self.log_level)


def configure_logging(level: str | int = "INFO") -> None:
    """Basic console logging for scripts and local connector runs."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
