"""Retry with bounded exponential backoff and jitter.

Delays are in seconds. After the final attempt the original exception is
re-raised unchanged so callers can still match on their own error types.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import TypeVar

from connector_sdk.resilience import waiting
from connector_sdk.resilience.errors import OperationCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Immutable retry configuration, created per call site."""

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    factor: float = 2.0
    jitter: bool = True
    retry_on: tuple[type[BaseException], ...] = (Exception,)

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be >= 0")

    def compute_delay(self, attempt: int) -> float:
        """Delay to wait after a failure at ``attempt`` (0-based).

        Clamped to ``max_delay`` before jitter, which scales by [0.5, 1.0].
        """
        delay = min(self.initial_delay * (self.factor**attempt), self.max_delay)
        if self.jitter:
            delay *= 0.5 + random.random() * 0.5
        return delay


class RetryHandler:
    def __init__(self, policy: RetryPolicy | None = None):
        self.policy = policy or RetryPolicy()

    async def retry(
        self,
        fn: Callable[[], Awaitable[T]],
        cancel_event: asyncio.Event | None = None,
    ) -> T:
        """Run ``fn`` until it succeeds or attempts run out.

        Makes at most ``max_retries + 1`` calls. Exceptions outside
        ``retry_on`` and OperationCancelledError propagate immediately.

        Raises:
            The exception from the final attempt, unchanged
            OperationCancelledError: If ``cancel_event`` fires during a backoff
        """
        policy = self.policy
        for attempt in range(policy.max_retries + 1):
            try:
                return await fn()
            except OperationCancelledError:
                raise
            except policy.retry_on as e:
                if attempt == policy.max_retries:
                    logger.warning(
                        f"Giving up after {attempt + 1} attempts: {type(e).__name__}: {e}"
                    )
                    raise

                delay = policy.compute_delay(attempt)
                logger.warning(
                    f"Attempt {attempt + 1} failed ({type(e).__name__}: {e}), "
                    f"retrying in {delay:.3f}s"
                )
                await waiting.sleep(delay, cancel_event)

        raise AssertionError("unreachable")


async def retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    cancel_event: asyncio.Event | None = None,
    **overrides,
) -> T:
    """Convenience wrapper: ``retry(fn, max_retries=2, jitter=False)``."""
    if overrides:
        policy = RetryPolicy(**overrides) if policy is None else replace(policy, **overrides)
    return await RetryHandler(policy).retry(fn, cancel_event=cancel_event)
