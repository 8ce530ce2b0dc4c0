"""Errors raised by the rate limiter and retry handler."""

from __future__ import annotations


class OperationCancelledError(Exception):
    """Raised when a wait is interrupted by the caller's cancel event."""

    def __init__(self, message: str = "Operation cancelled", remaining: float | None = None):
        super().__init__(message)
        self.remaining = remaining
