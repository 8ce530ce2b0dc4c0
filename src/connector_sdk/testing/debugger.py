"""Timed tracing and HTTP inspection for connector development."""

from __future__ import annotations

import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, TypeVar

import httpx

if TYPE_CHECKING:
    from connector_sdk.config import SDKSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

BODY_PREVIEW_CHARS = 500
_REDACTED_HEADERS = {"authorization", "x-api-key", "cookie"}
_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(frozen=True)
class LogEntry:
    timestamp: datetime
    level: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        entry = asdict(self)
        entry["timestamp"] = self.timestamp.isoformat()
        return entry


@dataclass(frozen=True)
class TimingMetric:
    label: str
    duration_ms: float


def _redact(headers: dict[str, str] | None) -> dict[str, str]:
    return {
        k: ("[redacted]" if k.lower() in _REDACTED_HEADERS else v)
        for k, v in (headers or {}).items()
    }


class ConnectorDebugger:
    """Append-only log and timing collector.

    With ``verbose=True`` every entry is also emitted through this module's
    logger at the matching level.
    """

    def __init__(
        self,
        verbose: bool = False,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.logs: list[LogEntry] = []
        self.metrics: list[TimingMetric] = []
        self.verbose = verbose
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: SDKSettings,
        verbose: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ConnectorDebugger:
        return cls(verbose=verbose, timeout=settings.http_timeout, transport=transport)

    def log(self, level: str, message: str, data: dict[str, Any] | None = None) -> LogEntry:
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc),
            level=level,
            message=message,
            data=dict(data or {}),
        )
        self.logs.append(entry)

        if self.verbose:
            logger.log(_LEVELS.get(level, logging.INFO), f"[{level}] {message} {entry.data}")
        return entry

    def start_timer(self, label: str) -> Callable[[], float]:
        """Start timing ``label``; the returned callable stops it.

        Each call of the stop function records a metric and returns the
        elapsed milliseconds.
        """
        start = time.perf_counter()

        def stop() -> float:
            duration_ms = (time.perf_counter() - start) * 1000
            self.metrics.append(TimingMetric(label=label, duration_ms=duration_ms))
            return duration_ms

        return stop

    async def trace(self, fn: Callable[[], Awaitable[T] | T], label: str) -> T:
        """Run ``fn`` with start/completion logging and timing.

        Exceptions are logged and re-raised.
        """
        stop_timer = self.start_timer(label)
        self.log("info", f"Starting: {label}")

        try:
            result = fn()
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            stop_timer()
            self.log("error", f"Failed: {label}", {"error": str(e)})
            raise

        duration_ms = stop_timer()
        self.log("info", f"Completed: {label}", {"duration": f"{duration_ms:.2f}ms"})
        return result

    async def inspect_request(
        self,
        url: str,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        content: str | bytes | None = None,
    ) -> httpx.Response:
        """Perform an HTTP request, logging both sides of the exchange.

        Credential headers are redacted in the log and the response body is
        truncated to 500 characters.
        """
        self.log(
            "info",
            "HTTP Request",
            {"url": url, "method": method, "headers": _redact(headers), "body": content},
        )

        stop_timer = self.start_timer(f"Request: {url}")
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.request(method, url, headers=headers, content=content)
        except httpx.HTTPError as e:
            stop_timer()
            self.log("error", "HTTP Error", {"error": str(e)})
            raise

        duration_ms = stop_timer()
        self.log(
            "info",
            "HTTP Response",
            {
                "status": response.status_code,
                "status_text": response.reason_phrase,
                "headers": dict(response.headers),
                "body": response.text[:BODY_PREVIEW_CHARS],
                "duration": f"{duration_ms:.2f}ms",
            },
        )
        return response

    def get_logs(self, level: str | None = None, since: datetime | None = None) -> list[LogEntry]:
        """Entries matching ``level`` and logged at or after ``since``.

        A naive ``since`` is taken as local time.
        """
        filtered = self.logs
        if level is not None:
            filtered = [entry for entry in filtered if entry.level == level]
        if since is not None:
            since = since.astimezone(timezone.utc)
            filtered = [entry for entry in filtered if entry.timestamp >= since]
        return list(filtered)

    def get_metrics(self) -> dict[str, Any]:
        durations = [m.duration_ms for m in self.metrics]
        if not durations:
            return {"total": 0, "average": 0.0, "min": 0.0, "max": 0.0, "breakdown": []}
        return {
            "total": len(durations),
            "average": sum(durations) / len(durations),
            "min": min(durations),
            "max": max(durations),
            "breakdown": [asdict(m) for m in self.metrics],
        }

    def export_report(self) -> dict[str, Any]:
        return {
            "summary": {
                "total_logs": len(self.logs),
                "errors": sum(1 for entry in self.logs if entry.level == "error"),
                "warnings": sum(1 for entry in self.logs if entry.level == "warn"),
            },
            "metrics": self.get_metrics(),
            "logs": [entry.to_dict() for entry in self.logs],
        }

    def clear(self) -> None:
        self.logs = []
        self.metrics = []
