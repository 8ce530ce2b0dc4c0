import asyncio
import time

from connector_sdk.resilience.errors import OperationCancelledError


async def sleep(delay: float, cancel_event: asyncio.Event | None = None) -> None:
    """Suspend for ``delay`` seconds, waking early if ``cancel_event`` is set.

    Without an event this is a plain ``asyncio.sleep``.

    Raises:
        OperationCancelledError: If the event is set before the delay elapses
    """
    if delay <= 0:
        delay = 0
    if cancel_event is None:
        await asyncio.sleep(delay)
        return

    if cancel_event.is_set():
        raise OperationCancelledError(remaining=delay)

    started = time.monotonic()
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return

    remaining = max(delay - (time.monotonic() - started), 0.0)
    raise OperationCancelledError(remaining=remaining)
