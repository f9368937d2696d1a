"""Cooperative cancellation helpers.

Every blocking wait in a deployment races against an optional
``asyncio.Event`` supplied by the caller. Setting the event unwinds the wait
immediately with ``OperationCancelledError``.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, TypeVar

from funcdeploy.core.exceptions import OperationCancelledError

T = TypeVar("T")


async def run_cancellable(
    awaitable: Awaitable[T],
    cancel_event: Optional[asyncio.Event],
    what: str = "operation",
) -> T:
    """Await ``awaitable`` unless ``cancel_event`` fires first."""
    if cancel_event is None:
        return await awaitable

    task = asyncio.ensure_future(awaitable)
    if cancel_event.is_set():
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise OperationCancelledError(f"cancelled before {what}")

    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        waiter.cancel()
        raise

    if task in done:
        waiter.cancel()
        return task.result()

    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
    raise OperationCancelledError(f"cancelled during {what}")


async def sleep_or_cancel(seconds: float, cancel_event: Optional[asyncio.Event], what: str = "wait") -> None:
    """Sleep for ``seconds`` or raise as soon as ``cancel_event`` is set."""
    await run_cancellable(asyncio.sleep(seconds), cancel_event, what)
