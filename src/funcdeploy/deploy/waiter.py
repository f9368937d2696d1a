"""Polling until a resource reaches a terminal status."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

import structlog

from funcdeploy.api.base import ResourceAPI
from funcdeploy.core.exceptions import DeadlineExceededError
from funcdeploy.core.models import (
    FUNCTION_TERMINAL_STATUSES,
    NAMESPACE_TERMINAL_STATUSES,
    Function,
    Namespace,
)
from funcdeploy.utils.cancellation import run_cancellable, sleep_or_cancel

logger = structlog.get_logger()

DEFAULT_POLL_INTERVAL = 2.0

OnFunctionPoll = Callable[[Function], Awaitable[None]]


async def wait_for_function(
    api: ResourceAPI,
    function_id: str,
    on_poll: Optional[OnFunctionPoll] = None,
    *,
    interval: float = DEFAULT_POLL_INTERVAL,
    cancel_event: Optional[asyncio.Event] = None,
    deadline: Optional[float] = None,
) -> Function:
    """Poll a function at a fixed interval until it reaches a terminal status.

    ``on_poll`` runs with every fetched snapshot, including the terminal one.

    Raises:
        OperationCancelledError: If ``cancel_event`` is set while waiting
        DeadlineExceededError: If ``deadline`` seconds elapse first
    """

    async def _poll() -> Function:
        while True:
            function = await run_cancellable(api.get_function(function_id), cancel_event, "getting function")
            if on_poll is not None:
                await on_poll(function)
            if function.status in FUNCTION_TERMINAL_STATUSES:
                logger.info("Function reached terminal status", function_id=function_id, status=function.status.value)
                return function
            logger.debug("Waiting for function", function_id=function_id, status=function.status.value)
            await sleep_or_cancel(interval, cancel_event, f"waiting for function {function_id}")

    return await _with_deadline(_poll(), deadline, f"function {function_id}")


async def wait_for_namespace(
    api: ResourceAPI,
    namespace_id: str,
    *,
    interval: float = DEFAULT_POLL_INTERVAL,
    cancel_event: Optional[asyncio.Event] = None,
    deadline: Optional[float] = None,
) -> Namespace:
    async def _poll() -> Namespace:
        while True:
            namespace = await run_cancellable(api.get_namespace(namespace_id), cancel_event, "getting namespace")
            if namespace.status in NAMESPACE_TERMINAL_STATUSES:
                return namespace
            await sleep_or_cancel(interval, cancel_event, f"waiting for namespace {namespace_id}")

    return await _with_deadline(_poll(), deadline, f"namespace {namespace_id}")


async def _with_deadline(coro, deadline: Optional[float], what: str):
    if deadline is None:
        return await coro
    try:
        async with asyncio.timeout(deadline):
            return await coro
    except TimeoutError as e:
        raise DeadlineExceededError(f"Deadline of {deadline}s exceeded while waiting for {what}") from e
