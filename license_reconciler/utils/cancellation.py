# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Deadline and cancellation handling for remote calls."""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CallCancelledError(Exception):
    """Raised when a remote call is abandoned because of a deadline or caller cancellation."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


def _discard(awaitable: Awaitable[Any]) -> None:
    if inspect.iscoroutine(awaitable):
        awaitable.close()
    elif isinstance(awaitable, asyncio.Future):
        awaitable.cancel()


async def run_with_deadline(
    awaitable: Awaitable[T],
    *,
    timeout: float | None = None,
    cancel_event: asyncio.Event | None = None,
) -> T:
    """
    Await a remote call, abandoning it on deadline or caller cancellation.

    Args:
        awaitable: The remote call
        timeout: Seconds to wait before giving up; None waits forever
        cancel_event: Event the caller sets to abort the call

    Returns:
        The call's result. Exceptions raised by the call propagate unchanged.

    Raises:
        CallCancelledError: If the deadline passed or cancel_event was set
            before the call completed
    """
    if cancel_event is not None and cancel_event.is_set():
        _discard(awaitable)
        raise CallCancelledError("cancelled by caller before the call started")

    call = asyncio.ensure_future(awaitable)
    watcher = asyncio.ensure_future(cancel_event.wait()) if cancel_event is not None else None
    waiters = {call} if watcher is None else {call, watcher}

    try:
        done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        call.cancel()
        if watcher is not None:
            watcher.cancel()
        raise

    if watcher is not None:
        watcher.cancel()

    if call in done:
        return call.result()

    call.cancel()
    if watcher is not None and watcher in done:
        logger.info("Remote call cancelled by caller")
        raise CallCancelledError("cancelled by caller")

    logger.info(f"Remote call exceeded its deadline of {timeout}s")
    raise CallCancelledError(f"deadline of {timeout}s exceeded")
