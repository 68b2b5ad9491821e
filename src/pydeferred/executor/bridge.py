"""asyncio interop.

The core never touches an event loop. This module connects the two
worlds at their edges:

- from_future / from_awaitable: an asyncio producer settles a Deferred
- to_future: asyncio code awaits a Deferred
- delay: a loop timer as a Deferred producer (for race-based timeouts)

Every crossing from asyncio into the core happens in a loop callback,
outside any turn, so each settlement drains the Scheduler before the loop
moves on.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any

from pydeferred.core.deferred import Deferred
from pydeferred.core.scheduler import Scheduler

logger = logging.getLogger(__name__)

__all__ = ["from_future", "from_awaitable", "to_future", "delay"]


def from_future(future: asyncio.Future[Any], scheduler: Scheduler | None = None) -> Deferred:
    """
    Get a Deferred that settles when an asyncio future completes.

    A cancelled future rejects the Deferred with asyncio.CancelledError.

    Example:
        ```python
        fut = loop.run_in_executor(None, blocking_read, path)
        from_future(fut).then(parse)
        ```
    """
    deferred: Deferred = Deferred(scheduler, label=f"future:{id(future):#x}")

    def on_done(done: asyncio.Future[Any]) -> None:
        if done.cancelled():
            deferred.reject(asyncio.CancelledError())
            return
        error = done.exception()
        if error is not None:
            deferred.reject(error)
        else:
            deferred.fulfill(done.result())

    future.add_done_callback(on_done)
    return deferred


def from_awaitable(
    awaitable: Awaitable[Any],
    scheduler: Scheduler | None = None,
    loop: asyncio.AbstractEventLoop | None = None,
) -> Deferred:
    """
    Schedule any asyncio awaitable on the loop and wrap it in a Deferred.

    Unlike spawn(), which drives a coroutine on the Scheduler, this runs
    the awaitable as an asyncio Task, so it may use asyncio primitives
    freely (sleep, locks, streams).

    Raises:
        RuntimeError: If no loop is given and none is running
    """
    loop = loop if loop is not None else asyncio.get_running_loop()
    return from_future(asyncio.ensure_future(awaitable, loop=loop), scheduler)


def to_future(
    deferred: Deferred, loop: asyncio.AbstractEventLoop | None = None
) -> asyncio.Future[Any]:
    """
    Get an asyncio future completed when a Deferred settles.

    A rejection with asyncio.CancelledError cancels the future.

    Example:
        ```python
        async def handler(request):
            return await to_future(load_profile(request.user_id))
        ```

    Raises:
        RuntimeError: If no loop is given and none is running
    """
    loop = loop if loop is not None else asyncio.get_running_loop()
    future = loop.create_future()

    def on_fulfilled(value: Any) -> None:
        if not future.done():
            future.set_result(value)

    def on_rejected(error: BaseException) -> None:
        if future.done():
            return
        if isinstance(error, asyncio.CancelledError):
            future.cancel()
        else:
            future.set_exception(error)

    with deferred.scheduler.host_turn():
        deferred.add_callbacks(on_fulfilled, on_rejected)
    return future


def delay(
    seconds: float,
    value: Any = None,
    loop: asyncio.AbstractEventLoop | None = None,
    scheduler: Scheduler | None = None,
) -> Deferred:
    """
    Get a Deferred fulfilled with value after seconds, on the loop's clock.

    Example:
        ```python
        timeout = delay(2.0).then(lambda _: rejected(TimeoutError("slow upstream")))
        result = race([fetch(url), timeout])
        ```

    Raises:
        RuntimeError: If no loop is given and none is running
    """
    loop = loop if loop is not None else asyncio.get_running_loop()
    deferred: Deferred = Deferred(scheduler, label=f"delay:{seconds}")
    loop.call_later(seconds, deferred.fulfill, value)
    logger.debug(f"Scheduled {deferred!r} in {seconds}s")
    return deferred
