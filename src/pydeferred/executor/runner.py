"""
Host entry points: run a computation to completion synchronously.

From Dave Cheney: "Design APIs for their default use case"
Most callers just want the value a coroutine computes, so run() hides
turns, drains and settlement records behind one call.

run() only completes what the Scheduler alone can complete. A
computation waiting on an external producer (an asyncio timer, a
socket) is still pending after the drain and raises PendingForeverError;
drive those from the event loop with to_future() instead.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydeferred.core.deferred import Deferred, rejected
from pydeferred.core.errors import PendingForeverError, SchedulerError
from pydeferred.core.outcome import HOST_EXCEPTIONS, Fulfilled, Rejected, Settlement
from pydeferred.core.scheduler import Scheduler, get_scheduler
from pydeferred.executor.combinators import to_deferred

logger = logging.getLogger(__name__)

__all__ = ["run", "settle"]


def _ignore(_: Any) -> None:
    pass


def _host_scheduler(caller: str) -> Scheduler:
    scheduler = get_scheduler()
    if not scheduler.is_idle:
        raise SchedulerError(
            f"{caller}() must be called by the host, not from inside a turn or drain pass"
        )
    return scheduler


def run(entry: Callable[..., Any] | Any, *args: Any, **kwargs: Any) -> Any:
    """
    Run entry to completion and return its value (or raise its error).

    entry may be a coroutine function, a generator function, a function
    decorated with @async_function, a plain callable, or an already built
    coroutine/generator object/Deferred (then args must be empty).

    The call happens inside one turn; the turn's drain runs every
    continuation the computation needs.

    Args:
        entry: What to run
        *args: Positional arguments for entry
        **kwargs: Keyword arguments for entry

    Returns:
        The fulfillment value

    Raises:
        The rejection error, unchanged
        PendingForeverError: If the result is still pending after draining
        SchedulerError: If called from inside a turn or drain pass

    Example:
        ```python
        @async_function
        def total(order_ids):
            orders = yield all_([load(i) for i in order_ids])
            return sum(o.amount for o in orders)

        print(run(total, [1, 2, 3]))
        ```
    """
    scheduler = _host_scheduler("run")
    with scheduler.turn():
        if callable(entry) and not isinstance(entry, Deferred):
            try:
                produced = entry(*args, **kwargs)
            except HOST_EXCEPTIONS:
                raise
            except BaseException as e:
                produced = rejected(e)
        else:
            produced = entry
        result = to_deferred(produced)
        # Observed here: the caller gets the error by exception
        result.add_callbacks(_ignore, _ignore)

    if result.is_fulfilled():
        return result.value()
    if result.is_rejected():
        raise result.error()
    logger.debug(f"run() left {result!r} pending after draining")
    raise PendingForeverError(
        f"{result!r} is still pending and nothing queued can settle it"
    )


def settle(deferred: Deferred) -> Settlement:
    """
    Drain the Scheduler and report how deferred ended, without raising.

    Returns:
        Fulfilled(value) or Rejected(error); Rejected(PendingForeverError)
        if the Deferred is still pending after the drain

    Raises:
        SchedulerError: If called from inside a turn or drain pass
    """
    scheduler = _host_scheduler("settle")
    with scheduler.turn():
        deferred.add_callbacks(_ignore, _ignore)

    if deferred.is_fulfilled():
        return Fulfilled(deferred.value())
    if deferred.is_rejected():
        return Rejected(deferred.error())
    return Rejected(PendingForeverError(f"{deferred!r} is still pending"))
