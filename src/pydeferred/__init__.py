"""
pydeferred: deferred values and coroutines for Python

A settle-once Deferred with ordered continuations, a FIFO continuation
scheduler, join combinators, and a coroutine driver that lets plain
generator functions and ``async def`` functions suspend on Deferreds.
Synchronous raises and asynchronous rejections reach the same
``try/except``.

Design Pattern: Façade Pattern
This module re-exports the surface most callers need, hiding the split
between the core (state machine, scheduler) and the executor (driver,
combinators, bridge).

Example:
    ```python
    from pydeferred import all_, async_function, create, run

    def fetch(n):
        deferred, fulfill, _ = create()
        fulfill(n * 10)
        return deferred

    @async_function
    def total():
        a = yield fetch(1)
        b, c = yield all_([fetch(2), fetch(3)])
        return a + b + c

    assert run(total) == 60
    ```
"""

# Core - settlement state machine and scheduler
from pydeferred.core import (
    ChainingCycleError,
    Chained,
    Deferred,
    DeferredError,
    DeferredStateError,
    Failed,
    Fulfilled,
    HandlerResult,
    PendingForeverError,
    Rejected,
    Resolvers,
    Scheduler,
    SchedulerError,
    SchedulerStats,
    Settlement,
    UnhandledRejectionError,
    Value,
    configure,
    create,
    get_current_coroutine,
    get_scheduler,
    reset_scheduler,
    set_rejection_handled_hook,
    set_unhandled_rejection_hook,
)

# Decorators
from pydeferred.decorators import async_function

# Execution - driver, combinators, host entry, asyncio bridge
from pydeferred.executor import (
    Coroutine,
    CoroutineState,
    SuspendPoint,
    all_,
    all_settled,
    any_,
    delay,
    from_awaitable,
    from_future,
    race,
    rejected,
    resolved,
    run,
    settle,
    spawn,
    to_deferred,
    to_future,
)

# Models
from pydeferred.models import CoroutineStatus, DeferredState, RejectionPolicy, RuntimeConfig

__version__ = "0.1.0"

__all__ = [
    # Deferred
    "Deferred",
    "Resolvers",
    "create",
    "resolved",
    "rejected",
    "to_deferred",
    "DeferredState",
    # Combinators
    "all_",
    "all_settled",
    "race",
    "any_",
    # Coroutines
    "async_function",
    "spawn",
    "Coroutine",
    "CoroutineState",
    "CoroutineStatus",
    "SuspendPoint",
    "get_current_coroutine",
    # Handler results and settlements
    "Value",
    "Chained",
    "Failed",
    "HandlerResult",
    "Fulfilled",
    "Rejected",
    "Settlement",
    # Scheduler and configuration
    "Scheduler",
    "SchedulerStats",
    "get_scheduler",
    "reset_scheduler",
    "configure",
    "RuntimeConfig",
    "RejectionPolicy",
    "set_unhandled_rejection_hook",
    "set_rejection_handled_hook",
    # Host entry
    "run",
    "settle",
    # asyncio bridge
    "from_future",
    "from_awaitable",
    "to_future",
    "delay",
    # Errors
    "DeferredError",
    "ChainingCycleError",
    "DeferredStateError",
    "UnhandledRejectionError",
    "PendingForeverError",
    "SchedulerError",
]
