"""
Core types for the pydeferred execution engine.

This module contains the fundamental pieces everything else builds on:
- Deferred: settle-once value with an ordered continuation registry
- Scheduler: FIFO continuation queue, drained per turn
- RejectionTracker: unhandled-rejection bookkeeping per Scheduler
- HandlerResult: Value / Chained / Failed tagged handler outcomes
- Settlement: Fulfilled / Rejected records
- errors: DeferredError hierarchy
- context: the coroutine currently being driven
"""

from pydeferred.core.context import CURRENT_COROUTINE, get_current_coroutine
from pydeferred.core.deferred import (
    Continuation,
    Deferred,
    Resolvers,
    create,
    rejected,
    resolved,
)
from pydeferred.core.errors import (
    ChainingCycleError,
    DeferredError,
    DeferredStateError,
    PendingForeverError,
    SchedulerError,
    UnhandledRejectionError,
)
from pydeferred.core.outcome import (
    HOST_EXCEPTIONS,
    Chained,
    Failed,
    Fulfilled,
    HandlerResult,
    Rejected,
    Settlement,
    Value,
    classify,
    is_chained,
    is_failed,
    is_value,
)
from pydeferred.core.scheduler import (
    Scheduler,
    SchedulerStats,
    configure,
    get_scheduler,
    reset_scheduler,
    set_rejection_handled_hook,
    set_unhandled_rejection_hook,
)
from pydeferred.core.tracking import RejectionHook, RejectionTracker

__all__ = [
    # Deferred
    "Deferred",
    "Continuation",
    "Resolvers",
    "create",
    "resolved",
    "rejected",
    # Scheduler
    "Scheduler",
    "SchedulerStats",
    "get_scheduler",
    "reset_scheduler",
    "configure",
    "set_unhandled_rejection_hook",
    "set_rejection_handled_hook",
    "RejectionHook",
    "RejectionTracker",
    # Handler results
    "Value",
    "Chained",
    "Failed",
    "HandlerResult",
    "classify",
    "is_value",
    "is_chained",
    "is_failed",
    "HOST_EXCEPTIONS",
    # Settlement records
    "Fulfilled",
    "Rejected",
    "Settlement",
    # Errors
    "DeferredError",
    "ChainingCycleError",
    "DeferredStateError",
    "UnhandledRejectionError",
    "PendingForeverError",
    "SchedulerError",
    # Context
    "CURRENT_COROUTINE",
    "get_current_coroutine",
]
