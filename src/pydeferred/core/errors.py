"""Exceptions raised by the deferred execution core.

None of these wrap user errors. A rejection always carries the exact
exception object that was raised or passed to reject(); these types only
describe misuse of the core itself or host-level reports.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pydeferred.core.deferred import Deferred

__all__ = [
    "DeferredError",
    "ChainingCycleError",
    "DeferredStateError",
    "UnhandledRejectionError",
    "PendingForeverError",
    "SchedulerError",
]


class DeferredError(Exception):
    """Base class for errors raised by pydeferred itself."""


class ChainingCycleError(DeferredError, TypeError):
    """
    A Deferred was asked to adopt its own settlement.

    Raised (as a rejection) when a handler returns the Deferred it is
    supposed to settle, when fulfill() is called with the Deferred itself,
    or when a coroutine awaits its own result.
    """

    def __init__(self, deferred: Deferred):
        super().__init__(f"Chaining cycle detected for {deferred!r}")
        self.deferred = deferred


class DeferredStateError(DeferredError):
    """Introspection asked for a value or error the Deferred does not hold."""


class UnhandledRejectionError(DeferredError):
    """
    A rejected Deferred reached the end of a drain pass unobserved.

    Only raised under RejectionPolicy.STRICT. The original error is kept
    as-is in ``error`` and set as ``__cause__``.

    Attributes:
        deferred: The rejected Deferred nobody observed
        error: Its rejection error
    """

    def __init__(self, deferred: Deferred, error: BaseException):
        super().__init__(f"Unhandled rejection in {deferred!r}: {type(error).__name__}: {error}")
        self.deferred = deferred
        self.error = error
        self.__cause__ = error


class PendingForeverError(DeferredError):
    """
    run() drained the scheduler but the entry Deferred is still pending.

    Nothing left in the queue can settle it, so waiting longer cannot help
    without an external producer driving it.
    """


class SchedulerError(DeferredError):
    """
    Drain pass aborted.

    From Dave Cheney: "Errors are values"
    Custom exception with context, not generic Exception.
    """
