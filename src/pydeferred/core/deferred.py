"""
Deferred - the settlement state machine and continuation registry.

A Deferred is a handle for a result not known yet. It starts PENDING and
settles exactly once, to FULFILLED (with a value) or REJECTED (with an
exception instance). The first settlement call wins; later calls are
no-ops.

Continuations:
Each registered continuation fires exactly once, in registration order.
A continuation registered on an already settled Deferred is scheduled on
the Scheduler, never invoked inline, so handlers always run after the
code that registered them.

Flattening:
A Deferred never holds another Deferred as its value. Fulfilling with a
Deferred (directly or by returning one from a handler) adopts that
Deferred's eventual settlement instead.

Example:
    ```python
    deferred, fulfill, reject = create()

    doubled = deferred.then(lambda v: v * 2)
    doubled.catch(lambda e: log.error(e))

    fulfill(21)  # drains: doubled is now fulfilled with 42
    ```
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from dataclasses import dataclass
from functools import partial
from types import TracebackType
from typing import Any, Generic, NamedTuple, TypeVar

from pydeferred.core.errors import ChainingCycleError, DeferredStateError
from pydeferred.core.outcome import Chained, Failed, Value, classify
from pydeferred.core.scheduler import Scheduler, get_scheduler
from pydeferred.models import DeferredState

__all__ = [
    "Continuation",
    "Deferred",
    "Resolvers",
    "create",
    "resolved",
    "rejected",
]

T = TypeVar("T")

OnFulfilled = Callable[[Any], Any]
OnRejected = Callable[[BaseException], Any]


@dataclass(frozen=True)
class Continuation:
    """
    A registered handler pair plus the Deferred it settles.

    Attributes:
        on_fulfilled: Called with the value (None passes the value through)
        on_rejected: Called with the error (None passes the error through)
        downstream: Deferred settled with the handler's outcome, or None for
            plain callbacks registered with add_callbacks()
    """

    on_fulfilled: OnFulfilled | None = None
    on_rejected: OnRejected | None = None
    downstream: Deferred | None = None


class Deferred(Generic[T]):
    """
    A value that settles later, exactly once.

    Usage:
        ```python
        d = Deferred()
        d.then(print)
        d.fulfill("ready")
        ```

    Attributes:
        label: Optional name shown in repr() and log messages
    """

    def __init__(self, scheduler: Scheduler | None = None, label: str | None = None):
        """
        Create a pending Deferred.

        Args:
            scheduler: Scheduler that runs its continuations (process-wide if omitted)
            label: Optional debugging name
        """
        self._scheduler = scheduler if scheduler is not None else get_scheduler()
        self.label = label
        self._state = DeferredState.PENDING
        self._result: Any = None
        # Traceback of the error as it was at rejection
        self._traceback: TracebackType | None = None
        self._continuations: list[Continuation] = []
        # Set by the first fulfill/reject, even while still pending on adoption
        self._locked = False

    # =========================================================================
    # Settlement triggers
    # =========================================================================

    def fulfill(self, value: Any = None) -> None:
        """
        Fulfill with a value, or adopt another Deferred's settlement.

        No-op if fulfill or reject was already called. Called by the host
        outside any turn, this drains the scheduler before returning.
        """
        with self._scheduler.host_turn():
            self._resolve(value)

    def reject(self, error: BaseException) -> None:
        """
        Reject with an error.

        No-op if fulfill or reject was already called. Called by the host
        outside any turn, this drains the scheduler before returning.

        Raises:
            TypeError: If error is not an exception instance
        """
        _check_error(error)
        with self._scheduler.host_turn():
            self._reject(error)

    def _resolve(self, value: Any) -> None:
        if self._locked:
            return
        self._locked = True

        if isinstance(value, Deferred):
            if value is self:
                self._settle(DeferredState.REJECTED, ChainingCycleError(self))
                return
            value.add_callbacks(
                partial(self._settle, DeferredState.FULFILLED),
                partial(self._settle, DeferredState.REJECTED),
            )
            return

        self._settle(DeferredState.FULFILLED, value)

    def _reject(self, error: BaseException) -> None:
        if self._locked:
            return
        self._locked = True
        self._settle(DeferredState.REJECTED, error)

    def _settle(self, state: DeferredState, result: Any) -> None:
        self._state = state
        self._result = result

        continuations, self._continuations = self._continuations, []
        if state is DeferredState.REJECTED:
            self._traceback = result.__traceback__
            self._scheduler.rejections.on_rejected(self, observed=bool(continuations))
        for continuation in continuations:
            self._schedule(continuation)

    # =========================================================================
    # Continuation registry
    # =========================================================================

    def register_continuation(
        self,
        on_fulfilled: OnFulfilled | None = None,
        on_rejected: OnRejected | None = None,
    ) -> Deferred:
        """
        Register a handler pair and get the Deferred it settles.

        The returned Deferred D':
        - fulfills with the handler's return value
        - adopts the handler's returned Deferred (flattening)
        - rejects with whatever the handler raises
        - takes this Deferred's settlement unchanged when the matching
          handler is None

        Handlers never run inline: on a settled Deferred they are
        scheduled, on a pending one they are stored.

        Args:
            on_fulfilled: Called with the value
            on_rejected: Called with the error

        Returns:
            The downstream Deferred D'
        """
        downstream: Deferred = Deferred(self._scheduler)
        self._add(Continuation(on_fulfilled, on_rejected, downstream))
        return downstream

    def add_callbacks(
        self,
        on_fulfilled: OnFulfilled | None = None,
        on_rejected: OnRejected | None = None,
    ) -> None:
        """
        Register plain callbacks with no downstream Deferred.

        Same ordering and scheduling guarantees as register_continuation,
        but return values are ignored and exceptions propagate to the
        scheduler (which logs them). Used by the coroutine driver and the
        join combinators; prefer then() in application code.
        """
        self._add(Continuation(on_fulfilled, on_rejected, None))

    def _add(self, continuation: Continuation) -> None:
        if self._state is DeferredState.PENDING:
            self._continuations.append(continuation)
            return
        if self._state is DeferredState.REJECTED:
            self._scheduler.rejections.on_observed(self)
        self._schedule(continuation)

    def _schedule(self, continuation: Continuation) -> None:
        self._scheduler.call_soon(partial(self._fire, continuation))

    def _fire(self, continuation: Continuation) -> None:
        fulfilled = self._state is DeferredState.FULFILLED
        handler = continuation.on_fulfilled if fulfilled else continuation.on_rejected
        downstream = continuation.downstream
        result = self._result if fulfilled else self._rejection()

        if handler is None:
            if downstream is None:
                return
            if fulfilled:
                downstream._resolve(result)
            else:
                downstream._reject(result)
            return

        if downstream is None:
            handler(result)
            return

        match classify(handler, result):
            case Value(value):
                downstream._resolve(value)
            case Chained(deferred) if deferred is downstream:
                downstream._reject(ChainingCycleError(downstream))
            case Chained(deferred):
                downstream._resolve(deferred)
            case Failed(error):
                downstream._reject(error)

    # =========================================================================
    # Chaining
    # =========================================================================

    def then(
        self,
        on_fulfilled: OnFulfilled | None = None,
        on_rejected: OnRejected | None = None,
    ) -> Deferred:
        """
        Chain a handler for the fulfilled branch (and optionally the rejected one).

        Example:
            ```python
            total = fetch_order().then(lambda order: order.total)
            ```
        """
        return self.register_continuation(on_fulfilled, on_rejected)

    def catch(self, on_rejected: OnRejected) -> Deferred:
        """
        Chain a handler for the rejected branch only.

        A fulfilled value passes through unchanged.
        """
        return self.register_continuation(None, on_rejected)

    def finally_(self, on_settled: Callable[[], Any]) -> Deferred:
        """
        Run a cleanup callback on either branch without changing the outcome.

        The callback takes no arguments. The returned Deferred settles like
        this one once the callback is done. If the callback returns a
        Deferred, forwarding waits for it to settle. If the callback raises
        (or its Deferred rejects), that error replaces the original outcome.

        Example:
            ```python
            query(conn).finally_(conn.close)
            ```
        """

        def on_fulfilled(value: Any) -> Any:
            cleanup = on_settled()
            if isinstance(cleanup, Deferred):
                return cleanup.then(lambda _: value)
            return value

        def on_rejected(error: BaseException) -> Deferred:
            cleanup = on_settled()
            if isinstance(cleanup, Deferred):
                return cleanup.then(lambda _: rejected(error, self._scheduler))
            return rejected(error, self._scheduler)

        return self.register_continuation(on_fulfilled, on_rejected)

    # =========================================================================
    # Suspension
    # =========================================================================

    def __await__(self) -> Generator[Deferred, Any, T]:
        """
        Suspend the awaiting coroutine until this Deferred settles.

        Yields the Deferred itself to the coroutine driver, which resumes
        the coroutine with the value or throws the error in at this point.
        Only meaningful inside a coroutine driven by spawn().
        """
        value = yield self
        return value

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def state(self) -> DeferredState:
        """Current settlement state."""
        return self._state

    @property
    def scheduler(self) -> Scheduler:
        """Scheduler that runs this Deferred's continuations."""
        return self._scheduler

    def is_pending(self) -> bool:
        return self._state is DeferredState.PENDING

    def is_fulfilled(self) -> bool:
        return self._state is DeferredState.FULFILLED

    def is_rejected(self) -> bool:
        return self._state is DeferredState.REJECTED

    def is_settled(self) -> bool:
        return self._state.is_settled

    def value(self) -> T:
        """
        Get the fulfillment value.

        Raises:
            DeferredStateError: If not fulfilled
        """
        if self._state is not DeferredState.FULFILLED:
            raise DeferredStateError(f"{self!r} has no value")
        return self._result

    def error(self) -> BaseException:
        """
        Get the rejection error.

        Raises:
            DeferredStateError: If not rejected
        """
        if self._state is not DeferredState.REJECTED:
            raise DeferredStateError(f"{self!r} has no error")
        return self._rejection()

    def _rejection(self) -> BaseException:
        # Every raise or throw() of the shared error appends frames to its
        # traceback, so each delivery starts again from the saved one.
        return self._result.with_traceback(self._traceback)

    def __repr__(self) -> str:
        """Readable representation for debugging."""
        name = f" {self.label!r}" if self.label else ""
        if self._state is DeferredState.FULFILLED:
            return f"<Deferred{name} fulfilled value={self._result!r}>"
        if self._state is DeferredState.REJECTED:
            return f"<Deferred{name} rejected error={type(self._result).__name__}>"
        return f"<Deferred{name} pending continuations={len(self._continuations)}>"


# =============================================================================
# Constructors
# =============================================================================


class Resolvers(NamedTuple):
    """A pending Deferred and its two one-shot triggers."""

    deferred: Deferred
    fulfill: Callable[..., None]
    reject: Callable[[BaseException], None]


def create(label: str | None = None, scheduler: Scheduler | None = None) -> Resolvers:
    """
    Create a pending Deferred plus its fulfill and reject triggers.

    Example:
        ```python
        deferred, fulfill, reject = create()
        start_download(on_done=fulfill, on_error=reject)
        return deferred
        ```
    """
    deferred: Deferred = Deferred(scheduler, label=label)
    return Resolvers(deferred, deferred.fulfill, deferred.reject)


def resolved(value: Any = None, scheduler: Scheduler | None = None) -> Deferred:
    """
    Get a Deferred already fulfilled with value.

    A Deferred argument is returned as-is.
    """
    if isinstance(value, Deferred):
        return value
    deferred: Deferred = Deferred(scheduler)
    deferred._resolve(value)
    return deferred


def rejected(error: BaseException, scheduler: Scheduler | None = None) -> Deferred:
    """
    Get a Deferred already rejected with error.

    Raises:
        TypeError: If error is not an exception instance
    """
    _check_error(error)
    deferred: Deferred = Deferred(scheduler)
    deferred._reject(error)
    return deferred


def _check_error(error: Any) -> None:
    if not isinstance(error, BaseException):
        raise TypeError(
            f"Deferreds reject with exception instances, got {type(error).__name__}"
        )
