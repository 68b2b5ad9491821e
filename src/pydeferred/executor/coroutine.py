"""
Coroutine driver - runs a generator or native coroutine on Deferreds.

A spawned coroutine runs in segments. Each segment starts at a resume
(or the very beginning) and ends at the next suspension point, a raise,
or a return. Between segments the coroutine is parked on a Python frame
and the driver holds one continuation on the Deferred it awaits.

Suspension points:
- generator functions: ``value = yield expr``
- native coroutines: ``value = await expr`` where expr is a Deferred
  (Deferred.__await__ yields itself to the driver) or an asyncio future

Either way the driver receives the awaited object, normalizes it with
to_deferred(), and registers _resume/_fail on it. A fulfillment resumes
with send(value); a rejection resumes with throw(error), so the error
surfaces at the suspension point and unwinds through the coroutine's own
try/except exactly like a synchronous raise.

Unification:
Both error origins end up in the same place. A raise inside a segment
that the coroutine does not catch rejects the invocation's Deferred with
that exact exception object; so does a rejection thrown in at a
suspension point and not caught there. Only HOST_EXCEPTIONS escape.

Example:
    ```python
    def transfer(source, target, amount):
        balance = yield source.balance()
        if balance < amount:
            raise InsufficientFunds(source)
        yield source.withdraw(amount)
        return (yield target.deposit(amount))

    receipt = spawn(transfer(a, b, 100))   # a Deferred
    ```
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Coroutine as NativeCoroutine, Generator
from functools import partial
from typing import Any

from pydeferred.core.context import CURRENT_COROUTINE
from pydeferred.core.deferred import Deferred
from pydeferred.core.errors import ChainingCycleError
from pydeferred.core.outcome import HOST_EXCEPTIONS
from pydeferred.core.scheduler import Scheduler, get_scheduler
from pydeferred.executor.coroutine_state import CoroutineState
from pydeferred.models import CoroutineStatus

logger = logging.getLogger(__name__)

__all__ = ["Coroutine", "spawn", "is_coroutine_like"]

Resumable = Generator[Any, Any, Any] | NativeCoroutine[Any, Any, Any]


def is_coroutine_like(obj: Any) -> bool:
    """Check if obj is a generator object or a native coroutine object."""
    return inspect.isgenerator(obj) or inspect.iscoroutine(obj)


class Coroutine:
    """
    Driver for one coroutine invocation.

    Owns the invocation's result Deferred and its CoroutineState. The
    driver never blocks and never runs a segment except from start() or
    from a continuation fired by the Scheduler.

    Attributes:
        result: Deferred settled with the coroutine's return value or error
        state: Inspectable CoroutineState
    """

    def __init__(self, coro: Resumable, scheduler: Scheduler | None = None):
        """
        Wrap a coroutine object without starting it.

        Args:
            coro: Generator object or native coroutine object
            scheduler: Scheduler for the result and continuations

        Raises:
            TypeError: If coro is neither a generator nor a coroutine
        """
        if not is_coroutine_like(coro):
            raise TypeError(
                f"spawn() needs a generator or coroutine object, got {type(coro).__name__}"
            )
        self._coro = coro
        self._scheduler = scheduler if scheduler is not None else get_scheduler()
        name = getattr(coro, "__qualname__", type(coro).__name__)
        self.state = CoroutineState(name=name)
        self.result: Deferred = Deferred(self._scheduler, label=name)

    def start(self) -> Deferred:
        """
        Run the first segment synchronously and return the result Deferred.

        Nothing raised by the coroutine body escapes (HOST_EXCEPTIONS
        aside); it becomes the rejection of the result.
        """
        if self.state.status is not CoroutineStatus.CREATED:
            raise RuntimeError(f"{self.state!r} was already started")
        logger.debug(f"Starting coroutine {self.state.name} ({self.state.invocation_id})")
        self._step(self._coro.send, None)
        return self.result

    # =========================================================================
    # Segments
    # =========================================================================

    def _resume(self, value: Any) -> None:
        self._step(self._coro.send, value)

    def _fail(self, error: BaseException) -> None:
        self._step(self._coro.throw, error)

    def _step(self, advance: Callable[[Any], Any], argument: Any) -> None:
        self.state.record_resumption()
        token = CURRENT_COROUTINE.set(self.state)
        try:
            awaited = advance(argument)
        except StopIteration as stop:
            self.state.record_exit(CoroutineStatus.COMPLETED)
            # Private trigger: completing inside start() must not drain
            self.result._resolve(stop.value)
            return
        except HOST_EXCEPTIONS:
            self.state.record_exit(CoroutineStatus.FAILED)
            raise
        except BaseException as e:
            self.state.record_exit(CoroutineStatus.FAILED)
            logger.debug(f"Coroutine {self.state.name} raised {type(e).__name__}: {e}")
            self.result._reject(e)
            return
        finally:
            CURRENT_COROUTINE.reset(token)

        self._suspend(awaited)

    def _suspend(self, awaited: Any) -> None:
        from pydeferred.executor.combinators import to_deferred

        try:
            deferred = to_deferred(awaited, self._scheduler)
        except HOST_EXCEPTIONS:
            raise
        except BaseException as e:
            # Normalizing the awaited value failed: deliver it at the
            # suspension point like any other rejection.
            self.state.record_suspension(self._frame(), None)
            self._scheduler.call_soon(partial(self._fail, e))
            return

        point = self.state.record_suspension(self._frame(), deferred)
        logger.debug(f"Coroutine {self.state.name} suspended at {point} on {deferred!r}")

        if deferred is self.result:
            self._scheduler.call_soon(partial(self._fail, ChainingCycleError(deferred)))
            return
        deferred.add_callbacks(self._resume, self._fail)

    def _frame(self) -> Any:
        if inspect.isgenerator(self._coro):
            return self._coro.gi_frame
        return self._coro.cr_frame

    def __repr__(self) -> str:
        return f"Coroutine(state={self.state!r}, result={self.result!r})"


def spawn(coro: Resumable, scheduler: Scheduler | None = None) -> Deferred:
    """
    Start driving a coroutine object; return its result Deferred.

    The first segment runs before spawn() returns. Continuations it
    schedules (for example, resuming after awaiting an already fulfilled
    Deferred) run when the current turn ends, or on the next drain when
    called outside any turn.

    Args:
        coro: Generator object or native coroutine object
        scheduler: Scheduler to use (process-wide if omitted)

    Returns:
        Deferred for the coroutine's return value

    Raises:
        TypeError: If coro is neither a generator nor a coroutine
    """
    return Coroutine(coro, scheduler).start()
