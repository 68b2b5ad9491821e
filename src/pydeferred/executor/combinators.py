"""
Join combinators over Deferreds.

Each combinator builds one aggregate Deferred and makes one internal
subscription (add_callbacks, no downstream) per input. Inputs are
normalized first, so plain values, coroutine objects and asyncio futures
can be mixed with Deferreds.

Tie-breaking:
"First" always means first in real settlement order, as seen by the
Scheduler firing the subscriptions, never first by position in the input.
Once the aggregate settles, later input settlements are ignored.

| Combinator    | Fulfills with                   | Rejects with                 |
|---------------|---------------------------------|------------------------------|
| all_()        | list of values, input order     | first rejection              |
| all_settled() | list of Fulfilled/Rejected      | never                        |
| race()        | first fulfillment               | first rejection              |
| any_()        | first fulfillment               | ExceptionGroup of all errors |
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

from pydeferred.core.deferred import Deferred, rejected, resolved
from pydeferred.core.outcome import Fulfilled, Rejected, Settlement
from pydeferred.core.scheduler import Scheduler

logger = logging.getLogger(__name__)

__all__ = [
    "to_deferred",
    "all_",
    "all_settled",
    "race",
    "any_",
    "resolved",
    "rejected",
]


def to_deferred(value: Any, scheduler: Scheduler | None = None) -> Deferred:
    """
    Normalize anything awaitable-ish to a Deferred.

    - a Deferred is returned as-is
    - a generator or coroutine object is spawned
    - an asyncio future is bridged (from_future)
    - anything else is wrapped as already fulfilled

    Example:
        ```python
        to_deferred(42).then(print)          # prints 42 on the next drain
        to_deferred(fetch_user(7))           # spawns the coroutine
        ```
    """
    from pydeferred.executor.coroutine import is_coroutine_like, spawn

    if isinstance(value, Deferred):
        return value
    if is_coroutine_like(value):
        return spawn(value, scheduler)
    if asyncio.isfuture(value):
        from pydeferred.executor.bridge import from_future

        return from_future(value, scheduler)
    return resolved(value, scheduler)


def _normalize(inputs: Iterable[Any], scheduler: Scheduler | None) -> list[Deferred]:
    return [to_deferred(item, scheduler) for item in inputs]


def all_(inputs: Iterable[Any], scheduler: Scheduler | None = None) -> Deferred:
    """
    Wait for every input; fulfill with their values in input order.

    The first input to settle rejected rejects the aggregate with its
    error, whatever its position. No partial list of fulfilled values is
    ever delivered. An empty input fulfills with [].

    Example:
        ```python
        all_([fetch(a), fetch(b), 3]).then(lambda values: sum(values))
        ```
    """
    deferreds = _normalize(inputs, scheduler)
    aggregate: Deferred = Deferred(scheduler, label="all")
    if not deferreds:
        aggregate._resolve([])
        return aggregate

    slots: list[Any] = [None] * len(deferreds)
    remaining = len(deferreds)

    def on_fulfilled(index: int, value: Any) -> None:
        nonlocal remaining
        if aggregate._locked:
            return
        slots[index] = value
        remaining -= 1
        if remaining == 0:
            aggregate._resolve(slots)

    def on_rejected(error: BaseException) -> None:
        aggregate._reject(error)

    for index, deferred in enumerate(deferreds):
        deferred.add_callbacks(
            lambda value, index=index: on_fulfilled(index, value),
            on_rejected,
        )
    return aggregate


def all_settled(inputs: Iterable[Any], scheduler: Scheduler | None = None) -> Deferred:
    """
    Wait for every input to settle; never reject.

    Fulfills with a list of Fulfilled/Rejected records in input order.
    Every input's rejection counts as observed.
    """
    deferreds = _normalize(inputs, scheduler)
    aggregate: Deferred = Deferred(scheduler, label="all_settled")
    if not deferreds:
        aggregate._resolve([])
        return aggregate

    slots: list[Settlement | None] = [None] * len(deferreds)
    remaining = len(deferreds)

    def record(index: int, settlement: Settlement) -> None:
        nonlocal remaining
        slots[index] = settlement
        remaining -= 1
        if remaining == 0:
            aggregate._resolve(slots)

    for index, deferred in enumerate(deferreds):
        deferred.add_callbacks(
            lambda value, index=index: record(index, Fulfilled(value)),
            lambda error, index=index: record(index, Rejected(error)),
        )
    return aggregate


def race(inputs: Iterable[Any], scheduler: Scheduler | None = None) -> Deferred:
    """
    Settle like whichever input settles first.

    Building block for timeouts, with the timer supplied by the host:

        race([fetch(url), delay(5.0).then(lambda _: rejected(TimeoutError(url)))])

    An empty input never settles.
    """
    deferreds = _normalize(inputs, scheduler)
    aggregate: Deferred = Deferred(scheduler, label="race")
    if not deferreds:
        logger.debug("race() called with no inputs; the result stays pending")
    for deferred in deferreds:
        deferred.add_callbacks(aggregate._resolve, aggregate._reject)
    return aggregate


def any_(inputs: Iterable[Any], scheduler: Scheduler | None = None) -> Deferred:
    """
    Fulfill with the first input to fulfill.

    If every input rejects, reject with an ExceptionGroup holding the
    errors in input order. An empty input rejects with ValueError (an
    exception group cannot be empty).
    """
    deferreds = _normalize(inputs, scheduler)
    aggregate: Deferred = Deferred(scheduler, label="any")
    if not deferreds:
        aggregate._reject(ValueError("any_() needs at least one input"))
        return aggregate

    errors: list[BaseException | None] = [None] * len(deferreds)
    remaining = len(deferreds)

    def on_rejected(index: int, error: BaseException) -> None:
        nonlocal remaining
        errors[index] = error
        remaining -= 1
        if remaining == 0:
            collected = [e for e in errors if e is not None]
            aggregate._reject(BaseExceptionGroup("every input rejected", collected))

    for index, deferred in enumerate(deferreds):
        deferred.add_callbacks(
            aggregate._resolve,
            lambda error, index=index: on_rejected(index, error),
        )
    return aggregate
