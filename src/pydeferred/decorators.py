"""
Decorators for deferred-returning functions.

@async_function turns a generator function or an ``async def`` function
into a function returning a Deferred. Calling it runs the body up to its
first suspension point (or to completion) and returns the invocation's
Deferred; nothing the body raises escapes the call, and neither does a
TypeError from binding bad arguments.

Design: the decorator only builds the coroutine object and hands it to
spawn(). Everything about suspension and resumption lives in the driver.
"""

from __future__ import annotations

import functools
import inspect
from collections.abc import Callable
from typing import Any

from pydeferred.core.deferred import Deferred, rejected
from pydeferred.core.outcome import HOST_EXCEPTIONS
from pydeferred.core.scheduler import Scheduler
from pydeferred.executor.coroutine import spawn

__all__ = ["async_function", "is_async_function"]


def async_function(
    func: Callable[..., Any] | None = None,
    *,
    scheduler: Scheduler | None = None,
) -> Any:
    """
    Make each call of a generator or ``async def`` function return a Deferred.

    Args:
        func: The function to decorate
        scheduler: Scheduler to drive invocations on (process-wide if omitted)

    Raises:
        TypeError: If func is neither a generator function nor a
            coroutine function

    Example:
        ```python
        @async_function
        def checkout(cart):
            stock = yield reserve(cart.items)      # Deferred
            try:
                receipt = yield charge(cart.total)
            except PaymentDeclined:
                yield release(stock)
                raise
            return receipt

        @async_function
        async def refund(order):
            payment = await lookup_payment(order)
            return await reverse(payment)

        @async_function(scheduler=test_scheduler)
        def isolated():
            return (yield 1) + 1
        ```
    """

    def decorator(f: Callable[..., Any]) -> Callable[..., Deferred]:
        if not (inspect.isgeneratorfunction(f) or inspect.iscoroutinefunction(f)):
            raise TypeError(
                f"@async_function needs a generator function or an async def function, "
                f"got {f!r}"
            )

        @functools.wraps(f)
        def wrapper(*args: Any, **kwargs: Any) -> Deferred:
            try:
                coro = f(*args, **kwargs)
            except HOST_EXCEPTIONS:
                raise
            except BaseException as e:
                # Argument binding failed before the body could run
                return rejected(e, scheduler)
            return spawn(coro, scheduler)

        wrapper._is_async_function = True  # type: ignore[attr-defined]
        return wrapper

    if func is None:
        return decorator
    return decorator(func)


def is_async_function(func: Any) -> bool:
    """Check if func was decorated with @async_function."""
    return getattr(func, "_is_async_function", False)
