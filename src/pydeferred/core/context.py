"""Task-local record of the coroutine currently being driven.

The coroutine driver sets CURRENT_COROUTINE around each segment it runs
(from one suspension point to the next). Code running inside the segment,
including helpers that know nothing about the driver, can look up which
invocation it belongs to.

Design: Task-Local State (contextvars)
    A segment is always run synchronously by the driver, so the variable
    is set and reset in the same frame. Nested spawns inside a segment see
    their own state, and the outer one again once they suspend.
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pydeferred.executor.coroutine_state import CoroutineState

__all__ = ["CURRENT_COROUTINE", "get_current_coroutine"]


CURRENT_COROUTINE: ContextVar[CoroutineState | None] = ContextVar(
    "current_coroutine", default=None
)
"""State of the coroutine whose segment is executing, or None.

Usage:
    ```python
    token = CURRENT_COROUTINE.set(state)
    try:
        coro.send(value)
    finally:
        CURRENT_COROUTINE.reset(token)
    ```
"""


def get_current_coroutine() -> CoroutineState | None:
    """Get the state of the running coroutine.

    Returns:
        CoroutineState while a spawned coroutine's segment executes,
        None otherwise (including inside plain then() handlers)

    Usage:
        state = get_current_coroutine()
        if state is not None:
            logger.debug(f"{state.name} at position {state.position}")
    """
    return CURRENT_COROUTINE.get()
