"""
Handler results and settlement records.

This module defines two small union types used throughout the core.

HandlerResult: what a continuation handler produced.
    - Value(value): returned a plain value
    - Chained(deferred): returned another Deferred, which must be adopted
    - Failed(error): raised

Settlement: how a Deferred ended.
    - Fulfilled(value)
    - Rejected(error)

**Design Pattern**: State Machine using Union types

Dynamic dispatch on the shape of a handler's return value is made
explicit: classify() runs the handler once and the caller branches on the
variant instead of re-inspecting the value.

Example:
    ```python
    match classify(handler, value):
        case Value(v):
            downstream.fulfill(v)
        case Chained(other):
            adopt(downstream, other)
        case Failed(error):
            downstream.reject(error)
    ```
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from types import TracebackType
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from pydeferred.core.deferred import Deferred

__all__ = [
    "Value",
    "Chained",
    "Failed",
    "HandlerResult",
    "classify",
    "HOST_EXCEPTIONS",
    "is_value",
    "is_chained",
    "is_failed",
    "Fulfilled",
    "Rejected",
    "Settlement",
]

T = TypeVar("T")

# Raised at the host, never turned into a rejection. asyncio.CancelledError
# is a BaseException too, but it is an ordinary rejection here.
HOST_EXCEPTIONS = (KeyboardInterrupt, SystemExit)


# =============================================================================
# Handler results
# =============================================================================


@dataclass(frozen=True)
class Value(Generic[T]):
    """Handler returned a plain value."""

    value: T


@dataclass(frozen=True)
class Chained:
    """Handler returned a Deferred; the downstream adopts its settlement."""

    deferred: Deferred


@dataclass(frozen=True)
class Failed:
    """Handler raised."""

    error: BaseException


HandlerResult = Value[Any] | Chained | Failed


def classify(handler: Callable[[Any], Any], argument: Any) -> HandlerResult:
    """
    Run a handler and tag what it produced.

    Exceptions raised by the handler are captured as Failed, never
    propagated. HOST_EXCEPTIONS (KeyboardInterrupt, SystemExit) are not
    captured: they belong to the host.

    Args:
        handler: Continuation handler taking one argument
        argument: Fulfillment value or rejection error

    Returns:
        Value, Chained or Failed
    """
    from pydeferred.core.deferred import Deferred

    try:
        result = handler(argument)
    except HOST_EXCEPTIONS:
        raise
    except BaseException as e:
        return Failed(e)

    if isinstance(result, Deferred):
        return Chained(result)
    return Value(result)


def is_value(result: HandlerResult) -> bool:
    """Type guard for Value."""
    return isinstance(result, Value)


def is_chained(result: HandlerResult) -> bool:
    """Type guard for Chained."""
    return isinstance(result, Chained)


def is_failed(result: HandlerResult) -> bool:
    """Type guard for Failed."""
    return isinstance(result, Failed)


# =============================================================================
# Settlement records
# =============================================================================


@dataclass(frozen=True)
class Fulfilled(Generic[T]):
    """
    A Deferred settled with a value.

    Used by all_settled() and settle() to report outcomes without raising.
    """

    value: T

    def is_success(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Return the value."""
        return self.value

    def __str__(self) -> str:
        return f"Fulfilled({self.value!r})"


@dataclass(frozen=True)
class Rejected:
    """
    A Deferred settled with an error.

    The error's traceback is captured at construction, so unwrap() can be
    called any number of times without growing it.
    """

    error: BaseException
    traceback: TracebackType | None = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.traceback is None:
            object.__setattr__(self, "traceback", self.error.__traceback__)

    def is_success(self) -> bool:
        return False

    def unwrap(self) -> Any:
        """Raise the error."""
        raise self.error.with_traceback(self.traceback)

    def __str__(self) -> str:
        return f"Rejected({type(self.error).__name__}: {self.error})"


Settlement = Fulfilled[Any] | Rejected
