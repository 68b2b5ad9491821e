"""
Status enums for deferred values and coroutine invocations.

Following Dave Cheney's principle: "Make zero values useful"
The first member of each enum is the initial state.
"""

from enum import Enum


class DeferredState(Enum):
    """
    Settlement state of a Deferred.

    Lifecycle:
    PENDING → FULFILLED
    PENDING → REJECTED

    There is no transition out of FULFILLED or REJECTED. The first
    settlement call wins and every later one is a no-op.
    """

    PENDING = "PENDING"
    """No result yet. Continuations registered now are stored."""

    FULFILLED = "FULFILLED"
    """Settled with a value."""

    REJECTED = "REJECTED"
    """Settled with an error (an exception instance)."""

    @property
    def is_settled(self) -> bool:
        """Check if this state is terminal."""
        return self is not DeferredState.PENDING

    def __str__(self) -> str:
        return self.value


class CoroutineStatus(Enum):
    """
    Status of a coroutine invocation driven by the scheduler.

    Lifecycle:
    CREATED → RUNNING → SUSPENDED → RUNNING → ... → COMPLETED/FAILED

    A coroutine is RUNNING only while one of its segments executes
    synchronously. Between segments it is SUSPENDED on a Deferred.
    """

    CREATED = "CREATED"
    """Invocation record built, first segment not started."""

    RUNNING = "RUNNING"
    """A segment is executing right now."""

    SUSPENDED = "SUSPENDED"
    """Waiting for the awaited Deferred to settle."""

    COMPLETED = "COMPLETED"
    """Returned normally; its Deferred is fulfilled (or adopting)."""

    FAILED = "FAILED"
    """Raised out of its body; its Deferred is rejected."""

    @property
    def is_terminal(self) -> bool:
        """Check if this status is terminal (no more segments will run)."""
        return self in (CoroutineStatus.COMPLETED, CoroutineStatus.FAILED)

    def __str__(self) -> str:
        return self.value
