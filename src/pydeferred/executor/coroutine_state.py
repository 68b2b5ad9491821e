"""
CoroutineState - the resumable record of one coroutine invocation.

A spawned coroutine is suspended on a Python frame (the generator's
gi_frame or the native coroutine's cr_frame). The frame already holds the
resume position and every captured local; this record mirrors the parts
worth inspecting from outside: where the coroutine stopped, what it was
holding, and what it is waiting for.

Design principles:
- Mutable: the driver updates the one record per invocation in place
- Snapshot fields (bindings, suspend_point) describe the LAST suspension
- Identity (invocation_id, name) never changes after creation
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import FrameType
from typing import TYPE_CHECKING, Any

import xxhash
from uuid_extensions import uuid7

from pydeferred.models import CoroutineStatus

if TYPE_CHECKING:
    from pydeferred.core.deferred import Deferred

__all__ = ["SuspendPoint", "CoroutineState", "location_key"]


def location_key(name: str, lineno: int) -> int:
    """
    Stable key for a suspension point in source.

    Same function and line give the same key across runs and processes,
    unlike hash(), which is salted per process.

    Args:
        name: Qualified name of the coroutine function
        lineno: Source line of the suspension point

    Returns:
        31-bit non-negative integer
    """
    return xxhash.xxh64(f"{name}:{lineno}".encode()).intdigest() & 0x7FFFFFFF


@dataclass(frozen=True)
class SuspendPoint:
    """
    Where a coroutine stopped.

    Attributes:
        position: Ordinal of this suspension within the invocation (1-based)
        lineno: Source line of the yield/await, if the frame is still alive
        key: location_key(name, lineno), shared by every invocation that
            stops at the same line
    """

    position: int
    lineno: int | None
    key: int | None

    def __str__(self) -> str:
        return f"SuspendPoint(position={self.position}, line={self.lineno})"


@dataclass
class CoroutineState:
    """
    Inspectable state of one spawned coroutine.

    Attributes:
        name: Qualified name of the coroutine function
        invocation_id: uuid7 string, time-ordered across invocations
        status: Lifecycle status
        position: Suspensions so far
        suspend_point: Last suspension point (None before the first)
        bindings: Snapshot of frame locals taken at the last suspension
        awaiting: Deferred the coroutine is suspended on (None while running)
    """

    name: str
    invocation_id: str = field(default_factory=lambda: str(uuid7()))
    status: CoroutineStatus = CoroutineStatus.CREATED
    position: int = 0
    suspend_point: SuspendPoint | None = None
    bindings: dict[str, Any] = field(default_factory=dict)
    awaiting: Deferred | None = None

    def record_suspension(
        self, frame: FrameType | None, awaiting: Deferred | None
    ) -> SuspendPoint:
        """
        Record a suspension on awaiting, taken at frame.

        Args:
            frame: The suspended frame (None if the runtime dropped it)
            awaiting: Deferred the coroutine now waits on (None if the awaited
                value could not be turned into one)

        Returns:
            The new suspend point
        """
        self.position += 1
        lineno = frame.f_lineno if frame is not None else None
        point = SuspendPoint(
            position=self.position,
            lineno=lineno,
            key=location_key(self.name, lineno) if lineno is not None else None,
        )
        self.suspend_point = point
        self.bindings = dict(frame.f_locals) if frame is not None else {}
        self.awaiting = awaiting
        self.status = CoroutineStatus.SUSPENDED
        return point

    def record_resumption(self) -> None:
        """Mark the coroutine running again."""
        self.awaiting = None
        self.status = CoroutineStatus.RUNNING

    def record_exit(self, status: CoroutineStatus) -> None:
        """Mark the coroutine finished (COMPLETED or FAILED)."""
        self.awaiting = None
        self.status = status

    def __repr__(self) -> str:
        return (
            f"CoroutineState(name={self.name!r}, status={self.status}, "
            f"position={self.position})"
        )
