"""
Scheduler - FIFO queue of continuations, drained to exhaustion.

Design Principle: Single Responsibility (SOLID)
Scheduler has ONE job: run scheduled actions in order.
It does NOT decide what to schedule (that's Deferred's job).

Model:
- call_soon(action) appends a zero-argument action to the queue
- drain() runs actions until the queue is empty, including actions
  enqueued while the pass runs
- at most one action runs at a time; a drain() called from inside a
  running pass is a no-op, so passes never interleave

Turns:
A turn is one unit of host-driven synchronous work. Actions scheduled
during a turn run when the outermost turn exits. Settlement triggers
(fulfill/reject) called by the host outside any turn open their own
turn, so the queue is drained before control returns to the caller.
Registering a continuation never opens a turn.

Process lifetime:
One Scheduler per process, created on first use by get_scheduler() and
replaced by reset_scheduler() (tests do this between runs). Its hooks
are torn down at interpreter exit.
"""

from __future__ import annotations

import atexit
import logging
from collections import deque
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager, nullcontext
from dataclasses import dataclass
from typing import Any

from pydeferred.core.errors import SchedulerError
from pydeferred.core.tracking import RejectionHook, RejectionTracker
from pydeferred.models import RuntimeConfig

logger = logging.getLogger(__name__)

__all__ = [
    "Action",
    "Scheduler",
    "SchedulerStats",
    "get_scheduler",
    "reset_scheduler",
    "configure",
    "set_unhandled_rejection_hook",
    "set_rejection_handled_hook",
]

Action = Callable[[], Any]


@dataclass
class SchedulerStats:
    """
    Counters for a Scheduler since creation or the last reset().

    Attributes:
        passes: Drain passes that ran at least one action
        actions_run: Actions executed across all passes
        failed_actions: Actions that raised (logged and skipped)
        max_queue_depth: Largest queue length observed at enqueue time
    """

    passes: int = 0
    actions_run: int = 0
    failed_actions: int = 0
    max_queue_depth: int = 0


class Scheduler:
    """
    Single-threaded cooperative continuation scheduler.

    Usage:
        scheduler = get_scheduler()

        with scheduler.turn():
            d = resolved(1)
            d.then(print)      # queued, not run
        # turn exit drained the queue: prints 1

        # Or drive it explicitly
        scheduler.call_soon(lambda: print("hello"))
        scheduler.drain()
    """

    def __init__(self, config: RuntimeConfig | None = None):
        """
        Initialize an empty scheduler.

        Args:
            config: Runtime configuration (RuntimeConfig.DEFAULT if omitted)
        """
        self._config = config if config is not None else RuntimeConfig.DEFAULT
        self._queue: deque[Action] = deque()
        self._draining = False
        self._turn_depth = 0
        self.stats = SchedulerStats()
        self.rejections = RejectionTracker(self)

    # =========================================================================
    # Configuration
    # =========================================================================

    @property
    def config(self) -> RuntimeConfig:
        """Current runtime configuration."""
        return self._config

    def configure(self, config: RuntimeConfig) -> None:
        """Replace the runtime configuration. Takes effect on the next pass."""
        self._config = config

    # =========================================================================
    # Queue
    # =========================================================================

    def call_soon(self, action: Action) -> None:
        """
        Append an action to the FIFO queue.

        Never runs anything; the action runs in the current or next
        drain pass, after every action queued before it.
        """
        self._queue.append(action)
        depth = len(self._queue)
        if depth > self.stats.max_queue_depth:
            self.stats.max_queue_depth = depth

    @property
    def pending(self) -> int:
        """Number of queued actions."""
        return len(self._queue)

    @property
    def is_draining(self) -> bool:
        """True while a drain pass is running."""
        return self._draining

    @property
    def in_turn(self) -> bool:
        """True while inside at least one turn."""
        return self._turn_depth > 0

    @property
    def is_idle(self) -> bool:
        """True when neither draining nor inside a turn."""
        return not self._draining and self._turn_depth == 0

    def drain(self) -> int:
        """
        Run queued actions to exhaustion.

        Actions enqueued during the pass run in the same pass. When the
        queue empties, unhandled rejections are reported; if reporting
        schedules more work (a hook attaching a handler), the pass keeps
        going until both the queue and the report list are empty.

        An action raising an Exception is logged and skipped. The pass
        continues with the next action.

        Returns:
            Number of actions run (0 if a pass was already running)

        Raises:
            SchedulerError: If config.drain_limit actions ran and the queue
                is still not empty (remaining actions stay queued)
            UnhandledRejectionError: Under RejectionPolicy.STRICT
        """
        if self._draining:
            return 0

        self._draining = True
        ran = 0
        limit = self._config.drain_limit
        try:
            while True:
                while self._queue:
                    if limit is not None and ran >= limit:
                        raise SchedulerError(
                            f"Drain pass exceeded drain_limit={limit} "
                            f"({len(self._queue)} actions still queued)"
                        )
                    action = self._queue.popleft()
                    ran += 1
                    try:
                        action()
                    except Exception:
                        self.stats.failed_actions += 1
                        logger.exception(f"Scheduled action {action!r} raised")

                self.rejections.flush()
                if not self._queue:
                    break
        finally:
            self._draining = False
            self.stats.actions_run += ran
            if ran:
                self.stats.passes += 1

        if ran:
            logger.debug(f"Drain pass complete: {ran} actions")
        return ran

    # =========================================================================
    # Turns
    # =========================================================================

    @contextmanager
    def turn(self) -> Iterator[Scheduler]:
        """
        Mark a unit of host-driven synchronous work.

        Actions scheduled inside run when the outermost turn exits. A turn
        left by an exception does not drain; its actions stay queued for
        the next pass.

        Example:
            ```python
            with scheduler.turn():
                d.then(r1)
                d.then(r2)
                d.then(r3)
            # r1, r2, r3 ran here, in that order
            ```
        """
        self._turn_depth += 1
        try:
            yield self
        finally:
            self._turn_depth -= 1
        if self._turn_depth == 0 and not self._draining:
            self.drain()

    def host_turn(self) -> AbstractContextManager[Any]:
        """
        Open a turn only if the caller is the host.

        Inside a turn or a drain pass this is a no-op context, so work
        triggered from handlers joins the current pass instead of
        starting a nested one.
        """
        if self.is_idle:
            return self.turn()
        return nullcontext()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def reset(self) -> None:
        """Discard queued actions, counters and rejection state."""
        if self._queue:
            logger.debug(f"Discarding {len(self._queue)} queued actions on reset")
        self._queue.clear()
        self._turn_depth = 0
        self.stats = SchedulerStats()
        self.rejections.clear()

    def close(self) -> None:
        """Reset and detach host hooks."""
        self.reset()
        self.rejections.unhandled_hook = None
        self.rejections.handled_hook = None

    def __repr__(self) -> str:
        """Readable representation for debugging."""
        return (
            f"Scheduler(pending={len(self._queue)}, draining={self._draining}, "
            f"turn_depth={self._turn_depth})"
        )


# =============================================================================
# Process-wide scheduler
# =============================================================================

# Module-level to be shared by every Deferred created in this process
_scheduler: Scheduler | None = None


def get_scheduler() -> Scheduler:
    """
    Get the process-wide scheduler, creating it on first use.

    The first scheduler reads its configuration from the environment
    (see RuntimeConfig.from_env).
    """
    global _scheduler
    if _scheduler is None:
        _scheduler = Scheduler(RuntimeConfig.from_env())
    return _scheduler


def reset_scheduler(config: RuntimeConfig | None = None) -> Scheduler:
    """
    Replace the process-wide scheduler with a fresh one.

    Deferreds created before the reset stay bound to the old scheduler.
    Tests call this between runs.

    Args:
        config: Configuration for the new scheduler (environment if omitted)

    Returns:
        The new scheduler
    """
    global _scheduler
    if _scheduler is not None:
        _scheduler.close()
    _scheduler = Scheduler(config if config is not None else RuntimeConfig.from_env())
    return _scheduler


def configure(config: RuntimeConfig) -> Scheduler:
    """Apply a configuration to the process-wide scheduler."""
    scheduler = get_scheduler()
    scheduler.configure(config)
    return scheduler


def set_unhandled_rejection_hook(hook: RejectionHook | None) -> None:
    """
    Register the host hook for unhandled rejections.

    The hook is called as hook(deferred, error) at the end of the drain
    pass in which the rejection went unobserved. None restores the
    policy-driven default.
    """
    get_scheduler().rejections.unhandled_hook = hook


def set_rejection_handled_hook(hook: RejectionHook | None) -> None:
    """
    Register the host hook for late handling.

    Called as hook(deferred, error) when a handler is attached to a
    Deferred already reported as unhandled.
    """
    get_scheduler().rejections.handled_hook = hook


def _teardown() -> None:
    global _scheduler
    if _scheduler is not None:
        if _scheduler.pending:
            logger.debug(f"Interpreter exit with {_scheduler.pending} actions never drained")
        _scheduler.close()
        _scheduler = None


atexit.register(_teardown)
