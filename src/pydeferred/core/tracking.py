"""Unhandled-rejection tracking.

A rejection is "observed" once any continuation is registered on the
rejected Deferred, before or after it rejects. A Deferred that rejects
with no continuation becomes a candidate; at the end of each drain pass
every candidate still unobserved is reported once to the host.

Design: Information Hiding (Parnas)
Deferred only tells the tracker two facts (rejected, observed). When and
how reports happen, and what the host does with them, stays here.

The observation table is a WeakKeyDictionary so tracking never keeps a
Deferred alive. Candidates are held strongly only until the end of the
pass that reports them.
"""

from __future__ import annotations

import logging
import weakref
from collections import deque
from collections.abc import Callable
from typing import TYPE_CHECKING

from pydeferred.core.errors import UnhandledRejectionError
from pydeferred.models import RejectionPolicy

if TYPE_CHECKING:
    from pydeferred.core.deferred import Deferred
    from pydeferred.core.scheduler import Scheduler

logger = logging.getLogger(__name__)

__all__ = ["RejectionHook", "RejectionTracker"]

RejectionHook = Callable[["Deferred", BaseException], None]


class RejectionTracker:
    """
    Weak observation table plus pending reports for one Scheduler.

    Attributes:
        unhandled_hook: Host hook for unhandled rejections (None = policy default)
        handled_hook: Host hook for rejections handled after being reported
    """

    def __init__(self, scheduler: Scheduler):
        self._scheduler = scheduler
        self._observed: weakref.WeakKeyDictionary[Deferred, bool] = weakref.WeakKeyDictionary()
        self._reported: weakref.WeakSet[Deferred] = weakref.WeakSet()
        self._candidates: deque[Deferred] = deque()
        self.unhandled_hook: RejectionHook | None = None
        self.handled_hook: RejectionHook | None = None

    def on_rejected(self, deferred: Deferred, observed: bool) -> None:
        """
        Record a rejection.

        Args:
            deferred: The Deferred that just rejected
            observed: Whether continuations were already registered on it
        """
        self._observed[deferred] = observed
        if not observed:
            self._candidates.append(deferred)

    def on_observed(self, deferred: Deferred) -> None:
        """Record that a continuation was registered on a rejected Deferred."""
        self._observed[deferred] = True
        if deferred in self._reported:
            self._reported.discard(deferred)
            self._report_handled(deferred)

    def is_observed(self, deferred: Deferred) -> bool:
        """Check whether a rejected Deferred has been observed (True if untracked)."""
        return self._observed.get(deferred, True)

    @property
    def pending_reports(self) -> int:
        """Candidates waiting for the end of the current pass."""
        return len(self._candidates)

    def flush(self) -> None:
        """
        Report every candidate still unobserved.

        Called by the Scheduler at the end of each drain pass. If a hook
        raises (RejectionPolicy.STRICT does), the remaining candidates stay
        queued for the next flush.
        """
        while self._candidates:
            deferred = self._candidates.popleft()
            if self._observed.get(deferred, True):
                continue
            self._reported.add(deferred)
            self._report_unhandled(deferred)

    def clear(self) -> None:
        """Forget all tracking state (hooks are kept)."""
        self._observed = weakref.WeakKeyDictionary()
        self._reported = weakref.WeakSet()
        self._candidates.clear()

    def _report_unhandled(self, deferred: Deferred) -> None:
        error = deferred.error()
        if self.unhandled_hook is not None:
            self.unhandled_hook(deferred, error)
            return

        policy = self._scheduler.config.rejection_policy
        if policy is RejectionPolicy.STRICT:
            raise UnhandledRejectionError(deferred, error)
        if policy is RejectionPolicy.WARN:
            logger.error(
                f"Unhandled rejection in {deferred!r}: {type(error).__name__}: {error}",
                exc_info=error,
            )

    def _report_handled(self, deferred: Deferred) -> None:
        error = deferred.error()
        if self.handled_hook is not None:
            self.handled_hook(deferred, error)
            return

        if self._scheduler.config.rejection_policy is RejectionPolicy.WARN:
            logger.warning(f"Rejection handled after being reported: {deferred!r}")
