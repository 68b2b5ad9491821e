"""
Pytest configuration and fixtures for pydeferred tests.

Every test gets a fresh process-wide Scheduler (so queued actions and
rejection state never leak between tests) plus optional recorders.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field

import pytest

from pydeferred import (
    Deferred,
    RuntimeConfig,
    Scheduler,
    create,
    reset_scheduler,
    set_rejection_handled_hook,
    set_unhandled_rejection_hook,
)


@pytest.fixture(autouse=True)
def scheduler(monkeypatch) -> Iterator[Scheduler]:
    """Fresh process-wide scheduler with the default config."""
    monkeypatch.delenv("PYDEFER_UNHANDLED_REJECTIONS", raising=False)
    monkeypatch.delenv("PYDEFER_DRAIN_LIMIT", raising=False)
    fresh = reset_scheduler(RuntimeConfig.DEFAULT)
    yield fresh
    fresh.close()


@dataclass
class RejectionRecorder:
    """Collects host hook calls instead of logging them."""

    unhandled: list[tuple[Deferred, BaseException]] = field(default_factory=list)
    handled: list[tuple[Deferred, BaseException]] = field(default_factory=list)

    def on_unhandled(self, deferred: Deferred, error: BaseException) -> None:
        self.unhandled.append((deferred, error))

    def on_handled(self, deferred: Deferred, error: BaseException) -> None:
        self.handled.append((deferred, error))

    @property
    def unhandled_errors(self) -> list[BaseException]:
        return [error for _, error in self.unhandled]


@pytest.fixture
def rejections(scheduler: Scheduler) -> RejectionRecorder:
    """Install recording host hooks on the test's scheduler."""
    recorder = RejectionRecorder()
    set_unhandled_rejection_hook(recorder.on_unhandled)
    set_rejection_handled_hook(recorder.on_handled)
    return recorder


# Sample producers for reuse across tests


def first_promise():
    deferred, fulfill, _ = create(label="first")
    fulfill(43)
    return deferred


def second_promise(v):
    deferred, fulfill, _ = create(label="second")
    fulfill(v + 100)
    return deferred


def third_promise(a, b):
    deferred, fulfill, _ = create(label="third")
    fulfill(a + b + 100)
    return deferred


@pytest.fixture
def producers():
    """The three producers of the 43 -> 143 -> 286 scenario."""
    return first_promise, second_promise, third_promise

