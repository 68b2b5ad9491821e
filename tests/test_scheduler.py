"""
Tests for the continuation Scheduler.

Covers:
- FIFO order and run-to-exhaustion drains
- nested drain no-op
- turns (outermost exit drains, exceptional exit does not)
- failing actions are logged and skipped
- drain_limit
- process-wide scheduler lifecycle
"""

import logging

import pytest

from pydeferred import (
    RuntimeConfig,
    Scheduler,
    SchedulerError,
    create,
    get_scheduler,
    reset_scheduler,
    set_rejection_handled_hook,
    set_unhandled_rejection_hook,
)
from pydeferred.core.scheduler import _teardown

# =============================================================================
# Queue and drain
# =============================================================================


def test_call_soon_never_runs_inline(scheduler):
    calls = []

    scheduler.call_soon(lambda: calls.append(1))

    assert calls == []
    assert scheduler.pending == 1


def test_drain_runs_fifo(scheduler):
    calls = []
    for n in range(5):
        scheduler.call_soon(lambda n=n: calls.append(n))

    ran = scheduler.drain()

    assert ran == 5
    assert calls == [0, 1, 2, 3, 4]
    assert scheduler.pending == 0


def test_actions_enqueued_mid_pass_run_in_same_pass(scheduler):
    calls = []

    def first():
        calls.append("first")
        scheduler.call_soon(lambda: calls.append("nested"))

    scheduler.call_soon(first)
    scheduler.call_soon(lambda: calls.append("second"))

    assert scheduler.drain() == 3
    assert calls == ["first", "second", "nested"]


def test_nested_drain_is_noop(scheduler):
    results = []

    def reentrant():
        results.append(scheduler.drain())
        results.append(scheduler.is_draining)

    scheduler.call_soon(reentrant)
    scheduler.call_soon(lambda: results.append("after"))
    scheduler.drain()

    assert results == [0, True, "after"]
    assert not scheduler.is_draining


def test_failing_action_is_logged_and_pass_continues(scheduler, caplog):
    calls = []

    def broken():
        raise RuntimeError("scheduled action bug")

    scheduler.call_soon(broken)
    scheduler.call_soon(lambda: calls.append("still runs"))

    with caplog.at_level(logging.ERROR, logger="pydeferred.core.scheduler"):
        scheduler.drain()

    assert calls == ["still runs"]
    assert scheduler.stats.failed_actions == 1
    assert "scheduled action bug" in caplog.text


def test_drain_limit_stops_runaway_pass():
    scheduler = reset_scheduler(RuntimeConfig(drain_limit=3))

    def forever():
        scheduler.call_soon(forever)

    scheduler.call_soon(forever)

    with pytest.raises(SchedulerError, match="drain_limit=3"):
        scheduler.drain()

    assert scheduler.pending == 1
    assert not scheduler.is_draining


def test_stats_track_passes_and_depth(scheduler):
    for _ in range(4):
        scheduler.call_soon(lambda: None)
    scheduler.drain()
    scheduler.drain()

    assert scheduler.stats.passes == 1
    assert scheduler.stats.actions_run == 4
    assert scheduler.stats.max_queue_depth == 4


# =============================================================================
# Turns
# =============================================================================


def test_turn_exit_drains(scheduler):
    calls = []

    with scheduler.turn():
        scheduler.call_soon(lambda: calls.append("ran"))
        assert scheduler.in_turn
        assert calls == []

    assert calls == ["ran"]
    assert scheduler.is_idle


def test_nested_turns_drain_only_at_outermost_exit(scheduler):
    calls = []

    with scheduler.turn():
        with scheduler.turn():
            scheduler.call_soon(lambda: calls.append("ran"))
        assert calls == []

    assert calls == ["ran"]


def test_turn_left_by_exception_does_not_drain(scheduler):
    calls = []

    with pytest.raises(KeyError):
        with scheduler.turn():
            scheduler.call_soon(lambda: calls.append("ran"))
            raise KeyError("host failure")

    assert calls == []
    assert scheduler.pending == 1
    assert scheduler.is_idle


def test_settlement_inside_turn_waits_for_turn_exit(scheduler):
    calls = []
    deferred, fulfill, _ = create()
    deferred.then(calls.append)

    with scheduler.turn():
        fulfill("value")
        assert calls == []

    assert calls == ["value"]


def test_settlement_from_handler_joins_current_pass(scheduler):
    calls = []
    first, fulfill_first, _ = create()
    second, fulfill_second, _ = create()
    second.then(lambda v: calls.append(("second", scheduler.stats.passes)))

    def on_first(value):
        calls.append(("first", scheduler.is_draining))
        fulfill_second(value)

    first.then(on_first)
    fulfill_first(1)

    assert calls == [("first", True), ("second", 0)]
    assert scheduler.stats.passes == 1


# =============================================================================
# Process-wide scheduler
# =============================================================================


def test_get_scheduler_returns_process_wide_instance(scheduler):
    assert get_scheduler() is scheduler


def test_reset_scheduler_replaces_instance(scheduler):
    scheduler.call_soon(lambda: None)

    fresh = reset_scheduler()

    assert fresh is not scheduler
    assert get_scheduler() is fresh
    assert fresh.pending == 0
    assert scheduler.pending == 0


def test_close_detaches_host_hooks(scheduler):
    set_unhandled_rejection_hook(lambda deferred, error: None)
    set_rejection_handled_hook(lambda deferred, error: None)
    scheduler.call_soon(lambda: None)

    scheduler.close()

    assert scheduler.rejections.unhandled_hook is None
    assert scheduler.rejections.handled_hook is None
    assert scheduler.pending == 0


def test_interpreter_exit_teardown_releases_process_wide_scheduler(scheduler):
    set_unhandled_rejection_hook(lambda deferred, error: None)
    set_rejection_handled_hook(lambda deferred, error: None)
    scheduler.call_soon(lambda: None)

    _teardown()

    assert scheduler.rejections.unhandled_hook is None
    assert scheduler.rejections.handled_hook is None
    assert scheduler.pending == 0

    replacement = get_scheduler()
    assert replacement is not scheduler
    assert replacement.rejections.unhandled_hook is None


def test_deferred_binds_to_scheduler_at_creation(scheduler):
    deferred, _, _ = create()
    other = Scheduler()

    assert deferred.scheduler is scheduler
    assert create(scheduler=other).deferred.scheduler is other


def test_repr():
    scheduler = Scheduler()
    assert repr(scheduler) == "Scheduler(pending=0, draining=False, turn_depth=0)"
