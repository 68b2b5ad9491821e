"""
Tests for unhandled-rejection tracking and reporting policies.
"""

import gc
import logging
import weakref

import pytest

from pydeferred import (
    RejectionPolicy,
    RuntimeConfig,
    UnhandledRejectionError,
    create,
    rejected,
    set_unhandled_rejection_hook,
)

# =============================================================================
# Reporting
# =============================================================================


def test_unobserved_rejection_is_reported_at_end_of_pass(rejections):
    error = ValueError("nobody listens")
    deferred, _, reject = create()

    reject(error)

    assert rejections.unhandled == [(deferred, error)]


def test_rejection_is_reported_only_at_drain(scheduler, rejections):
    error = ValueError("queued")
    deferred = rejected(error)

    assert rejections.unhandled == []
    assert scheduler.rejections.pending_reports == 1

    scheduler.drain()
    assert rejections.unhandled == [(deferred, error)]


def test_rejection_is_reported_once(scheduler, rejections):
    _, _, reject = create()
    reject(KeyError("once"))

    scheduler.drain()
    scheduler.drain()

    assert len(rejections.unhandled) == 1


def test_many_rejections_in_one_pass_are_reported_in_rejection_order(scheduler, rejections):
    errors = [ValueError(n) for n in range(20_000)]
    with scheduler.turn():
        for error in errors:
            rejected(error)
        assert scheduler.rejections.pending_reports == len(errors)

    assert rejections.unhandled_errors == errors
    assert scheduler.rejections.pending_reports == 0


def test_observed_before_rejection_is_not_reported(rejections):
    deferred, _, reject = create()
    deferred.catch(lambda e: None)

    reject(ValueError())

    assert rejections.unhandled == []


def test_observed_later_in_same_turn_is_not_reported(scheduler, rejections):
    with scheduler.turn():
        deferred, _, reject = create()
        reject(ValueError("handled in time"))
        deferred.catch(lambda e: None)

    assert rejections.unhandled == []
    assert scheduler.rejections.is_observed(deferred)


def test_late_handler_fires_handled_hook(scheduler, rejections):
    error = ValueError("late")
    deferred, _, reject = create()
    reject(error)
    assert rejections.unhandled == [(deferred, error)]

    recovered = deferred.catch(lambda e: "recovered")
    scheduler.drain()

    assert rejections.handled == [(deferred, error)]
    assert recovered.value() == "recovered"


def test_hook_that_attaches_handler_keeps_pass_going(scheduler):
    handled = []

    def hook(deferred, error):
        deferred.catch(handled.append)

    set_unhandled_rejection_hook(hook)
    error = ValueError("rescued by hook")
    _, _, reject = create()

    reject(error)

    assert handled == [error]
    assert scheduler.pending == 0


def test_tracking_does_not_keep_deferreds_alive(scheduler, rejections):
    deferred, _, reject = create()
    ref = weakref.ref(deferred)
    reject(ValueError())
    rejections.unhandled.clear()

    del deferred, _, reject
    gc.collect()

    assert ref() is None


# =============================================================================
# Policies
# =============================================================================


def test_warn_policy_logs_error(caplog):
    _, _, reject = create(label="orphan")

    with caplog.at_level(logging.ERROR, logger="pydeferred.core.tracking"):
        reject(ValueError("lost"))

    assert "Unhandled rejection in <Deferred 'orphan'" in caplog.text
    assert "ValueError: lost" in caplog.text


def test_warn_policy_logs_late_handling(scheduler, caplog):
    deferred, _, reject = create(label="late")
    with caplog.at_level(logging.WARNING, logger="pydeferred.core.tracking"):
        reject(ValueError())
        deferred.catch(lambda e: None)
        scheduler.drain()

    assert "handled after being reported" in caplog.text


def test_ignore_policy_is_silent(scheduler, caplog):
    scheduler.configure(RuntimeConfig.QUIET)

    with caplog.at_level(logging.DEBUG, logger="pydeferred.core.tracking"):
        _, _, reject = create()
        reject(ValueError())

    assert [r for r in caplog.records if r.name.startswith("pydeferred")] == []


def test_strict_policy_raises_from_drain(scheduler):
    scheduler.configure(RuntimeConfig.STRICT)
    error = ValueError("strict")
    deferred, _, reject = create()

    with pytest.raises(UnhandledRejectionError) as info:
        reject(error)

    assert info.value.error is error
    assert info.value.deferred is deferred
    assert info.value.__cause__ is error
    assert not scheduler.is_draining


def test_hook_overrides_policy(scheduler, rejections):
    scheduler.configure(RuntimeConfig(rejection_policy=RejectionPolicy.STRICT))
    _, _, reject = create()

    reject(ValueError())

    assert len(rejections.unhandled) == 1


def test_removing_hook_restores_policy(scheduler, rejections, caplog):
    set_unhandled_rejection_hook(None)
    _, _, reject = create()

    with caplog.at_level(logging.ERROR, logger="pydeferred.core.tracking"):
        reject(ValueError("back to logging"))

    assert rejections.unhandled == []
    assert "back to logging" in caplog.text
