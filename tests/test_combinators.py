"""
Tests for join combinators (all_, all_settled, race, any_) and to_deferred.
"""

import pytest

from pydeferred import (
    Deferred,
    Fulfilled,
    Rejected,
    all_,
    all_settled,
    any_,
    create,
    race,
    rejected,
    resolved,
    run,
    settle,
    to_deferred,
)

# =============================================================================
# all_
# =============================================================================


def test_all_fulfills_with_values_in_input_order():
    a, fulfill_a, _ = create()
    b, fulfill_b, _ = create()
    aggregate = all_([a, b, 3])

    fulfill_b("b")
    assert aggregate.is_pending()
    fulfill_a("a")

    assert aggregate.value() == ["a", "b", 3]


def test_all_of_nothing_is_empty_list():
    assert run(all_, []) == []


def test_all_rejects_with_first_rejection_in_settlement_order(rejections):
    d1, fulfill_1, _ = create()
    d2, _, reject_2 = create()
    d3, _, reject_3 = create()
    aggregate = all_([d1, d2, d3])
    aggregate.catch(lambda e: None)

    first = ValueError("d2 first")
    reject_2(first)
    fulfill_1("late value")
    reject_3(KeyError("d3 later"))

    assert aggregate.error() is first
    assert rejections.unhandled == []


def test_all_rejection_wins_over_later_position(rejections):
    d1, fulfill_1, _ = create()
    d2, _, reject_2 = create()
    d3, fulfill_3, _ = create()
    aggregate = all_([d1, d2, d3])

    error = RuntimeError("middle")
    reject_2(error)
    fulfill_1(1)
    fulfill_3(3)

    outcome = settle(aggregate)
    assert outcome == Rejected(error)
    assert not isinstance(outcome, Fulfilled)


def test_all_pre_settled_inputs_fire_in_input_order():
    first = ValueError("first")
    aggregate = all_([resolved(1), rejected(first), rejected(KeyError("second"))])

    assert settle(aggregate) == Rejected(first)


def test_all_normalizes_plain_values_and_coroutines():
    def gen():
        value = yield resolved(2)
        return value * 10

    assert run(lambda: all_([1, gen(), resolved(3)])) == [1, 20, 3]


# =============================================================================
# all_settled
# =============================================================================


def test_all_settled_reports_each_outcome_in_order(rejections):
    error = OSError("offline")
    a, _, reject_a = create()
    b, fulfill_b, _ = create()
    aggregate = all_settled([a, b])

    fulfill_b("ok")
    reject_a(error)

    assert aggregate.value() == [Rejected(error), Fulfilled("ok")]
    assert rejections.unhandled == []


def test_all_settled_of_nothing():
    assert run(all_settled, []) == []


# =============================================================================
# race
# =============================================================================


def test_race_settles_like_first_input_to_settle():
    slow, fulfill_slow, _ = create()
    fast, fulfill_fast, _ = create()
    winner = race([slow, fast])

    fulfill_fast("fast")
    fulfill_slow("slow")

    assert winner.value() == "fast"


def test_race_first_rejection_wins(rejections):
    slow, fulfill_slow, _ = create()
    fast, _, reject_fast = create()
    winner = race([slow, fast])
    winner.catch(lambda e: None)

    error = TimeoutError("deadline")
    reject_fast(error)
    fulfill_slow("too late")

    assert winner.error() is error


def test_race_of_nothing_stays_pending():
    assert race([]).is_pending()


# =============================================================================
# any_
# =============================================================================


def test_any_fulfills_with_first_fulfillment():
    a, _, reject_a = create()
    b, fulfill_b, _ = create()
    first = any_([a, b])

    reject_a(ValueError("ignored"))
    fulfill_b("b")

    assert first.value() == "b"


def test_any_all_rejected_groups_errors_in_input_order(rejections):
    e1, e2 = ValueError("one"), KeyError("two")
    a, _, reject_a = create()
    b, _, reject_b = create()
    first = any_([a, b])

    reject_b(e2)
    reject_a(e1)

    outcome = settle(first)
    assert isinstance(outcome.error, ExceptionGroup)
    assert list(outcome.error.exceptions) == [e1, e2]


def test_any_of_nothing_rejects_with_value_error():
    with pytest.raises(ValueError):
        run(any_, [])


# =============================================================================
# to_deferred
# =============================================================================


def test_to_deferred_returns_deferred_unchanged():
    deferred = Deferred()
    assert to_deferred(deferred) is deferred


def test_to_deferred_wraps_plain_value():
    deferred = to_deferred({"k": 1})
    assert deferred.value() == {"k": 1}


def test_to_deferred_spawns_generator():
    def gen():
        return (yield 5) + 1

    assert run(to_deferred, gen()) == 6
