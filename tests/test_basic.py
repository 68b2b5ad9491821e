"""
Basic tests for the pydeferred package surface.

Tests that the façade exports the public API and the shortest
end-to-end paths work.
"""

import pydeferred


def test_import():
    """Test that the public surface is exported."""
    for name in ("Deferred", "create", "all_", "async_function", "spawn", "run", "to_future"):
        assert hasattr(pydeferred, name)
        assert name in pydeferred.__all__


def test_version():
    """Test that version is available."""
    assert isinstance(pydeferred.__version__, str)


def test_create_then_fulfill():
    deferred, fulfill, _ = pydeferred.create()
    doubled = deferred.then(lambda v: v * 2)

    fulfill(21)

    assert doubled.value() == 42


def test_run_plain_callable():
    assert pydeferred.run(lambda x: x + 1, 1) == 2


def test_run_raises_synchronous_error_unchanged():
    error = ValueError("plain")

    def broken():
        raise error

    try:
        pydeferred.run(broken)
    except ValueError as e:
        assert e is error
    else:
        raise AssertionError("run() should have raised")


def test_run_refuses_nested_call(scheduler):
    with scheduler.turn():
        try:
            pydeferred.run(lambda: 1)
        except pydeferred.SchedulerError:
            pass
        else:
            raise AssertionError("run() inside a turn should fail")
