"""
Sequential Awaits Example

Three producers, each depending on the previous result, composed two
ways: with an explicit then() chain and with a coroutine.

## Pattern Shown: Coroutine vs. Continuation Chain

The coroutine reads top to bottom; the chain threads values through
nested lambdas. Both run on the same Scheduler and settle identically.

## Run with:
```bash
PYTHONPATH=src python examples/sequential_awaits.py
```
"""

import logging

from pydeferred import async_function, create, run


def first_promise():
    deferred, fulfill, _ = create(label="first")
    fulfill(43)
    return deferred


def second_promise(value):
    deferred, fulfill, _ = create(label="second")
    fulfill(value + 100)
    return deferred


def third_promise(a, b):
    deferred, fulfill, _ = create(label="third")
    fulfill(a + b + 100)
    return deferred


@async_function
def compute():
    """Await each producer in program order."""
    first = yield first_promise()
    second = yield second_promise(first)
    return (yield third_promise(first, second))


def compute_with_chain():
    """Same computation as a continuation chain."""
    return first_promise().then(
        lambda first: second_promise(first).then(
            lambda second: third_promise(first, second)
        )
    )


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print(f"coroutine: {run(compute)}")
    print(f"chain:     {run(compute_with_chain)}")


if __name__ == "__main__":
    main()
