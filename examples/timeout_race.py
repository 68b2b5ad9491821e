"""
Timeout via race() on asyncio

The core has no timers. A timeout is composed from an external producer
(delay(), driven by the asyncio loop) and race().

## Pattern Shown: Externally Composed Timeouts

- from_awaitable() turns an asyncio coroutine into a Deferred
- delay() fulfills after a loop timer
- race() settles like whichever finishes first
- to_future() lets asyncio code await the result

## Run with:
```bash
PYTHONPATH=src python examples/timeout_race.py
```
"""

import asyncio
import logging

from pydeferred import async_function, delay, from_awaitable, race, rejected, to_future


async def fetch(name: str, latency: float) -> str:
    """Stand-in for a network call."""
    await asyncio.sleep(latency)
    return f"{name} payload"


def with_timeout(deferred, seconds):
    timeout = delay(seconds).then(
        lambda _: rejected(TimeoutError(f"gave up after {seconds}s"))
    )
    return race([deferred, timeout])


@async_function
def fetch_with_fallback(latency):
    try:
        return (yield with_timeout(from_awaitable(fetch("primary", latency)), 0.1))
    except TimeoutError as e:
        logging.getLogger("timeout_race").warning(f"primary: {e}")
        return (yield from_awaitable(fetch("replica", 0.01)))


async def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    print(await to_future(fetch_with_fallback(0.01)))
    print(await to_future(fetch_with_fallback(0.5)))


if __name__ == "__main__":
    asyncio.run(main())
