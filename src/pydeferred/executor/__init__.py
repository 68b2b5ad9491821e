"""
Executor module - drives coroutines and joins Deferreds.

This module contains the execution components built on the core:
- coroutine: the coroutine driver (Coroutine, spawn)
- coroutine_state: inspectable per-invocation state (CoroutineState)
- combinators: all_ / all_settled / race / any_ and to_deferred
- bridge: asyncio interop (from_future, to_future, delay)
- runner: host entry points (run, settle)

From Dave Cheney: "Package Design"
Package name "executor" describes what it provides (execution),
not what it contains (drivers, joins).
"""

from pydeferred.executor.bridge import delay, from_awaitable, from_future, to_future
from pydeferred.executor.combinators import (
    all_,
    all_settled,
    any_,
    race,
    rejected,
    resolved,
    to_deferred,
)
from pydeferred.executor.coroutine import Coroutine, is_coroutine_like, spawn
from pydeferred.executor.coroutine_state import CoroutineState, SuspendPoint, location_key
from pydeferred.executor.runner import run, settle

__all__ = [
    # Coroutine driver
    "Coroutine",
    "spawn",
    "is_coroutine_like",
    "CoroutineState",
    "SuspendPoint",
    "location_key",
    # Combinators
    "to_deferred",
    "all_",
    "all_settled",
    "race",
    "any_",
    "resolved",
    "rejected",
    # asyncio bridge
    "from_future",
    "from_awaitable",
    "to_future",
    "delay",
    # Host entry
    "run",
    "settle",
]
