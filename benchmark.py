"""
Benchmark and profiling script for pydeferred.

Profiles key scenarios:
1. Continuation chain throughput (then() per link)
2. Coroutine suspension overhead (one yield per await)
3. Join fan-in (all_ over many inputs)

Usage:
    PYTHONPATH=src python benchmark.py
"""

import cProfile
import logging
import pstats
import time
from io import StringIO

from pydeferred import all_, async_function, create, get_scheduler, resolved, run

logging.basicConfig(level=logging.CRITICAL)


def benchmark_chain(links: int = 10_000) -> float:
    """Time a then() chain of the given length from trigger to last link."""
    head, fulfill, _ = create()
    tail = head
    for _ in range(links):
        tail = tail.then(lambda v: v + 1)

    start = time.perf_counter()
    fulfill(0)
    elapsed = time.perf_counter() - start

    assert tail.value() == links
    return elapsed


def benchmark_coroutine(awaits: int = 10_000) -> float:
    """Time one coroutine awaiting many already fulfilled values."""

    @async_function
    def count():
        total = 0
        for n in range(awaits):
            total += yield resolved(n)
        return total

    start = time.perf_counter()
    result = run(count)
    elapsed = time.perf_counter() - start

    assert result == sum(range(awaits))
    return elapsed


def benchmark_join(inputs: int = 10_000) -> float:
    """Time all_ over many pending inputs settled by the host."""
    resolvers = [create() for _ in range(inputs)]
    aggregate = all_([r.deferred for r in resolvers])

    start = time.perf_counter()
    scheduler = get_scheduler()
    with scheduler.turn():
        for n, r in enumerate(resolvers):
            r.fulfill(n)
    elapsed = time.perf_counter() - start

    assert aggregate.value() == list(range(inputs))
    return elapsed


def profile(label: str, func, count: int) -> str:
    pr = cProfile.Profile()
    pr.enable()
    elapsed = func(count)
    pr.disable()
    print(f"  {label}: {count} in {elapsed:.3f}s ({elapsed / count * 1e6:.2f}us each)")

    s = StringIO()
    pstats.Stats(pr, stream=s).sort_stats("cumulative").print_stats(15)
    return s.getvalue()


def run_all_benchmarks():
    """Run all benchmarks with profiling."""
    print("Starting pydeferred Benchmarks\n")
    print("=" * 70)

    print("[1/3] Continuation chain...")
    chain_profile = profile("then() links", benchmark_chain, 10_000)

    print("\n[2/3] Coroutine suspensions...")
    coroutine_profile = profile("awaits", benchmark_coroutine, 10_000)

    print("\n[3/3] Join fan-in...")
    join_profile = profile("all_ inputs", benchmark_join, 10_000)

    print("\n" + "=" * 70)
    print(f"Scheduler stats: {get_scheduler().stats}")

    with open("benchmark_profile.txt", "w") as f:
        for title, text in (
            ("CONTINUATION CHAIN", chain_profile),
            ("COROUTINE SUSPENSIONS", coroutine_profile),
            ("JOIN FAN-IN", join_profile),
        ):
            f.write(f"{title}\n{'=' * 70}\n{text}\n\n")
    print("Detailed profile written to benchmark_profile.txt")


if __name__ == "__main__":
    run_all_benchmarks()
