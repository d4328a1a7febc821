"""
Stress tests for thread-safety of the pattern caches.

Note this isn't a unit test, because it relies on a clean cache
"""

import sys
import time
from threading import Thread

from minguo import RocDate, RocDateTime

if not hasattr(sys, "_is_gil_enabled") or sys._is_gil_enabled():
    # Running with GIL enabled can still be useful to compare performance,
    # but be sure to warn that threading hasn't been stress tested.
    print("WARNING: Running with GIL enabled. Threading not stress tested.")


DT = RocDateTime.from_ticks(638_600_202_451_234_567)
NUM_THREADS = 16
NUM_ITERATIONS = 500
# More distinct patterns than the caches hold, so entries are evicted
PATTERN_SAMPLE = [
    f"{sep.join(parts)} HH{tsep}mm{tsep}ss.{'f' * n}"
    for sep in ["/", "-", ".", " ", "_", "年"]
    for parts in [
        ("yyy", "MM", "dd"),
        ("dd", "MM", "yyy"),
        ("yyy", "M", "d"),
        ("M", "d", "yyy"),
    ]
    for tsep in [":", "."]
    for n in range(1, 8)
] + ["yyyMMdd", "yyy年MM月dd日"]
assert (
    len(PATTERN_SAMPLE) % NUM_THREADS
), "Pattern sample should not be evenly divisible by number of threads"
PATTERNS = PATTERN_SAMPLE * (NUM_THREADS * NUM_ITERATIONS // 10)
TEXTS = [
    "113/08/24",
    "113年08月24日 14時30分45秒",
    "113/08/24 14:30:45.1234567",
    "1130824143045",
    "2024-08-24",
] * (NUM_THREADS * NUM_ITERATIONS)


def format_and_parse_exact(patterns):
    """Each round trip compiles, or fetches, a cached pattern"""
    for pattern in patterns:
        text = DT.format(pattern)
        parsed = RocDateTime.try_parse_exact(text, pattern)
        assert parsed is not None, (text, pattern)
        assert parsed.date() == DT.date(), (text, pattern)


def parse_candidates(texts):
    """Walks the shared candidate list"""
    for text in texts:
        RocDateTime.try_parse(text)
        RocDate.try_parse(text)


def main(func, sample):
    print(f"Starting test: {func.__name__}")
    threads = []

    start_time = time.time()

    for n in range(NUM_THREADS):
        thread = Thread(target=func, args=(sample[n::NUM_THREADS],))
        threads.append(thread)
        thread.start()

    for thread in threads:
        thread.join()

    end_time = time.time()
    print(f"Execution time: {end_time - start_time:.2f} seconds")


if __name__ == "__main__":
    main(format_and_parse_exact, PATTERNS)
    main(parse_candidates, TEXTS)
