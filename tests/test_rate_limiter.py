import threading
import time

import pytest

from rate_limiter import RateLimiter


def test_calls_run_in_submission_order():
    limiter = RateLimiter(min_delay=0)
    seen = []
    futures = [limiter.submit(seen.append, i) for i in range(10)]
    for f in futures:
        f.result(timeout=5)
    assert seen == list(range(10))


def test_consecutive_calls_are_spaced_by_min_delay(clock):
    limiter = RateLimiter(min_delay=1.5, clock=clock, sleep=clock.sleep)
    starts = [limiter.call(clock) for _ in range(4)]

    assert clock.sleeps == [1.5, 1.5, 1.5]
    assert all(b - a >= 1.5 for a, b in zip(starts, starts[1:]))


def test_no_wait_when_delay_already_elapsed(clock):
    limiter = RateLimiter(min_delay=1.0, clock=clock, sleep=clock.sleep)
    limiter.call(lambda: None)
    clock.advance(5)
    limiter.call(lambda: None)
    assert clock.sleeps == []


def test_real_clock_spacing():
    limiter = RateLimiter(min_delay=0.05)
    starts = [limiter.call(time.monotonic) for _ in range(3)]
    gaps = [b - a for a, b in zip(starts, starts[1:])]
    assert all(gap >= 0.045 for gap in gaps)


def test_exception_propagates_and_lane_keeps_working():
    limiter = RateLimiter(min_delay=0)
    with pytest.raises(ZeroDivisionError):
        limiter.call(lambda: 1 / 0)
    assert limiter.call(lambda: "still alive") == "still alive"
    assert limiter.calls_made == 2


def test_concurrent_callers_never_overlap():
    limiter = RateLimiter(min_delay=0)
    active = []
    peak = []
    lock = threading.Lock()

    def work():
        with lock:
            active.append(1)
            peak.append(len(active))
        time.sleep(0.01)
        with lock:
            active.pop()
        return True

    results = []
    threads = [threading.Thread(target=lambda: results.append(limiter.call(work))) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert results == [True] * 8
    assert max(peak) == 1
    assert limiter.pending == 0
