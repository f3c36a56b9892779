from __future__ import annotations

from tickerlens.ratelimit import RateLimiter


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_window_slides():
    clock = FakeClock()
    limiter = RateLimiter(max_requests=2, window=10, clock=clock)

    assert limiter.is_allowed("k")
    clock.now = 5
    assert limiter.is_allowed("k")
    assert not limiter.is_allowed("k")
    assert limiter.remaining("k") == 0
    assert limiter.is_allowed("other")

    clock.now = 10.5
    assert limiter.remaining("k") == 1
    assert limiter.is_allowed("k")
    assert not limiter.is_allowed("k")


def test_idle_buckets_expire():
    clock = FakeClock()
    limiter = RateLimiter(max_requests=5, window=10, clock=clock)
    for key in ("sk_old", "sk_older", "sk_current"):
        limiter.is_allowed(key)
    assert limiter.tracked_keys() == 3

    clock.now = 8
    limiter.is_allowed("sk_current")
    clock.now = 12
    assert limiter.tracked_keys() == 1
    assert limiter.remaining("sk_current") == 4
    assert limiter.remaining("sk_old") == 5


def test_key_count_is_bounded():
    limiter = RateLimiter(max_requests=1, window=60, clock=FakeClock(), max_keys=3)
    for i in range(10):
        assert limiter.is_allowed(f"key-{i}")
    assert limiter.tracked_keys() == 3


def test_reset():
    limiter = RateLimiter(max_requests=1, window=60, clock=FakeClock())
    limiter.is_allowed("a")
    limiter.is_allowed("b")
    limiter.reset("a")
    assert limiter.is_allowed("a")
    assert not limiter.is_allowed("b")
    limiter.reset()
    assert limiter.is_allowed("b")
