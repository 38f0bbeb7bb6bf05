"""Unit tests for the sliding-window rate limiter."""

import pytest

from vocabtrans.core.rate_limiter import SlidingWindowRateLimiter


def test_admits_up_to_ceiling_without_waiting(clock):
    limiter = SlidingWindowRateLimiter(lambda: 3, clock=clock, sleep=clock.sleep)
    for _ in range(3):
        assert limiter.acquire_slot() == 0.0

    assert limiter.active_requests == 3
    assert clock.sleeps == []


def test_waits_for_oldest_request_to_expire(clock):
    limiter = SlidingWindowRateLimiter(lambda: 2, clock=clock, sleep=clock.sleep)
    limiter.acquire_slot()
    clock.advance(10)
    limiter.acquire_slot()
    clock.advance(5)

    waited = limiter.acquire_slot()

    # Oldest request is 15s old: 45s remain in the window plus the margin
    assert waited == pytest.approx(45.1)
    assert clock.sleeps == [pytest.approx(45.1)]


def test_never_exceeds_ceiling_within_window(clock):
    """No window of 60s ever holds more admissions than the ceiling."""
    limiter = SlidingWindowRateLimiter(lambda: 4, clock=clock, sleep=clock.sleep)
    admitted = []
    for _ in range(20):
        limiter.acquire_slot()
        admitted.append(clock())
        clock.advance(1)

    for start in admitted:
        in_window = [t for t in admitted if start <= t < start + 60]
        assert len(in_window) <= 4


def test_ceiling_is_read_on_every_acquisition(clock):
    """A lowered ceiling applies immediately."""
    ceiling = {"rpm": 5}
    limiter = SlidingWindowRateLimiter(lambda: ceiling["rpm"], clock=clock, sleep=clock.sleep)
    limiter.acquire_slot()
    limiter.acquire_slot()

    ceiling["rpm"] = 2
    assert limiter.acquire_slot() > 0


def test_reset(clock):
    limiter = SlidingWindowRateLimiter(lambda: 1, clock=clock, sleep=clock.sleep)
    limiter.acquire_slot()
    limiter.reset()
    assert limiter.acquire_slot() == 0.0
