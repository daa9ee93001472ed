"""Tests for the fixed-window rate limiter."""

from __future__ import annotations

import threading

import pytest

from airwallex_cli.auth.rate_limit import RATE_LIMIT_MESSAGE, RateLimiter
from airwallex_cli.exceptions import RateLimitExceededError


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(max_attempts=2, window=60, clock=clock)


class TestCheck:
    def test_allows_up_to_max_attempts(self, limiter: RateLimiter) -> None:
        limiter.check("127.0.0.1", "/validate")
        limiter.check("127.0.0.1", "/validate")
        assert limiter.attempts("127.0.0.1", "/validate") == 2

    def test_rejects_attempt_over_budget(self, limiter: RateLimiter) -> None:
        limiter.check("127.0.0.1", "/validate")
        limiter.check("127.0.0.1", "/validate")
        with pytest.raises(RateLimitExceededError, match=RATE_LIMIT_MESSAGE):
            limiter.check("127.0.0.1", "/validate")

    def test_rejected_attempts_still_count(self, limiter: RateLimiter) -> None:
        for _ in range(2):
            limiter.check("127.0.0.1", "/submit")
        for _ in range(3):
            with pytest.raises(RateLimitExceededError):
                limiter.check("127.0.0.1", "/submit")
        assert limiter.attempts("127.0.0.1", "/submit") == 5

    def test_endpoints_are_independent(self, limiter: RateLimiter) -> None:
        limiter.check("127.0.0.1", "/validate")
        limiter.check("127.0.0.1", "/validate")
        limiter.check("127.0.0.1", "/submit")
        assert limiter.attempts("127.0.0.1", "/submit") == 1

    def test_clients_are_independent(self, limiter: RateLimiter) -> None:
        limiter.check("127.0.0.1", "/validate")
        limiter.check("127.0.0.1", "/validate")
        limiter.check("10.0.0.2", "/validate")
        assert limiter.attempts("10.0.0.2", "/validate") == 1

    def test_window_expiry_resets_count(self, limiter: RateLimiter, clock: FakeClock) -> None:
        limiter.check("127.0.0.1", "/validate")
        limiter.check("127.0.0.1", "/validate")
        clock.advance(61)
        limiter.check("127.0.0.1", "/validate")
        assert limiter.attempts("127.0.0.1", "/validate") == 1

    def test_window_is_fixed_not_sliding(self, limiter: RateLimiter, clock: FakeClock) -> None:
        limiter.check("127.0.0.1", "/validate")
        clock.advance(50)
        limiter.check("127.0.0.1", "/validate")
        clock.advance(11)
        # The window opened at the first attempt, so it has now elapsed.
        limiter.check("127.0.0.1", "/validate")
        assert limiter.attempts("127.0.0.1", "/validate") == 1

    def test_attempts_for_unknown_key(self, limiter: RateLimiter) -> None:
        assert limiter.attempts("127.0.0.1", "/nowhere") == 0

    def test_concurrent_checks_count_every_attempt(self, clock: FakeClock) -> None:
        limiter = RateLimiter(max_attempts=1000, window=60, clock=clock)

        def _hammer() -> None:
            for _ in range(50):
                limiter.check("127.0.0.1", "/submit")

        threads = [threading.Thread(target=_hammer) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert limiter.attempts("127.0.0.1", "/submit") == 400


class TestCleanup:
    def test_removes_only_expired(self, limiter: RateLimiter, clock: FakeClock) -> None:
        limiter.check("127.0.0.1", "/validate")
        clock.advance(30)
        limiter.check("127.0.0.1", "/submit")
        clock.advance(31)

        assert limiter.cleanup() == 1
        assert limiter.size() == 1
        assert limiter.attempts("127.0.0.1", "/submit") == 1

    def test_cleanup_on_empty(self, limiter: RateLimiter) -> None:
        assert limiter.cleanup() == 0

    def test_expired_entry_absent_before_sweep(
        self, limiter: RateLimiter, clock: FakeClock
    ) -> None:
        limiter.check("127.0.0.1", "/validate")
        clock.advance(61)
        assert limiter.size() == 1
        assert limiter.attempts("127.0.0.1", "/validate") == 0

    def test_background_sweep_stops(self, limiter: RateLimiter, clock: FakeClock) -> None:
        limiter.check("127.0.0.1", "/validate")
        clock.advance(61)

        stop = threading.Event()
        thread = limiter.start_cleanup(0.01, stop)
        try:
            for _ in range(200):
                if limiter.size() == 0:
                    break
                stop.wait(0.01)
            assert limiter.size() == 0
        finally:
            stop.set()
            thread.join(timeout=2)
        assert not thread.is_alive()
