"""Tests for the fixed-window RateLimiter."""

import threading

import pytest

from conftest import FakeClock
from notes_ai.models.config import RateLimitSettings
from notes_ai.models.rate_limit import RateLimitDecision
from notes_ai.utils.rate_limiter import (
    UNKNOWN_CLIENT,
    RateLimiter,
    client_key_from_headers,
    rate_limit_headers,
)


class TestRateLimiter:
    def test_window_counts_down_then_denies(self, fake_clock):
        limiter = RateLimiter(max_requests=3, window_seconds=1.0, clock=fake_clock)

        remaining = [limiter.check("1.2.3.4").remaining for _ in range(3)]
        denied = limiter.check("1.2.3.4")

        assert remaining == [2, 1, 0]
        assert denied.allowed is False
        assert denied.retry_after_seconds > 0
        assert denied.remaining is None

    def test_denied_requests_do_not_count(self, fake_clock):
        limiter = RateLimiter(max_requests=1, window_seconds=10, clock=fake_clock)

        limiter.check("a")
        limiter.check("a")
        limiter.check("a")

        assert limiter.get_entry("a").count == 1

    def test_retry_after_rounds_up(self, fake_clock):
        limiter = RateLimiter(max_requests=1, window_seconds=10, clock=fake_clock)
        limiter.check("a")

        fake_clock.advance(2.5)

        assert limiter.check("a").retry_after_seconds == 8

    def test_window_reset(self, fake_clock):
        limiter = RateLimiter(max_requests=3, window_seconds=1.0, clock=fake_clock)
        for _ in range(4):
            limiter.check("a")

        fake_clock.advance(1.01)
        decision = limiter.check("a")

        assert decision.allowed is True
        assert decision.remaining == 2
        assert limiter.get_entry("a").window_start == fake_clock.now

    def test_keys_are_independent(self, fake_clock):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=fake_clock)

        assert limiter.check("a").allowed is True
        assert limiter.check("b").allowed is True
        assert limiter.check("a").allowed is False

    def test_sweep_evicts_only_expired(self, fake_clock):
        limiter = RateLimiter(max_requests=5, window_seconds=10, clock=fake_clock)
        limiter.check("old")
        fake_clock.advance(6)
        limiter.check("new")
        fake_clock.advance(5)

        evicted = limiter.sweep()

        assert evicted == 1
        assert limiter.get_entry("old") is None
        assert limiter.get_entry("new") is not None
        assert len(limiter) == 1

    def test_get_entry_returns_snapshot(self, fake_clock):
        limiter = RateLimiter(max_requests=5, window_seconds=10, clock=fake_clock)
        limiter.check("a")

        snapshot = limiter.get_entry("a")
        snapshot.count = 99

        assert limiter.get_entry("a").count == 1

    def test_concurrent_checks_never_over_admit(self):
        limiter = RateLimiter(max_requests=50, window_seconds=3600)
        admitted = []
        lock = threading.Lock()

        def worker():
            for _ in range(20):
                decision = limiter.check("shared")
                if decision.allowed:
                    with lock:
                        admitted.append(decision.remaining)

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(admitted) == 50
        assert sorted(admitted) == list(range(50))
        assert limiter.get_entry("shared").count == 50

    @pytest.mark.parametrize(
        "kwargs", [{"max_requests": 0}, {"window_seconds": 0}, {"window_seconds": -1}]
    )
    def test_invalid_arguments(self, kwargs):
        with pytest.raises(ValueError):
            RateLimiter(**kwargs)

    def test_from_settings(self):
        limiter = RateLimiter.from_settings(RateLimitSettings())

        assert limiter.max_requests == 100
        assert limiter.window_seconds == 86400


class TestClientKey:
    def test_first_forwarded_address(self):
        headers = {"x-forwarded-for": " 10.0.0.1 , 10.0.0.2", "x-real-ip": "10.9.9.9"}

        assert client_key_from_headers(headers) == "10.0.0.1"

    def test_real_ip_fallback(self):
        assert client_key_from_headers({"x-real-ip": "10.9.9.9"}) == "10.9.9.9"

    def test_unknown_bucket(self):
        assert client_key_from_headers({}) == UNKNOWN_CLIENT
        assert client_key_from_headers({"x-forwarded-for": " , "}) == UNKNOWN_CLIENT


class TestRateLimitHeaders:
    def test_allowed_headers(self):
        headers = rate_limit_headers(
            RateLimitDecision(allowed=True, limit=100, remaining=7)
        )

        assert headers == {"X-RateLimit-Limit": "100", "X-RateLimit-Remaining": "7"}

    def test_denied_headers(self):
        headers = rate_limit_headers(
            RateLimitDecision(allowed=False, limit=100, retry_after_seconds=30),
            now=1_700_000_000.0,
        )

        assert headers["Retry-After"] == "30"
        assert headers["X-RateLimit-Limit"] == "100"
        assert headers["X-RateLimit-Reset"] == str(1_700_000_030_000)
        assert "X-RateLimit-Remaining" not in headers
