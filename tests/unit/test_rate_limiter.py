"""Unit tests for the rate limiter middleware."""

import threading
import time

import pytest

from harvester.exceptions import InputError, RateExceeded
from harvester.middleware.rate_limiter import (
    RateLimiter,
    RateTier,
    get_rate_limiter,
    reset_rate_limiter,
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _limiter(clock, general=(3, 60, 900), scrape=(1, 300, 1800)):
    return RateLimiter(
        tiers={
            "general": RateTier("general", *general),
            "scrape": RateTier("scrape", *scrape),
        },
        clock=clock,
    )


class TestRateLimiter:
    """Test suite for the RateLimiter class."""

    def setup_method(self):
        reset_rate_limiter()

    def teardown_method(self):
        reset_rate_limiter()

    def test_allows_requests_under_limit(self):
        limiter = _limiter(FakeClock())
        for expected_left in (2, 1, 0):
            assert limiter.consume("client").points == expected_left

    def test_blocks_requests_over_limit(self):
        limiter = _limiter(FakeClock())
        for _ in range(3):
            limiter.consume("client")

        with pytest.raises(RateExceeded) as exc_info:
            limiter.consume("client")

        assert exc_info.value.retry_after_seconds == 900
        assert exc_info.value.kind == "rate_exceeded"

    def test_scrape_tier_second_call_rejected_with_positive_retry_after(self):
        limiter = _limiter(FakeClock())
        limiter.consume("client", "scrape")

        with pytest.raises(RateExceeded) as exc_info:
            limiter.consume("client", "scrape")

        assert exc_info.value.retry_after_seconds > 0
        assert exc_info.value.tier == "scrape"
        assert exc_info.value.to_dict()["retryAfterSeconds"] == 1800

    def test_blocked_key_reports_remaining_block(self):
        clock = FakeClock()
        limiter = _limiter(clock)
        limiter.consume("client", "scrape")
        with pytest.raises(RateExceeded):
            limiter.consume("client", "scrape")

        clock.advance(1000.4)
        with pytest.raises(RateExceeded) as exc_info:
            limiter.consume("client", "scrape")

        assert exc_info.value.retry_after_seconds == 800
        assert limiter.retry_after("client", "scrape") == 800

    def test_tiers_are_independent(self):
        limiter = _limiter(FakeClock())
        limiter.consume("client", "scrape")
        with pytest.raises(RateExceeded):
            limiter.consume("client", "scrape")

        assert limiter.consume("client", "general").points == 2

    def test_different_clients_have_separate_budgets(self):
        limiter = _limiter(FakeClock())
        limiter.consume("a", "scrape")
        assert limiter.consume("b", "scrape").points == 0

    def test_window_rollover_refills(self):
        clock = FakeClock()
        limiter = _limiter(clock)
        limiter.consume("client")
        limiter.consume("client")

        clock.advance(61)

        assert limiter.get_remaining_points("client") == 3

    def test_fresh_window_after_block_expiry_succeeds(self):
        clock = FakeClock()
        limiter = _limiter(clock)
        limiter.consume("client", "scrape")
        with pytest.raises(RateExceeded):
            limiter.consume("client", "scrape")

        clock.advance(1800)

        assert limiter.consume("client", "scrape").points == 0
        assert limiter.retry_after("client", "scrape") == 0

    def test_remaining_points_zero_while_blocked(self):
        limiter = _limiter(FakeClock())
        limiter.consume("client", "scrape")
        with pytest.raises(RateExceeded):
            limiter.consume("client", "scrape")
        assert limiter.get_remaining_points("client", "scrape") == 0

    def test_reset_single_client(self):
        limiter = _limiter(FakeClock())
        limiter.consume("a")
        limiter.consume("b")

        limiter.reset("a")

        assert limiter.get_remaining_points("a") == 3
        assert limiter.get_remaining_points("b") == 2

    def test_reset_all(self):
        limiter = _limiter(FakeClock())
        limiter.consume("a")
        limiter.consume("b")
        limiter.reset()
        assert limiter.get_remaining_points("a") == 3
        assert limiter.get_remaining_points("b") == 3

    def test_unknown_tier_rejected(self):
        with pytest.raises(InputError):
            _limiter(FakeClock()).consume("client", "bulk")

    def test_snapshot_is_detached(self):
        limiter = _limiter(FakeClock())
        snapshot = limiter.consume("client")
        snapshot.points = 99
        assert limiter.get_remaining_points("client") == 2

    def test_concurrent_consumers_never_overdraw(self):
        limiter = _limiter(FakeClock(), general=(50, 60, 900))
        successes = []
        lock = threading.Lock()

        def worker():
            for _ in range(20):
                try:
                    limiter.consume("shared")
                except RateExceeded:
                    continue
                with lock:
                    successes.append(1)

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(successes) == 50

    def test_real_clock_window_expiry(self):
        limiter = RateLimiter(tiers={"general": RateTier("general", 1, 0.2, 0.2)})
        limiter.consume("client")
        with pytest.raises(RateExceeded):
            limiter.consume("client")

        time.sleep(0.25)

        assert limiter.consume("client").points == 0


class TestGlobalRateLimiter:
    def test_singleton_until_reset(self, mock_settings):
        first = get_rate_limiter()
        assert get_rate_limiter() is first

        reset_rate_limiter()

        assert get_rate_limiter() is not first

    def test_default_tiers_from_settings(self, mock_settings):
        limiter = get_rate_limiter()
        assert limiter.get_remaining_points("client", "general") == 10
        assert limiter.get_remaining_points("client", "scrape") == 5

    def test_concurrent_first_use_shares_one_instance(self, mock_settings, monkeypatch):
        class SlowRateLimiter(RateLimiter):
            def __init__(self, *args, **kwargs):
                time.sleep(0.05)
                super().__init__(*args, **kwargs)

        monkeypatch.setattr("harvester.middleware.rate_limiter.RateLimiter", SlowRateLimiter)
        barrier = threading.Barrier(8)
        seen = []

        def worker():
            barrier.wait()
            seen.append(get_rate_limiter())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(seen) == 8
        assert len({id(limiter) for limiter in seen}) == 1
