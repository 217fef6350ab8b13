"""Per-client rate limiting with named tiers.

Each (client key, tier) pair has a budget of points that refills when its
window rolls over. Spending the last point blocks the key for the tier's
block duration; every call during the block fails with the remaining time.
"""

import math
import time
from dataclasses import dataclass, replace
from threading import Lock
from typing import Callable

import logfire

from harvester.config import get_settings
from harvester.exceptions import InputError, RateExceeded


@dataclass(frozen=True)
class RateTier:
    """Points per window and how long an exhausted key stays blocked."""

    name: str
    points: int
    window_seconds: float
    block_seconds: float


@dataclass
class RateBudget:
    """Remaining points for one (client key, tier) pair."""

    points: int
    window_started: float
    blocked_until: float | None = None


class RateLimiter:
    """Thread-safe in-memory rate limiter.

    Budgets are created lazily on first use and never persisted.
    """

    def __init__(
        self,
        tiers: dict[str, RateTier] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize rate limiter.

        Args:
            tiers: Tier definitions by name (defaults to the configured tiers)
            clock: Monotonic time source in seconds
        """
        self._tiers = tiers if tiers is not None else _tiers_from_settings()
        self._clock = clock
        self._budgets: dict[tuple[str, str], RateBudget] = {}
        self._lock = Lock()

    def consume(self, client_key: str, tier: str = "general", points: int = 1) -> RateBudget:
        """Spend ``points`` from the client's budget for ``tier``.

        Returns:
            A snapshot of the budget after spending.

        Raises:
            RateExceeded: The key is blocked or the budget is exhausted.
            InputError: Unknown tier name.
        """
        rate_tier = self._tier(tier)
        with self._lock:
            now = self._clock()
            budget = self._current_budget(client_key, rate_tier, now)

            if budget.blocked_until is not None and now < budget.blocked_until:
                raise RateExceeded(budget.blocked_until - now, tier)

            if budget.points < points:
                budget.blocked_until = now + rate_tier.block_seconds
                logfire.warning(
                    "Rate limit exceeded",
                    client_key=client_key,
                    tier=tier,
                    block_seconds=rate_tier.block_seconds,
                )
                raise RateExceeded(rate_tier.block_seconds, tier)

            budget.points -= points
            return replace(budget)

    def get_remaining_points(self, client_key: str, tier: str = "general") -> int:
        """Points left in the current window (0 while blocked)."""
        rate_tier = self._tier(tier)
        with self._lock:
            now = self._clock()
            budget = self._current_budget(client_key, rate_tier, now)
            if budget.blocked_until is not None and now < budget.blocked_until:
                return 0
            return budget.points

    def retry_after(self, client_key: str, tier: str = "general") -> int:
        """Whole seconds until the key is unblocked; 0 when not blocked."""
        rate_tier = self._tier(tier)
        with self._lock:
            now = self._clock()
            budget = self._current_budget(client_key, rate_tier, now)
            if budget.blocked_until is None or now >= budget.blocked_until:
                return 0
            return max(1, math.ceil(budget.blocked_until - now))

    def reset(self, client_key: str | None = None) -> None:
        """Reset budgets for one key (all tiers), or everything."""
        with self._lock:
            if client_key is None:
                self._budgets.clear()
                return
            for key in [k for k in self._budgets if k[0] == client_key]:
                del self._budgets[key]

    def _tier(self, name: str) -> RateTier:
        rate_tier = self._tiers.get(name)
        if rate_tier is None:
            raise InputError(f"Unknown rate limit tier: {name}")
        return rate_tier

    def _current_budget(self, client_key: str, rate_tier: RateTier, now: float) -> RateBudget:
        # Caller holds the lock
        key = (client_key, rate_tier.name)
        budget = self._budgets.get(key)
        if budget is None:
            budget = RateBudget(points=rate_tier.points, window_started=now)
            self._budgets[key] = budget
            return budget

        if budget.blocked_until is not None:
            if now < budget.blocked_until:
                return budget
            # Block over: start a fresh window
            budget.points = rate_tier.points
            budget.window_started = now
            budget.blocked_until = None
        elif now - budget.window_started >= rate_tier.window_seconds:
            budget.points = rate_tier.points
            budget.window_started = now
        return budget


def _tiers_from_settings() -> dict[str, RateTier]:
    settings = get_settings()
    return {
        "general": RateTier(
            name="general",
            points=settings.rate_limit_general_points,
            window_seconds=settings.rate_limit_general_window_seconds,
            block_seconds=settings.rate_limit_general_block_seconds,
        ),
        "scrape": RateTier(
            name="scrape",
            points=settings.rate_limit_scrape_points,
            window_seconds=settings.rate_limit_scrape_window_seconds,
            block_seconds=settings.rate_limit_scrape_block_seconds,
        ),
    }


# Global instance
_rate_limiter: RateLimiter | None = None
_limiter_lock = Lock()


def get_rate_limiter() -> RateLimiter:
    """Get the global rate limiter instance.

    Returns:
        The singleton RateLimiter instance.
    """
    global _rate_limiter
    with _limiter_lock:
        if _rate_limiter is None:
            _rate_limiter = RateLimiter()
        return _rate_limiter


def reset_rate_limiter() -> None:
    """Reset the global rate limiter (primarily for testing)."""
    global _rate_limiter
    with _limiter_lock:
        _rate_limiter = None
