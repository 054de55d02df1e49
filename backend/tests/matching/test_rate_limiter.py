# tests/matching/test_rate_limiter.py

import pytest

from leadmatch.exceptions import RateLimitExceeded
from leadmatch.matching.core.rate_limiter import RateLimiter
from leadmatch.schemas.preference import RateLimitBudget


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


class TestRateLimiter:

    def test_default_budget_is_100_per_minute(self, clock):
        limiter = RateLimiter(clock=clock)

        for _ in range(100):
            limiter.acquire("crunchbase", "user-1")

        with pytest.raises(RateLimitExceeded) as exc:
            limiter.acquire("crunchbase", "user-1")

        assert exc.value.status_code == 429
        assert exc.value.details["provider"] == "crunchbase"

    def test_window_slides(self, clock):
        limiter = RateLimiter(default_per_minute=2, clock=clock)
        limiter.acquire("hunter", "user-1")
        clock.now += 30
        limiter.acquire("hunter", "user-1")

        with pytest.raises(RateLimitExceeded):
            limiter.acquire("hunter", "user-1")

        # First call leaves the window
        clock.now += 31
        limiter.acquire("hunter", "user-1")

    def test_keys_are_per_provider_and_user(self, clock):
        limiter = RateLimiter(default_per_minute=1, clock=clock)
        limiter.acquire("hunter", "user-1")

        limiter.acquire("hunter", "user-2")
        limiter.acquire("clearbit", "user-1")

        with pytest.raises(RateLimitExceeded):
            limiter.acquire("hunter", "user-1")

    def test_rejected_call_is_not_recorded(self, clock):
        limiter = RateLimiter(default_per_minute=1, clock=clock)
        limiter.acquire("hunter", "user-1")

        for _ in range(3):
            with pytest.raises(RateLimitExceeded):
                limiter.acquire("hunter", "user-1")

        clock.now += 60
        limiter.acquire("hunter", "user-1")

    def test_hourly_budget(self, clock):
        limiter = RateLimiter(clock=clock)
        budget = RateLimitBudget(requests_per_minute=10, requests_per_hour=3, requests_per_day=100)

        for _ in range(3):
            limiter.acquire("linkedin", "user-1", budget)
            clock.now += 61

        with pytest.raises(RateLimitExceeded) as exc:
            limiter.acquire("linkedin", "user-1", budget)

        assert exc.value.details["window_seconds"] == 3600

    def test_remaining_and_reset(self, clock):
        limiter = RateLimiter(default_per_minute=5, clock=clock)
        limiter.acquire("hunter", "user-1")
        limiter.acquire("hunter", "user-1")

        assert limiter.remaining("hunter", "user-1") == 3

        limiter.reset()

        assert limiter.remaining("hunter", "user-1") == 5
