"""
Per-provider, per-user sliding-window rate limiter.

Each (provider, user) key keeps the timestamps of its recent calls. A call is
admitted only when every window (minute, hour, day) still has room; otherwise
RateLimitExceeded is raised and nothing is recorded.
"""
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional, Tuple
import logging

from leadmatch.config import settings
from leadmatch.exceptions import RateLimitExceeded
from leadmatch.schemas.preference import RateLimitBudget

logger = logging.getLogger(__name__)

MINUTE = 60
HOUR = 60 * 60
DAY = 24 * 60 * 60


class RateLimiter:
    """
    Process-local call budget keyed by (provider, user_id).

    Constructed once and injected into adapters; `reset()` clears all
    windows (used on shutdown and in tests).
    """

    def __init__(
        self,
        default_per_minute: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_per_minute = default_per_minute or settings.PROVIDER_RATE_LIMIT_PER_MINUTE
        self.clock = clock
        self._calls: Dict[Tuple[str, str], Deque[float]] = {}

    def _limits(self, budget: Optional[RateLimitBudget]):
        if budget is None:
            return ((MINUTE, self.default_per_minute),)
        return (
            (MINUTE, budget.requests_per_minute),
            (HOUR, budget.requests_per_hour),
            (DAY, budget.requests_per_day),
        )

    def _prune(self, calls: Deque[float], now: float):
        while calls and now - calls[0] >= DAY:
            calls.popleft()

    def remaining(self, provider: str, user_id: str, budget: Optional[RateLimitBudget] = None) -> int:
        now = self.clock()
        calls = self._calls.get((provider, user_id), deque())
        self._prune(calls, now)
        return min(
            limit - sum(1 for ts in calls if now - ts < window)
            for window, limit in self._limits(budget)
        )

    def acquire(self, provider: str, user_id: str, budget: Optional[RateLimitBudget] = None):
        """Record one call, or raise RateLimitExceeded without recording it."""
        now = self.clock()
        calls = self._calls.setdefault((provider, user_id), deque())
        self._prune(calls, now)

        for window, limit in self._limits(budget):
            in_window = sum(1 for ts in calls if now - ts < window)
            if in_window >= limit:
                logger.warning(
                    f"🛑 Rate limit hit for {provider} (user {user_id}): "
                    f"{in_window}/{limit} in {window}s"
                )
                raise RateLimitExceeded(provider, user_id, window, limit)

        calls.append(now)

    def reset(self):
        self._calls.clear()
