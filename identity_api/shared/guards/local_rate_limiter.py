# identity_api/shared/guards/local_rate_limiter.py

"""
In-process rate limiting.

Sliding window per key, where a key is a limiter name plus tenant id. It
caps what a single instance forwards to the shared counters; the
distributed limiter stays the authority across instances.
"""

import math
import time
import logging
from collections import deque
from typing import Callable, Deque, Dict, Mapping

from identity_api.adapters.configuration.config import RateLimitConfig
from identity_api.domain.exceptions import RateLimitedError

# Configure logger
logger = logging.getLogger(__name__)


class AsyncLocalRateLimiter:
    """
    Robust in-memory rate limiting implementation.
    Limits calls per (limiter, tenant) with the limits configured for each limiter.
    """

    def __init__(self, limits: Mapping[str, RateLimitConfig], clock: Callable[[], float] = time.monotonic):
        self.limits = dict(limits)
        self.clock = clock

        # Structure: {"limiter:tenant": deque([timestamp1, timestamp2, ...])}
        self.requests: Dict[str, Deque[float]] = {}

        # Keys of tenants that stopped calling are dropped on a periodic sweep
        self.sweep_interval = max((config.window_seconds for config in self.limits.values()), default=60)
        self.last_sweep = clock()

    def _clean_old_requests(self, key: str, window: int, now: float):
        """Remove calls outside the time window."""
        calls = self.requests.get(key)
        if calls is None:
            return

        cutoff_time = now - window
        while calls and calls[0] <= cutoff_time:
            calls.popleft()

        if not calls:
            del self.requests[key]

    def _sweep(self, now: float):
        """Drop every key whose calls all fell out of their window."""
        for key in list(self.requests):
            limiter = key.rsplit(":", 1)[0]
            self._clean_old_requests(key, self.limits[limiter].window_seconds, now)
        self.last_sweep = now

    async def acquire(self, limiter: str, tenant_id: int) -> None:
        """
        Record a call or refuse it.

        Raises:
            RateLimitedError: If the tenant exhausted the limiter's window
        """
        config = self.limits[limiter]
        key = f"{limiter}:{tenant_id}"
        now = self.clock()
        if now - self.last_sweep >= self.sweep_interval:
            self._sweep(now)
        self._clean_old_requests(key, config.window_seconds, now)

        calls = self.requests.setdefault(key, deque())
        if len(calls) >= config.limit:
            retry_after = max(1, math.ceil(calls[0] + config.window_seconds - now))
            logger.warning(f"Local rate limit exceeded: limiter={limiter} tenant={tenant_id}")
            raise RateLimitedError(limiter=limiter, retry_after=retry_after)

        calls.append(now)
