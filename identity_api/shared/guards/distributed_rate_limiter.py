# identity_api/shared/guards/distributed_rate_limiter.py

"""
Rate limiting shared by every instance of the service.

Fixed windows counted in the shared store under
``ratelimit:{limiter}:{tenant_id}:{window_index}``.
"""

import math
import time
import logging
from typing import Callable, Mapping

from redis.exceptions import RedisError

from identity_api.adapters.configuration.config import RateLimitConfig
from identity_api.application.ports.outbound import IRateLimitStore
from identity_api.domain.exceptions import RateLimitedError

logger = logging.getLogger(__name__)

KEY_PREFIX = "ratelimit"


class AsyncDistributedRateLimiter:

    def __init__(
            self,
            store: IRateLimitStore,
            limits: Mapping[str, RateLimitConfig],
            clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.limits = dict(limits)
        self.clock = clock

    async def acquire(self, limiter: str, tenant_id: int) -> None:
        """
        Count a call against the tenant's current window.

        An unreachable store lets the call through; the local limiter
        still applies.

        Raises:
            RateLimitedError: If the count exceeds the limiter's limit
        """
        config = self.limits[limiter]
        now = self.clock()
        window_index = int(now // config.window_seconds)
        key = f"{KEY_PREFIX}:{limiter}:{tenant_id}:{window_index}"

        try:
            count = await self.store.increment(key, config.window_seconds)
        except (RedisError, OSError) as e:
            logger.error(f"Rate limit store unavailable, allowing call: limiter={limiter} tenant={tenant_id}: {e}")
            return

        if count > config.limit:
            window_end = (window_index + 1) * config.window_seconds
            retry_after = max(1, math.ceil(window_end - now))
            logger.warning(f"Rate limit exceeded: limiter={limiter} tenant={tenant_id} count={count}")
            raise RateLimitedError(limiter=limiter, retry_after=retry_after)
