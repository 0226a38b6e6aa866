# identity_api/shared/guards/operation_guard.py

"""
Cross-cutting protection of use case operations.

Each operation is wrapped, outermost first, by the distributed limiter,
the local limiter and the retry policy named in
``settings.OPERATION_POLICIES``. Limits are checked once per call, so a
rejected call never consumes retry attempts and a retried call is
counted once.
"""

import functools
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from identity_api.adapters.configuration.config import OperationPolicy, RetryConfig, settings
from identity_api.domain.models.context_domain_model import RequestContext
from identity_api.shared.guards.distributed_rate_limiter import AsyncDistributedRateLimiter
from identity_api.shared.guards.local_rate_limiter import AsyncLocalRateLimiter
from identity_api.shared.guards.retry import run_with_retry

logger = logging.getLogger(__name__)


class OperationGuard:

    def __init__(
            self,
            distributed: AsyncDistributedRateLimiter,
            local: AsyncLocalRateLimiter,
            policies: Optional[Dict[str, OperationPolicy]] = None,
            retry_policies: Optional[Dict[str, RetryConfig]] = None,
    ):
        self.distributed = distributed
        self.local = local
        self.policies = policies if policies is not None else settings.OPERATION_POLICIES
        self.retry_policies = retry_policies if retry_policies is not None else settings.RETRY_POLICIES

    async def run(self, operation: str, ctx: RequestContext, call: Callable[[], Awaitable[Any]]) -> Any:
        policy = self.policies[operation]
        tenant_id = ctx.tenant.tenant_id
        await self.distributed.acquire(policy.distributed, tenant_id)
        await self.local.acquire(policy.local, tenant_id)
        logger.debug(f"Running {operation}: {ctx.log_fields()}")
        return await run_with_retry(call, self.retry_policies[policy.retry])


def guarded(operation: str):
    """
    Decorate a use case method taking a RequestContext as first argument.

    The owning service provides the guard as ``self.guard``; without one
    the method runs unprotected.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, ctx: RequestContext, *args, **kwargs):
            guard: Optional[OperationGuard] = getattr(self, "guard", None)
            if guard is None:
                return await func(self, ctx, *args, **kwargs)
            return await guard.run(operation, ctx, lambda: func(self, ctx, *args, **kwargs))

        return wrapper

    return decorator
