# identity_api/shared/guards/retry.py

import logging
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from identity_api.adapters.configuration.config import RetryConfig
from identity_api.domain.exceptions import DatabaseOperationException, UpstreamUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Rate limiting, validation and state errors are final.
TRANSIENT_ERRORS = (DatabaseOperationException, UpstreamUnavailableError)


async def run_with_retry(call: Callable[[], Awaitable[T]], config: RetryConfig) -> T:
    """
    Await ``call()`` until it succeeds or the policy gives up,
    re-raising the last transient error.
    """
    async for attempt in AsyncRetrying(
            stop=stop_after_attempt(config.max_attempts),
            wait=wait_exponential(multiplier=config.wait_multiplier, max=config.wait_max),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
    ):
        with attempt:
            return await call()
