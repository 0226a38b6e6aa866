import pytest
from pydantic import ValidationError

from identity_api.adapters.configuration.config import RateLimitConfig, RetryConfig, Settings, settings
from identity_api.domain.exceptions import (
    DatabaseOperationException,
    NotFoundError,
    RateLimitedError,
    UpstreamUnavailableError,
)
from identity_api.shared.guards.distributed_rate_limiter import AsyncDistributedRateLimiter
from identity_api.shared.guards.local_rate_limiter import AsyncLocalRateLimiter
from identity_api.shared.guards.operation_guard import guarded
from identity_api.shared.guards.retry import run_with_retry

from conftest import make_context, make_guard


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class Calls:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.count = 0

    async def __call__(self):
        self.count += 1
        outcome = self.outcomes.pop(0) if self.outcomes else "ok"
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


async def test_local_limiter_uses_sliding_window_per_tenant():
    clock = FakeClock()
    limiter = AsyncLocalRateLimiter({"local": RateLimitConfig(limit=2, window_seconds=60)}, clock=clock)

    await limiter.acquire("local", 1)
    clock.now += 30
    await limiter.acquire("local", 1)
    with pytest.raises(RateLimitedError) as exc_info:
        await limiter.acquire("local", 1)
    assert exc_info.value.limiter == "local"
    assert exc_info.value.retry_after == 30

    # Another tenant has its own window.
    await limiter.acquire("local", 2)

    clock.now += 31
    await limiter.acquire("local", 1)


async def test_local_limiter_drops_idle_tenants():
    clock = FakeClock()
    limiter = AsyncLocalRateLimiter({"local": RateLimitConfig(limit=5, window_seconds=60)}, clock=clock)

    for tenant_id in range(1, 4):
        await limiter.acquire("local", tenant_id)
    assert len(limiter.requests) == 3

    clock.now += 61
    await limiter.acquire("local", 9)

    assert list(limiter.requests) == ["local:9"]


async def test_distributed_limiter_counts_per_tenant_and_window(rate_limit_store):
    clock = FakeClock(now=600.0)
    limiter = AsyncDistributedRateLimiter(
        rate_limit_store, {"shared": RateLimitConfig(limit=2, window_seconds=60)}, clock=clock
    )

    await limiter.acquire("shared", 1)
    await limiter.acquire("shared", 1)
    clock.now = 650.0
    with pytest.raises(RateLimitedError) as exc_info:
        await limiter.acquire("shared", 1)
    assert exc_info.value.retry_after == 10
    assert rate_limit_store.counters["ratelimit:shared:1:10"] == 3

    await limiter.acquire("shared", 2)

    clock.now = 660.0
    await limiter.acquire("shared", 1)
    assert rate_limit_store.counters["ratelimit:shared:1:11"] == 1


async def test_distributed_limiter_fails_open_when_store_is_down(rate_limit_store, caplog):
    rate_limit_store.unavailable = True
    limiter = AsyncDistributedRateLimiter(rate_limit_store, {"shared": RateLimitConfig(limit=1)})

    for _ in range(3):
        await limiter.acquire("shared", 1)

    assert "Rate limit store unavailable" in caplog.text


async def test_retry_covers_transient_errors_only():
    config = RetryConfig(max_attempts=3, wait_multiplier=0, wait_max=0)

    flaky = Calls(DatabaseOperationException(), UpstreamUnavailableError(), "done")
    assert await run_with_retry(flaky, config) == "done"
    assert flaky.count == 3

    missing = Calls(NotFoundError())
    with pytest.raises(NotFoundError):
        await run_with_retry(missing, config)
    assert missing.count == 1

    limited = Calls(RateLimitedError(limiter="inner"))
    with pytest.raises(RateLimitedError):
        await run_with_retry(limited, config)
    assert limited.count == 1

    broken = Calls(*[DatabaseOperationException()] * 5)
    with pytest.raises(DatabaseOperationException):
        await run_with_retry(broken, config)
    assert broken.count == 3


async def test_guard_counts_a_retried_call_once(rate_limit_store):
    guard = make_guard(rate_limit_store, max_attempts=3)
    flaky = Calls(DatabaseOperationException(), "done")

    assert await guard.run("get_client", make_context(), flaky) == "done"

    assert flaky.count == 2
    assert sum(rate_limit_store.counters.values()) == 1


async def test_guard_rejects_before_local_limit_and_call(rate_limit_store):
    guard = make_guard(rate_limit_store, distributed_limit=1, local_limit=10)
    ctx = make_context()
    calls = Calls()

    await guard.run("get_client", ctx, calls)
    with pytest.raises(RateLimitedError) as exc_info:
        await guard.run("get_client", ctx, calls)

    assert exc_info.value.limiter == "shared"
    assert calls.count == 1
    assert len(guard.local.requests["local:1"]) == 1


async def test_guard_applies_local_limit_after_distributed(rate_limit_store):
    guard = make_guard(rate_limit_store, distributed_limit=10, local_limit=1)
    ctx = make_context()
    calls = Calls()

    await guard.run("update_client", ctx, calls)
    with pytest.raises(RateLimitedError) as exc_info:
        await guard.run("update_client", ctx, calls)

    assert exc_info.value.limiter == "local"
    assert calls.count == 1


async def test_guarded_decorator_runs_unprotected_without_guard(rate_limit_store):
    class Service:
        def __init__(self, guard=None):
            self.guard = guard
            self.calls = 0

        @guarded("get_client")
        async def read(self, ctx, value):
            self.calls += 1
            return value

    ctx = make_context()
    assert await Service().read(ctx, "plain") == "plain"

    protected = Service(make_guard(rate_limit_store, distributed_limit=1))
    assert await protected.read(ctx, "first") == "first"
    with pytest.raises(RateLimitedError):
        await protected.read(ctx, "second")
    assert protected.calls == 1


def test_settings_refuse_local_limit_looser_than_distributed():
    local_limits = dict(settings.LOCAL_RATE_LIMITS)
    local_limits["getClientRateLimiter"] = RateLimitConfig(limit=10_000, window_seconds=60)

    with pytest.raises(ValidationError):
        Settings(LOCAL_RATE_LIMITS=local_limits)


def test_settings_refuse_unknown_limiter_reference():
    distributed = dict(settings.DISTRIBUTED_RATE_LIMITS)
    distributed.pop("identityMutateClient")

    with pytest.raises(ValidationError):
        Settings(DISTRIBUTED_RATE_LIMITS=distributed)


def test_default_policies_are_consistent():
    for operation, policy in settings.OPERATION_POLICIES.items():
        local = settings.LOCAL_RATE_LIMITS[policy.local]
        distributed = settings.DISTRIBUTED_RATE_LIMITS[policy.distributed]
        assert local.limit <= distributed.limit, operation
