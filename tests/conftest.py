import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("ENVIRONMENT", "testing")

import asyncio
from datetime import datetime, timezone
from typing import Dict, Optional, Set
from uuid import uuid4

import pytest
import pytest_asyncio

from identity_api.adapters.configuration.config import RateLimitConfig, RetryConfig
from identity_api.adapters.outbound.persistence.database import AsyncSessionLocal, create_all, engine
from identity_api.adapters.outbound.persistence.models import Authorization, Consent
from identity_api.adapters.outbound.persistence.task_queue import AsyncTaskQueue
from identity_api.adapters.inbound.worker.task_worker import TaskWorker
from identity_api.application.dtos.client_dto import ClientCreateRequest
from identity_api.application.ports.outbound import IIdentityService, IRateLimitStore
from identity_api.application.use_cases.client_use_cases import AsyncClientService
from identity_api.domain.exceptions import InvalidCredentialsException
from identity_api.domain.models.consent_domain_model import ConsentStatus
from identity_api.domain.models.context_domain_model import PrincipalContext, RequestContext, TenantContext
from identity_api.domain.models.profile_domain_model import Person, Profile, Tenant
from identity_api.shared.guards.distributed_rate_limiter import AsyncDistributedRateLimiter
from identity_api.shared.guards.local_rate_limiter import AsyncLocalRateLimiter
from identity_api.shared.guards.operation_guard import OperationGuard

ADMIN_EMAIL = "admin@example.com"
USER_EMAIL = "user@example.com"
PORTAL = "https://portal.example.com"


def make_context(tenant_id: int = 1, email: str = ADMIN_EMAIL, is_admin: bool = True,
                 tz: str = "UTC") -> RequestContext:
    return RequestContext(
        tenant=TenantContext(tenant_id=tenant_id, alias=f"tenant{tenant_id}", timezone=tz),
        principal=PrincipalContext(id=str(uuid4()), email=email, is_admin=is_admin),
        address=PORTAL,
        auth_cookie="cookie",
    )


def make_create_request(**overrides) -> ClientCreateRequest:
    values = {
        "name": "Test client",
        "description": "Client used in tests",
        "website_url": "https://client.example.com",
        "redirect_uris": {"https://client.example.com/callback"},
        "scopes": {"openid", "files:read"},
    }
    values.update(overrides)
    return ClientCreateRequest(**values)


class FakeIdentityService(IIdentityService):
    """Identity service double keyed by auth cookie."""

    def __init__(self):
        self.people: Dict[str, Person] = {
            "admin-cookie": Person(id="1", email=ADMIN_EMAIL, user_name="admin", is_admin=True),
            "user-cookie": Person(id="2", email=USER_EMAIL, user_name="user", is_admin=False),
        }
        self.tenant = Tenant(tenant_id=1, alias="tenant1", timezone="UTC")
        self.profiles: Dict[str, Profile] = {}
        self.profile_delays: Dict[str, float] = {}
        self.failing_profiles: Set[str] = set()
        self.profile_calls = 0

    async def get_me(self, address: str, auth_cookie: str) -> Person:
        if auth_cookie not in self.people:
            raise InvalidCredentialsException()
        return self.people[auth_cookie]

    async def get_tenant(self, address: str, auth_cookie: str) -> Tenant:
        return self.tenant

    async def is_admin(self, address: str, auth_cookie: str) -> bool:
        return (await self.get_me(address, auth_cookie)).is_admin

    async def get_profile(self, address: str, auth_cookie: str, principal_id: str) -> Optional[Profile]:
        self.profile_calls += 1
        if principal_id in self.profile_delays:
            await asyncio.sleep(self.profile_delays[principal_id])
        if principal_id in self.failing_profiles:
            raise RuntimeError("profile lookup failed")
        return self.profiles.get(principal_id)


class InMemoryRateLimitStore(IRateLimitStore):

    def __init__(self):
        self.counters: Dict[str, int] = {}
        self.unavailable = False

    async def increment(self, key: str, window_seconds: int) -> int:
        if self.unavailable:
            raise ConnectionError("store unavailable")
        self.counters[key] = self.counters.get(key, 0) + 1
        return self.counters[key]


def make_guard(store: IRateLimitStore, distributed_limit: int = 100, local_limit: int = 100,
               max_attempts: int = 3) -> OperationGuard:
    """Guard where every operation shares the same limiters and retry policy."""
    from identity_api.adapters.configuration.config import OperationPolicy, settings

    policies = {name: OperationPolicy(distributed="shared", local="local", retry="retry")
                for name in settings.OPERATION_POLICIES}
    return OperationGuard(
        distributed=AsyncDistributedRateLimiter(store, {"shared": RateLimitConfig(limit=distributed_limit)}),
        local=AsyncLocalRateLimiter({"local": RateLimitConfig(limit=local_limit)}),
        policies=policies,
        retry_policies={"retry": RetryConfig(max_attempts=max_attempts, wait_multiplier=0, wait_max=0)},
    )


@pytest_asyncio.fixture(autouse=True)
async def reset_database():
    """Fresh in-memory schema for every test."""
    await create_all()
    yield
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session():
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
def ctx() -> RequestContext:
    return make_context()


@pytest.fixture
def task_queue() -> AsyncTaskQueue:
    return AsyncTaskQueue()


@pytest.fixture
def worker(task_queue) -> TaskWorker:
    return TaskWorker(queue=task_queue, lease_seconds=60, poll_interval=0.01)


@pytest.fixture
def client_service(db_session, task_queue) -> AsyncClientService:
    return AsyncClientService(db_session, task_queue=task_queue)


@pytest.fixture
def identity_service() -> FakeIdentityService:
    return FakeIdentityService()


@pytest.fixture
def rate_limit_store() -> InMemoryRateLimitStore:
    return InMemoryRateLimitStore()


async def add_authorization(tenant_id: int, client_id: str, principal_id: str) -> None:
    async with AsyncSessionLocal() as session:
        session.add(Authorization(
            id=str(uuid4()),
            client_id=client_id,
            principal_id=principal_id,
            tenant_id=tenant_id,
            issued_on=datetime.now(timezone.utc),
            attributes={},
        ))
        await session.commit()


async def add_consent(client_id: str, principal_id: str, scopes=("openid",),
                      status: ConsentStatus = ConsentStatus.ACTIVE) -> None:
    async with AsyncSessionLocal() as session:
        session.add(Consent(
            client_id=client_id,
            principal_id=principal_id,
            scopes=sorted(scopes),
            status=status,
            modified_on=datetime.now(timezone.utc),
        ))
        await session.commit()


async def count_rows(model, **filters) -> int:
    from sqlalchemy import func, select

    async with AsyncSessionLocal() as session:
        query = select(func.count()).select_from(model)
        for field, value in filters.items():
            query = query.where(getattr(model, field) == value)
        return (await session.execute(query)).scalar_one()
