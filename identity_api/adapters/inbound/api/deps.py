# identity_api/adapters/inbound/api/deps.py (async version)

"""
Dependencies for injection into API endpoints.

This module defines functions that provide dependencies via
FastAPI Depends() for authentication, authorization, database access
and the application services.
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from identity_api.adapters.configuration.config import settings
from identity_api.adapters.outbound.cache.redis_client import rate_limit_store
from identity_api.adapters.outbound.identity.identity_client import IdentityServiceClient
from identity_api.adapters.outbound.persistence.database import get_db
from identity_api.adapters.outbound.persistence.task_queue import task_queue
from identity_api.application.ports.outbound import IIdentityService, ITaskQueue
from identity_api.application.use_cases.client_use_cases import AsyncClientService
from identity_api.application.use_cases.consent_use_cases import AsyncConsentService
from identity_api.application.use_cases.listing_use_cases import AsyncClientListingService
from identity_api.application.use_cases.secret_rotation_use_cases import AsyncSecretRotationService
from identity_api.domain.exceptions import (
    InvalidArgumentError,
    InvalidCredentialsException,
    PermissionDeniedException,
)
from identity_api.domain.models.context_domain_model import PrincipalContext, RequestContext, TenantContext
from identity_api.shared.guards.distributed_rate_limiter import AsyncDistributedRateLimiter
from identity_api.shared.guards.local_rate_limiter import AsyncLocalRateLimiter
from identity_api.shared.guards.operation_guard import OperationGuard
from identity_api.shared.utils.http import get_request_host_address

# Configure logger
logger = logging.getLogger(__name__)

_identity_service: Optional[IdentityServiceClient] = None

operation_guard = OperationGuard(
    distributed=AsyncDistributedRateLimiter(rate_limit_store, settings.DISTRIBUTED_RATE_LIMITS),
    local=AsyncLocalRateLimiter(settings.LOCAL_RATE_LIMITS),
)

########################################################################
# Shared adapters
########################################################################

def get_identity_service() -> IIdentityService:
    global _identity_service
    if _identity_service is None:
        _identity_service = IdentityServiceClient()
    return _identity_service


async def close_identity_service() -> None:
    global _identity_service
    if _identity_service is not None:
        await _identity_service.aclose()
        _identity_service = None


def get_operation_guard() -> OperationGuard:
    return operation_guard


def get_task_queue() -> ITaskQueue:
    return task_queue


########################################################################
# Caller resolution
########################################################################

async def get_request_context(
        request: Request,
        identity_service: IIdentityService = Depends(get_identity_service),
) -> RequestContext:
    """
    Resolve the calling principal and tenant from the portal cookies.

    Raises:
        InvalidCredentialsException: If the auth cookie is missing or rejected
        InvalidArgumentError: If the portal address cannot be determined
        PermissionDeniedException: If the portal refuses the tenant lookup
        UpstreamUnavailableError: If the identity service cannot be reached
    """
    auth_cookie = request.cookies.get(settings.AUTH_COOKIE_NAME)
    if not auth_cookie:
        raise InvalidCredentialsException(detail="Authentication cookie is missing")

    address = request.cookies.get(settings.ADDRESS_COOKIE_NAME) or get_request_host_address(request)
    if not address:
        raise InvalidArgumentError(detail="Portal address is missing")

    person = await identity_service.get_me(address, auth_cookie)
    tenant = await identity_service.get_tenant(address, auth_cookie)

    correlation_id = getattr(request.state, "correlation_id", None)
    context = RequestContext(
        tenant=TenantContext(tenant_id=tenant.tenant_id, alias=tenant.alias, timezone=tenant.timezone),
        principal=PrincipalContext(
            id=person.id, email=person.email, user_name=person.user_name, is_admin=person.is_admin
        ),
        address=address,
        auth_cookie=auth_cookie,
        **({"correlation_id": correlation_id} if correlation_id else {}),
    )
    logger.debug(f"Resolved caller: {context.log_fields()}")
    return context


async def require_admin(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
    """
    Raises:
        PermissionDeniedException: If the caller does not administer the portal
    """
    if not ctx.principal.is_admin:
        logger.warning(f"Non-admin attempted client management: {ctx.log_fields()}")
        raise PermissionDeniedException(detail="Only portal administrators can manage clients")
    return ctx


def get_origin_address(request: Request) -> Optional[str]:
    return get_request_host_address(request)


########################################################################
# Application services
########################################################################

def get_client_service(
        db: AsyncSession = Depends(get_db),
        guard: OperationGuard = Depends(get_operation_guard),
        queue: ITaskQueue = Depends(get_task_queue),
) -> AsyncClientService:
    return AsyncClientService(db, task_queue=queue, guard=guard)


def get_listing_service(
        db: AsyncSession = Depends(get_db),
        guard: OperationGuard = Depends(get_operation_guard),
        identity_service: IIdentityService = Depends(get_identity_service),
) -> AsyncClientListingService:
    return AsyncClientListingService(db, identity_service, guard=guard)


def get_secret_rotation_service(
        db: AsyncSession = Depends(get_db),
        guard: OperationGuard = Depends(get_operation_guard),
) -> AsyncSecretRotationService:
    return AsyncSecretRotationService(db, guard=guard)


def get_consent_service(
        db: AsyncSession = Depends(get_db),
        guard: OperationGuard = Depends(get_operation_guard),
        queue: ITaskQueue = Depends(get_task_queue),
) -> AsyncConsentService:
    return AsyncConsentService(db, task_queue=queue, guard=guard)
