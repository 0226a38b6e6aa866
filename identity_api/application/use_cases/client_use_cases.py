# identity_api/application/use_cases/client_use_cases.py (async version)

"""
Service for client management.

This module implements the client registry: registration, metadata
updates, activation, soft deletion and reads of OAuth2 clients.
"""

import logging
from typing import FrozenSet, Iterable, Optional
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from identity_api.adapters.configuration.config import settings
from identity_api.adapters.outbound.persistence.repositories.client_repository import client_repository
from identity_api.adapters.outbound.security.secret_manager import ClientSecretManager
from identity_api.application.dtos.client_dto import (
    ClientCreateRequest,
    ClientCredentials,
    ClientInfo,
    ClientPage,
    ClientUpdateRequest,
    ClientView,
)
from identity_api.application.ports.inbound import IClientUseCase
from identity_api.application.ports.outbound import ITaskQueue
from identity_api.domain.exceptions import (
    DatabaseOperationException,
    InvalidArgumentError,
    InvalidScopeError,
    InvalidStateError,
    NotFoundError,
)
from identity_api.domain.models.client_domain_model import Client
from identity_api.domain.models.context_domain_model import RequestContext
from identity_api.domain.models.task_domain_model import TaskKind
from identity_api.shared.guards.operation_guard import OperationGuard, guarded
from identity_api.shared.utils.pagination import validate_page

logger = logging.getLogger(__name__)

ALLOWED_SCOPES: FrozenSet[str] = frozenset(settings.ALLOWED_SCOPES)

# Optional metadata that an explicit null clears
CLEARABLE_FIELDS = frozenset({"description", "website_url", "terms_url", "policy_url", "logo"})


class AsyncClientService(IClientUseCase):
    """
    Service for client management.

    Mutations are single conditional statements on live clients; a client
    that was invalidated concurrently is reported as InvalidStateError.
    """

    def __init__(
            self,
            db_session: AsyncSession,
            task_queue: Optional[ITaskQueue] = None,
            guard: Optional[OperationGuard] = None,
            allowed_scopes: Iterable[str] = ALLOWED_SCOPES,
    ):
        self.db_session = db_session
        self.task_queue = task_queue
        self.guard = guard
        self.allowed_scopes = frozenset(allowed_scopes)

    async def _get_live_client(self, ctx: RequestContext, client_id: str) -> Client:
        client = await client_repository.get_tenant_client(self.db_session, ctx.tenant.tenant_id, client_id)
        if not client:
            logger.warning(f"Client not found: {ctx.log_fields(client_id=client_id)}")
            raise NotFoundError(detail="Client not found", resource_id=client_id)
        if client.invalidated:
            raise InvalidStateError(resource_id=client_id)
        return client

    async def _raise_missing(self, ctx: RequestContext, client_id: str) -> None:
        """
        A conditional write matched nothing: tell unknown clients from invalidated ones.
        """
        await self._get_live_client(ctx, client_id)
        # Live again by now means the row changed between write and read.
        raise InvalidStateError(detail="Client changed concurrently", resource_id=client_id)

    @guarded("create_client")
    async def create_client(
            self, ctx: RequestContext, request: ClientCreateRequest, origin_address: str
    ) -> ClientCredentials:
        """
        Register a new client for the caller's tenant.

        Returns:
            The stored client with its plaintext secret

        Raises:
            InvalidScopeError: If a requested scope is not in the catalogue
        """
        unknown = set(request.scopes) - self.allowed_scopes
        if unknown:
            logger.warning(f"Rejected scopes {sorted(unknown)}: {ctx.log_fields()}")
            raise InvalidScopeError(scopes=unknown)
        if not request.redirect_uris:
            raise InvalidArgumentError(fields={"redirect_uris": "must not be empty"})

        client_secret = ClientSecretManager.generate_secret()
        values = request.model_dump(exclude={"scopes", "redirect_uris", "logout_redirect_uris"})
        values.update(
            client_id=str(uuid4()),
            client_secret=await ClientSecretManager.hash_secret(client_secret),
            tenant_id=ctx.tenant.tenant_id,
            tenant_url=origin_address,
            redirect_uris=request.redirect_uris,
            logout_redirect_uris=request.logout_redirect_uris,
            scopes=request.scopes,
            enabled=True,
            invalidated=False,
            created_by=ctx.principal.email,
            modified_by=ctx.principal.email,
        )
        client = await client_repository.create_client(self.db_session, values)
        logger.info(f"Client registered: {ctx.log_fields(client_id=client.client_id)}")

        view = ClientView.from_domain(client)
        return ClientCredentials(**view.model_dump(exclude={"client_secret"}), client_secret=client_secret)

    @guarded("update_client")
    async def update_client(self, ctx: RequestContext, client_id: str, request: ClientUpdateRequest) -> None:
        """
        Partially update client metadata.

        Raises:
            NotFoundError: If the client is unknown in the tenant
            InvalidStateError: If the client is invalidated
            InvalidArgumentError: If redirect URIs would become empty
        """
        values = {field: value for field, value in request.model_dump(exclude_unset=True).items()
                  if value is not None or field in CLEARABLE_FIELDS}
        if "redirect_uris" in values and not values["redirect_uris"]:
            raise InvalidArgumentError(fields={"redirect_uris": "must not be empty"})
        if not values:
            await self._get_live_client(ctx, client_id)
            return

        updated = await client_repository.update_metadata(
            self.db_session, ctx.tenant.tenant_id, client_id, values, ctx.principal.email
        )
        if not updated:
            await self._raise_missing(ctx, client_id)
        logger.info(f"Client updated: {ctx.log_fields(client_id=client_id, fields=','.join(sorted(values)))}")

    @guarded("change_activation")
    async def change_activation(self, ctx: RequestContext, client_id: str, enabled: bool) -> bool:
        """
        Enable or disable a client.

        Returns:
            False if the client is invalidated, True otherwise (including
            when it already was in the requested state)

        Raises:
            NotFoundError: If the client is unknown in the tenant
            InvalidStateError: If the client changed concurrently
        """
        if await client_repository.set_enabled(
                self.db_session, ctx.tenant.tenant_id, client_id, enabled, ctx.principal.email
        ):
            logger.info(f"Client activation changed: {ctx.log_fields(client_id=client_id, enabled=enabled)}")
            return True

        client = await client_repository.get_tenant_client(self.db_session, ctx.tenant.tenant_id, client_id)
        if not client:
            raise NotFoundError(detail="Client not found", resource_id=client_id)
        if client.invalidated:
            logger.info(f"Activation refused for invalidated client: {ctx.log_fields(client_id=client_id)}")
            return False
        if client.enabled != enabled:
            # The conditional write lost to a concurrent change of the same row.
            raise InvalidStateError(detail="Client changed concurrently", resource_id=client_id)
        return True

    @guarded("delete_client")
    async def delete_client(self, ctx: RequestContext, client_id: str) -> None:
        """
        Invalidate a client and schedule removal of its authorizations and
        consents. Returns once the invalidation and the task are committed.

        Raises:
            NotFoundError: If the client is unknown in the tenant
        """
        tenant_id = ctx.tenant.tenant_id
        invalidated = await client_repository.invalidate(self.db_session, tenant_id, client_id, ctx.principal.email)
        if not invalidated:
            await self.db_session.rollback()
            client = await client_repository.get_tenant_client(self.db_session, tenant_id, client_id)
            if not client:
                raise NotFoundError(detail="Client not found", resource_id=client_id)
            logger.info(f"Client already invalidated: {ctx.log_fields(client_id=client_id)}")
            return

        try:
            self.task_queue.enqueue(
                self.db_session, TaskKind.CLIENT_CASCADE.value, {"tenant_id": tenant_id, "client_id": client_id}
            )
            await self.db_session.commit()
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.error(f"Error invalidating client: {ctx.log_fields(client_id=client_id)}: {e}")
            raise DatabaseOperationException(detail="Error deleting client", original_error=e)

        self.task_queue.notify()
        logger.info(f"Client invalidated, cascade scheduled: {ctx.log_fields(client_id=client_id)}")

    @guarded("get_client_info")
    async def get_client_info(self, ctx: RequestContext, client_id: str) -> ClientInfo:
        """
        Public information about any live client, whatever its tenant.
        """
        client = await client_repository.get_by_client_id(self.db_session, client_id)
        if not client or client.invalidated:
            raise NotFoundError(detail="Client not found", resource_id=client_id)
        return ClientInfo.from_domain(client)

    async def get_tenant_client(self, ctx: RequestContext, client_id: str) -> ClientView:
        client = await client_repository.get_tenant_client(self.db_session, ctx.tenant.tenant_id, client_id)
        if not client or client.invalidated:
            raise NotFoundError(detail="Client not found", resource_id=client_id)
        return ClientView.from_domain(client)

    async def get_tenant_clients(self, ctx: RequestContext, page: int, limit: int) -> ClientPage:
        """
        Page of the tenant's live clients, newest first.

        Raises:
            InvalidArgumentError: If page < 0 or limit is outside [1, 100]
        """
        skip = validate_page(page, limit)
        tenant_id = ctx.tenant.tenant_id
        clients = await client_repository.list_tenant_clients(self.db_session, tenant_id, skip=skip, limit=limit)
        total = await client_repository.count_tenant_clients(self.db_session, tenant_id)
        return ClientPage(
            data=[ClientView.from_domain(client) for client in clients],
            page=page,
            limit=limit,
            total=total,
            next=page + 1 if skip + limit < total else None,
            previous=page - 1 if page > 0 else None,
        )
