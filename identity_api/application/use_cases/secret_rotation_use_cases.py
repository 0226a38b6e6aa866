# identity_api/application/use_cases/secret_rotation_use_cases.py

"""
Client secret regeneration.

Rotation runs in two ordered stages: every authorization issued to the
client is revoked first, and only then is the new secret stored. A
secret is never persisted while authorizations minted under the old one
survive.
"""

import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from identity_api.adapters.outbound.persistence.database import AsyncSessionLocal
from identity_api.adapters.outbound.persistence.repositories.client_repository import client_repository
from identity_api.adapters.outbound.security.secret_manager import ClientSecretManager
from identity_api.application.dtos.client_dto import SecretResponse
from identity_api.application.ports.inbound import ISecretRotationUseCase
from identity_api.application.use_cases.authorization_use_cases import AsyncAuthorizationService
from identity_api.domain.exceptions import (
    DatabaseOperationException,
    InvalidStateError,
    NotFoundError,
    RotationFailedError,
)
from identity_api.domain.models.context_domain_model import RequestContext
from identity_api.shared.guards.operation_guard import OperationGuard, guarded

logger = logging.getLogger(__name__)


class AsyncSecretRotationService(ISecretRotationUseCase):

    def __init__(
            self,
            db_session: AsyncSession,
            guard: Optional[OperationGuard] = None,
            session_factory: Optional[async_sessionmaker] = None,
    ):
        self.db_session = db_session
        self.guard = guard
        # The pipeline outlives the request if the caller goes away, so it gets its own session.
        self.session_factory = session_factory or AsyncSessionLocal

    @guarded("regenerate_secret")
    async def regenerate_secret(self, ctx: RequestContext, client_id: str) -> SecretResponse:
        """
        Revoke the client's authorizations, then store a new secret.

        Once started, the pipeline runs to completion even if the caller
        is cancelled.

        Returns:
            The new plaintext secret and the modification time

        Raises:
            NotFoundError: If the client is unknown in the tenant
            InvalidStateError: If the client is invalidated
            RotationFailedError: If a stage failed
        """
        client = await client_repository.get_tenant_client(self.db_session, ctx.tenant.tenant_id, client_id)
        if not client:
            raise NotFoundError(detail="Client not found", resource_id=client_id)
        if client.invalidated:
            raise InvalidStateError(resource_id=client_id)

        pipeline = asyncio.ensure_future(self._rotate(ctx, client_id))
        return await asyncio.shield(pipeline)

    async def _rotate(self, ctx: RequestContext, client_id: str) -> SecretResponse:
        async with self.session_factory() as session:
            await asyncio.create_task(self._revoke_authorizations(session, ctx, client_id))
            return await asyncio.create_task(self._store_new_secret(session, ctx, client_id))

    async def _revoke_authorizations(self, session: AsyncSession, ctx: RequestContext, client_id: str) -> None:
        try:
            revoked = await AsyncAuthorizationService(session).delete_by_client_id(ctx.tenant.tenant_id, client_id)
        except DatabaseOperationException as e:
            logger.error(f"Secret rotation failed at revocation: {ctx.log_fields(client_id=client_id)}")
            raise RotationFailedError(RotationFailedError.REVOCATION, client_id, original_error=e)
        logger.info(f"Revoked {revoked} authorizations before rotation: {ctx.log_fields(client_id=client_id)}")

    async def _store_new_secret(self, session: AsyncSession, ctx: RequestContext, client_id: str) -> SecretResponse:
        client_secret = ClientSecretManager.generate_secret()
        try:
            modified_on = await client_repository.update_secret(
                session,
                ctx.tenant.tenant_id,
                client_id,
                await ClientSecretManager.hash_secret(client_secret),
                ctx.principal.email,
            )
        except DatabaseOperationException as e:
            logger.error(f"Secret rotation failed at persistence: {ctx.log_fields(client_id=client_id)}")
            raise RotationFailedError(RotationFailedError.PERSISTENCE, client_id, original_error=e)

        if modified_on is None:
            # Deleted between preflight and persistence.
            raise InvalidStateError(resource_id=client_id)

        logger.info(f"Client secret regenerated: {ctx.log_fields(client_id=client_id)}")
        return SecretResponse(client_id=client_id, client_secret=client_secret, modified_on=modified_on)
