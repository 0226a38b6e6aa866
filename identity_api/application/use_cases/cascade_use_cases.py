# identity_api/application/use_cases/cascade_use_cases.py

"""
Handlers of durable background tasks.

Handlers run at least once, possibly concurrently on several instances,
so every step they take is idempotent.
"""

import logging
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from identity_api.adapters.outbound.persistence.repositories.client_repository import client_repository
from identity_api.adapters.outbound.persistence.repositories.consent_repository import consent_repository
from identity_api.application.use_cases.authorization_use_cases import AsyncAuthorizationService
from identity_api.application.use_cases.consent_use_cases import AsyncConsentService
from identity_api.domain.models.task_domain_model import TaskKind

logger = logging.getLogger(__name__)


class UnknownTaskError(Exception):
    """No handler is registered for a task kind."""


class AsyncCascadeService:

    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session
        self.authorizations = AsyncAuthorizationService(db_session)
        self.consents = AsyncConsentService(db_session)

    async def handle(self, kind: str, payload: Dict[str, Any]) -> None:
        try:
            task_kind = TaskKind(kind)
        except ValueError:
            raise UnknownTaskError(f"No handler for task kind '{kind}'")

        if task_kind is TaskKind.CLIENT_CASCADE:
            await self.cascade_client_deletion(payload)
        else:
            await self.revoke_consent(payload)

    async def cascade_client_deletion(self, payload: Dict[str, Any]) -> None:
        """
        Remove every authorization and invalidate every consent of a deleted client.
        """
        tenant_id, client_id = int(payload["tenant_id"]), payload["client_id"]
        revoked = await self.authorizations.delete_by_client_id(tenant_id, client_id)
        invalidated = await self.consents.invalidate_by_client_id(client_id)
        logger.info(
            f"Cascade done for client {client_id} (tenant: {tenant_id}): "
            f"{revoked} authorizations revoked, {invalidated} consents invalidated"
        )

    async def revoke_consent(self, payload: Dict[str, Any]) -> None:
        """
        Invalidate a principal's consent and revoke its authorizations,
        limited to clients of the tenant the revocation was requested in.
        """
        tenant_id = int(payload["tenant_id"])
        client_id, principal_id = payload["client_id"], payload["principal_id"]
        client = await client_repository.get_tenant_client(self.db_session, tenant_id, client_id)
        if client is None:
            logger.warning(f"Consent revocation skipped, client {client_id} is not in tenant {tenant_id}")
            return

        invalidated = await consent_repository.invalidate(self.db_session, client_id, principal_id)
        revoked = await self.authorizations.delete_by_client_id_and_principal(tenant_id, client_id, principal_id)
        logger.info(
            f"Consent of {principal_id} for client {client_id} revoked: "
            f"{invalidated} consents invalidated, {revoked} authorizations revoked"
        )
