# identity_api/application/use_cases/consent_use_cases.py

"""
Service for the consent ledger.
"""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from identity_api.adapters.outbound.persistence.repositories.consent_repository import consent_repository
from identity_api.application.dtos.client_dto import ClientInfo
from identity_api.application.dtos.consent_dto import ConsentView
from identity_api.application.ports.inbound import IConsentUseCase
from identity_api.application.ports.outbound import ITaskQueue
from identity_api.domain.exceptions import DatabaseOperationException
from identity_api.domain.models.context_domain_model import RequestContext
from identity_api.domain.models.task_domain_model import TaskKind
from identity_api.shared.guards.operation_guard import OperationGuard, guarded
from identity_api.shared.utils.timezones import to_zone

logger = logging.getLogger(__name__)


class AsyncConsentService(IConsentUseCase):

    def __init__(
            self,
            db_session: AsyncSession,
            task_queue: Optional[ITaskQueue] = None,
            guard: Optional[OperationGuard] = None,
    ):
        self.db_session = db_session
        self.task_queue = task_queue
        self.guard = guard

    @guarded("get_consents")
    async def get_all_by_principal(self, ctx: RequestContext, principal_email: str) -> List[ConsentView]:
        """
        All consents the principal granted to clients of the tenant,
        with timestamps in the tenant's timezone.
        """
        consents = await consent_repository.list_by_principal(
            self.db_session, ctx.tenant.tenant_id, principal_email
        )
        return [
            ConsentView(
                client=ClientInfo.from_domain(client),
                principal_id=consent.principal_id,
                scopes=sorted(consent.scopes),
                status=consent.status.value,
                modified_at=to_zone(consent.modified_on, ctx.tenant.timezone),
            )
            for consent, client in consents
        ]

    @guarded("revoke_consent")
    async def revoke_consent(self, ctx: RequestContext, client_id: str, principal_email: str) -> None:
        """
        Schedule invalidation of the consent and revocation of the
        principal's authorizations for the client, then return.
        """
        try:
            self.task_queue.enqueue(
                self.db_session,
                TaskKind.CONSENT_REVOKE.value,
                {"tenant_id": ctx.tenant.tenant_id, "client_id": client_id, "principal_id": principal_email},
            )
            await self.db_session.commit()
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.error(f"Error scheduling consent revocation: {ctx.log_fields(client_id=client_id)}: {e}")
            raise DatabaseOperationException(detail="Error revoking consent", original_error=e)

        self.task_queue.notify()
        logger.info(f"Consent revocation scheduled: {ctx.log_fields(client_id=client_id)}")

    async def invalidate_by_client_id(self, client_id: str) -> int:
        return await consent_repository.invalidate_by_client_id(self.db_session, client_id)
