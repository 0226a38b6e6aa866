# identity_api/application/use_cases/authorization_use_cases.py

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from identity_api.adapters.outbound.persistence.repositories.authorization_repository import (
    authorization_repository,
)
from identity_api.application.ports.outbound import IAuthorizationRepository

logger = logging.getLogger(__name__)


class AsyncAuthorizationService:
    """
    Revocation of issued authorizations.

    Both operations are idempotent: deleting what is already gone returns 0.
    """

    def __init__(self, db_session: AsyncSession, repository: Optional[IAuthorizationRepository] = None):
        self.db_session = db_session
        self.repository = repository or authorization_repository

    async def delete_by_client_id(self, tenant_id: int, client_id: str) -> int:
        return await self.repository.delete_by_client_id(self.db_session, tenant_id, client_id)

    async def delete_by_client_id_and_principal(self, tenant_id: int, client_id: str, principal_id: str) -> int:
        return await self.repository.delete_by_client_id_and_principal(
            self.db_session, tenant_id, client_id, principal_id
        )
