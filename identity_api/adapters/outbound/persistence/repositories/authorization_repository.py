# identity_api/adapters/outbound/persistence/repositories/authorization_repository.py (async version)

"""
Repository for authorization records.

Only bulk deletes are needed: authorizations are issued by the
authorization server and revoked here.
"""

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from identity_api.adapters.outbound.persistence.repositories.base_repository import AsyncCRUDBase
from identity_api.adapters.outbound.persistence.models import Authorization
from identity_api.application.ports.outbound import IAuthorizationRepository


class AsyncAuthorizationCRUD(AsyncCRUDBase[Authorization], IAuthorizationRepository):

    async def delete_by_client_id(self, db: AsyncSession, tenant_id: int, client_id: str) -> int:
        """
        Delete every authorization issued to a client inside a tenant.

        Args:
            db: Async database session
            tenant_id: Tenant scope, prevents cross-tenant deletes
            client_id: Client identifier

        Returns:
            Number of deleted rows (0 when nothing was left)

        Raises:
            DatabaseOperationException: In case of database error
        """
        statement = delete(Authorization).where(
            Authorization.tenant_id == tenant_id,
            Authorization.client_id == client_id,
        )
        deleted = await self._execute_write(db, statement, action="deleting")
        self.logger.info(f"Deleted {deleted} authorizations of client {client_id} (tenant: {tenant_id})")
        return deleted

    async def delete_by_client_id_and_principal(
            self, db: AsyncSession, tenant_id: int, client_id: str, principal_id: str
    ) -> int:
        """
        Delete a principal's authorizations for a client inside a tenant.

        Returns:
            Number of deleted rows
        """
        statement = delete(Authorization).where(
            Authorization.tenant_id == tenant_id,
            Authorization.client_id == client_id,
            Authorization.principal_id == principal_id,
        )
        deleted = await self._execute_write(db, statement, action="deleting")
        self.logger.info(
            f"Deleted {deleted} authorizations of client {client_id} for principal {principal_id} "
            f"(tenant: {tenant_id})"
        )
        return deleted


authorization_repository = AsyncAuthorizationCRUD(Authorization)
