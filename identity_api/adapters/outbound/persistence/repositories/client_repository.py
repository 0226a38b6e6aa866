# identity_api/adapters/outbound/persistence/repositories/client_repository.py (async version)

"""
Repository for client operations.

This module implements the repository that performs database operations
related to clients, implementing the IClientRepository interface.

Every mutation is a single conditional UPDATE guarded by
``invalidated = false``, so a delete racing an update leaves the row either
updated-then-invalidated or invalidated-and-untouched.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError

from identity_api.adapters.outbound.persistence.repositories.base_repository import AsyncCRUDBase
from identity_api.adapters.outbound.persistence.models import Client
from identity_api.adapters.outbound.persistence.models.base_model import utcnow
from identity_api.application.ports.outbound import IClientRepository
from identity_api.domain.models.client_domain_model import Client as DomainClient
from identity_api.domain.exceptions import DatabaseOperationException
from identity_api.shared.utils.timezones import as_utc


class AsyncClientCRUD(AsyncCRUDBase[Client], IClientRepository):
    """
    Async implementation of the repository for the Client entity.

    Extends AsyncCRUDBase with tenant-scoped lookups and conditional
    mutations.
    """

    async def get_by_client_id(self, db: AsyncSession, client_id: str) -> Optional[DomainClient]:
        """
        Find a client by client_id regardless of tenant.

        Args:
            db: Async database session
            client_id: Client identifier

        Returns:
            Client found or None if it doesn't exist
        """
        client = await self.get(db, client_id)
        return self.to_domain(client) if client else None

    async def get_tenant_client(self, db: AsyncSession, tenant_id: int, client_id: str) -> Optional[DomainClient]:
        """
        Find a client by client_id inside a tenant.

        Args:
            db: Async database session
            tenant_id: Owning tenant
            client_id: Client identifier

        Returns:
            Client found or None if it doesn't exist in the tenant

        Raises:
            DatabaseOperationException: In case of database error
        """
        try:
            query = (
                select(Client)
                .where(Client.client_id == client_id, Client.tenant_id == tenant_id)
                .execution_options(populate_existing=True)
            )
            result = await db.execute(query)
            client = result.scalar_one_or_none()
            return self.to_domain(client) if client else None
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching client '{client_id}' for tenant {tenant_id}: {str(e)}")
            raise DatabaseOperationException(
                detail="Error fetching client by client_id",
                original_error=e
            )

    async def list_tenant_clients(self, db: AsyncSession, tenant_id: int, *, skip: int, limit: int) -> List[DomainClient]:
        """
        List the tenant's live (not invalidated) clients, newest first.
        """
        clients = await self.get_multi(
            db,
            skip=skip,
            limit=limit,
            order_by=[Client.created_on.desc(), Client.client_id],
            tenant_id=tenant_id,
            invalidated=False,
        )
        return [self.to_domain(client) for client in clients]

    async def count_tenant_clients(self, db: AsyncSession, tenant_id: int) -> int:
        return await self.count(db, tenant_id=tenant_id, invalidated=False)

    async def create_client(self, db: AsyncSession, values: Dict[str, Any]) -> DomainClient:
        """
        Persist a new client.

        Args:
            db: Async database session
            values: Column values, secret already hashed

        Returns:
            The stored client
        """
        values = dict(values)
        for field in ("redirect_uris", "logout_redirect_uris", "scopes"):
            values[field] = sorted(values.get(field) or [])
        client = await self.create(db, obj_in=values)
        self.logger.info(f"Client created: {client.client_id} (tenant: {client.tenant_id})")
        return self.to_domain(client)

    def _live_client(self, tenant_id: int, client_id: str):
        return update(Client).where(
            Client.client_id == client_id,
            Client.tenant_id == tenant_id,
            Client.invalidated.is_(False),
        )

    async def update_metadata(
            self, db: AsyncSession, tenant_id: int, client_id: str, values: Dict[str, Any], modified_by: str
    ) -> bool:
        """
        Apply a partial metadata update to a live client.

        Returns:
            True if a live client matched, False otherwise
        """
        values = dict(values)
        for field in ("redirect_uris", "logout_redirect_uris"):
            if field in values and values[field] is not None:
                values[field] = sorted(values[field])
        statement = self._live_client(tenant_id, client_id).values(
            **values, modified_on=utcnow(), modified_by=modified_by
        )
        return await self._execute_write(db, statement) > 0

    async def set_enabled(
            self, db: AsyncSession, tenant_id: int, client_id: str, enabled: bool, modified_by: str
    ) -> bool:
        """
        Switch activation of a live client whose state differs from the requested one.

        Returns:
            True if the row changed
        """
        statement = (
            self._live_client(tenant_id, client_id)
            .where(Client.enabled.is_(not enabled))
            .values(enabled=enabled, modified_on=utcnow(), modified_by=modified_by)
        )
        return await self._execute_write(db, statement) > 0

    async def invalidate(self, db: AsyncSession, tenant_id: int, client_id: str, modified_by: str) -> bool:
        """
        Mark a live client invalidated and disabled without committing,
        so the caller can record follow-up work in the same transaction.

        Returns:
            True if this call performed the transition
        """
        statement = self._live_client(tenant_id, client_id).values(
            invalidated=True, enabled=False, modified_on=utcnow(), modified_by=modified_by
        )
        return await self._execute_write(db, statement, commit=False, action="invalidating") > 0

    async def update_secret(
            self, db: AsyncSession, tenant_id: int, client_id: str, secret_hash: str, modified_by: str
    ) -> Optional[datetime]:
        """
        Store a new secret hash in a single atomic statement.

        Returns:
            The new modification time, or None if no live client matched
        """
        modified_on = utcnow()
        statement = self._live_client(tenant_id, client_id).values(
            client_secret=secret_hash, modified_on=modified_on, modified_by=modified_by
        )
        if await self._execute_write(db, statement) == 0:
            return None
        self.logger.info(f"Secret updated for client {client_id}")
        return modified_on

    def to_domain(self, db_model: Client) -> DomainClient:
        """
        Convert database model to domain model.

        Args:
            db_model: Client ORM model

        Returns:
            Domain model of client
        """
        return DomainClient(
            client_id=db_model.client_id,
            client_secret=db_model.client_secret,
            name=db_model.name,
            tenant_id=db_model.tenant_id,
            tenant_url=db_model.tenant_url,
            description=db_model.description,
            website_url=db_model.website_url,
            terms_url=db_model.terms_url,
            policy_url=db_model.policy_url,
            logo=db_model.logo,
            authentication_method=db_model.authentication_method,
            redirect_uris=set(db_model.redirect_uris or []),
            logout_redirect_uris=set(db_model.logout_redirect_uris or []),
            scopes=set(db_model.scopes or []),
            enabled=db_model.enabled,
            invalidated=db_model.invalidated,
            created_on=as_utc(db_model.created_on),
            created_by=db_model.created_by,
            modified_on=as_utc(db_model.modified_on),
            modified_by=db_model.modified_by,
        )


# Public instance to be used by use cases
client_repository = AsyncClientCRUD(Client)
