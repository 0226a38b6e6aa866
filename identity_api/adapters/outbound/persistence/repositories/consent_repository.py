# identity_api/adapters/outbound/persistence/repositories/consent_repository.py (async version)

"""
Repository for consent records.

Status only moves from ACTIVE to INVALIDATED: every write is
conditioned on the current status being ACTIVE.
"""

from typing import List, Tuple
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError

from identity_api.adapters.outbound.persistence.repositories.base_repository import AsyncCRUDBase
from identity_api.adapters.outbound.persistence.repositories.client_repository import client_repository
from identity_api.adapters.outbound.persistence.models import Consent, Client
from identity_api.adapters.outbound.persistence.models.base_model import utcnow
from identity_api.application.ports.outbound import IConsentRepository
from identity_api.domain.models.client_domain_model import Client as DomainClient
from identity_api.domain.models.consent_domain_model import Consent as DomainConsent, ConsentStatus
from identity_api.domain.exceptions import DatabaseOperationException
from identity_api.shared.utils.timezones import as_utc


class AsyncConsentCRUD(AsyncCRUDBase[Consent], IConsentRepository):

    async def list_by_principal(
            self, db: AsyncSession, tenant_id: int, principal_id: str
    ) -> List[Tuple[DomainConsent, DomainClient]]:
        """
        List a principal's consents for clients of a tenant.

        Args:
            db: Async database session
            tenant_id: Tenant owning the clients
            principal_id: Principal (email) that granted the consents

        Returns:
            Pairs of consent and consented client, most recent first

        Raises:
            DatabaseOperationException: In case of database error
        """
        try:
            query = (
                select(Consent, Client)
                .join(Client, Client.client_id == Consent.client_id)
                .where(Consent.principal_id == principal_id, Client.tenant_id == tenant_id)
                .order_by(Consent.modified_on.desc())
                .execution_options(populate_existing=True)
            )
            result = await db.execute(query)
            return [
                (self.to_domain(consent), client_repository.to_domain(client))
                for consent, client in result.all()
            ]
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing consents of principal {principal_id}: {str(e)}")
            raise DatabaseOperationException(detail="Error listing consents", original_error=e)

    async def invalidate(self, db: AsyncSession, client_id: str, principal_id: str) -> int:
        statement = (
            update(Consent)
            .where(
                Consent.client_id == client_id,
                Consent.principal_id == principal_id,
                Consent.status == ConsentStatus.ACTIVE,
            )
            .values(status=ConsentStatus.INVALIDATED, modified_on=utcnow())
        )
        return await self._execute_write(db, statement, action="invalidating")

    async def invalidate_by_client_id(self, db: AsyncSession, client_id: str) -> int:
        statement = (
            update(Consent)
            .where(Consent.client_id == client_id, Consent.status == ConsentStatus.ACTIVE)
            .values(status=ConsentStatus.INVALIDATED, modified_on=utcnow())
        )
        invalidated = await self._execute_write(db, statement, action="invalidating")
        self.logger.info(f"Invalidated {invalidated} consents of client {client_id}")
        return invalidated

    def to_domain(self, db_model: Consent) -> DomainConsent:
        return DomainConsent(
            client_id=db_model.client_id,
            principal_id=db_model.principal_id,
            scopes=set(db_model.scopes or []),
            status=db_model.status,
            modified_on=as_utc(db_model.modified_on),
        )


consent_repository = AsyncConsentCRUD(Consent)
