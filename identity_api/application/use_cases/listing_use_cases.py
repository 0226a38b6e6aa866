# identity_api/application/use_cases/listing_use_cases.py

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from identity_api.application.dtos.client_dto import ClientPage, ClientView
from identity_api.application.ports.outbound import IIdentityService
from identity_api.application.use_cases.client_use_cases import AsyncClientService
from identity_api.application.use_cases.enrichment_use_cases import AsyncProfileEnrichmentService
from identity_api.domain.models.context_domain_model import RequestContext
from identity_api.shared.guards.operation_guard import OperationGuard, guarded
from identity_api.shared.utils.timezones import to_zone

logger = logging.getLogger(__name__)


class AsyncClientListingService:
    """
    Client reads as shown to tenant administrators: registry data, creator
    profiles and timestamps in the tenant's timezone.
    """

    def __init__(
            self,
            db_session: AsyncSession,
            identity_service: IIdentityService,
            guard: Optional[OperationGuard] = None,
            enrichment: Optional[AsyncProfileEnrichmentService] = None,
    ):
        self.registry = AsyncClientService(db_session)
        self.guard = guard
        self.enrichment = enrichment or AsyncProfileEnrichmentService(identity_service)

    @staticmethod
    def _localize(ctx: RequestContext, client: ClientView) -> ClientView:
        client.created_on = to_zone(client.created_on, ctx.tenant.timezone)
        client.modified_on = to_zone(client.modified_on, ctx.tenant.timezone)
        return client

    @guarded("get_clients")
    async def get_tenant_clients(self, ctx: RequestContext, page: int, limit: int) -> ClientPage:
        result = await self.registry.get_tenant_clients(ctx, page, limit)
        result.data = await self.enrichment.enrich(ctx, result.data)
        result.data = [self._localize(ctx, client) for client in result.data]
        return result

    @guarded("get_client")
    async def get_tenant_client(self, ctx: RequestContext, client_id: str) -> ClientView:
        return self._localize(ctx, await self.registry.get_tenant_client(ctx, client_id))
