# identity_api/application/use_cases/enrichment_use_cases.py

import asyncio
import logging
from typing import List

from identity_api.adapters.configuration.config import settings
from identity_api.application.dtos.client_dto import ClientView
from identity_api.application.ports.outbound import IIdentityService
from identity_api.domain.models.context_domain_model import RequestContext

logger = logging.getLogger(__name__)


class AsyncProfileEnrichmentService:
    """
    Decorates clients with the avatar and display name of their last modifier.

    One lookup per client, run concurrently and each bounded by a timeout.
    A failed lookup leaves that client undecorated; it never fails the page.
    """

    def __init__(self, identity_service: IIdentityService, timeout: float = settings.PROFILE_LOOKUP_TIMEOUT):
        self.identity_service = identity_service
        self.timeout = timeout

    async def _lookup(self, ctx: RequestContext, principal_id: str):
        return await asyncio.wait_for(
            self.identity_service.get_profile(ctx.address, ctx.auth_cookie, principal_id),
            self.timeout,
        )

    async def enrich(self, ctx: RequestContext, clients: List[ClientView]) -> List[ClientView]:
        lookups = [asyncio.create_task(self._lookup(ctx, client.modified_by)) for client in clients]
        profiles = await asyncio.gather(*lookups, return_exceptions=True)

        for client, profile in zip(clients, profiles):
            if isinstance(profile, BaseException):
                logger.warning(
                    f"Profile lookup failed: {ctx.log_fields(client_id=client.client_id)} "
                    f"error={type(profile).__name__}"
                )
                continue
            if profile is None:
                continue
            client.creator_avatar = profile.avatar_url
            client.creator_display_name = profile.display_name or None
        return clients
