# identity_api/adapters/inbound/api/v1/endpoints/client_endpoint.py

"""
Endpoints for OAuth2 client and consent management.

Management routes are reserved to portal administrators; client info,
consent listing and consent revocation are open to any authenticated
principal of the portal.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import JSONResponse

from identity_api.adapters.inbound.api.deps import (
    get_client_service,
    get_consent_service,
    get_listing_service,
    get_origin_address,
    get_request_context,
    get_secret_rotation_service,
    require_admin,
)
from identity_api.application.dtos.client_dto import (
    ChangeActivationRequest,
    ClientCreateRequest,
    ClientCredentials,
    ClientInfo,
    ClientPage,
    ClientUpdateRequest,
    ClientView,
    SecretResponse,
)
from identity_api.application.dtos.consent_dto import ConsentView
from identity_api.application.use_cases.client_use_cases import AsyncClientService
from identity_api.application.use_cases.consent_use_cases import AsyncConsentService
from identity_api.application.use_cases.listing_use_cases import AsyncClientListingService
from identity_api.application.use_cases.secret_rotation_use_cases import AsyncSecretRotationService
from identity_api.domain.models.context_domain_model import RequestContext

# Configure logger
logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ClientPage, response_model_exclude_none=True)
async def get_clients(
        page: int = Query(..., description="Zero-based page number"),
        limit: int = Query(..., description="Page size, 1 to 100"),
        ctx: RequestContext = Depends(require_admin),
        service: AsyncClientListingService = Depends(get_listing_service),
):
    """
    List the tenant's clients, newest first, with creator profiles.
    """
    return await service.get_tenant_clients(ctx, page, limit)


@router.get("/consents", response_model=List[ConsentView], response_model_exclude_none=True)
async def get_consents(
        ctx: RequestContext = Depends(get_request_context),
        service: AsyncConsentService = Depends(get_consent_service),
):
    """
    List the consents the caller granted to the tenant's clients.
    """
    return await service.get_all_by_principal(ctx, ctx.principal.email)


@router.get("/{client_id}/info", response_model=ClientInfo, response_model_exclude_none=True)
async def get_client_info(
        client_id: str,
        ctx: RequestContext = Depends(get_request_context),
        service: AsyncClientService = Depends(get_client_service),
):
    return await service.get_client_info(ctx, client_id)


@router.get("/{client_id}", response_model=ClientView, response_model_exclude_none=True)
async def get_client(
        client_id: str,
        ctx: RequestContext = Depends(require_admin),
        service: AsyncClientListingService = Depends(get_listing_service),
):
    return await service.get_tenant_client(ctx, client_id)


@router.post("", response_model=ClientCredentials, status_code=status.HTTP_201_CREATED,
             response_model_exclude_none=True)
async def create_client(
        body: ClientCreateRequest,
        ctx: RequestContext = Depends(require_admin),
        origin_address: str = Depends(get_origin_address),
        service: AsyncClientService = Depends(get_client_service),
):
    """
    Register a client. The plaintext secret is returned only in this response.
    """
    return await service.create_client(ctx, body, origin_address or ctx.address)


@router.put("/{client_id}", status_code=status.HTTP_200_OK)
async def update_client(
        client_id: str,
        body: ClientUpdateRequest,
        ctx: RequestContext = Depends(require_admin),
        service: AsyncClientService = Depends(get_client_service),
):
    await service.update_client(ctx, client_id, body)
    return Response(status_code=status.HTTP_200_OK)


@router.patch("/{client_id}/regenerate", response_model=SecretResponse)
async def regenerate_secret(
        client_id: str,
        ctx: RequestContext = Depends(require_admin),
        service: AsyncSecretRotationService = Depends(get_secret_rotation_service),
):
    """
    Revoke every authorization of the client, then issue a new secret.
    """
    return await service.regenerate_secret(ctx, client_id)


@router.patch("/{client_id}/activation", status_code=status.HTTP_200_OK)
async def change_activation(
        client_id: str,
        body: ChangeActivationRequest,
        ctx: RequestContext = Depends(require_admin),
        service: AsyncClientService = Depends(get_client_service),
):
    if await service.change_activation(ctx, client_id, body.status):
        return Response(status_code=status.HTTP_200_OK)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalidated clients cannot be activated or deactivated", "code": "INVALID_STATE"},
    )


@router.delete("/{client_id}", status_code=status.HTTP_200_OK)
async def delete_client(
        client_id: str,
        ctx: RequestContext = Depends(require_admin),
        service: AsyncClientService = Depends(get_client_service),
):
    """
    Invalidate the client. Its authorizations and consents are removed in the background.
    """
    await service.delete_client(ctx, client_id)
    return Response(status_code=status.HTTP_200_OK)


@router.delete("/{client_id}/revoke", status_code=status.HTTP_200_OK)
async def revoke_consent(
        client_id: str,
        ctx: RequestContext = Depends(get_request_context),
        service: AsyncConsentService = Depends(get_consent_service),
):
    """
    Withdraw the caller's consent for a client.
    """
    await service.revoke_consent(ctx, client_id, ctx.principal.email)
    return Response(status_code=status.HTTP_200_OK)
