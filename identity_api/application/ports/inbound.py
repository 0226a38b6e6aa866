# identity_api/application/ports/inbound.py

from abc import ABC, abstractmethod
from typing import List

from identity_api.application.dtos.client_dto import (
    ClientCreateRequest,
    ClientUpdateRequest,
    ClientCredentials,
    ClientInfo,
    ClientPage,
    ClientView,
    SecretResponse,
)
from identity_api.application.dtos.consent_dto import ConsentView
from identity_api.domain.models.context_domain_model import RequestContext


class IClientUseCase(ABC):
    """Interface for client registry use cases."""

    @abstractmethod
    async def create_client(self, ctx: RequestContext, request: ClientCreateRequest,
                            origin_address: str) -> ClientCredentials:
        """Register a new client with generated credentials."""
        pass

    @abstractmethod
    async def update_client(self, ctx: RequestContext, client_id: str, request: ClientUpdateRequest) -> None:
        """Partially update client metadata."""
        pass

    @abstractmethod
    async def change_activation(self, ctx: RequestContext, client_id: str, enabled: bool) -> bool:
        """Enable or disable a client."""
        pass

    @abstractmethod
    async def delete_client(self, ctx: RequestContext, client_id: str) -> None:
        """Invalidate a client and schedule the cascade."""
        pass

    @abstractmethod
    async def get_client_info(self, ctx: RequestContext, client_id: str) -> ClientInfo:
        """Public, secret-free client information."""
        pass

    @abstractmethod
    async def get_tenant_client(self, ctx: RequestContext, client_id: str) -> ClientView:
        """Client of the caller's tenant."""
        pass

    @abstractmethod
    async def get_tenant_clients(self, ctx: RequestContext, page: int, limit: int) -> ClientPage:
        """Page of the caller's tenant clients."""
        pass


class ISecretRotationUseCase(ABC):

    @abstractmethod
    async def regenerate_secret(self, ctx: RequestContext, client_id: str) -> SecretResponse:
        """Revoke authorizations, then store a new secret."""
        pass


class IConsentUseCase(ABC):
    """Interface for consent ledger use cases."""

    @abstractmethod
    async def get_all_by_principal(self, ctx: RequestContext, principal_email: str) -> List[ConsentView]:
        """Consents of a principal inside the tenant."""
        pass

    @abstractmethod
    async def revoke_consent(self, ctx: RequestContext, client_id: str, principal_email: str) -> None:
        """Schedule consent invalidation and authorization revocation."""
        pass
