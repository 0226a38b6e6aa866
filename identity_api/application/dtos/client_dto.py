# identity_api/application/dtos/client_dto.py

"""
DTOs for client (third-party application) data.

This module defines the Pydantic DTOs for validation and serialization
of client requests and responses.
"""

from datetime import datetime
from typing import List, Literal, Optional, Set

from pydantic import BaseModel, Field, field_validator

from identity_api.application.dtos.base_dto import CustomBaseModel

AuthenticationMethod = Literal["client_secret_post", "none"]


def clean_uris(uris: Optional[Set[str]]) -> Optional[Set[str]]:
    """Trim URIs and drop blank ones."""
    if uris is None:
        return None
    return {uri.strip() for uri in uris if uri and uri.strip()}


class ClientBase(BaseModel):
    """Metadata shared by create requests and responses."""
    name: str = Field(..., min_length=3, max_length=256, description="Display name of the client")
    description: Optional[str] = Field(None, max_length=1024)
    website_url: Optional[str] = Field(None, max_length=255)
    terms_url: Optional[str] = Field(None, max_length=255)
    policy_url: Optional[str] = Field(None, max_length=255)
    logo: Optional[str] = Field(None, description="Logo URL or data URI")


class ClientCreateRequest(ClientBase):
    """
    Request to register a new client.

    Scopes are checked against the allowed-scope catalogue by the registry,
    not here, so that an unknown scope yields INVALID_SCOPE.
    """
    authentication_method: AuthenticationMethod = "client_secret_post"
    redirect_uris: Set[str] = Field(..., min_length=1, description="Allowed redirect URIs")
    logout_redirect_uris: Set[str] = Field(default_factory=set)
    scopes: Set[str] = Field(..., min_length=1, description="Requested scopes")

    @field_validator("redirect_uris", "logout_redirect_uris")
    def strip_uris(cls, v):
        return clean_uris(v)


class ClientUpdateRequest(BaseModel):
    """Partial update of mutable client metadata."""
    name: Optional[str] = Field(None, min_length=3, max_length=256)
    description: Optional[str] = Field(None, max_length=1024)
    website_url: Optional[str] = Field(None, max_length=255)
    terms_url: Optional[str] = Field(None, max_length=255)
    policy_url: Optional[str] = Field(None, max_length=255)
    logo: Optional[str] = None
    redirect_uris: Optional[Set[str]] = None
    logout_redirect_uris: Optional[Set[str]] = None

    @field_validator("redirect_uris", "logout_redirect_uris")
    def strip_uris(cls, v):
        return clean_uris(v)


class ChangeActivationRequest(BaseModel):
    status: bool = Field(..., description="Desired activation state")


class ClientView(CustomBaseModel):
    """Client as returned to the tenant's administrators."""
    client_id: str
    client_secret: Optional[str] = None
    name: str
    description: Optional[str] = None
    website_url: Optional[str] = None
    terms_url: Optional[str] = None
    policy_url: Optional[str] = None
    logo: Optional[str] = None
    authentication_method: str
    tenant: int
    tenant_url: Optional[str] = None
    redirect_uris: List[str]
    logout_redirect_uris: List[str] = []
    scopes: List[str]
    enabled: bool
    invalidated: bool
    created_on: datetime
    created_by: str
    modified_on: datetime
    modified_by: str
    creator_avatar: Optional[str] = None
    creator_display_name: Optional[str] = None

    @classmethod
    def from_domain(cls, client, client_secret: Optional[str] = None) -> "ClientView":
        return cls(
            client_id=client.client_id,
            client_secret=client_secret,
            name=client.name,
            description=client.description,
            website_url=client.website_url,
            terms_url=client.terms_url,
            policy_url=client.policy_url,
            logo=client.logo,
            authentication_method=client.authentication_method,
            tenant=client.tenant_id,
            tenant_url=client.tenant_url,
            redirect_uris=sorted(client.redirect_uris),
            logout_redirect_uris=sorted(client.logout_redirect_uris),
            scopes=sorted(client.scopes),
            enabled=client.enabled,
            invalidated=client.invalidated,
            created_on=client.created_on,
            created_by=client.created_by,
            modified_on=client.modified_on,
            modified_by=client.modified_by,
        )


class ClientCredentials(ClientView):
    """
    Response to client creation.

    The plaintext secret is only ever returned here and on regeneration.
    """
    client_secret: str


class ClientInfo(CustomBaseModel):
    """Public information about a client, shown to end users."""
    client_id: str
    name: str
    description: Optional[str] = None
    website_url: Optional[str] = None
    terms_url: Optional[str] = None
    policy_url: Optional[str] = None
    logo: Optional[str] = None
    authentication_method: str
    scopes: List[str]

    @classmethod
    def from_domain(cls, client) -> "ClientInfo":
        return cls(
            client_id=client.client_id,
            name=client.name,
            description=client.description,
            website_url=client.website_url,
            terms_url=client.terms_url,
            policy_url=client.policy_url,
            logo=client.logo,
            authentication_method=client.authentication_method,
            scopes=sorted(client.scopes),
        )


class ClientPage(CustomBaseModel):
    data: List[ClientView]
    page: int
    limit: int
    total: int
    next: Optional[int] = None
    previous: Optional[int] = None


class SecretResponse(BaseModel):
    """Response to secret regeneration."""
    client_id: str
    client_secret: str
    modified_on: datetime
