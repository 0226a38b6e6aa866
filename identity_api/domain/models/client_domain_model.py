# identity_api/domain/models/client_domain_model.py

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Set


@dataclass
class Client:
    """Domain model for a registered OAuth2 client application."""
    client_id: str  # Public identifier, immutable
    client_secret: str  # Hashed secret
    name: str
    tenant_id: int
    authentication_method: str
    redirect_uris: Set[str]
    scopes: Set[str]
    created_on: datetime
    created_by: str
    modified_on: datetime
    modified_by: str
    description: Optional[str] = None
    website_url: Optional[str] = None
    terms_url: Optional[str] = None
    policy_url: Optional[str] = None
    logo: Optional[str] = None
    tenant_url: Optional[str] = None
    logout_redirect_uris: Set[str] = field(default_factory=set)
    enabled: bool = True
    invalidated: bool = False

    @property
    def is_mutable(self) -> bool:
        """Invalidated clients are terminal."""
        return not self.invalidated
