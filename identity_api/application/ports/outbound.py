# identity_api/application/ports/outbound.py

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Dict, Any, Tuple

from identity_api.domain.models.client_domain_model import Client
from identity_api.domain.models.consent_domain_model import Consent
from identity_api.domain.models.profile_domain_model import Profile, Tenant, Person


class IClientRepository(ABC):
    """Client repository interface."""

    @abstractmethod
    async def get_by_client_id(self, db, client_id: str) -> Optional[Client]:
        """Get client by client_id in any tenant."""
        pass

    @abstractmethod
    async def get_tenant_client(self, db, tenant_id: int, client_id: str) -> Optional[Client]:
        """Get client by client_id inside a tenant."""
        pass

    @abstractmethod
    async def list_tenant_clients(self, db, tenant_id: int, *, skip: int, limit: int) -> List[Client]:
        """List the tenant's live clients."""
        pass

    @abstractmethod
    async def create_client(self, db, values: Dict[str, Any]) -> Client:
        """Persist a new client."""
        pass

    @abstractmethod
    async def update_metadata(self, db, tenant_id: int, client_id: str, values: Dict[str, Any],
                              modified_by: str) -> bool:
        """Partially update a live client."""
        pass

    @abstractmethod
    async def set_enabled(self, db, tenant_id: int, client_id: str, enabled: bool, modified_by: str) -> bool:
        """Toggle activation of a live client."""
        pass

    @abstractmethod
    async def invalidate(self, db, tenant_id: int, client_id: str, modified_by: str) -> bool:
        """Soft-delete a live client without committing."""
        pass

    @abstractmethod
    async def update_secret(self, db, tenant_id: int, client_id: str, secret_hash: str,
                            modified_by: str) -> Optional[datetime]:
        """Atomically store a new secret hash."""
        pass


class IAuthorizationRepository(ABC):
    """Authorization repository interface."""

    @abstractmethod
    async def delete_by_client_id(self, db, tenant_id: int, client_id: str) -> int:
        """Delete every authorization of a client in a tenant."""
        pass

    @abstractmethod
    async def delete_by_client_id_and_principal(self, db, tenant_id: int, client_id: str,
                                                principal_id: str) -> int:
        """Delete a principal's authorizations for a client in a tenant."""
        pass


class IConsentRepository(ABC):
    """Consent repository interface."""

    @abstractmethod
    async def list_by_principal(self, db, tenant_id: int, principal_id: str) -> List[Tuple[Consent, Client]]:
        """Consents of a principal for the tenant's clients."""
        pass

    @abstractmethod
    async def invalidate(self, db, client_id: str, principal_id: str) -> int:
        """Move an active consent to INVALIDATED."""
        pass

    @abstractmethod
    async def invalidate_by_client_id(self, db, client_id: str) -> int:
        """Invalidate every active consent of a client."""
        pass


class IIdentityService(ABC):
    """External identity/profile service."""

    @abstractmethod
    async def get_profile(self, address: str, auth_cookie: str, principal_id: str) -> Optional[Profile]:
        """Display metadata of a principal, None when unavailable."""
        pass

    @abstractmethod
    async def get_tenant(self, address: str, auth_cookie: str) -> Tenant:
        """Tenant of the calling portal."""
        pass

    @abstractmethod
    async def get_me(self, address: str, auth_cookie: str) -> Person:
        """Principal owning the auth cookie."""
        pass

    @abstractmethod
    async def is_admin(self, address: str, auth_cookie: str) -> bool:
        """Whether the calling principal administers the portal."""
        pass


class IRateLimitStore(ABC):
    """Shared counter store backing the distributed rate limiter."""

    @abstractmethod
    async def increment(self, key: str, window_seconds: int) -> int:
        """Atomically increment the counter and return its new value; the key expires with the window."""
        pass


class ITaskQueue(ABC):
    """Durable queue for work that must happen after a state change commits."""

    @abstractmethod
    def enqueue(self, db, kind: str, payload: Dict[str, Any]) -> None:
        """Stage a task in the caller's transaction."""
        pass

    @abstractmethod
    def notify(self) -> None:
        """Wake the worker once the caller's transaction committed."""
        pass
