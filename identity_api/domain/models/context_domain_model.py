# identity_api/domain/models/context_domain_model.py

"""
Per-request context.

Tenant and principal are resolved once per request by the inbound adapter and
passed explicitly to every use case.
"""

from dataclasses import dataclass, field
from typing import Optional
from uuid import uuid4


@dataclass(frozen=True)
class TenantContext:
    tenant_id: int
    alias: str
    timezone: str = "UTC"


@dataclass(frozen=True)
class PrincipalContext:
    id: str
    email: str
    user_name: Optional[str] = None
    is_admin: bool = False


@dataclass(frozen=True)
class RequestContext:
    """Who is calling, for which tenant, and how to reach the identity service on their behalf."""
    tenant: TenantContext
    principal: PrincipalContext
    address: str
    auth_cookie: str
    correlation_id: str = field(default_factory=lambda: str(uuid4()))

    def log_fields(self, **extra) -> str:
        """Correlation identifiers rendered for log lines."""
        parts = [
            f"tenant={self.tenant.tenant_id}",
            f"principal={self.principal.id}",
            f"correlation_id={self.correlation_id}",
        ]
        parts.extend(f"{key}={value}" for key, value in extra.items())
        return " ".join(parts)
