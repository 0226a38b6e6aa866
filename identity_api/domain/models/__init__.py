# identity_api/domain/models/__init__.py

from identity_api.domain.models.client_domain_model import Client
from identity_api.domain.models.consent_domain_model import Consent, ConsentStatus
from identity_api.domain.models.authorization_domain_model import Authorization
from identity_api.domain.models.context_domain_model import TenantContext, PrincipalContext, RequestContext
from identity_api.domain.models.profile_domain_model import Profile, Tenant, Person
from identity_api.domain.models.task_domain_model import TaskKind

__all__ = [
    "Client",
    "Consent",
    "ConsentStatus",
    "Authorization",
    "TenantContext",
    "PrincipalContext",
    "RequestContext",
    "Profile",
    "Tenant",
    "Person",
    "TaskKind",
]
