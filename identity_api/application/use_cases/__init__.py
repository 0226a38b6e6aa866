# identity_api/application/use_cases/__init__.py (async version)

"""
Application service module.

This package contains the application services that implement the business logic
of the application, organized according to functional domains.
"""

# Export service classes for easier imports
from identity_api.application.use_cases.authorization_use_cases import AsyncAuthorizationService
from identity_api.application.use_cases.consent_use_cases import AsyncConsentService
from identity_api.application.use_cases.cascade_use_cases import AsyncCascadeService
from identity_api.application.use_cases.client_use_cases import AsyncClientService
from identity_api.application.use_cases.secret_rotation_use_cases import AsyncSecretRotationService
from identity_api.application.use_cases.enrichment_use_cases import AsyncProfileEnrichmentService
from identity_api.application.use_cases.listing_use_cases import AsyncClientListingService

# Export all services
__all__ = [
    "AsyncAuthorizationService",
    "AsyncConsentService",
    "AsyncCascadeService",
    "AsyncClientService",
    "AsyncSecretRotationService",
    "AsyncProfileEnrichmentService",
    "AsyncClientListingService",
]
