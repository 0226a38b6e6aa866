# identity_api/adapters/outbound/persistence/repositories/__init__.py (async version)

"""
Repositories module.

This module exports classes and instances of the repositories
for the system entities, implementing the Repository pattern.
"""

from identity_api.adapters.outbound.persistence.repositories.base_repository import AsyncCRUDBase
from identity_api.adapters.outbound.persistence.repositories.client_repository import (
    AsyncClientCRUD,
    client_repository,
)
from identity_api.adapters.outbound.persistence.repositories.authorization_repository import (
    AsyncAuthorizationCRUD,
    authorization_repository,
)
from identity_api.adapters.outbound.persistence.repositories.consent_repository import (
    AsyncConsentCRUD,
    consent_repository,
)
from identity_api.adapters.outbound.persistence.repositories.task_repository import (
    AsyncTaskCRUD,
    task_repository,
)

__all__ = [
    # Classes
    "AsyncCRUDBase",
    "AsyncClientCRUD",
    "AsyncAuthorizationCRUD",
    "AsyncConsentCRUD",
    "AsyncTaskCRUD",

    # Instances
    "client_repository",
    "authorization_repository",
    "consent_repository",
    "task_repository",
]
