# identity_api/adapters/outbound/persistence/models/__init__.py

"""
Data models module.

This module exports all SQLAlchemy models of the system.
"""

from identity_api.adapters.outbound.persistence.models.base_model import Base
from identity_api.adapters.outbound.persistence.models.client_model import Client
from identity_api.adapters.outbound.persistence.models.authorization_model import Authorization
from identity_api.adapters.outbound.persistence.models.consent_model import Consent
from identity_api.adapters.outbound.persistence.models.pending_task_model import PendingTask

__all__ = [
    "Base",
    "Client",
    "Authorization",
    "Consent",
    "PendingTask",
]
