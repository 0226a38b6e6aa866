# identity_api/domain/models/task_domain_model.py

from enum import Enum


class TaskKind(str, Enum):
    """Kinds of durable follow-up work."""
    CLIENT_CASCADE = "client.cascade"
    CONSENT_REVOKE = "consent.revoke"
