# identity_api/domain/models/consent_domain_model.py

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Set


class ConsentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INVALIDATED = "INVALIDATED"


@dataclass
class Consent:
    """A principal's approval of a client's scopes, keyed by (client_id, principal_id)."""
    client_id: str
    principal_id: str
    modified_on: datetime
    scopes: Set[str] = field(default_factory=set)
    status: ConsentStatus = ConsentStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status == ConsentStatus.ACTIVE
