# identity_api/domain/models/authorization_domain_model.py

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict


@dataclass
class Authorization:
    """Live grant binding a client and a principal inside a tenant."""
    id: str
    client_id: str
    principal_id: str
    tenant_id: int
    issued_on: datetime
    attributes: Dict[str, Any] = field(default_factory=dict)
