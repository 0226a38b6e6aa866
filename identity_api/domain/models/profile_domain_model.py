# identity_api/domain/models/profile_domain_model.py

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Profile:
    """Display metadata of a principal, fetched from the identity service."""
    avatar_url: Optional[str] = None
    first_name: str = ""
    last_name: str = ""

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Tenant:
    tenant_id: int
    alias: str
    timezone: str = "UTC"


@dataclass(frozen=True)
class Person:
    id: str
    email: str
    user_name: Optional[str] = None
    is_admin: bool = False
