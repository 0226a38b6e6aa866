# identity_api/application/dtos/consent_dto.py

from datetime import datetime
from typing import List

from identity_api.application.dtos.base_dto import CustomBaseModel
from identity_api.application.dtos.client_dto import ClientInfo


class ConsentView(CustomBaseModel):
    """A principal's consent together with the consented client's public info."""
    client: ClientInfo
    principal_id: str
    scopes: List[str]
    status: str
    modified_at: datetime
