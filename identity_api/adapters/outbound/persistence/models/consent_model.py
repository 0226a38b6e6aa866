# identity_api/adapters/outbound/persistence/models/consent_model.py

from sqlalchemy import Column, String, DateTime, JSON, Enum

from identity_api.adapters.outbound.persistence.models.base_model import Base, utcnow
from identity_api.domain.models.consent_domain_model import ConsentStatus


class Consent(Base):
    """
    Model representing a principal's consent to a client's scopes.

    The composite primary key guarantees a single consent per
    (client_id, principal_id).
    """
    __tablename__ = "identity_consents"

    client_id = Column(String(36), primary_key=True)
    principal_id = Column(String(255), primary_key=True)
    scopes = Column(JSON, nullable=False, default=list)
    status = Column(Enum(ConsentStatus, name="consent_status"), nullable=False, default=ConsentStatus.ACTIVE)
    modified_on = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Consent(client_id={self.client_id}, principal_id={self.principal_id}, status={self.status})>"
