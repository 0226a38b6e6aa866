# identity_api/adapters/outbound/persistence/models/authorization_model.py

"""
Authorization model.

Rows are written by the token-issuance component; this service only
reads them for tests and deletes them in bulk.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON, Index

from identity_api.adapters.outbound.persistence.models.base_model import Base, utcnow


class Authorization(Base):
    __tablename__ = "identity_authorizations"

    id = Column(String(36), primary_key=True)
    client_id = Column(String(36), nullable=False)
    principal_id = Column(String(255), nullable=False)
    tenant_id = Column(Integer, nullable=False)
    issued_on = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    attributes = Column(JSON, nullable=False, default=dict)

    __table_args__ = (
        Index("ix_identity_authorizations_lookup", "tenant_id", "client_id", "principal_id"),
    )

    def __repr__(self) -> str:
        return f"<Authorization(client_id={self.client_id}, principal_id={self.principal_id})>"
