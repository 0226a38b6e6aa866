# identity_api/adapters/outbound/persistence/models/client_model.py

"""
Client model for registered OAuth2 applications.

This module defines the Client model representing third-party
applications allowed to request authorization on behalf of users.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, JSON, Index

from identity_api.adapters.outbound.persistence.models.base_model import Base, utcnow


class Client(Base):
    """
    Model representing a client application registered inside a tenant.

    Attributes:
        client_id: Public identifier of the client (immutable)
        client_secret: Hash of the client's secret
        tenant_id: Owning tenant
        redirect_uris: Allowed redirect URIs (JSON list, never empty)
        scopes: Granted scopes (JSON list, subset of the allowed catalogue)
        enabled: Whether the client may be used
        invalidated: Terminal soft-delete flag
    """
    __tablename__ = "identity_clients"

    client_id = Column(String(36), primary_key=True)
    client_secret = Column(String(255), nullable=False)
    tenant_id = Column(Integer, nullable=False, index=True)
    tenant_url = Column(String(255), nullable=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    website_url = Column(String(255), nullable=True)
    terms_url = Column(String(255), nullable=True)
    policy_url = Column(String(255), nullable=True)
    logo = Column(Text, nullable=True)
    authentication_method = Column(String(100), nullable=False, default="client_secret_post")
    redirect_uris = Column(JSON, nullable=False, default=list)
    logout_redirect_uris = Column(JSON, nullable=False, default=list)
    scopes = Column(JSON, nullable=False, default=list)
    enabled = Column(Boolean, default=True, nullable=False)
    invalidated = Column(Boolean, default=False, nullable=False, index=True)
    created_on = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_by = Column(String(255), nullable=False)
    modified_on = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    modified_by = Column(String(255), nullable=False)

    __table_args__ = (
        Index("ix_identity_clients_tenant_invalidated", "tenant_id", "invalidated"),
    )

    def __repr__(self) -> str:
        return f"<Client(client_id={self.client_id}, tenant={self.tenant_id}, enabled={self.enabled})>"
