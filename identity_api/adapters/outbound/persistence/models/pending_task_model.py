# identity_api/adapters/outbound/persistence/models/pending_task_model.py

"""
Persisted intent of background work.

A row is written in the same transaction as the state change that
requires it and is removed only after its handler succeeds.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON

from identity_api.adapters.outbound.persistence.models.base_model import Base, utcnow


class PendingTask(Base):
    __tablename__ = "identity_pending_tasks"

    id = Column(String(36), primary_key=True)
    kind = Column(String(100), nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    attempts = Column(Integer, nullable=False, default=0)
    available_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    locked_until = Column(DateTime(timezone=True), nullable=True)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<PendingTask(id={self.id}, kind={self.kind}, attempts={self.attempts})>"
