# identity_api/adapters/outbound/persistence/models/base_model.py

from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base

# Parent class of all ORM models
Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
