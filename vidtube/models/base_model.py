"""
Shared SQLAlchemy base and mixin for the VidTube models.

- UUID primary key (String(36)) with defaults
- created_at / updated_at timestamps
- save() and delete() that go through the DBStorage singleton

Timestamps use server-side defaults (func.now()) so they are set consistently
by the DB; for SQLite, func.now() maps to CURRENT_TIMESTAMP.
"""

from __future__ import annotations

from datetime import datetime, timezone
import uuid

# Importing the package gives access to the global 'storage' instance (DBStorage)
import vidtube.models as models

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

# Declarative base for all models
Base = declarative_base()


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


class BaseModel:
    """
    Base mixin for all persistent models: id, created_at, updated_at,
    and save()/delete() wired to DBStorage.
    """

    id = Column(String(36), primary_key=True, default=_uuid_str, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session here.
        created_at/updated_at are left to the DB defaults unless passed explicitly.
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
        if getattr(self, "id", None) is None:
            self.id = _uuid_str()

    def save(self):
        """
        Persist the instance. No schema validation runs here; request
        payloads are validated by the marshmallow schemas before they reach a model.
        """
        self.updated_at = datetime.now(timezone.utc)
        models.storage.new(self)
        models.storage.save()
