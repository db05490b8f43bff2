#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixins for the accounts API.

- UUID primary key (String(36)) with defaults
- created_at / updated_at timestamps
- save() that goes through DBStorage
- to_dict() that formats timestamps, removes SA internals and never leaks
  the fields listed in SENSITIVE_FIELDS
"""

from __future__ import annotations

from datetime import datetime, timezone
import uuid

# Importing 'models' gives access to the global 'storage' instance (DBStorage)
# defined in models/__init__.py
import models

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

TIME_FMT = "%Y-%m-%dT%H:%M:%S.%f"

# Declarative base for all models
Base = declarative_base()


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


class BaseModel:
    """
    Base mixin for all persistent models: id, created_at, updated_at,
    save() wired to DBStorage and a to_dict() for responses.
    """

    SENSITIVE_FIELDS: tuple[str, ...] = ()

    id = Column(String(36), primary_key=True, default=_uuid_str, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session here.
        DB defaults fill created_at/updated_at on insert.
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
        if getattr(self, "id", None) is None:
            self.id = _uuid_str()

    def __str__(self) -> str:
        return f"[{self.__class__.__name__}] ({self.id})"

    def save(self):
        """Update updated_at and persist the instance."""
        self.updated_at = datetime.now(timezone.utc)
        models.storage.new(self)
        models.storage.save()

    def to_dict(self, include_sensitive: bool = False) -> dict:
        """
        Return a dictionary of fields suitable for API responses:
        - Formats created_at / updated_at to TIME_FMT
        - Removes SQLAlchemy internal state
        - Drops SENSITIVE_FIELDS unless include_sensitive is set
        """
        d = {k: v for k, v in self.__dict__.items() if k != "_sa_instance_state"}
        if isinstance(d.get("created_at"), datetime):
            d["created_at"] = d["created_at"].strftime(TIME_FMT)
        if isinstance(d.get("updated_at"), datetime):
            d["updated_at"] = d["updated_at"].strftime(TIME_FMT)
        d["__class__"] = self.__class__.__name__

        if not include_sensitive:
            for field in self.SENSITIVE_FIELDS:
                d.pop(field, None)

        return d
