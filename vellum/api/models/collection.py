"""
Collection Model - named field schema that documents belong to.
"""

from datetime import datetime
from typing import Any, Dict
from uuid import UUID

from sqlalchemy import Column, DateTime, String, Uuid
from sqlalchemy.orm import Mapped
from sqlalchemy.sql import func

from vellum.api.models.types import JSONVariant, utcnow
from vellum.core.database import Base
from vellum.core.ids import uuid7


class Collection(Base):
    """A collection: unique path, labels and its field definition config."""

    __tablename__ = "collections"

    id: Mapped[UUID] = Column(Uuid, primary_key=True, default=uuid7)

    path: Mapped[str] = Column(
        String(255),
        nullable=False,
        unique=True,
        doc="URL-safe collection identifier, e.g. 'docs'"
    )

    singular: Mapped[str] = Column(String(255), nullable=False)
    plural: Mapped[str] = Column(String(255), nullable=False)

    config: Mapped[Dict[str, Any]] = Column(
        JSONVariant,
        nullable=False,
        doc="Serialized CollectionDefinition"
    )

    created_at: Mapped[datetime] = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Collection(path='{self.path}')>"
