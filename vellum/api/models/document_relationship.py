"""
Document Relationship Model - parent/child edges between logical documents.

Edges are independent of versioning: they link document ids, never
version ids.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Column, DateTime, ForeignKey, PrimaryKeyConstraint, Uuid
from sqlalchemy.orm import Mapped
from sqlalchemy.sql import func

from vellum.api.models.types import utcnow
from vellum.core.database import Base


class DocumentRelationship(Base):
    __tablename__ = "document_relationships"

    parent_document_id: Mapped[UUID] = Column(
        Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    child_document_id: Mapped[UUID] = Column(
        Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        PrimaryKeyConstraint("parent_document_id", "child_document_id", name="pk_document_relationships"),
    )

    def __repr__(self) -> str:
        return f"<DocumentRelationship({self.parent_document_id} -> {self.child_document_id})>"
