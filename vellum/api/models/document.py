"""
Document Models - logical documents and their immutable versions.

A logical document is only an identity anchor. Every write inserts a new
DocumentVersion; nothing is updated in place. Version ids are UUIDv7, so
the greatest id is the most recent version.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, String, Text, Uuid,
    column, table,
)
from sqlalchemy.orm import Mapped
from sqlalchemy.sql import func

from vellum.api.models.types import utcnow
from vellum.core.database import Base
from vellum.core.ids import uuid7


class Document(Base):
    """Logical document: a stable id that versions hang off."""

    __tablename__ = "documents"

    id: Mapped[UUID] = Column(Uuid, primary_key=True, default=uuid7)

    collection_id: Mapped[UUID] = Column(
        Uuid,
        ForeignKey("collections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Document(id={self.id})>"


class DocumentVersion(Base):
    """
    One immutable snapshot of a document.

    Tombstones (is_deleted=True) record deletion without removing history.
    """

    __tablename__ = "document_versions"

    # =========================================================================
    # IDENTITY
    # =========================================================================

    id: Mapped[UUID] = Column(
        Uuid,
        primary_key=True,
        default=uuid7,
        doc="UUIDv7 - time ordered"
    )

    document_id: Mapped[UUID] = Column(
        Uuid,
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
    )

    collection_id: Mapped[UUID] = Column(
        Uuid,
        ForeignKey("collections.id", ondelete="CASCADE"),
        nullable=False,
    )

    # =========================================================================
    # VERSION STATE
    # =========================================================================

    path: Mapped[str] = Column(String(255), nullable=False)

    event_type: Mapped[str] = Column(
        String(20),
        nullable=False,
        default="create",
        doc="create | update | delete"
    )

    status: Mapped[str] = Column(String(50), nullable=False, default="draft")

    is_deleted: Mapped[bool] = Column(Boolean, nullable=False, default=False)

    # =========================================================================
    # AUDIT
    # =========================================================================

    created_at: Mapped[datetime] = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    created_by: Mapped[Optional[str]] = Column(String(255), nullable=True)
    change_summary: Mapped[Optional[str]] = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "event_type IN ('create', 'update', 'delete')",
            name="ck_document_versions_event_type"
        ),
        Index("idx_document_versions_document", "document_id", "id"),
        Index("idx_document_versions_collection_path", "collection_id", "path"),
    )

    def __repr__(self) -> str:
        return f"<DocumentVersion(id={self.id}, document_id={self.document_id}, event={self.event_type})>"


# =============================================================================
# CURRENT DOCUMENTS VIEW
# =============================================================================

CURRENT_DOCUMENT_COLUMNS = (
    "id", "document_id", "collection_id", "path", "event_type", "status",
    "is_deleted", "created_at", "updated_at", "created_by", "change_summary",
)

# Read-only handle on the view; not part of Base.metadata so create_all skips it
current_documents = table(
    "current_documents",
    column("id", Uuid),
    column("document_id", Uuid),
    column("collection_id", Uuid),
    column("path", String),
    column("event_type", String),
    column("status", String),
    column("is_deleted", Boolean),
    column("created_at", DateTime(timezone=True)),
    column("updated_at", DateTime(timezone=True)),
    column("created_by", String),
    column("change_summary", Text),
)


def current_documents_view_sql(dialect_name: str) -> str:
    """
    DDL for the current_documents view.

    Ranks each document's versions newest first and keeps the top one
    unless it is a tombstone, so a deleted document has no current row.
    """
    create = "CREATE OR REPLACE VIEW" if dialect_name == "postgresql" else "CREATE VIEW IF NOT EXISTS"
    columns = ", ".join(CURRENT_DOCUMENT_COLUMNS)
    return (
        f"{create} current_documents AS "
        f"SELECT {columns} FROM ("
        f"SELECT {columns}, "
        f"row_number() OVER (PARTITION BY document_id ORDER BY id DESC) AS version_rank "
        f"FROM document_versions"
        f") AS ranked "
        f"WHERE version_rank = 1 AND NOT is_deleted"
    )
