"""
Block Meta Model - durable identity for block-array elements.

Rows are keyed by block path (``content.0.photoBlock``); ``item_id`` is
carried forward between versions so identity never depends on position.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped
from sqlalchemy.sql import func

from vellum.api.models.types import JSONVariant, utcnow
from vellum.core.database import Base
from vellum.core.ids import uuid7


class BlockMeta(Base):
    __tablename__ = "store_meta"

    id: Mapped[UUID] = Column(Uuid, primary_key=True, default=uuid7)

    document_version_id: Mapped[UUID] = Column(
        Uuid, ForeignKey("document_versions.id", ondelete="CASCADE"), nullable=False
    )
    collection_id: Mapped[UUID] = Column(
        Uuid, ForeignKey("collections.id", ondelete="CASCADE"), nullable=False
    )

    type: Mapped[str] = Column(String(20), nullable=False, default="block")
    path: Mapped[str] = Column(String(500), nullable=False)
    item_id: Mapped[str] = Column(String(100), nullable=False)
    meta: Mapped[Optional[Dict[str, Any]]] = Column(JSONVariant, nullable=True)

    created_at: Mapped[datetime] = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("document_version_id", "type", "path", name="uq_store_meta_version_type_path"),
        Index("idx_store_meta_version", "document_version_id"),
        Index("idx_store_meta_item", "item_id"),
    )
