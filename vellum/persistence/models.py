"""
Persistence-layer records.

Plain dataclasses handed across the command/query boundary so callers never
hold live ORM instances.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from vellum.domain.fields import CollectionDefinition


@dataclass
class StoredCollection:
    id: UUID
    path: str
    singular: str
    plural: str
    definition: CollectionDefinition
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_orm(cls, row: Any) -> "StoredCollection":
        return cls(
            id=row.id,
            path=row.path,
            singular=row.singular,
            plural=row.plural,
            definition=CollectionDefinition.model_validate(row.config),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def labels(self) -> Dict[str, str]:
        return {"singular": self.singular, "plural": self.plural}


@dataclass
class StoredDocumentVersion:
    """One document version row (from document_versions or current_documents)."""
    id: UUID
    document_id: UUID
    collection_id: UUID
    path: str
    event_type: str
    status: str
    is_deleted: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    change_summary: Optional[str] = None

    @classmethod
    def from_orm(cls, row: Any) -> "StoredDocumentVersion":
        return cls(
            id=row.id,
            document_id=row.document_id,
            collection_id=row.collection_id,
            path=row.path,
            event_type=row.event_type,
            status=row.status,
            is_deleted=bool(row.is_deleted),
            created_at=row.created_at,
            updated_at=row.updated_at,
            created_by=row.created_by,
            change_summary=row.change_summary,
        )

    def head(self) -> Dict[str, Any]:
        """Version columns that lead every returned document."""
        return {
            "document_version_id": self.id,
            "document_id": self.document_id,
            "path": self.path,
            "status": self.status,
            "event_type": self.event_type,
            "is_deleted": self.is_deleted,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class CreateVersionResult:
    document: StoredDocumentVersion
    field_count: int
    block_count: int = 0
