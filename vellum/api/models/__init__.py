"""ORM models. Importing this package registers every table with Base.metadata."""

from vellum.api.models.block_meta import BlockMeta
from vellum.api.models.collection import Collection
from vellum.api.models.document import Document, DocumentVersion, current_documents
from vellum.api.models.document_relationship import DocumentRelationship
from vellum.api.models.field_store import (
    BooleanStore,
    DateTimeStore,
    FileStore,
    JsonStore,
    NumericStore,
    RelationStore,
    STORE_MODELS,
    TextStore,
)

__all__ = [
    "BlockMeta",
    "BooleanStore",
    "Collection",
    "DateTimeStore",
    "Document",
    "DocumentRelationship",
    "DocumentVersion",
    "FileStore",
    "JsonStore",
    "NumericStore",
    "RelationStore",
    "STORE_MODELS",
    "TextStore",
    "current_documents",
]
