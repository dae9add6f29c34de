"""
Storage commands: collections and document versions.

Every document write inserts a new version inside one transaction; field
rows, block meta rows and the version row commit or roll back together.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vellum.api.models.block_meta import BlockMeta
from vellum.api.models.collection import Collection
from vellum.api.models.document import Document, DocumentVersion
from vellum.api.models.document_relationship import DocumentRelationship
from vellum.api.models.field_store import STORE_MODELS
from vellum.core.ids import uuid7
from vellum.core.logging import LogContext
from vellum.domain.errors import DocumentNotFoundError, VersionConflictError
from vellum.domain.fields import ALL_LOCALES, CollectionDefinition
from vellum.domain.services.block_meta import collect_block_meta
from vellum.domain.services.field_flattener import flatten_fields
from vellum.domain.store_rows import StoreRow
from vellum.persistence.models import CreateVersionResult, StoredCollection, StoredDocumentVersion

logger = logging.getLogger(__name__)

VERSION_ACTIONS = ("create", "update")


def as_collection_definition(definition: Union[CollectionDefinition, Mapping[str, Any]]) -> CollectionDefinition:
    if isinstance(definition, CollectionDefinition):
        return definition
    return CollectionDefinition.model_validate(definition)


def store_row_models(rows: Sequence[StoreRow], document_version_id: UUID, collection_id: UUID) -> List[Any]:
    """Map store rows onto ORM instances of their typed tables."""
    models = []
    for row in rows:
        model_class = STORE_MODELS[row.kind]
        models.append(model_class(
            document_version_id=document_version_id,
            collection_id=collection_id,
            field_path=row.field_path,
            field_name=row.field_name,
            field_type=row.field_type,
            locale=row.locale,
            parent_path=row.parent_path,
            **row.columns(),
        ))
    return models


async def latest_version(
    session: AsyncSession, document_id: UUID, include_deleted: bool = True
) -> Optional[DocumentVersion]:
    stmt = select(DocumentVersion).where(DocumentVersion.document_id == document_id)
    if not include_deleted:
        stmt = stmt.where(DocumentVersion.is_deleted.is_(False))
    result = await session.execute(stmt.order_by(DocumentVersion.id.desc()).limit(1))
    return result.scalar_one_or_none()


async def load_block_item_ids(session: AsyncSession, document_version_id: UUID) -> Dict[str, str]:
    """Path -> item_id map of one version's block meta rows."""
    result = await session.execute(
        select(BlockMeta.path, BlockMeta.item_id).where(
            BlockMeta.document_version_id == document_version_id,
            BlockMeta.type == "block",
        )
    )
    return {path: item_id for path, item_id in result.all()}


class CollectionCommands:
    """Create and delete collections."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def create(
        self, path: str, definition: Union[CollectionDefinition, Mapping[str, Any]]
    ) -> StoredCollection:
        definition = as_collection_definition(definition)
        async with self._session_factory() as session:
            async with session.begin():
                collection = Collection(
                    id=uuid7(),
                    path=path,
                    singular=definition.labels.singular,
                    plural=definition.labels.plural,
                    config=definition.model_dump(mode="json"),
                )
                session.add(collection)
                await session.flush()
            logger.info(f"Created collection '{path}' ({collection.id})")
            return StoredCollection.from_orm(collection)

    async def delete(self, collection_id: UUID) -> bool:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(delete(Collection).where(Collection.id == collection_id))
            deleted = result.rowcount > 0
        if deleted:
            logger.info(f"Deleted collection {collection_id}")
        return deleted


class DocumentCommands:
    """Write document versions, tombstones and relationships."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def create_document_version(
        self,
        *,
        collection_id: UUID,
        collection_config: Union[CollectionDefinition, Mapping[str, Any]],
        document_data: Mapping[str, Any],
        action: str = "create",
        document_id: Optional[UUID] = None,
        path: Optional[str] = None,
        locale: str = ALL_LOCALES,
        status: str = "draft",
        created_by: Optional[str] = None,
        change_summary: Optional[str] = None,
        expected_version_id: Optional[UUID] = None,
    ) -> CreateVersionResult:
        """
        Write a new version of a document.

        Args:
            collection_id: Owning collection
            collection_config: Definition the document is flattened against
            document_data: Full document content
            action: "create" or "update" (recorded as the event type)
            document_id: Existing logical document; a new one is minted if None
            path: Document path; defaults to document_data["path"] or the id
            locale: Locale recorded on non-map values
            status: Workflow status of the new version
            created_by: Author identifier
            change_summary: Free-text description of the change
            expected_version_id: If set, the latest version must have this id

        Returns:
            CreateVersionResult with the new version and its field row count

        Raises:
            DocumentNotFoundError: document_id does not exist
            VersionConflictError: expected_version_id is stale
            StorageSchemaError: the document does not fit the definition
        """
        if action not in VERSION_ACTIONS:
            raise ValueError(f"Unsupported version action: {action}")
        collection = as_collection_definition(collection_config)

        async with self._session_factory() as session:
            async with session.begin():
                previous_item_ids: Dict[str, str] = {}

                if document_id is None:
                    document_id = uuid7()
                    session.add(Document(id=document_id, collection_id=collection_id))
                    await session.flush()
                else:
                    if await session.get(Document, document_id) is None:
                        raise DocumentNotFoundError(f"Document {document_id} not found")
                    if expected_version_id is not None:
                        latest = await latest_version(session, document_id)
                        actual = latest.id if latest else None
                        if actual != expected_version_id:
                            raise VersionConflictError(document_id, expected_version_id, actual)
                    previous = await latest_version(session, document_id, include_deleted=False)
                    if previous is not None:
                        previous_item_ids = await load_block_item_ids(session, previous.id)

                version = DocumentVersion(
                    id=uuid7(),
                    document_id=document_id,
                    collection_id=collection_id,
                    path=path or document_data.get("path") or str(document_id),
                    event_type=action,
                    status=status,
                    is_deleted=False,
                    created_by=created_by,
                    change_summary=change_summary,
                )
                session.add(version)
                await session.flush()

                with LogContext(document_id=str(document_id), document_version_id=str(version.id)):
                    rows = flatten_fields(document_data, collection, locale)
                    session.add_all(store_row_models(rows, version.id, collection_id))

                    block_rows = collect_block_meta(document_data, collection, previous_item_ids)
                    session.add_all([
                        BlockMeta(
                            document_version_id=version.id,
                            collection_id=collection_id,
                            type=block.type,
                            path=block.path,
                            item_id=block.item_id,
                            meta=block.meta,
                        )
                        for block in block_rows
                    ])
                    await session.flush()

                    logger.info(
                        f"Created {action} version with {len(rows)} field values "
                        f"and {len(block_rows)} blocks"
                    )

            return CreateVersionResult(
                document=StoredDocumentVersion.from_orm(version),
                field_count=len(rows),
                block_count=len(block_rows),
            )

    async def delete_logical_document(
        self,
        *,
        collection_id: UUID,
        document_id: UUID,
        created_by: Optional[str] = None,
    ) -> StoredDocumentVersion:
        """
        Record deletion as a tombstone version. History is kept.

        Raises:
            DocumentNotFoundError: the document has no versions
        """
        async with self._session_factory() as session:
            async with session.begin():
                latest = await latest_version(session, document_id)
                if latest is None or latest.collection_id != collection_id:
                    raise DocumentNotFoundError(f"Document {document_id} not found")
                if latest.is_deleted:
                    return StoredDocumentVersion.from_orm(latest)

                tombstone = DocumentVersion(
                    id=uuid7(),
                    document_id=document_id,
                    collection_id=collection_id,
                    path=latest.path,
                    event_type="delete",
                    status=latest.status,
                    is_deleted=True,
                    created_by=created_by,
                )
                session.add(tombstone)
                await session.flush()
            logger.info(f"Deleted document {document_id} (tombstone {tombstone.id})")
            return StoredDocumentVersion.from_orm(tombstone)

    async def add_relationship(self, parent_document_id: UUID, child_document_id: UUID) -> bool:
        """Link two logical documents. Returns False if the edge already exists."""
        async with self._session_factory() as session:
            async with session.begin():
                existing = await session.get(DocumentRelationship, (parent_document_id, child_document_id))
                if existing is not None:
                    return False
                session.add(DocumentRelationship(
                    parent_document_id=parent_document_id,
                    child_document_id=child_document_id,
                ))
        return True

    async def remove_relationship(self, parent_document_id: UUID, child_document_id: UUID) -> bool:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    delete(DocumentRelationship).where(
                        DocumentRelationship.parent_document_id == parent_document_id,
                        DocumentRelationship.child_document_id == child_document_id,
                    )
                )
        return result.rowcount > 0
