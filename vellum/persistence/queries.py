"""
Storage queries: collections and reconstructed documents.

Reads go through the current_documents view for "latest" lookups and
through document_versions for exact versions and history. Field values
for any number of versions are fetched with one fan-in query.
"""

import logging
import math
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vellum.api.models.block_meta import BlockMeta
from vellum.api.models.collection import Collection
from vellum.api.models.document import DocumentVersion, current_documents
from vellum.api.models.document_relationship import DocumentRelationship
from vellum.api.models.field_store import TextStore
from vellum.core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from vellum.domain.errors import CollectionNotFoundError, DocumentNotFoundError
from vellum.domain.fields import ALL_LOCALES, CollectionDefinition
from vellum.domain.services.block_meta import BlockMetaRow
from vellum.domain.services.field_reconstructor import reconstruct_fields
from vellum.domain.store_rows import StoreRow
from vellum.persistence.fan_in import (
    fetch_field_values,
    group_by_version,
    normalize_field_values,
)
from vellum.persistence.models import StoredCollection, StoredDocumentVersion

logger = logging.getLogger(__name__)

ORDER_COLUMNS = ("created_at", "updated_at", "path")


def _escape_like(text: str) -> str:
    """Match `text` literally inside a LIKE pattern."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _page_window(page: int, page_size: int) -> tuple:
    page = max(1, page)
    page_size = max(1, min(page_size, MAX_PAGE_SIZE))
    return page, page_size, (page - 1) * page_size


class CollectionQueries:
    """Read collections and their definitions."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def get_all_collections(self) -> List[StoredCollection]:
        async with self._session_factory() as session:
            result = await session.execute(select(Collection).order_by(Collection.path))
            return [StoredCollection.from_orm(row) for row in result.scalars().all()]

    async def get_collection_by_path(self, path: str) -> Optional[StoredCollection]:
        async with self._session_factory() as session:
            result = await session.execute(select(Collection).where(Collection.path == path))
            row = result.scalar_one_or_none()
            return StoredCollection.from_orm(row) if row else None

    async def get_collection_by_id(self, collection_id: UUID) -> Optional[StoredCollection]:
        async with self._session_factory() as session:
            row = await session.get(Collection, collection_id)
            return StoredCollection.from_orm(row) if row else None


class DocumentQueries:
    """
    Read documents back out of the typed stores.

    Documents carry the version head (document_id, path, status, ...)
    next to their fields; a field with the same name as a head key wins.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    # =========================================================================
    # FAN-IN
    # =========================================================================

    async def get_all_field_values(
        self, document_version_id: UUID, locale: str = ALL_LOCALES
    ) -> List[Dict[str, Any]]:
        """Raw union rows for one version (every store kind, one query)."""
        async with self._session_factory() as session:
            return await fetch_field_values(session, [document_version_id], locale)

    async def get_field_values_for_versions(
        self, document_version_ids: Sequence[UUID], locale: str = ALL_LOCALES
    ) -> List[Dict[str, Any]]:
        """Raw union rows for many versions in one query."""
        async with self._session_factory() as session:
            return await fetch_field_values(session, document_version_ids, locale)

    # =========================================================================
    # SINGLE DOCUMENT
    # =========================================================================

    async def get_document_by_id(
        self,
        collection_id: UUID,
        document_id: UUID,
        locale: str = ALL_LOCALES,
        reconstruct: bool = True,
    ) -> Optional[Dict[str, Any]]:
        """Current version of a logical document, or None."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(current_documents).where(
                    current_documents.c.collection_id == collection_id,
                    current_documents.c.document_id == document_id,
                )
            )
            row = result.first()
            if row is None:
                return None
            documents = await self._build_documents(
                session, [StoredDocumentVersion.from_orm(row)], locale, reconstruct
            )
            return documents[0]

    async def get_document_by_path(
        self,
        collection_id: UUID,
        path: str,
        locale: str = ALL_LOCALES,
        reconstruct: bool = True,
    ) -> Dict[str, Any]:
        """
        Current version of the document at `path`.

        Raises:
            DocumentNotFoundError: no current document has that path
        """
        async with self._session_factory() as session:
            result = await session.execute(
                select(current_documents)
                .where(
                    current_documents.c.collection_id == collection_id,
                    current_documents.c.path == path,
                )
                .order_by(current_documents.c.id.desc())
                .limit(1)
            )
            row = result.first()
            if row is None:
                raise DocumentNotFoundError(f"No document at path '{path}'")
            documents = await self._build_documents(
                session, [StoredDocumentVersion.from_orm(row)], locale, reconstruct
            )
            return documents[0]

    async def get_document_by_version(
        self,
        document_version_id: UUID,
        locale: str = ALL_LOCALES,
        reconstruct: bool = True,
    ) -> Dict[str, Any]:
        """
        One exact version, current or not.

        Raises:
            DocumentNotFoundError: the version does not exist
        """
        async with self._session_factory() as session:
            version = await session.get(DocumentVersion, document_version_id)
            if version is None:
                raise DocumentNotFoundError(f"Document version {document_version_id} not found")
            documents = await self._build_documents(
                session, [StoredDocumentVersion.from_orm(version)], locale, reconstruct
            )
            return documents[0]

    # =========================================================================
    # BATCH
    # =========================================================================

    async def get_documents(
        self,
        document_version_ids: Sequence[UUID],
        locale: str = ALL_LOCALES,
        reconstruct: bool = True,
    ) -> List[Dict[str, Any]]:
        """Reconstruct many versions with one fan-in query. Keeps input order."""
        if not document_version_ids:
            return []
        async with self._session_factory() as session:
            result = await session.execute(
                select(DocumentVersion).where(DocumentVersion.id.in_(list(document_version_ids)))
            )
            by_id = {row.id: StoredDocumentVersion.from_orm(row) for row in result.scalars().all()}
            versions = [by_id[version_id] for version_id in document_version_ids if version_id in by_id]
            return await self._build_documents(session, versions, locale, reconstruct)

    async def get_multiple_documents(
        self,
        collection_id: UUID,
        document_ids: Sequence[UUID],
        locale: str = ALL_LOCALES,
        reconstruct: bool = True,
    ) -> List[Dict[str, Any]]:
        """Current versions of several logical documents. Keeps input order."""
        if not document_ids:
            return []
        async with self._session_factory() as session:
            result = await session.execute(
                select(current_documents).where(
                    current_documents.c.collection_id == collection_id,
                    current_documents.c.document_id.in_(list(document_ids)),
                )
            )
            by_document = {row.document_id: StoredDocumentVersion.from_orm(row) for row in result.all()}
            versions = [by_document[doc_id] for doc_id in document_ids if doc_id in by_document]
            return await self._build_documents(session, versions, locale, reconstruct)

    async def get_documents_by_batch(
        self,
        collection_id: UUID,
        batch_size: int = 50,
        locale: str = ALL_LOCALES,
    ) -> AsyncIterator[List[Dict[str, Any]]]:
        """Yield every current document of a collection, `batch_size` per fan-in query."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(current_documents)
                .where(current_documents.c.collection_id == collection_id)
                .order_by(current_documents.c.path, current_documents.c.id)
            )
            versions = [StoredDocumentVersion.from_orm(row) for row in result.all()]

            for start in range(0, len(versions), batch_size):
                yield await self._build_documents(
                    session, versions[start:start + batch_size], locale, True
                )

    # =========================================================================
    # LISTINGS
    # =========================================================================

    async def get_documents_by_page(
        self,
        collection_id: UUID,
        locale: str = ALL_LOCALES,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        order: str = "created_at",
        desc: bool = True,
        query: Optional[str] = None,
        query_field: str = "title",
        reconstruct: bool = True,
    ) -> Dict[str, Any]:
        """
        Page through the current documents of a collection.

        Args:
            collection_id: Collection to list
            locale: Locale to reconstruct
            page: 1-based page number
            page_size: Documents per page (capped at MAX_PAGE_SIZE)
            order: "created_at", "updated_at" or "path"
            desc: Sort descending
            query: Case-insensitive substring matched against `query_field`;
                `%` and `_` match themselves
            query_field: Text field searched by `query`

        Returns:
            {"documents": [...], "meta": {...}, "included": {"collection": {...}}}
        """
        page, page_size, offset = _page_window(page, page_size)
        if order not in ORDER_COLUMNS:
            order = "created_at"
        order_column = current_documents.c[order]

        async with self._session_factory() as session:
            collection = await session.get(Collection, collection_id)
            if collection is None:
                raise CollectionNotFoundError(f"Collection {collection_id} not found")

            conditions = [current_documents.c.collection_id == collection_id]
            if query:
                conditions.append(
                    exists().where(
                        TextStore.document_version_id == current_documents.c.id,
                        TextStore.field_name == query_field,
                        TextStore.value.ilike(f"%{_escape_like(query)}%", escape="\\"),
                    )
                )

            total = await session.scalar(
                select(func.count()).select_from(current_documents).where(*conditions)
            ) or 0

            result = await session.execute(
                select(current_documents)
                .where(*conditions)
                .order_by(
                    order_column.desc() if desc else order_column.asc(),
                    current_documents.c.id.desc() if desc else current_documents.c.id.asc(),
                )
                .limit(page_size)
                .offset(offset)
            )
            versions = [StoredDocumentVersion.from_orm(row) for row in result.all()]
            documents = await self._build_documents(session, versions, locale, reconstruct)

            return {
                "documents": documents,
                "meta": {
                    "total": total,
                    "page": page,
                    "page_size": page_size,
                    "total_pages": math.ceil(total / page_size),
                    "order": order,
                    "desc": desc,
                    "query": query,
                },
                "included": {
                    "collection": {
                        "id": collection.id,
                        "path": collection.path,
                        "labels": {"singular": collection.singular, "plural": collection.plural},
                    },
                },
            }

    async def get_document_history(
        self,
        collection_id: UUID,
        document_id: UUID,
        locale: str = ALL_LOCALES,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        order: str = "created_at",
        desc: bool = True,
        reconstruct: bool = True,
    ) -> Dict[str, Any]:
        """Every version of a document, tombstones included, paged."""
        page, page_size, offset = _page_window(page, page_size)
        if order not in ORDER_COLUMNS:
            order = "created_at"
        # Version ids are time ordered, so they break created_at ties
        order_column = getattr(DocumentVersion, order)

        async with self._session_factory() as session:
            if await session.get(Collection, collection_id) is None:
                raise CollectionNotFoundError(f"Collection {collection_id} not found")

            conditions = [
                DocumentVersion.collection_id == collection_id,
                DocumentVersion.document_id == document_id,
            ]
            total = await session.scalar(
                select(func.count()).select_from(DocumentVersion).where(*conditions)
            ) or 0

            result = await session.execute(
                select(DocumentVersion)
                .where(*conditions)
                .order_by(
                    order_column.desc() if desc else order_column.asc(),
                    DocumentVersion.id.desc() if desc else DocumentVersion.id.asc(),
                )
                .limit(page_size)
                .offset(offset)
            )
            versions = [StoredDocumentVersion.from_orm(row) for row in result.scalars().all()]
            documents = await self._build_documents(session, versions, locale, reconstruct)

            return {
                "documents": documents,
                "meta": {
                    "total": total,
                    "page": page,
                    "page_size": page_size,
                    "total_pages": math.ceil(total / page_size),
                    "order": order,
                    "desc": desc,
                },
            }

    # =========================================================================
    # RELATIONSHIPS
    # =========================================================================

    async def get_child_document_ids(self, parent_document_id: UUID) -> List[UUID]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(DocumentRelationship.child_document_id)
                .where(DocumentRelationship.parent_document_id == parent_document_id)
                .order_by(DocumentRelationship.created_at)
            )
            return list(result.scalars().all())

    async def get_parent_document_ids(self, child_document_id: UUID) -> List[UUID]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(DocumentRelationship.parent_document_id)
                .where(DocumentRelationship.child_document_id == child_document_id)
                .order_by(DocumentRelationship.created_at)
            )
            return list(result.scalars().all())

    # =========================================================================
    # ASSEMBLY
    # =========================================================================

    async def _load_definitions(
        self, session: AsyncSession, collection_ids: Sequence[UUID]
    ) -> Dict[UUID, CollectionDefinition]:
        ids = list(set(collection_ids))
        if not ids:
            return {}
        result = await session.execute(select(Collection).where(Collection.id.in_(ids)))
        return {
            row.id: CollectionDefinition.model_validate(row.config)
            for row in result.scalars().all()
        }

    async def _load_block_meta(
        self, session: AsyncSession, version_ids: Sequence[UUID]
    ) -> Dict[UUID, Dict[str, BlockMetaRow]]:
        result = await session.execute(
            select(BlockMeta).where(
                BlockMeta.document_version_id.in_(list(version_ids)),
                BlockMeta.type == "block",
            )
        )
        grouped: Dict[UUID, Dict[str, BlockMetaRow]] = {}
        for row in result.scalars().all():
            grouped.setdefault(row.document_version_id, {})[row.path] = BlockMetaRow(
                path=row.path, item_id=row.item_id, meta=row.meta, type=row.type
            )
        return grouped

    async def _build_documents(
        self,
        session: AsyncSession,
        versions: Sequence[StoredDocumentVersion],
        locale: str,
        reconstruct: bool,
    ) -> List[Dict[str, Any]]:
        """
        Fetch field values for all `versions` at once and assemble each document.

        A reconstructed document is the version head with its fields laid
        over it, so a field named like a head key (`path`, `status`, ...)
        takes the field value. The version columns stay readable through
        `reconstruct=False`.
        """
        if not versions:
            return []
        version_ids = [version.id for version in versions]

        raw_rows = await fetch_field_values(session, version_ids, locale)
        rows_by_version = group_by_version(normalize_field_values(raw_rows))

        if not reconstruct:
            return [
                {**version.head(), "fields": rows_by_version.get(version.id, [])}
                for version in versions
            ]

        definitions = await self._load_definitions(session, [v.collection_id for v in versions])
        block_meta = await self._load_block_meta(session, version_ids)

        documents = []
        for version in versions:
            rows: List[StoreRow] = rows_by_version.get(version.id, [])
            fields = reconstruct_fields(
                rows,
                locale,
                collection=definitions.get(version.collection_id),
                block_meta=block_meta.get(version.id, {}),
            )
            documents.append({**version.head(), **fields})
        return documents
