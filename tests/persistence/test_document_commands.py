"""Tests for collection and document write commands."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from vellum.api.models import BlockMeta, Document, DocumentVersion, TextStore
from vellum.core.ids import uuid7
from vellum.domain.errors import (
    DocumentNotFoundError,
    InvalidFieldValueError,
    UnsupportedFieldTypeError,
    VersionConflictError,
)


async def _count(session_factory, model, *conditions):
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(model).where(*conditions))


async def _create(storage, collection, data, **kwargs):
    return await storage.commands.documents.create_document_version(
        collection_id=collection.id,
        collection_config=collection.definition,
        document_data=data,
        **kwargs,
    )


class TestCollectionCommands:
    """Tests for CollectionCommands."""

    @pytest.mark.asyncio
    async def test_create_collection(self, storage, docs_definition):
        """Created collection keeps labels and definition."""
        collection = await storage.commands.collections.create("docs", docs_definition)

        assert collection.path == "docs"
        assert collection.labels() == {"singular": "Document", "plural": "Documents"}
        assert collection.definition.get_field("title").localized is True

    @pytest.mark.asyncio
    async def test_duplicate_path_rejected(self, storage, docs_definition, docs_collection):
        with pytest.raises(IntegrityError):
            await storage.commands.collections.create("docs", docs_definition)

    @pytest.mark.asyncio
    async def test_delete_collection(self, storage, docs_collection):
        assert await storage.commands.collections.delete(docs_collection.id) is True
        assert await storage.commands.collections.delete(docs_collection.id) is False
        assert await storage.queries.collections.get_collection_by_id(docs_collection.id) is None


class TestCreateDocumentVersion:
    """Tests for create_document_version()."""

    @pytest.mark.asyncio
    async def test_create_writes_version_and_rows(self, storage, session_factory, docs_collection, sample_document):
        result = await _create(storage, docs_collection, sample_document, created_by="editor@example.com")

        version = result.document
        assert version.event_type == "create"
        assert version.status == "draft"
        assert version.path == "my-first-document"
        assert version.is_deleted is False
        assert version.created_by == "editor@example.com"
        assert result.block_count == 2
        assert result.field_count > 20
        assert await _count(session_factory, TextStore, TextStore.document_version_id == version.id) > 0

    @pytest.mark.asyncio
    async def test_update_adds_version(self, storage, session_factory, docs_collection, sample_document):
        first = (await _create(storage, docs_collection, sample_document)).document
        second = (await _create(
            storage, docs_collection, {**sample_document, "views": 43},
            action="update", document_id=first.document_id, status="published",
        )).document

        assert second.document_id == first.document_id
        assert second.id > first.id
        assert second.event_type == "update"
        assert await _count(
            session_factory, DocumentVersion, DocumentVersion.document_id == first.document_id
        ) == 2

    @pytest.mark.asyncio
    async def test_path_defaults(self, storage, docs_collection):
        explicit = (await _create(storage, docs_collection, {"title": "x"}, path="explicit")).document
        fallback = (await _create(storage, docs_collection, {"title": "x"})).document

        assert explicit.path == "explicit"
        assert fallback.path == str(fallback.document_id)

    @pytest.mark.asyncio
    async def test_unknown_action(self, storage, docs_collection):
        with pytest.raises(ValueError):
            await _create(storage, docs_collection, {}, action="publish")

    @pytest.mark.asyncio
    async def test_unknown_document(self, storage, docs_collection):
        with pytest.raises(DocumentNotFoundError):
            await _create(storage, docs_collection, {}, action="update", document_id=uuid7())


class TestAtomicity:
    """A failed write leaves nothing behind."""

    @pytest.mark.asyncio
    async def test_invalid_value_rolls_back(self, storage, session_factory, docs_collection):
        with pytest.raises(InvalidFieldValueError):
            await _create(storage, docs_collection, {"title": "ok", "views": "not a number"})

        assert await _count(session_factory, DocumentVersion) == 0
        assert await _count(session_factory, Document) == 0
        assert await _count(session_factory, TextStore) == 0

    @pytest.mark.asyncio
    async def test_unsupported_type_rolls_back(self, storage, session_factory):
        collection = await storage.commands.collections.create("widgets", {
            "path": "widgets",
            "labels": {"singular": "Widget", "plural": "Widgets"},
            "fields": [{"name": "name", "type": "text"}, {"name": "color", "type": "colorPicker"}],
        })

        with pytest.raises(UnsupportedFieldTypeError):
            await _create(storage, collection, {"name": "w", "color": "#fff"})

        assert await _count(session_factory, DocumentVersion) == 0
        assert await _count(session_factory, TextStore) == 0

    @pytest.mark.asyncio
    async def test_failed_update_keeps_previous(self, storage, session_factory, docs_collection):
        first = (await _create(storage, docs_collection, {"title": "v1"})).document

        with pytest.raises(InvalidFieldValueError):
            await _create(
                storage, docs_collection, {"views": 1.5},
                action="update", document_id=first.document_id,
            )

        current = await storage.queries.documents.get_document_by_id(docs_collection.id, first.document_id)
        assert current["document_version_id"] == first.id
        assert await _count(session_factory, DocumentVersion) == 1


class TestOptimisticConcurrency:
    """expected_version_id guards against lost updates."""

    @pytest.mark.asyncio
    async def test_matching_version_accepted(self, storage, docs_collection):
        first = (await _create(storage, docs_collection, {"title": "v1"})).document
        second = await _create(
            storage, docs_collection, {"title": "v2"},
            action="update", document_id=first.document_id, expected_version_id=first.id,
        )
        assert second.document.id != first.id

    @pytest.mark.asyncio
    async def test_stale_version_rejected(self, storage, docs_collection):
        first = (await _create(storage, docs_collection, {"title": "v1"})).document
        second = (await _create(
            storage, docs_collection, {"title": "v2"},
            action="update", document_id=first.document_id,
        )).document

        with pytest.raises(VersionConflictError) as exc_info:
            await _create(
                storage, docs_collection, {"title": "v3"},
                action="update", document_id=first.document_id, expected_version_id=first.id,
            )
        assert exc_info.value.actual_version_id == second.id


class TestBlockIdentity:
    """Block item ids survive re-saves."""

    @pytest.mark.asyncio
    async def test_item_ids_reused_across_versions(self, storage, session_factory, docs_collection, sample_document):
        first = (await _create(storage, docs_collection, sample_document)).document
        second = (await _create(
            storage, docs_collection, sample_document,
            action="update", document_id=first.document_id,
        )).document

        async def item_ids(version_id):
            async with session_factory() as session:
                result = await session.execute(
                    select(BlockMeta.path, BlockMeta.item_id)
                    .where(BlockMeta.document_version_id == version_id)
                    .order_by(BlockMeta.path)
                )
                return result.all()

        before = await item_ids(first.id)
        after = await item_ids(second.id)
        assert len(before) == 2
        assert before == after


class TestDeleteLogicalDocument:
    """Deletion writes a tombstone version."""

    @pytest.mark.asyncio
    async def test_tombstone(self, storage, session_factory, docs_collection):
        first = (await _create(storage, docs_collection, {"title": "bye"})).document

        tombstone = await storage.commands.documents.delete_logical_document(
            collection_id=docs_collection.id, document_id=first.document_id, created_by="admin",
        )

        assert tombstone.is_deleted is True
        assert tombstone.event_type == "delete"
        assert tombstone.path == first.path
        assert await storage.queries.documents.get_document_by_id(docs_collection.id, first.document_id) is None
        assert await _count(session_factory, DocumentVersion) == 2

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, storage, session_factory, docs_collection):
        first = (await _create(storage, docs_collection, {"title": "bye"})).document
        kwargs = {"collection_id": docs_collection.id, "document_id": first.document_id}

        once = await storage.commands.documents.delete_logical_document(**kwargs)
        twice = await storage.commands.documents.delete_logical_document(**kwargs)

        assert once.id == twice.id
        assert await _count(session_factory, DocumentVersion) == 2

    @pytest.mark.asyncio
    async def test_delete_unknown(self, storage, docs_collection):
        with pytest.raises(DocumentNotFoundError):
            await storage.commands.documents.delete_logical_document(
                collection_id=docs_collection.id, document_id=uuid7(),
            )

    @pytest.mark.asyncio
    async def test_restore_after_delete(self, storage, docs_collection):
        """Writing an update after a tombstone makes the document current again."""
        first = (await _create(storage, docs_collection, {"title": "v1"})).document
        await storage.commands.documents.delete_logical_document(
            collection_id=docs_collection.id, document_id=first.document_id,
        )

        restored = (await _create(
            storage, docs_collection, {"title": "v2"},
            action="update", document_id=first.document_id,
        )).document

        current = await storage.queries.documents.get_document_by_id(docs_collection.id, first.document_id)
        assert current["document_version_id"] == restored.id
        assert current["title"] == "v2"


class TestRelationships:
    """Parent/child edges between logical documents."""

    @pytest.mark.asyncio
    async def test_add_and_remove(self, storage, docs_collection):
        parent = (await _create(storage, docs_collection, {"title": "parent"})).document
        child = (await _create(storage, docs_collection, {"title": "child"})).document
        commands = storage.commands.documents
        queries = storage.queries.documents

        assert await commands.add_relationship(parent.document_id, child.document_id) is True
        assert await commands.add_relationship(parent.document_id, child.document_id) is False
        assert await queries.get_child_document_ids(parent.document_id) == [child.document_id]
        assert await queries.get_parent_document_ids(child.document_id) == [parent.document_id]

        assert await commands.remove_relationship(parent.document_id, child.document_id) is True
        assert await commands.remove_relationship(parent.document_id, child.document_id) is False
        assert await queries.get_child_document_ids(parent.document_id) == []
