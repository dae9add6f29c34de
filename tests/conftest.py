"""
Shared pytest fixtures for all tests.

Provides an isolated in-memory database per test and a sample collection
definition that exercises every store kind.
"""

import os

# Must be set before vellum.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CONTENT_LOCALES", "en,es,fr")
os.environ.setdefault("DEFAULT_CONTENT_LOCALE", "en")

from datetime import date, time
from decimal import Decimal
from uuid import UUID

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from vellum.core.database import init_database
from vellum.domain.fields import CollectionDefinition
from vellum.persistence import create_storage


# =============================================================================
# COLLECTION FIXTURES
# =============================================================================

DOCS_DEFINITION = {
    "path": "docs",
    "labels": {"singular": "Document", "plural": "Documents"},
    "fields": [
        {"name": "path", "type": "text", "required": True},
        {"name": "title", "type": "text", "localized": True},
        {"name": "summary", "type": "textArea", "localized": True},
        {"name": "views", "type": "integer"},
        {"name": "price", "type": "decimal"},
        {"name": "rating", "type": "float"},
        {"name": "featured", "type": "checkbox"},
        {"name": "publishedOn", "type": "date"},
        {"name": "startsAt", "type": "time"},
        {"name": "updatedAt", "type": "datetime"},
        {"name": "heroImage", "type": "image"},
        {"name": "author", "type": "relation"},
        {"name": "metadata", "type": "json"},
        {
            "name": "seo",
            "type": "group",
            "fields": [
                {"name": "description", "type": "text"},
                {"name": "keywords", "type": "json"},
            ],
        },
        {
            "name": "links",
            "type": "array",
            "fields": [
                {"name": "label", "type": "text"},
                {"name": "url", "type": "text"},
            ],
        },
        {
            "name": "content",
            "type": "array",
            "fields": [
                {
                    "name": "richTextBlock",
                    "type": "block",
                    "fields": [
                        {"name": "richText", "type": "richText", "localized": True},
                        {"name": "constrainedWidth", "type": "boolean"},
                    ],
                },
                {
                    "name": "photoBlock",
                    "type": "block",
                    "fields": [
                        {"name": "display", "type": "select"},
                        {"name": "photo", "type": "image"},
                        {"name": "alt", "type": "text"},
                    ],
                },
            ],
        },
    ],
}

AUTHOR_ID = UUID("0190a6f1-3c7e-7a4e-9d2b-5f8e1c2a3b4d")
AUTHORS_COLLECTION_ID = UUID("0190a6f1-0000-7000-8000-000000000001")
PHOTO_FILE_ID = UUID("0190a6f1-1111-7111-8111-111111111111")


def photo_value(name: str = "photo.jpg") -> dict:
    return {
        "file_id": PHOTO_FILE_ID,
        "filename": name,
        "original_filename": name,
        "mime_type": "image/jpeg",
        "file_size": 204800,
        "storage_provider": "local",
        "storage_path": f"uploads/{name}",
        "image_width": 1600,
        "image_height": 900,
        "image_format": "jpeg",
        "processing_status": "complete",
        "thumbnail_generated": True,
    }


@pytest.fixture
def docs_definition() -> CollectionDefinition:
    return CollectionDefinition.model_validate(DOCS_DEFINITION)


@pytest.fixture
def sample_document() -> dict:
    """A document touching every field in DOCS_DEFINITION except updatedAt."""
    return {
        "path": "my-first-document",
        "title": {"en": "My First Document", "es": "Mi Primer Documento"},
        "summary": {"en": "A short summary", "fr": "Un court résumé"},
        "views": 42,
        "price": Decimal("19.99"),
        "rating": 4.5,
        "featured": True,
        "publishedOn": date(2024, 1, 15),
        "startsAt": time(9, 30),
        "heroImage": photo_value("hero.jpg"),
        "author": {
            "target_document_id": AUTHOR_ID,
            "target_collection_id": AUTHORS_COLLECTION_ID,
            "relationship_type": "reference",
            "cascade_delete": False,
        },
        "metadata": {"tags": ["cms", "storage"], "score": 7},
        "seo": {"description": "Search description", "keywords": ["docs", "vellum"]},
        "links": [
            {"label": "Home", "url": "https://example.com"},
            {"label": "Docs", "url": "https://example.com/docs"},
        ],
        "content": [
            {
                "richTextBlock": {
                    "richText": {
                        "en": {"root": {"children": [{"text": "Hello"}]}},
                        "es": {"root": {"children": [{"text": "Hola"}]}},
                    },
                    "constrainedWidth": True,
                }
            },
            {
                "photoBlock": {
                    "display": "wide",
                    "photo": photo_value("inline.jpg"),
                    "alt": "An inline photo",
                }
            },
        ],
    }


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
async def test_engine():
    """
    Fresh async in-memory database for each test.

    Uses StaticPool so every session shares the one in-memory connection.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_database(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def storage(session_factory):
    return create_storage(session_factory)


@pytest.fixture
async def docs_collection(storage, docs_definition):
    return await storage.commands.collections.create("docs", docs_definition)
