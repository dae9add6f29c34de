#!/usr/bin/env python3
"""
Seed a sample 'docs' collection with generated documents.

Usage:
    python scripts/seed_documents.py [count]
"""
import asyncio
import sys
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from vellum.core.database import close_database, init_database
from vellum.domain.fields import CollectionDefinition
from vellum.persistence import create_storage

DOCS_COLLECTION = {
    "path": "docs",
    "labels": {"singular": "Document", "plural": "Documents"},
    "fields": [
        {"name": "path", "type": "text", "required": True, "unique": True},
        {"name": "title", "type": "text", "localized": True},
        {"name": "summary", "type": "textArea", "localized": True},
        {"name": "featured", "type": "checkbox"},
        {"name": "publishedOn", "type": "date"},
        {"name": "price", "type": "decimal"},
        {"name": "views", "type": "integer"},
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


def sample_document(index: int) -> dict:
    return {
        "path": f"sample-document-{index}",
        "title": {"en": f"Sample document {index}", "es": f"Documento de ejemplo {index}"},
        "summary": {"en": "Generated for local development."},
        "featured": index % 5 == 0,
        "publishedOn": date(2024, 1, 1) + timedelta(days=index),
        "price": Decimal("9.99") + index,
        "views": index * 10,
        "content": [
            {
                "richTextBlock": {
                    "richText": {"en": {"root": {"children": [{"text": f"Body {index}"}]}}},
                    "constrainedWidth": True,
                }
            },
            {
                "photoBlock": {
                    "display": "wide",
                    "alt": f"Photo {index}",
                    "photo": {
                        "filename": f"photo-{index}.jpg",
                        "original_filename": f"photo-{index}.jpg",
                        "mime_type": "image/jpeg",
                        "file_size": 123456,
                        "storage_provider": "local",
                        "storage_path": f"uploads/photo-{index}.jpg",
                        "image_width": 1200,
                        "image_height": 800,
                        "image_format": "jpeg",
                        "processing_status": "complete",
                        "thumbnail_generated": True,
                    },
                }
            },
        ],
    }


async def main(count: int) -> int:
    await init_database()
    storage = create_storage()

    try:
        collection = await storage.queries.collections.get_collection_by_path("docs")
        if collection is None:
            collection = await storage.commands.collections.create(
                "docs", CollectionDefinition.model_validate(DOCS_COLLECTION)
            )
            print(f"✅ Created collection 'docs' ({collection.id})")

        for index in range(count):
            document = sample_document(index)
            await storage.commands.documents.create_document_version(
                collection_id=collection.id,
                collection_config=collection.definition,
                document_data=document,
                path=document["path"],
                status="published",
            )
        print(f"✅ Seeded {count} documents")
        return 0

    finally:
        await close_database()


if __name__ == "__main__":
    total = int(sys.argv[1]) if len(sys.argv) > 1 else 100
    sys.exit(asyncio.run(main(total)))
