"""
Storage entry point.

create_storage() wires the command and query builders to one session
factory:

    storage = create_storage()
    result = await storage.commands.documents.create_document_version(...)
    doc = await storage.queries.documents.get_document_by_id(...)
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from vellum.persistence.commands import CollectionCommands, DocumentCommands
from vellum.persistence.queries import CollectionQueries, DocumentQueries


@dataclass
class StorageCommands:
    collections: CollectionCommands
    documents: DocumentCommands


@dataclass
class StorageQueries:
    collections: CollectionQueries
    documents: DocumentQueries


@dataclass
class Storage:
    commands: StorageCommands
    queries: StorageQueries


def create_storage(session_factory: Optional[async_sessionmaker] = None) -> Storage:
    """
    Build the storage facade.

    Args:
        session_factory: Session factory to use; defaults to the
            process-wide factory from vellum.core.database
    """
    if session_factory is None:
        from vellum.core.database import get_session_factory
        session_factory = get_session_factory()

    return Storage(
        commands=StorageCommands(
            collections=CollectionCommands(session_factory),
            documents=DocumentCommands(session_factory),
        ),
        queries=StorageQueries(
            collections=CollectionQueries(session_factory),
            documents=DocumentQueries(session_factory),
        ),
    )


__all__ = [
    "CollectionCommands",
    "CollectionQueries",
    "DocumentCommands",
    "DocumentQueries",
    "Storage",
    "create_storage",
]
