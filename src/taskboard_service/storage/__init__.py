"""Document storage backends."""

from taskboard_service.config import Settings
from taskboard_service.storage.base import (
    Document,
    DocumentNotFoundError,
    DocumentStore,
    DuplicateKeyError,
    StoreError,
    VersionConflictError,
    new_document_id,
)
from taskboard_service.storage.memory import InMemoryDocumentStore
from taskboard_service.storage.sqlite import SQLiteDocumentStore


def create_store(settings: Settings) -> DocumentStore:
    """Build the document store selected by ``settings.store_backend``."""
    if settings.store_backend == "memory":
        return InMemoryDocumentStore()
    return SQLiteDocumentStore(db_path=settings.store_path)


__all__ = [
    "Document",
    "DocumentNotFoundError",
    "DocumentStore",
    "DuplicateKeyError",
    "StoreError",
    "VersionConflictError",
    "new_document_id",
    "InMemoryDocumentStore",
    "SQLiteDocumentStore",
    "create_store",
]
