"""Document store interface shared by all storage backends."""

import time
from abc import ABC, abstractmethod
from collections.abc import Sequence
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator
from uuid import uuid4

from taskboard_service.utils.logging import get_logger
from taskboard_service.utils.metrics import get_metrics
from taskboard_service.utils.validators import validate_field_name

logger = get_logger(__name__)
metrics = get_metrics()

Document = dict[str, Any]


class StoreError(Exception):
    """Base exception for storage failures."""


class DocumentNotFoundError(StoreError):
    """Raised when an update targets a document that does not exist."""

    def __init__(self, collection: str, document_id: str) -> None:
        self.collection = collection
        self.document_id = document_id
        super().__init__(f"Document {document_id} not found in {collection}")


class DuplicateKeyError(StoreError):
    """Raised when a write would break a unique field constraint."""

    def __init__(self, collection: str, fields: list[str]) -> None:
        self.collection = collection
        self.fields = fields
        super().__init__(f"Duplicate value for {', '.join(fields)} in {collection}")


class VersionConflictError(StoreError):
    """Raised when a conditional update lost a race against another write."""

    def __init__(self, collection: str, document_id: str, expected: int, actual: int) -> None:
        self.collection = collection
        self.document_id = document_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Document {document_id} in {collection} is at version {actual}, expected {expected}"
        )


def new_document_id() -> str:
    """Generate a store-wide unique document id."""
    return uuid4().hex


def check_field_names(names: Sequence[str]) -> None:
    """Reject field names that are not plain identifiers.

    Raises:
        ValueError: If any name is not a valid field name
    """
    for name in names:
        if not validate_field_name(name):
            raise ValueError(f"Invalid field name: {name!r}")


class DocumentStore(ABC):
    """Abstract document store addressable by collection name and document id.

    Documents are JSON-compatible dicts. Every stored document carries an
    ``id`` and an integer ``version`` that is bumped on each update, which
    gives callers a compare-and-swap primitive through ``expected_version``.
    Unique fields are enforced by the store itself, so "check then insert"
    races between concurrent writers cannot produce duplicates.
    """

    backend_name = "abstract"

    async def initialize(self) -> None:
        """Prepare the backend (open connections, create tables)."""

    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Check whether the backend is reachable."""

    @abstractmethod
    async def insert(
        self,
        collection: str,
        document: Document,
        unique_fields: Sequence[str] = (),
    ) -> str:
        """Insert a document, failing if a unique field value is taken.

        Args:
            collection: Collection name
            document: Document body; an ``id`` is generated when absent
            unique_fields: Fields whose values must be unique in the collection

        Returns:
            The document id

        Raises:
            DuplicateKeyError: If a unique field value already exists
        """

    @abstractmethod
    async def get(self, collection: str, document_id: str) -> Document | None:
        """Fetch a document by id, or None if it does not exist."""

    @abstractmethod
    async def find(self, collection: str, **equals: Any) -> list[Document]:
        """Return documents whose fields equal all given values.

        With no filters, every document of the collection is returned.
        """

    @abstractmethod
    async def update(
        self,
        collection: str,
        document_id: str,
        changes: Document,
        unique_fields: Sequence[str] = (),
        expected_version: int | None = None,
    ) -> Document:
        """Apply a partial update and return the new document.

        Raises:
            DocumentNotFoundError: If the document does not exist
            DuplicateKeyError: If a changed unique field value is taken
            VersionConflictError: If expected_version does not match
        """

    @abstractmethod
    async def delete(self, collection: str, document_id: str) -> bool:
        """Delete a document. Returns True if it existed."""

    @abstractmethod
    async def count(self, collection: str) -> int:
        """Count documents in a collection."""

    @asynccontextmanager
    async def _measure(self, operation: str, collection: str) -> AsyncIterator[None]:
        """Record duration and outcome of a store operation."""
        start = time.perf_counter()
        status = "success"
        try:
            yield
        except DuplicateKeyError:
            status = "duplicate"
            raise
        except VersionConflictError:
            status = "conflict"
            raise
        except Exception as e:
            status = "error"
            logger.error(
                "store_operation_failed",
                store=self.backend_name,
                operation=operation,
                collection=collection,
                error=str(e),
            )
            raise
        finally:
            metrics.record_store_operation(
                store=self.backend_name,
                operation=operation,
                status=status,
                duration=time.perf_counter() - start,
            )
