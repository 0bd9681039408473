"""In-memory document store."""

import asyncio
import copy
from collections.abc import Sequence
from typing import Any

from taskboard_service.storage.base import (
    Document,
    DocumentNotFoundError,
    DocumentStore,
    DuplicateKeyError,
    VersionConflictError,
    check_field_names,
    new_document_id,
)
from taskboard_service.utils.logging import get_logger

logger = get_logger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """Dictionary-backed store for tests and single-process development.

    All mutations run under one asyncio lock, so uniqueness checks and
    version checks are atomic with the write that follows them. Documents
    are deep-copied on the way in and out; callers never share state with
    the store.
    """

    backend_name = "memory"

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Document]] = {}
        self._lock = asyncio.Lock()

    async def health_check(self) -> bool:
        return True

    def _collection(self, name: str) -> dict[str, Document]:
        return self._collections.setdefault(name, {})

    def _taken_fields(
        self,
        collection: dict[str, Document],
        candidate: Document,
        unique_fields: Sequence[str],
        exclude_id: str | None = None,
    ) -> list[str]:
        taken = []
        for field in unique_fields:
            value = candidate.get(field)
            if value is None:
                continue
            for doc_id, existing in collection.items():
                if doc_id != exclude_id and existing.get(field) == value:
                    taken.append(field)
                    break
        return taken

    async def insert(
        self,
        collection: str,
        document: Document,
        unique_fields: Sequence[str] = (),
    ) -> str:
        check_field_names(unique_fields)
        async with self._measure("insert", collection), self._lock:
            docs = self._collection(collection)
            stored = copy.deepcopy(document)
            stored["id"] = stored.get("id") or new_document_id()
            stored["version"] = 1

            if stored["id"] in docs:
                raise DuplicateKeyError(collection, ["id"])
            taken = self._taken_fields(docs, stored, unique_fields)
            if taken:
                raise DuplicateKeyError(collection, taken)

            docs[stored["id"]] = stored
            return stored["id"]

    async def get(self, collection: str, document_id: str) -> Document | None:
        async with self._measure("get", collection):
            document = self._collection(collection).get(document_id)
            return copy.deepcopy(document) if document is not None else None

    async def find(self, collection: str, **equals: Any) -> list[Document]:
        check_field_names(list(equals))
        async with self._measure("find", collection):
            return [
                copy.deepcopy(doc)
                for doc in self._collection(collection).values()
                if all(doc.get(field) == value for field, value in equals.items())
            ]

    async def update(
        self,
        collection: str,
        document_id: str,
        changes: Document,
        unique_fields: Sequence[str] = (),
        expected_version: int | None = None,
    ) -> Document:
        check_field_names(unique_fields)
        async with self._measure("update", collection), self._lock:
            docs = self._collection(collection)
            current = docs.get(document_id)
            if current is None:
                raise DocumentNotFoundError(collection, document_id)
            if expected_version is not None and current["version"] != expected_version:
                raise VersionConflictError(collection, document_id, expected_version, current["version"])

            changed_unique = [f for f in unique_fields if f in changes]
            taken = self._taken_fields(docs, changes, changed_unique, exclude_id=document_id)
            if taken:
                raise DuplicateKeyError(collection, taken)

            updated = {**current, **copy.deepcopy(changes)}
            updated["id"] = document_id
            updated["version"] = current["version"] + 1
            docs[document_id] = updated
            return copy.deepcopy(updated)

    async def delete(self, collection: str, document_id: str) -> bool:
        async with self._measure("delete", collection), self._lock:
            return self._collection(collection).pop(document_id, None) is not None

    async def count(self, collection: str) -> int:
        return len(self._collection(collection))
