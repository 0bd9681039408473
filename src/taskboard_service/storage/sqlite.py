"""SQLite-backed document store."""

import asyncio
import json
import sqlite3
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import aiosqlite

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


class SQLiteDocumentStore(DocumentStore):
    """Document store keeping JSON bodies in a single SQLite table.

    Unique fields are materialized into a ``unique_keys`` table whose primary
    key makes "insert if absent" a real constraint instead of a check-then-act
    sequence. Conditional updates compare the ``version`` column in the
    UPDATE statement itself.
    """

    backend_name = "sqlite"

    def __init__(self, db_path: str = "taskboard.db") -> None:
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file (":memory:" for a private in-memory db)
        """
        self.db_path = db_path
        self._db: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Open the database and create tables."""
        if self._db is not None:
            return

        if self.db_path != ":memory:":
            path = Path(self.db_path).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            target = str(path)
        else:
            target = self.db_path

        async with self._lock:
            # Another caller may have opened the connection while we waited
            if self._db is not None:
                return
            db = await aiosqlite.connect(target)

            await db.execute("PRAGMA journal_mode=WAL")
            await db.execute("PRAGMA synchronous=NORMAL")

            await db.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    id TEXT NOT NULL,
                    version INTEGER NOT NULL DEFAULT 1,
                    body TEXT NOT NULL,
                    PRIMARY KEY (collection, id)
                )
            """)
            await db.execute("""
                CREATE TABLE IF NOT EXISTS unique_keys (
                    collection TEXT NOT NULL,
                    field TEXT NOT NULL,
                    value TEXT NOT NULL,
                    document_id TEXT NOT NULL,
                    PRIMARY KEY (collection, field, value)
                )
            """)
            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_unique_keys_document
                ON unique_keys(collection, document_id)
            """)

            await db.commit()
            self._db = db
            logger.info("sqlite_store_initialized", path=target)

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            await self.initialize()
        assert self._db is not None
        return self._db

    async def health_check(self) -> bool:
        try:
            db = await self._conn()
            cursor = await db.execute("SELECT 1")
            await cursor.fetchone()
            return True
        except Exception as e:
            logger.error("sqlite_health_check_failed", error=str(e))
            return False

    async def _taken_fields(
        self,
        db: aiosqlite.Connection,
        collection: str,
        candidate: Document,
        unique_fields: Sequence[str],
        exclude_id: str | None = None,
    ) -> list[str]:
        taken = []
        for field in unique_fields:
            if candidate.get(field) is None:
                continue
            cursor = await db.execute(
                """
                SELECT document_id FROM unique_keys
                WHERE collection = ? AND field = ? AND value = ?
                """,
                (collection, field, json.dumps(candidate[field])),
            )
            row = await cursor.fetchone()
            if row and row[0] != exclude_id:
                taken.append(field)
        return taken

    async def insert(
        self,
        collection: str,
        document: Document,
        unique_fields: Sequence[str] = (),
    ) -> str:
        check_field_names(unique_fields)
        db = await self._conn()
        stored = dict(document)
        stored["id"] = stored.get("id") or new_document_id()
        stored["version"] = 1

        async with self._measure("insert", collection), self._lock:
            taken = await self._taken_fields(db, collection, stored, unique_fields)
            if taken:
                raise DuplicateKeyError(collection, taken)

            try:
                for field in unique_fields:
                    if stored.get(field) is None:
                        continue
                    await db.execute(
                        "INSERT INTO unique_keys (collection, field, value, document_id) VALUES (?, ?, ?, ?)",
                        (collection, field, json.dumps(stored[field]), stored["id"]),
                    )
                await db.execute(
                    "INSERT INTO documents (collection, id, version, body) VALUES (?, ?, 1, ?)",
                    (collection, stored["id"], json.dumps(stored)),
                )
                await db.commit()
            except sqlite3.IntegrityError:
                # Another connection won the race between our check and insert
                await db.rollback()
                raise DuplicateKeyError(collection, list(unique_fields) or ["id"])
            except Exception:
                await db.rollback()
                raise

            return stored["id"]

    async def get(self, collection: str, document_id: str) -> Document | None:
        db = await self._conn()
        async with self._measure("get", collection):
            cursor = await db.execute(
                "SELECT body FROM documents WHERE collection = ? AND id = ?",
                (collection, document_id),
            )
            row = await cursor.fetchone()
            return json.loads(row[0]) if row else None

    async def find(self, collection: str, **equals: Any) -> list[Document]:
        check_field_names(list(equals))
        db = await self._conn()

        clauses = ["collection = ?"]
        params: list[Any] = [collection]
        for field, value in equals.items():
            if value is None:
                clauses.append(f"json_extract(body, '$.{field}') IS NULL")
            elif isinstance(value, (dict, list)):
                raise ValueError(f"Cannot filter on structured value for {field!r}")
            else:
                clauses.append(f"json_extract(body, '$.{field}') = ?")
                params.append(value)

        async with self._measure("find", collection):
            cursor = await db.execute(
                f"SELECT body FROM documents WHERE {' AND '.join(clauses)} ORDER BY rowid",
                params,
            )
            rows = await cursor.fetchall()
            return [json.loads(row[0]) for row in rows]

    async def update(
        self,
        collection: str,
        document_id: str,
        changes: Document,
        unique_fields: Sequence[str] = (),
        expected_version: int | None = None,
    ) -> Document:
        check_field_names(unique_fields)
        db = await self._conn()

        async with self._measure("update", collection), self._lock:
            cursor = await db.execute(
                "SELECT body, version FROM documents WHERE collection = ? AND id = ?",
                (collection, document_id),
            )
            row = await cursor.fetchone()
            if not row:
                raise DocumentNotFoundError(collection, document_id)

            current = json.loads(row[0])
            version = row[1]
            if expected_version is not None and version != expected_version:
                raise VersionConflictError(collection, document_id, expected_version, version)

            changed_unique = [
                f for f in unique_fields if f in changes and changes[f] != current.get(f)
            ]
            taken = await self._taken_fields(db, collection, changes, changed_unique, exclude_id=document_id)
            if taken:
                raise DuplicateKeyError(collection, taken)

            updated = {**current, **changes, "id": document_id, "version": version + 1}

            try:
                for field in changed_unique:
                    await db.execute(
                        "DELETE FROM unique_keys WHERE collection = ? AND field = ? AND document_id = ?",
                        (collection, field, document_id),
                    )
                    if updated.get(field) is not None:
                        await db.execute(
                            "INSERT INTO unique_keys (collection, field, value, document_id) VALUES (?, ?, ?, ?)",
                            (collection, field, json.dumps(updated[field]), document_id),
                        )
                result = await db.execute(
                    """
                    UPDATE documents SET body = ?, version = version + 1
                    WHERE collection = ? AND id = ? AND version = ?
                    """,
                    (json.dumps(updated), collection, document_id, version),
                )
                if result.rowcount != 1:
                    await db.rollback()
                    raise VersionConflictError(collection, document_id, version, version + 1)
                await db.commit()
            except sqlite3.IntegrityError:
                await db.rollback()
                raise DuplicateKeyError(collection, changed_unique)
            except VersionConflictError:
                raise
            except Exception:
                await db.rollback()
                raise

            return updated

    async def delete(self, collection: str, document_id: str) -> bool:
        db = await self._conn()
        async with self._measure("delete", collection), self._lock:
            try:
                await db.execute(
                    "DELETE FROM unique_keys WHERE collection = ? AND document_id = ?",
                    (collection, document_id),
                )
                result = await db.execute(
                    "DELETE FROM documents WHERE collection = ? AND id = ?",
                    (collection, document_id),
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
            return result.rowcount > 0

    async def count(self, collection: str) -> int:
        db = await self._conn()
        cursor = await db.execute(
            "SELECT COUNT(*) FROM documents WHERE collection = ?",
            (collection,),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0
