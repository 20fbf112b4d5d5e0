"""SQLite-backed document repository.

Persists document records to a local SQLite database at
``data/documents.db``.  Uses ``aiosqlite`` for async I/O.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from src.interfaces.document_repository import IDocumentRepository
from src.models.document import DocumentStatus, FileType, LegalDocument
from src.utils.errors import DocumentNotFoundError, StoreWriteError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/documents.db")

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS documents (
    id              TEXT    PRIMARY KEY,
    title           TEXT    NOT NULL,
    file_name       TEXT    NOT NULL,
    file_type       TEXT    NOT NULL,
    source_location TEXT    NOT NULL,
    status          TEXT    NOT NULL DEFAULT 'processing',
    archived        INTEGER NOT NULL DEFAULT 0,
    category        TEXT,
    uploaded_at     TEXT    NOT NULL,
    processed_at    TEXT,
    metadata        TEXT    NOT NULL DEFAULT '{}'
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_documents_status ON documents(status);",
    "CREATE INDEX IF NOT EXISTS idx_documents_uploaded ON documents(uploaded_at);",
]

_INSERT_SQL = """\
INSERT INTO documents (
    id, title, file_name, file_type, source_location, status,
    archived, category, uploaded_at, processed_at, metadata
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_SELECT_COLUMNS = (
    "SELECT id, title, file_name, file_type, source_location, status, "
    "archived, category, uploaded_at, processed_at, metadata FROM documents"
)


class SQLiteDocumentRepository(IDocumentRepository):
    """SQLite-backed document record persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the documents table and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("documents_db_initialized", path=str(self._db_path))

    async def create(self, document: LegalDocument) -> LegalDocument:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(
                    _INSERT_SQL,
                    (
                        document.id,
                        document.title,
                        document.file_name,
                        document.file_type.value,
                        document.source_location,
                        document.status.value,
                        int(document.archived),
                        document.category,
                        document.uploaded_at.isoformat(),
                        document.processed_at.isoformat() if document.processed_at else None,
                        json.dumps(document.metadata, default=str),
                    ),
                )
                await db.commit()
        except aiosqlite.Error as exc:
            raise StoreWriteError(
                message=f"Could not create document {document.id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("document_created", document_id=document.id, title=document.title)
        return document

    async def get(self, document_id: str) -> LegalDocument:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(f"{_SELECT_COLUMNS} WHERE id = ?", (document_id,))
            row = await cursor.fetchone()
        if row is None:
            raise DocumentNotFoundError(
                message=f"Document {document_id} not found",
                provider_name=self.get_provider_name(),
            )
        return self._row_to_document(dict(row))

    async def list_documents(self, include_archived: bool = True) -> list[LegalDocument]:
        """Return documents ordered by upload time, newest first."""
        query = _SELECT_COLUMNS
        if not include_archived:
            query += " WHERE archived = 0"
        query += " ORDER BY uploaded_at DESC, id"
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query)
            rows = await cursor.fetchall()
        return [self._row_to_document(dict(r)) for r in rows]

    async def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        metadata: dict[str, Any] | None = None,
    ) -> LegalDocument:
        # processed_at tracks the last successful run only.
        processed_at = (
            datetime.now(tz=timezone.utc).isoformat() if status is DocumentStatus.READY else None
        )
        if metadata is None:
            sql = "UPDATE documents SET status = ?, processed_at = ? WHERE id = ?"
            params: tuple[Any, ...] = (status.value, processed_at, document_id)
        else:
            sql = "UPDATE documents SET status = ?, processed_at = ?, metadata = ? WHERE id = ?"
            params = (status.value, processed_at, json.dumps(metadata, default=str), document_id)

        await self._execute_update(sql, params, document_id)
        logger.info("document_status_updated", document_id=document_id, status=status.value)
        return await self.get(document_id)

    async def set_archived(self, document_id: str, archived: bool) -> LegalDocument:
        await self._execute_update(
            "UPDATE documents SET archived = ? WHERE id = ?",
            (int(archived), document_id),
            document_id,
        )
        logger.info("document_archived", document_id=document_id, archived=archived)
        return await self.get(document_id)

    async def delete(self, document_id: str) -> None:
        await self._execute_update(
            "DELETE FROM documents WHERE id = ?", (document_id,), document_id
        )
        logger.info("document_deleted", document_id=document_id)

    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
        return "sqlite_documents"

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _execute_update(self, sql: str, params: tuple[Any, ...], document_id: str) -> None:
        """Run a single-row write; raise DocumentNotFoundError if no row matched."""
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(sql, params)
                await db.commit()
                affected = cursor.rowcount
        except aiosqlite.Error as exc:
            raise StoreWriteError(
                message=f"Could not update document {document_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        if affected == 0:
            raise DocumentNotFoundError(
                message=f"Document {document_id} not found",
                provider_name=self.get_provider_name(),
            )

    @staticmethod
    def _row_to_document(row: dict[str, Any]) -> LegalDocument:
        return LegalDocument(
            id=row["id"],
            title=row["title"],
            file_name=row["file_name"],
            file_type=FileType(row["file_type"]),
            source_location=row["source_location"],
            status=DocumentStatus(row["status"]),
            archived=bool(row["archived"]),
            category=row["category"],
            uploaded_at=datetime.fromisoformat(row["uploaded_at"]),
            processed_at=(
                datetime.fromisoformat(row["processed_at"]) if row["processed_at"] else None
            ),
            metadata=json.loads(row["metadata"] or "{}"),
        )
