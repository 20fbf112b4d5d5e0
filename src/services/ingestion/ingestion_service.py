"""Orchestrator for the document ingestion pipeline.

Pipeline stages: **extract -> chunk -> embed -> store**.

:class:`IngestionService` implements the **Orchestrator pattern**: it
coordinates the text extractor, chunker, embedding client, vector store and
document repository without any of them knowing about each other, and it
owns the document status state machine:

    processing ──► ready    (all stages succeeded; processed_at set)
        │
        └──────► failed   (any stage raised; processed_at cleared)

One run, for one document:

    1. Reprocess only: delete the document's existing chunks, status
       back to ``processing``.
    2. TextExtractor -- buffer -> plain text (+ OCR fallback for scans).
       Empty text is not an error: the run finishes ``ready`` with 0 chunks.
    3. TextChunker -- text -> ordered overlapping chunks.
    4. EmbeddingClient -- every chunk embedded before anything is written.
    5. IVectorStoreProvider.put -- the complete chunk set in one write.
    6. Status ``ready`` with the extraction metadata.

Every exception raised in stages 1-6 is caught here and turned into a
``failed`` status, and any chunks already written for the document are
removed, so a failed run never leaves a partial chunk set behind.

Runs for the same document are serialized with a per-document
``asyncio.Lock``; document deletion takes the same lock.  Runs for
different documents proceed in parallel.

All dependencies are injected via constructor, so providers can be
swapped without changing this class.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog

from src.models.document import DocumentStatus, FileType, StatusEvent
from src.models.rag import DocumentChunk, IngestionResult
from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.embedding_client import EmbeddingClient
from src.services.ingestion.text_extractor import TextExtractor
from src.utils.errors import DocumentNotFoundError

if TYPE_CHECKING:
    from src.interfaces.document_repository import IDocumentRepository
    from src.interfaces.vector_store_provider import IVectorStoreProvider
    from src.services.status_notifier import StatusNotifier

logger = structlog.get_logger(logger_name=__name__)


class IngestionService:
    """Runs extract -> chunk -> embed -> store for one document at a time.

    Parameters
    ----------
    extractor:
        Converts a PDF/DOCX buffer into plain text.
    chunker:
        Splits text into overlapping windows.
    embedding_client:
        Generates one vector per chunk, batch-limited and order-preserving.
    vector_store:
        Stores chunk sets keyed by document id.
    documents:
        Persists document records and their status.
    notifier:
        Optional status event broadcaster.
    """

    def __init__(
        self,
        extractor: TextExtractor,
        chunker: TextChunker,
        embedding_client: EmbeddingClient,
        vector_store: IVectorStoreProvider,
        documents: IDocumentRepository,
        notifier: StatusNotifier | None = None,
    ) -> None:
        self._extractor = extractor
        self._chunker = chunker
        self._embedding_client = embedding_client
        self._vector_store = vector_store
        self._documents = documents
        self._notifier = notifier
        self._locks: dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(
        self,
        document_id: str,
        buffer: bytes,
        file_type: FileType | str,
        reprocess: bool = False,
    ) -> IngestionResult:
        """Run the full pipeline for *document_id* and record the outcome.

        Never raises for pipeline failures; the returned
        :class:`IngestionResult` and the stored document status carry the
        outcome.
        """
        async with self.document_lock(document_id):
            try:
                await self._documents.get(document_id)
            except DocumentNotFoundError as exc:
                logger.warning("ingestion_document_missing", document_id=document_id)
                return IngestionResult(
                    document_id=document_id,
                    status=DocumentStatus.FAILED,
                    error=str(exc),
                )
            return await self._run(document_id, buffer, file_type, reprocess)

    async def reprocess(
        self,
        document_id: str,
        buffer: bytes,
        file_type: FileType | str,
    ) -> IngestionResult:
        """Replace a document's chunks with a fresh run from any prior status."""
        return await self.ingest(document_id, buffer, file_type, reprocess=True)

    @asynccontextmanager
    async def document_lock(self, document_id: str) -> AsyncIterator[None]:
        """Hold the per-document lock shared by ingestion runs and deletion."""
        lock = self._locks.setdefault(document_id, asyncio.Lock())
        async with lock:
            yield

    def release_lock(self, document_id: str) -> None:
        """Forget the lock of a deleted document."""
        lock = self._locks.get(document_id)
        if lock is not None and not lock.locked():
            del self._locks[document_id]

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _run(
        self,
        document_id: str,
        buffer: bytes,
        file_type: FileType | str,
        reprocess: bool,
    ) -> IngestionResult:
        start = time.monotonic()
        log = logger.bind(document_id=document_id, reprocess=reprocess)
        log.info("ingestion_started", size=len(buffer), file_type=str(file_type))

        try:
            # Step 1: replace semantics -- clear the previous chunk set first.
            if reprocess:
                removed = await self._vector_store.delete_by_document(document_id)
                await self._documents.update_status(document_id, DocumentStatus.PROCESSING)
                log.info("ingestion_previous_chunks_removed", removed=removed)
            await self._emit(document_id, DocumentStatus.PROCESSING)

            # Step 2: extract.
            extraction = await self._extractor.extract(buffer, file_type)

            # Step 3: chunk.
            texts = self._chunker.chunk(extraction.text)

            # Steps 4-5: embed everything, then write once.
            stored = 0
            if texts:
                vectors = await self._embedding_client.embed(texts)
                chunks = [
                    DocumentChunk(
                        id=str(uuid.uuid4()),
                        document_id=document_id,
                        content=text,
                        embedding=vector,
                        position=position,
                        metadata=dict(extraction.metadata),
                    )
                    for position, (text, vector) in enumerate(zip(texts, vectors, strict=True))
                ]
                stored = await self._vector_store.put(document_id, chunks)
            else:
                log.info("ingestion_empty_text")

            # Step 6: ready.
            await self._documents.update_status(
                document_id, DocumentStatus.READY, metadata=extraction.metadata
            )
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
            log.error("ingestion_failed", error=error)
            await self._mark_failed(document_id)
            await self._emit(document_id, DocumentStatus.FAILED, error=error)
            return IngestionResult(
                document_id=document_id,
                status=DocumentStatus.FAILED,
                ingestion_time=round(time.monotonic() - start, 3),
                error=error,
            )

        elapsed = round(time.monotonic() - start, 3)
        log.info(
            "ingestion_complete",
            chunk_count=stored,
            used_ocr=extraction.used_ocr,
            elapsed_s=elapsed,
        )
        await self._emit(document_id, DocumentStatus.READY, chunk_count=stored)
        return IngestionResult(
            document_id=document_id,
            status=DocumentStatus.READY,
            chunk_count=stored,
            used_ocr=extraction.used_ocr,
            ingestion_time=elapsed,
        )

    async def _mark_failed(self, document_id: str) -> None:
        """Drop any chunks of the failed run and record ``failed``.

        If the store itself is down the document may stay in ``processing``
        and needs an operator reprocess; that is logged, not raised.
        """
        try:
            await self._vector_store.delete_by_document(document_id)
        except Exception as exc:
            logger.error(
                "ingestion_cleanup_failed",
                document_id=document_id,
                error=str(exc),
            )
        try:
            await self._documents.update_status(document_id, DocumentStatus.FAILED)
        except Exception as exc:
            logger.error(
                "ingestion_status_update_failed",
                document_id=document_id,
                error=str(exc),
            )

    async def _emit(
        self,
        document_id: str,
        status: DocumentStatus,
        chunk_count: int = 0,
        error: str | None = None,
    ) -> None:
        if self._notifier is None:
            return
        await self._notifier.notify(
            StatusEvent(
                document_id=document_id,
                status=status,
                chunk_count=chunk_count,
                error=error,
            )
        )
