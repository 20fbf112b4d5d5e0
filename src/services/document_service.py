"""Document lifecycle operations exposed to the HTTP API and the CLI.

:class:`DocumentService` is the boundary between callers and the
ingestion core:

* **upload** -- validates MIME type and size *before* anything is stored,
  keeps the raw bytes in blob storage, creates the document in
  ``processing`` and hands the ingestion run to the background runner.
* **reprocess** -- refetches the stored bytes and re-runs ingestion with
  replace semantics.
* **list / get** -- the status listing, with per-document chunk counts.
* **archive** -- toggles the archived flag.
* **delete** -- removes chunks, record and blob under the document lock.

Upload and reprocess return as soon as the run is scheduled; callers
follow progress through the status listing or a
:class:`~src.services.status_notifier.StatusNotifier` listener.
"""

from __future__ import annotations

import re
import uuid
from pathlib import PurePath

import structlog

from src.interfaces.blob_storage import IBlobStorage
from src.interfaces.document_repository import IDocumentRepository
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.document import DocumentStatus, DocumentSummary, FileType, LegalDocument
from src.models.rag import IngestionResult
from src.services.ingestion.ingestion_service import IngestionService
from src.services.status_notifier import StatusNotifier
from src.services.task_runner import BackgroundTaskRunner
from src.utils.errors import FileTooLargeError, UnsupportedFileTypeError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024

_TITLE_SUFFIX = re.compile(r"\.(pdf|docx)$", re.IGNORECASE)


def title_from_filename(file_name: str) -> str:
    """Derive a display title by dropping the directory and a .pdf/.docx suffix."""
    base = PurePath(file_name.replace("\\", "/")).name
    return _TITLE_SUFFIX.sub("", base).strip() or base


class DocumentService:
    """Upload, reprocess, list, archive and delete documents.

    Parameters
    ----------
    documents:
        Document record persistence.
    blob_storage:
        Raw upload storage used for reprocessing.
    vector_store:
        Chunk store (for chunk counts and cascade delete).
    ingestion:
        The ingestion orchestrator.
    runner:
        Background executor for ingestion runs.
    max_upload_bytes:
        Upload size ceiling (50 MB by default).
    notifier:
        Optional status broadcaster; its state for a document is dropped
        when the document is deleted.
    """

    def __init__(
        self,
        documents: IDocumentRepository,
        blob_storage: IBlobStorage,
        vector_store: IVectorStoreProvider,
        ingestion: IngestionService,
        runner: BackgroundTaskRunner,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
        notifier: StatusNotifier | None = None,
    ) -> None:
        self._documents = documents
        self._blobs = blob_storage
        self._vector_store = vector_store
        self._ingestion = ingestion
        self._runner = runner
        self._max_upload_bytes = max_upload_bytes
        self._notifier = notifier

    @property
    def max_upload_bytes(self) -> int:
        return self._max_upload_bytes

    # ------------------------------------------------------------------
    # Upload / reprocess
    # ------------------------------------------------------------------

    def validate_upload(self, file_name: str, mime_type: str, size: int) -> FileType:
        """Check type and size of an upload; return its file type.

        Raises
        ------
        UnsupportedFileTypeError
            If *mime_type* is not PDF or DOCX.
        FileTooLargeError
            If *size* exceeds the configured ceiling.
        """
        file_type = FileType.from_mime_type(mime_type)
        if file_type is None:
            raise UnsupportedFileTypeError(
                message=f"Unsupported file type {mime_type!r} for {file_name}; upload PDF or DOCX"
            )
        if size > self._max_upload_bytes:
            raise FileTooLargeError(
                message=(
                    f"{file_name} is {size} bytes; the limit is "
                    f"{self._max_upload_bytes // (1024 * 1024)} MB"
                )
            )
        return file_type

    async def upload(
        self,
        file_bytes: bytes,
        file_name: str,
        mime_type: str,
        category: str | None = None,
        wait: bool = False,
    ) -> LegalDocument:
        """Accept an upload and schedule its ingestion run.

        With ``wait=True`` the run is awaited inline (CLI use) and the
        returned record reflects its final status.
        """
        file_type = self.validate_upload(file_name, mime_type, len(file_bytes))

        source_location = await self._blobs.put(file_name, file_bytes)
        document = await self._documents.create(
            LegalDocument(
                id=str(uuid.uuid4()),
                title=title_from_filename(file_name),
                file_name=file_name,
                file_type=file_type,
                source_location=source_location,
                status=DocumentStatus.PROCESSING,
                category=category or None,
            )
        )
        logger.info(
            "document_uploaded",
            document_id=document.id,
            file_type=file_type.value,
            size=len(file_bytes),
        )

        if wait:
            await self._ingestion.ingest(document.id, file_bytes, file_type)
            return await self._documents.get(document.id)

        self._schedule(document.id, file_bytes, file_type, reprocess=False)
        return document

    async def reprocess(self, document_id: str, wait: bool = False) -> LegalDocument:
        """Re-run ingestion for an existing document from its stored bytes.

        Raises
        ------
        DocumentNotFoundError
            If the document or its stored file does not exist.
        """
        document = await self._documents.get(document_id)
        buffer = await self._blobs.get(document.source_location)
        document = await self._documents.update_status(document_id, DocumentStatus.PROCESSING)
        logger.info("document_reprocess_requested", document_id=document_id)

        if wait:
            await self._ingestion.reprocess(document_id, buffer, document.file_type)
            return await self._documents.get(document_id)

        self._schedule(document_id, buffer, document.file_type, reprocess=True)
        return document

    # ------------------------------------------------------------------
    # Status listing / lookup
    # ------------------------------------------------------------------

    async def list_documents(self, include_archived: bool = True) -> list[DocumentSummary]:
        """Return every document with its stored chunk count, newest first."""
        documents = await self._documents.list_documents(include_archived=include_archived)
        summaries: list[DocumentSummary] = []
        for document in documents:
            count = await self._vector_store.count_by_document(document.id)
            summaries.append(DocumentSummary.from_document(document, count))
        return summaries

    async def get_document(self, document_id: str) -> DocumentSummary:
        document = await self._documents.get(document_id)
        count = await self._vector_store.count_by_document(document_id)
        return DocumentSummary.from_document(document, count)

    async def set_archived(self, document_id: str, archived: bool) -> LegalDocument:
        return await self._documents.set_archived(document_id, archived)

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete(self, document_id: str) -> int:
        """Delete a document, its chunks and its stored file.

        Holds the document lock, so an in-flight run finishes before the
        delete proceeds and cannot write chunks afterwards.

        Returns
        -------
        int
            Number of chunks removed.

        Raises
        ------
        DocumentNotFoundError
            If the document does not exist.
        """
        async with self._ingestion.document_lock(document_id):
            document = await self._documents.get(document_id)
            removed = await self._vector_store.delete_by_document(document_id)
            await self._documents.delete(document_id)
            await self._blobs.delete(document.source_location)
        self._ingestion.release_lock(document_id)
        if self._notifier is not None:
            self._notifier.forget(document_id)
        logger.info("document_deleted_cascade", document_id=document_id, chunks_removed=removed)
        return removed

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _schedule(
        self,
        document_id: str,
        buffer: bytes,
        file_type: FileType,
        reprocess: bool,
    ) -> None:
        async def _job() -> IngestionResult:
            return await self._ingestion.ingest(document_id, buffer, file_type, reprocess=reprocess)

        self._runner.submit(_job, name=f"ingest:{document_id}")
