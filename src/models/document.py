"""Document lifecycle models for the legal document service.

Defines Pydantic v2 models for uploaded documents, their processing status,
the status-listing rows returned to callers, and the status events pushed
to listeners.  All models use frozen config; status transitions produce
new :class:`LegalDocument` instances via ``model_copy(update={...})``.

Status state machine:

    processing ──► ready
        │
        └──────► failed

    Reprocessing re-enters ``processing`` from any state, including
    ``ready``.  ``processed_at`` is set only when the status is ``ready``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PDF_MIME_TYPE = "application/pdf"


# ---------------------------------------------------------------------------
# FileType -- the only two formats the extractor understands.
# ---------------------------------------------------------------------------
class FileType(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    """Supported upload formats."""

    PDF = "pdf"
    DOCX = "docx"

    @classmethod
    def from_mime_type(cls, mime_type: str) -> FileType | None:
        """Map a declared MIME type to a file type, or ``None`` if unsupported."""
        return _MIME_TO_FILE_TYPE.get((mime_type or "").split(";")[0].strip().lower())

    @property
    def mime_type(self) -> str:
        return PDF_MIME_TYPE if self is FileType.PDF else DOCX_MIME_TYPE


_MIME_TO_FILE_TYPE: dict[str, FileType] = {
    PDF_MIME_TYPE: FileType.PDF,
    DOCX_MIME_TYPE: FileType.DOCX,
}


# ---------------------------------------------------------------------------
# DocumentStatus -- the ingestion state machine.
# ---------------------------------------------------------------------------
class DocumentStatus(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    """Processing status of a document.

    ``PROCESSING`` is the initial state on upload and on every reprocess.
    ``READY`` and ``FAILED`` are terminal for a single ingestion run.
    """

    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# LegalDocument -- one uploaded file and its processing state.
# ---------------------------------------------------------------------------
class LegalDocument(BaseModel):
    """A logical unit of uploaded content.

    The document record owns its chunks: deleting the record deletes every
    chunk stored under its ``id`` in the vector store.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Opaque unique identifier (UUID).")
    title: str = Field(description="Display title, derived from the filename on upload.")
    file_name: str = Field(description="Original filename as uploaded.")
    file_type: FileType = Field(description="Declared file format.")
    source_location: str = Field(description="Opaque reference to the stored binary blob.")
    status: DocumentStatus = Field(default=DocumentStatus.PROCESSING)
    archived: bool = Field(default=False)
    category: str | None = Field(default=None, description="Optional free-text category.")
    uploaded_at: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))
    processed_at: datetime | None = Field(
        default=None,
        description="Completion time of the last successful run; null unless status is ready.",
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Extraction metadata (e.g. page_count for PDFs).",
    )


# ---------------------------------------------------------------------------
# DocumentSummary -- one row of the status listing.
# ---------------------------------------------------------------------------
class DocumentSummary(BaseModel):
    """A document as shown in the status listing, with its stored chunk count."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    status: DocumentStatus
    archived: bool = False
    category: str | None = None
    chunk_count: int = Field(default=0, ge=0)
    uploaded_at: datetime | None = None
    processed_at: datetime | None = None

    @classmethod
    def from_document(cls, document: LegalDocument, chunk_count: int) -> DocumentSummary:
        return cls(
            id=document.id,
            title=document.title,
            status=document.status,
            archived=document.archived,
            category=document.category,
            chunk_count=chunk_count,
            uploaded_at=document.uploaded_at,
            processed_at=document.processed_at,
        )


# ---------------------------------------------------------------------------
# StatusEvent -- pushed to listeners when a run starts or finishes.
# ---------------------------------------------------------------------------
class StatusEvent(BaseModel):
    """Notification emitted by the ingestion service on every status change."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    status: DocumentStatus
    chunk_count: int = Field(default=0, ge=0)
    error: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))
