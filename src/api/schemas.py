"""Pydantic request/response schemas for the legal document API.

Defines the public contract for the REST endpoints: document upload,
status listing, archive toggle, deletion, semantic search and health.

Request schemas end with "Request", response schemas with "Response".
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.models.document import DocumentStatus, DocumentSummary, FileType, LegalDocument


class DocumentResponse(BaseModel):
    """A single document with its status and stored chunk count."""

    id: str
    title: str
    file_name: str | None = None
    file_type: FileType | None = None
    status: DocumentStatus
    archived: bool = False
    category: str | None = None
    chunk_count: int = 0
    uploaded_at: datetime | None = None
    processed_at: datetime | None = None

    @classmethod
    def from_document(cls, document: LegalDocument, chunk_count: int = 0) -> DocumentResponse:
        return cls(
            id=document.id,
            title=document.title,
            file_name=document.file_name,
            file_type=document.file_type,
            status=document.status,
            archived=document.archived,
            category=document.category,
            chunk_count=chunk_count,
            uploaded_at=document.uploaded_at,
            processed_at=document.processed_at,
        )

    @classmethod
    def from_summary(cls, summary: DocumentSummary) -> DocumentResponse:
        return cls(**summary.model_dump())


class DocumentListResponse(BaseModel):
    """Status listing of every document, newest first."""

    documents: list[DocumentResponse] = Field(default_factory=list)
    total: int = 0


class ArchiveRequest(BaseModel):
    """Toggle the archived flag of a document."""

    archived: bool = True


class DeleteResponse(BaseModel):
    """Outcome of a cascade delete."""

    document_id: str
    deleted: bool = True
    chunks_removed: int = 0


class SearchRequest(BaseModel):
    """Semantic search over stored chunks."""

    query: str = Field(..., min_length=1, max_length=2000)
    limit: int = Field(default=10, ge=1, le=50)
    document_id: str | None = Field(
        default=None, description="Restrict results to one document."
    )


class SearchResultChunk(BaseModel):
    """A retrieved chunk with its similarity score."""

    document_id: str
    content: str
    position: int
    similarity: float
    metadata: dict[str, Any] = Field(default_factory=dict)


class SearchResponse(BaseModel):
    """Ranked search results plus the joined prompt context."""

    query: str
    results: list[SearchResultChunk] = Field(default_factory=list)
    total_results: int = 0
    context: str = ""


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]
    corpus: dict[str, int] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
