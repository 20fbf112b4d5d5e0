"""FastAPI API routes for the legal document service.

Provides REST endpoints for document upload, status listing, reprocessing,
archiving, cascade deletion, semantic search and health checks.  Service
dependencies are resolved from ``app.state`` via FastAPI's ``Depends``
using the ``Annotated`` pattern.

    Endpoint                               Method  Description
    /api/v1/documents                      POST    Upload PDF/DOCX, schedule ingestion
    /api/v1/documents                      GET     Status listing with chunk counts
    /api/v1/documents/{id}                 GET     One document
    /api/v1/documents/{id}/reprocess       POST    Re-run ingestion (replace chunks)
    /api/v1/documents/{id}/archive         PATCH   Toggle the archived flag
    /api/v1/documents/{id}                 DELETE  Delete document, chunks and file
    /api/v1/search                         POST    Semantic search over chunks
    /api/v1/health                         GET     Health check + provider status

Application errors raised here (unsupported type, too large, unknown
document) are converted to status codes by ``ErrorHandlingMiddleware``.
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile

from src.api.schemas import (
    ArchiveRequest,
    DeleteResponse,
    DocumentListResponse,
    DocumentResponse,
    HealthResponse,
    SearchRequest,
    SearchResponse,
    SearchResultChunk,
)
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.services.document_service import DocumentService
from src.services.retrieval_service import RetrievalService
from src.utils.errors import FileTooLargeError
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

# Starlette has already spooled the multipart body by the time the route
# runs; reading it back in 64 KB increments stops copying into memory once
# the limit is passed.
_UPLOAD_CHUNK_SIZE = 64 * 1024


# ---------------------------------------------------------------------------
# Dependency injection helpers: resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_document_service(request: Request) -> DocumentService:
    """Return the document service from application state."""
    return request.app.state.document_service


def _get_retrieval_service(request: Request) -> RetrievalService:
    """Return the retrieval service from application state."""
    return request.app.state.retrieval_service


def _get_vector_store(request: Request) -> IVectorStoreProvider:
    """Return the vector store from application state."""
    return request.app.state.vector_store


def _get_provider_status(request: Request) -> dict[str, Any]:
    """Return the provider availability map computed at startup."""
    return getattr(request.app.state, "provider_status", {})


DocumentServiceDep = Annotated[DocumentService, Depends(_get_document_service)]
RetrievalServiceDep = Annotated[RetrievalService, Depends(_get_retrieval_service)]
VectorStoreDep = Annotated[IVectorStoreProvider, Depends(_get_vector_store)]
ProviderStatusDep = Annotated[dict[str, Any], Depends(_get_provider_status)]


async def _read_upload(file: UploadFile, max_bytes: int) -> bytes:
    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = await file.read(_UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > max_bytes:
            raise FileTooLargeError(
                message=(
                    f"{file.filename or 'upload'} exceeds "
                    f"{max_bytes // (1024 * 1024)} MB"
                )
            )
        chunks.append(chunk)
    return b"".join(chunks)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@router.post("/documents", response_model=DocumentResponse, status_code=202)
async def upload_document(
    service: DocumentServiceDep,
    file: Annotated[UploadFile, File(...)],
    category: Annotated[str | None, Form()] = None,
) -> DocumentResponse:
    """Upload a PDF or DOCX and schedule its ingestion.

    Returns as soon as the document exists in ``processing``; the
    status listing shows when it becomes ``ready`` or ``failed``.
    """
    file_name = file.filename or "upload"
    content_type = file.content_type or ""

    # Type is checked before the body is read.
    service.validate_upload(file_name, content_type, 0)
    data = await _read_upload(file, service.max_upload_bytes)

    document = await service.upload(data, file_name, content_type, category=category)
    _logger.info("upload_accepted", document_id=document.id, file_name=file_name)
    return DocumentResponse.from_document(document)


@router.get("/documents", response_model=DocumentListResponse)
async def list_documents(
    service: DocumentServiceDep,
    include_archived: Annotated[bool, Query()] = True,
) -> DocumentListResponse:
    """List every document with its status and chunk count, newest first."""
    summaries = await service.list_documents(include_archived=include_archived)
    documents = [DocumentResponse.from_summary(summary) for summary in summaries]
    return DocumentListResponse(documents=documents, total=len(documents))


@router.get("/documents/{document_id}", response_model=DocumentResponse)
async def get_document(document_id: str, service: DocumentServiceDep) -> DocumentResponse:
    summary = await service.get_document(document_id)
    return DocumentResponse.from_summary(summary)


@router.post(
    "/documents/{document_id}/reprocess",
    response_model=DocumentResponse,
    status_code=202,
)
async def reprocess_document(document_id: str, service: DocumentServiceDep) -> DocumentResponse:
    """Re-run ingestion from the stored file, replacing existing chunks."""
    document = await service.reprocess(document_id)
    return DocumentResponse.from_document(document)


@router.patch("/documents/{document_id}/archive", response_model=DocumentResponse)
async def archive_document(
    document_id: str,
    body: ArchiveRequest,
    service: DocumentServiceDep,
) -> DocumentResponse:
    document = await service.set_archived(document_id, body.archived)
    return DocumentResponse.from_document(document)


@router.delete("/documents/{document_id}", response_model=DeleteResponse)
async def delete_document(document_id: str, service: DocumentServiceDep) -> DeleteResponse:
    """Delete a document together with all of its chunks and its stored file."""
    removed = await service.delete(document_id)
    return DeleteResponse(document_id=document_id, chunks_removed=removed)


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


@router.post("/search", response_model=SearchResponse)
async def search(body: SearchRequest, retrieval: RetrievalServiceDep) -> SearchResponse:
    """Return the chunks most similar to the query, best first."""
    chunks = await retrieval.retrieve(body.query, limit=body.limit, document_id=body.document_id)
    results = [
        SearchResultChunk(
            document_id=chunk.document_id,
            content=chunk.content,
            position=chunk.position,
            similarity=round(chunk.similarity, 4),
            metadata=chunk.metadata,
        )
        for chunk in chunks
    ]
    return SearchResponse(
        query=body.query,
        results=results,
        total_results=len(results),
        context=retrieval.build_context(chunks),
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse)
async def health(
    request: Request,
    vector_store: VectorStoreDep,
    provider_status: ProviderStatusDep,
) -> HealthResponse:
    """Report provider availability and corpus size."""
    stats = await vector_store.get_stats()
    return HealthResponse(
        status="healthy",
        version=request.app.version,
        providers=provider_status,
        corpus={
            "total_chunks": stats.total_chunks,
            "total_documents": stats.total_documents,
        },
    )
