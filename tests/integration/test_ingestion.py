"""Integration tests for IngestionService: status machine, replace semantics, cleanup.

Uses the real extractor, chunker, embedding client and SQLite repository,
with the in-memory mock embedding provider and vector store.
"""

from __future__ import annotations

import asyncio
import uuid

import pytest

from src.models.document import DocumentStatus, FileType, LegalDocument, StatusEvent
from src.models.rag import DocumentChunk
from src.providers.document_store.sqlite_document_repository import SQLiteDocumentRepository
from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.embedding_client import EmbeddingClient
from src.services.ingestion.ingestion_service import IngestionService
from src.services.ingestion.text_extractor import TextExtractor
from src.services.status_notifier import StatusNotifier
from src.utils.errors import StoreWriteError
from tests.conftest import MockEmbeddingProvider, MockVectorStore, make_docx

_SENTENCE = "The tenant shall maintain the premises. "


def _clauses(count: int) -> bytes:
    """DOCX whose paragraphs are 90 characters each, one chunk per paragraph at size 100."""
    return make_docx([f"Clause {i}. " + _SENTENCE * 2 for i in range(1, count + 1)])


async def _new_document(repository: SQLiteDocumentRepository) -> str:
    document_id = str(uuid.uuid4())
    await repository.create(
        LegalDocument(
            id=document_id,
            title="Lease",
            file_name="Lease.docx",
            file_type=FileType.DOCX,
            source_location=f"{document_id}/Lease.docx",
        )
    )
    return document_id


def _paragraph_service(
    repository: SQLiteDocumentRepository,
    vector_store: MockVectorStore,
    provider: MockEmbeddingProvider | None = None,
) -> IngestionService:
    return IngestionService(
        extractor=TextExtractor(),
        chunker=TextChunker(chunk_size=100, overlap=0),
        embedding_client=EmbeddingClient(provider or MockEmbeddingProvider()),
        vector_store=vector_store,
        documents=repository,
    )


class _FailingAfterWriteStore(MockVectorStore):
    """Writes the chunks, then reports a failure."""

    async def put(self, document_id: str, chunks: list[DocumentChunk]) -> int:
        await super().put(document_id, chunks)
        raise StoreWriteError(message="disk full", provider_name="mock-vector-store")


class TestStatusMachine:
    @pytest.mark.asyncio
    async def test_successful_run_ends_ready(
        self,
        ingestion_service: IngestionService,
        document_repository: SQLiteDocumentRepository,
        vector_store: MockVectorStore,
        notifier: StatusNotifier,
        sample_legal_text: str,
    ) -> None:
        events: list[StatusEvent] = []
        notifier.register_listener(events.append)
        document_id = await _new_document(document_repository)
        data = make_docx(sample_legal_text.split("\n\n"))

        result = await ingestion_service.ingest(document_id, data, FileType.DOCX)

        document = await document_repository.get(document_id)
        stored = vector_store.for_document(document_id)
        assert result.status is DocumentStatus.READY
        assert document.status is DocumentStatus.READY
        assert document.processed_at is not None
        assert result.chunk_count == len(stored) > 1
        assert [c.position for c in stored] == list(range(len(stored)))
        assert all(len(c.embedding) == 32 for c in stored)
        assert vector_store.put_calls == 1
        assert [e.status for e in events] == [DocumentStatus.PROCESSING, DocumentStatus.READY]
        assert events[-1].chunk_count == len(stored)

    @pytest.mark.asyncio
    async def test_embedding_failure_ends_failed_without_chunks(
        self,
        document_repository: SQLiteDocumentRepository,
        vector_store: MockVectorStore,
    ) -> None:
        service = _paragraph_service(
            document_repository, vector_store, MockEmbeddingProvider(fail=True)
        )
        document_id = await _new_document(document_repository)

        result = await service.ingest(document_id, _clauses(3), FileType.DOCX)

        document = await document_repository.get(document_id)
        assert result.status is DocumentStatus.FAILED
        assert "EmbeddingProviderError" in (result.error or "")
        assert document.status is DocumentStatus.FAILED
        assert document.processed_at is None
        assert await vector_store.count_by_document(document_id) == 0

    @pytest.mark.asyncio
    async def test_store_failure_removes_partial_chunks(
        self,
        document_repository: SQLiteDocumentRepository,
    ) -> None:
        store = _FailingAfterWriteStore()
        service = _paragraph_service(document_repository, store)
        document_id = await _new_document(document_repository)

        result = await service.ingest(document_id, _clauses(3), FileType.DOCX)

        assert result.status is DocumentStatus.FAILED
        assert await store.count_by_document(document_id) == 0
        assert (await document_repository.get(document_id)).status is DocumentStatus.FAILED

    @pytest.mark.asyncio
    async def test_extraction_failure_ends_failed(
        self,
        ingestion_service: IngestionService,
        document_repository: SQLiteDocumentRepository,
    ) -> None:
        document_id = await _new_document(document_repository)

        result = await ingestion_service.ingest(document_id, b"not a document", FileType.DOCX)

        assert result.status is DocumentStatus.FAILED
        assert "ExtractionError" in (result.error or "")

    @pytest.mark.asyncio
    async def test_empty_text_is_ready_with_zero_chunks(
        self,
        ingestion_service: IngestionService,
        document_repository: SQLiteDocumentRepository,
        embedding_provider: MockEmbeddingProvider,
        vector_store: MockVectorStore,
    ) -> None:
        document_id = await _new_document(document_repository)

        result = await ingestion_service.ingest(document_id, make_docx(["", "  "]), FileType.DOCX)

        assert result.status is DocumentStatus.READY
        assert result.chunk_count == 0
        assert embedding_provider.calls == []
        assert vector_store.put_calls == 0
        assert (await document_repository.get(document_id)).status is DocumentStatus.READY

    @pytest.mark.asyncio
    async def test_missing_document_is_reported_not_raised(
        self,
        ingestion_service: IngestionService,
        vector_store: MockVectorStore,
    ) -> None:
        result = await ingestion_service.ingest("ghost", _clauses(1), FileType.DOCX)

        assert result.status is DocumentStatus.FAILED
        assert vector_store.chunks == {}


class TestReprocess:
    @pytest.mark.asyncio
    async def test_reprocess_replaces_chunk_set(
        self,
        document_repository: SQLiteDocumentRepository,
        vector_store: MockVectorStore,
    ) -> None:
        service = _paragraph_service(document_repository, vector_store)
        document_id = await _new_document(document_repository)

        first = await service.ingest(document_id, _clauses(5), FileType.DOCX)
        assert first.chunk_count == 5
        assert await vector_store.count_by_document(document_id) == 5

        second = await service.reprocess(document_id, _clauses(3), FileType.DOCX)

        stored = vector_store.for_document(document_id)
        assert second.status is DocumentStatus.READY
        assert len(stored) == 3
        assert [c.position for c in stored] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_reprocess_recovers_failed_document(
        self,
        document_repository: SQLiteDocumentRepository,
        vector_store: MockVectorStore,
    ) -> None:
        provider = MockEmbeddingProvider(fail=True)
        service = _paragraph_service(document_repository, vector_store, provider)
        document_id = await _new_document(document_repository)

        await service.ingest(document_id, _clauses(2), FileType.DOCX)
        assert (await document_repository.get(document_id)).status is DocumentStatus.FAILED

        provider.fail = False
        result = await service.reprocess(document_id, _clauses(2), FileType.DOCX)

        assert result.status is DocumentStatus.READY
        assert await vector_store.count_by_document(document_id) == 2

    @pytest.mark.asyncio
    async def test_concurrent_runs_on_one_document_do_not_duplicate(
        self,
        document_repository: SQLiteDocumentRepository,
        vector_store: MockVectorStore,
    ) -> None:
        service = _paragraph_service(document_repository, vector_store)
        document_id = await _new_document(document_repository)

        results = await asyncio.gather(
            service.reprocess(document_id, _clauses(4), FileType.DOCX),
            service.reprocess(document_id, _clauses(4), FileType.DOCX),
        )

        assert all(r.status is DocumentStatus.READY for r in results)
        assert await vector_store.count_by_document(document_id) == 4

    @pytest.mark.asyncio
    async def test_documents_are_isolated(
        self,
        document_repository: SQLiteDocumentRepository,
        vector_store: MockVectorStore,
    ) -> None:
        service = _paragraph_service(document_repository, vector_store)
        first_id = await _new_document(document_repository)
        second_id = await _new_document(document_repository)

        await asyncio.gather(
            service.ingest(first_id, _clauses(2), FileType.DOCX),
            service.ingest(second_id, _clauses(3), FileType.DOCX),
        )
        await service.reprocess(first_id, _clauses(1), FileType.DOCX)

        assert await vector_store.count_by_document(first_id) == 1
        assert await vector_store.count_by_document(second_id) == 3
