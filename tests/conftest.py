"""Shared pytest fixtures for the legal document test suite."""

from __future__ import annotations

import hashlib
import io
import math
import struct
from pathlib import Path

import fitz
import pytest
import pytest_asyncio
from docx import Document

from src.interfaces.blob_storage import IBlobStorage
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.ocr_provider import IOCRProvider, OCRPageResult
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.rag import CorpusStats, DocumentChunk, RetrievedChunk
from src.providers.document_store.sqlite_document_repository import SQLiteDocumentRepository
from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.embedding_client import EmbeddingClient
from src.services.ingestion.ingestion_service import IngestionService
from src.services.ingestion.text_extractor import TextExtractor
from src.services.status_notifier import StatusNotifier
from src.utils.errors import DocumentNotFoundError, OCRBatchError

_EMBEDDING_DIM = 32


# ---------------------------------------------------------------------------
# Sample files
# ---------------------------------------------------------------------------


def make_pdf(pages: list[str]) -> bytes:
    """Build an in-memory PDF with one page per entry; empty strings give blank pages.

    Text is not wrapped, so callers keep lines short and break them with newlines.
    """
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def make_docx(paragraphs: list[str], table: list[list[str]] | None = None) -> bytes:
    """Build an in-memory DOCX with *paragraphs* followed by an optional table."""
    document = Document()
    for text in paragraphs:
        document.add_paragraph(text)
    if table:
        grid = document.add_table(rows=len(table), cols=len(table[0]))
        for row_index, row in enumerate(table):
            for col_index, value in enumerate(row):
                grid.cell(row_index, col_index).text = value
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def sample_legal_text() -> str:
    """Multi-paragraph contract text, roughly 3000 characters."""
    clauses = [
        (
            f"{number}. The Tenant shall pay the monthly rent of one thousand two hundred "
            f"euros on or before the first business day of each month. Late payment "
            f"beyond ten days incurs a penalty as described in clause {number + 1}. "
            f"Notices under this clause must be given in writing to the Landlord."
        )
        for number in range(1, 13)
    ]
    return "\n\n".join(clauses)


# ---------------------------------------------------------------------------
# Deterministic embedding helpers
# ---------------------------------------------------------------------------


def hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Generate a deterministic unit vector by hashing *text*."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    raw = digest
    while len(raw) < dim * 4:
        raw += hashlib.sha256(raw).digest()
    values = [v / 2**32 - 0.5 for v in struct.unpack(f"<{dim}I", raw[: dim * 4])]
    magnitude = max(math.sqrt(sum(v * v for v in values)), 1e-10)
    return [v / magnitude for v in values]


def cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b, strict=True))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider that records each batch."""

    def __init__(self, dim: int = _EMBEDDING_DIM, fail: bool = False) -> None:
        self.dim = dim
        self.fail = fail
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.fail:
            raise RuntimeError("embedding backend unavailable")
        return [hash_to_vector(t, self.dim) for t in texts]

    def get_dimension(self) -> int:
        return self.dim

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


class MockVectorStore(IVectorStoreProvider):
    """In-memory vector store ranking by exact cosine similarity."""

    def __init__(self) -> None:
        self.chunks: dict[str, DocumentChunk] = {}
        self.put_calls = 0

    async def put(self, document_id: str, chunks: list[DocumentChunk]) -> int:
        self.put_calls += 1
        for chunk in chunks:
            self.chunks[chunk.id] = chunk
        return len(chunks)

    async def query(
        self,
        query_embedding: list[float],
        limit: int = 10,
        document_id: str | None = None,
    ) -> list[RetrievedChunk]:
        scored = [
            RetrievedChunk(
                content=chunk.content,
                position=chunk.position,
                metadata=chunk.metadata,
                document_id=chunk.document_id,
                similarity=cosine(query_embedding, chunk.embedding),
            )
            for chunk in self.chunks.values()
            if document_id is None or chunk.document_id == document_id
        ]
        scored.sort(key=lambda r: (-r.similarity, r.position))
        return scored[:limit] if limit > 0 else []

    async def delete_by_document(self, document_id: str) -> int:
        doomed = [cid for cid, c in self.chunks.items() if c.document_id == document_id]
        for cid in doomed:
            del self.chunks[cid]
        return len(doomed)

    async def count_by_document(self, document_id: str) -> int:
        return sum(1 for c in self.chunks.values() if c.document_id == document_id)

    async def get_stats(self) -> CorpusStats:
        return CorpusStats(
            total_chunks=len(self.chunks),
            total_documents=len({c.document_id for c in self.chunks.values()}),
        )

    def get_provider_name(self) -> str:
        return "mock-vector-store"

    def is_available(self) -> bool:
        return True

    def for_document(self, document_id: str) -> list[DocumentChunk]:
        return sorted(
            (c for c in self.chunks.values() if c.document_id == document_id),
            key=lambda c: c.position,
        )


class FakeOCRProvider(IOCRProvider):
    """Scripted OCR: returns ``page text N`` unless a page or batch is told to fail."""

    def __init__(
        self,
        failing_batches: set[int] | None = None,
        failing_pages: set[int] | None = None,
        page_text: str = "Recognised text of scanned page {page} with enough words to count.",
    ) -> None:
        self.failing_batches = failing_batches or set()
        self.failing_pages = failing_pages or set()
        self.page_text = page_text
        self.batches: list[list[int]] = []

    async def extract_pdf_pages(self, pdf_bytes: bytes, pages: list[int]) -> list[OCRPageResult]:
        self.batches.append(list(pages))
        if len(self.batches) in self.failing_batches:
            raise OCRBatchError(message=f"batch {pages} failed", provider_name="fake-ocr")
        return [
            OCRPageResult(page=page, error="unreadable")
            if page in self.failing_pages
            else OCRPageResult(page=page, text=self.page_text.format(page=page))
            for page in pages
        ]

    def get_provider_name(self) -> str:
        return "fake-ocr"

    def is_available(self) -> bool:
        return True


class InMemoryBlobStorage(IBlobStorage):
    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}

    async def put(self, file_name: str, data: bytes) -> str:
        location = f"{len(self.blobs)}/{file_name}"
        self.blobs[location] = data
        return location

    async def get(self, source_location: str) -> bytes:
        try:
            return self.blobs[source_location]
        except KeyError as exc:
            raise DocumentNotFoundError(message=f"No blob at {source_location}") from exc

    async def delete(self, source_location: str) -> None:
        self.blobs.pop(source_location, None)

    def get_provider_name(self) -> str:
        return "memory-blob"


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def vector_store() -> MockVectorStore:
    return MockVectorStore()


@pytest.fixture
def blob_storage() -> InMemoryBlobStorage:
    return InMemoryBlobStorage()


@pytest_asyncio.fixture
async def document_repository(tmp_path: Path) -> SQLiteDocumentRepository:
    repository = SQLiteDocumentRepository(db_path=tmp_path / "documents.db")
    await repository.initialize()
    return repository


@pytest.fixture
def notifier() -> StatusNotifier:
    return StatusNotifier()


@pytest.fixture
def ingestion_service(
    embedding_provider: MockEmbeddingProvider,
    vector_store: MockVectorStore,
    document_repository: SQLiteDocumentRepository,
    notifier: StatusNotifier,
) -> IngestionService:
    return IngestionService(
        extractor=TextExtractor(),
        chunker=TextChunker(chunk_size=1000, overlap=200),
        embedding_client=EmbeddingClient(embedding_provider, max_batch_size=100),
        vector_store=vector_store,
        documents=document_repository,
        notifier=notifier,
    )
