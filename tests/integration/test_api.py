"""Integration tests for FastAPI API endpoints using TestClient."""

from __future__ import annotations

import time
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from src.main import create_app
from src.models.document import DOCX_MIME_TYPE, PDF_MIME_TYPE
from src.models.rag import DocumentChunk
from src.providers.document_store.sqlite_document_repository import SQLiteDocumentRepository
from src.services.document_service import DocumentService
from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.embedding_client import EmbeddingClient
from src.services.ingestion.ingestion_service import IngestionService
from src.services.ingestion.text_extractor import TextExtractor
from src.services.retrieval_service import RetrievalService
from src.services.status_notifier import StatusNotifier
from src.services.task_runner import BackgroundTaskRunner
from tests.conftest import (
    InMemoryBlobStorage,
    MockEmbeddingProvider,
    MockVectorStore,
    hash_to_vector,
    make_docx,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _build_components(tmp_path: Path) -> dict[str, Any]:
    """Assemble the service graph with in-memory providers."""
    documents = SQLiteDocumentRepository(db_path=tmp_path / "api.db")
    vector_store = MockVectorStore()
    blob_storage = InMemoryBlobStorage()
    embedding_client = EmbeddingClient(MockEmbeddingProvider())
    runner = BackgroundTaskRunner(max_concurrency=2)
    notifier = StatusNotifier()
    ingestion = IngestionService(
        extractor=TextExtractor(),
        chunker=TextChunker(chunk_size=1000, overlap=200),
        embedding_client=embedding_client,
        vector_store=vector_store,
        documents=documents,
        notifier=notifier,
    )
    return {
        "documents": documents,
        "blob_storage": blob_storage,
        "vector_store": vector_store,
        "embedding_client": embedding_client,
        "ocr_provider": None,
        "runner": runner,
        "ingestion_service": ingestion,
        "document_service": DocumentService(
            documents=documents,
            blob_storage=blob_storage,
            vector_store=vector_store,
            ingestion=ingestion,
            runner=runner,
            max_upload_bytes=4096,
            notifier=notifier,
        ),
        "retrieval_service": RetrievalService(embedding_client, vector_store),
        "provider_status": {
            "embedding": {"name": "mock-embedding", "available": True},
            "vector_store": {"name": "mock-vector-store", "available": True},
        },
    }


def _wait_for_status(client: TestClient, document_id: str, status: str) -> dict[str, Any]:
    for _ in range(200):
        body = client.get(f"/api/v1/documents/{document_id}").json()
        if body["status"] == status:
            return body
        time.sleep(0.02)
    raise AssertionError(f"document {document_id} never reached {status}")


def _seed_chunks(store: MockVectorStore, document_id: str, texts: list[str]) -> None:
    for position, text in enumerate(texts):
        chunk_id = f"{document_id}-{position}"
        store.chunks[chunk_id] = DocumentChunk(
            id=chunk_id,
            document_id=document_id,
            content=text,
            embedding=hash_to_vector(text),
            position=position,
        )


@pytest.fixture
def components(tmp_path: Path) -> dict[str, Any]:
    return _build_components(tmp_path)


@pytest.fixture
def client(components: dict[str, Any]) -> Iterator[TestClient]:
    with TestClient(create_app(components=components)) as test_client:
        yield test_client


def _upload(client: TestClient, data: bytes, name: str, content_type: str, **form: str):
    return client.post(
        "/api/v1/documents",
        files={"file": (name, data, content_type)},
        data=form,
    )


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class TestDocumentEndpoints:
    def test_upload_accepted_and_becomes_ready(self, client: TestClient) -> None:
        data = make_docx(["1. The Supplier shall deliver.", "2. The Buyer shall pay."])

        response = _upload(client, data, "Supply Agreement.docx", DOCX_MIME_TYPE, category="supply")

        assert response.status_code == 202
        body = response.json()
        assert body["status"] == "processing"
        assert body["title"] == "Supply Agreement"
        assert body["category"] == "supply"

        ready = _wait_for_status(client, body["id"], "ready")
        assert ready["chunk_count"] == 1
        assert ready["processed_at"] is not None

    def test_unsupported_type_is_415(self, client: TestClient, components: dict[str, Any]) -> None:
        response = _upload(client, b"just text", "notes.txt", "text/plain")

        assert response.status_code == 415
        assert response.json()["error"] == "UnsupportedFileTypeError"
        assert components["blob_storage"].blobs == {}

    def test_oversized_upload_is_413(self, client: TestClient, components: dict[str, Any]) -> None:
        response = _upload(client, b"%PDF" + b"0" * 8192, "big.pdf", PDF_MIME_TYPE)

        assert response.status_code == 413
        assert response.json()["error"] == "FileTooLargeError"
        assert components["blob_storage"].blobs == {}
        assert client.get("/api/v1/documents").json()["total"] == 0

    def test_unknown_document_is_404(self, client: TestClient) -> None:
        assert client.get("/api/v1/documents/missing").status_code == 404
        assert client.delete("/api/v1/documents/missing").status_code == 404
        assert client.post("/api/v1/documents/missing/reprocess").status_code == 404

    def test_list_archive_and_delete(self, client: TestClient, components: dict[str, Any]) -> None:
        first = _upload(client, make_docx(["Lease."]), "Lease.docx", DOCX_MIME_TYPE).json()
        second = _upload(client, make_docx(["NDA."]), "NDA.docx", DOCX_MIME_TYPE).json()
        _wait_for_status(client, first["id"], "ready")
        _wait_for_status(client, second["id"], "ready")

        archived = client.patch(
            f"/api/v1/documents/{second['id']}/archive", json={"archived": True}
        )
        assert archived.status_code == 200
        assert archived.json()["archived"] is True

        listing = client.get("/api/v1/documents").json()
        active = client.get("/api/v1/documents", params={"include_archived": "false"}).json()
        assert listing["total"] == 2
        assert [d["id"] for d in active["documents"]] == [first["id"]]

        deleted = client.delete(f"/api/v1/documents/{first['id']}")
        assert deleted.status_code == 200
        assert deleted.json() == {"document_id": first["id"], "deleted": True, "chunks_removed": 1}
        assert components["vector_store"].for_document(first["id"]) == []
        assert client.get(f"/api/v1/documents/{first['id']}").status_code == 404

    def test_reprocess_returns_202(self, client: TestClient) -> None:
        created = _upload(client, make_docx(["Deed of trust."]), "Deed.docx", DOCX_MIME_TYPE).json()
        _wait_for_status(client, created["id"], "ready")

        response = client.post(f"/api/v1/documents/{created['id']}/reprocess")

        assert response.status_code == 202
        assert response.json()["status"] == "processing"
        _wait_for_status(client, created["id"], "ready")


# ---------------------------------------------------------------------------
# Search and health
# ---------------------------------------------------------------------------


class TestSearchEndpoint:
    def test_search_ranks_and_builds_context(
        self, client: TestClient, components: dict[str, Any]
    ) -> None:
        texts = ["Termination requires notice.", "Rent is due monthly.", "Governing law."]
        _seed_chunks(components["vector_store"], "doc-1", texts)

        response = client.post("/api/v1/search", json={"query": "Rent is due monthly.", "limit": 2})

        assert response.status_code == 200
        body = response.json()
        assert body["total_results"] == 2
        assert body["results"][0]["content"] == "Rent is due monthly."
        assert body["results"][0]["similarity"] == pytest.approx(1.0)
        assert body["context"].startswith("Rent is due monthly.\n\n---\n\n")

    def test_search_filtered_by_document(
        self, client: TestClient, components: dict[str, Any]
    ) -> None:
        _seed_chunks(components["vector_store"], "doc-1", ["Clause in first."])
        _seed_chunks(components["vector_store"], "doc-2", ["Clause in second."])

        body = client.post(
            "/api/v1/search", json={"query": "Clause", "document_id": "doc-2"}
        ).json()

        assert [r["document_id"] for r in body["results"]] == ["doc-2"]

    def test_search_validation(self, client: TestClient) -> None:
        assert client.post("/api/v1/search", json={"query": ""}).status_code == 422
        assert client.post("/api/v1/search", json={"query": "x", "limit": 0}).status_code == 422


class TestHealthEndpoint:
    def test_health_reports_providers_and_corpus(
        self, client: TestClient, components: dict[str, Any]
    ) -> None:
        _seed_chunks(components["vector_store"], "doc-1", ["One.", "Two."])

        body = client.get("/api/v1/health").json()

        assert body["status"] == "healthy"
        assert body["providers"]["embedding"]["available"] is True
        assert body["corpus"] == {"total_chunks": 2, "total_documents": 1}
