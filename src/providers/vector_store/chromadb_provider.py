"""ChromaDB vector store provider adapter.

Wraps `chromadb.PersistentClient` to implement :class:`IVectorStoreProvider`.
Uses cosine distance for similarity search.  Fully local, free, and
Python-native -- no external service required.

Each chunk is stored with scalar metadata ``document_id`` and ``position``
(so they can be used in ``where`` clauses) plus the chunk's own metadata
bag serialized as JSON, since ChromaDB metadata values must be scalars.
"""

from __future__ import annotations

import json
import os
from typing import Any

# ChromaDB reads this before the client is constructed; the Settings flag
# below covers versions that ignore the env var.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import chromadb
import structlog

from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.rag import CorpusStats, DocumentChunk, RetrievedChunk
from src.utils.errors import ConfigurationError, StoreWriteError, VectorStoreError

logger = structlog.get_logger(logger_name=__name__)

_PAGE_SIZE = 5000

# Upserts are sliced to bound peak memory and to stay under the
# client's maximum batch size.
DEFAULT_UPSERT_BATCH_SIZE = 500


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """No-op embedding function that prevents ChromaDB from loading a model.

    Every write and query passes pre-computed embeddings, so ChromaDB's
    built-in embedding is never invoked.  Without this, ChromaDB downloads
    its default ONNX model on collection creation.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "Embeddings are pre-computed; ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        """Return function name (required by ChromaDB's EmbeddingFunction protocol)."""
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by ChromaDB with local persistence.

    ChromaDB stores embeddings on disk and performs cosine-similarity
    search over an HNSW index.  Chunks are partitioned by the
    ``document_id`` metadata field.
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "legal_documents",
        embedding_dimension: int | None = None,
        batch_size: int = DEFAULT_UPSERT_BATCH_SIZE,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self._persist_directory = persist_directory
        self._batch_size = batch_size
        self._collection_name = collection_name
        self._client = chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        # A collection created by an older ChromaDB with the default embedding
        # function rejects a different one; reopen it without specifying any.
        try:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
            )

        if embedding_dimension is not None:
            self._validate_embedding_dimensions(embedding_dimension)

    def _upsert_batch_size(self) -> int:
        return max(1, min(self._batch_size, self._client.get_max_batch_size()))

    # ------------------------------------------------------------------
    # Startup validation
    # ------------------------------------------------------------------

    def _validate_embedding_dimensions(self, expected_dim: int) -> None:
        """Verify the configured embedding dimension matches stored vectors.

        Peeks at a single stored vector.  A mismatch means every query would
        compare vectors from different spaces, so fail loud and fast.
        """
        try:
            collection_count = self._collection.count()
            if collection_count == 0:
                return

            sample = self._collection.peek(limit=1)
            embeddings = sample.get("embeddings") if sample else None
            if embeddings is None or len(embeddings) == 0:
                return

            stored_dim = len(embeddings[0])
        except Exception as exc:
            logger.warning("embedding_dimension_check_skipped", error=str(exc))
            return

        if stored_dim != expected_dim:
            logger.error(
                "embedding_dimension_mismatch",
                stored_dim=stored_dim,
                expected_dim=expected_dim,
            )
            raise ConfigurationError(
                message=(
                    f"Embedding dimension mismatch: store has {stored_dim}-dim vectors "
                    f"but the embedding provider produces {expected_dim}-dim vectors. "
                    "Reprocess all documents after changing the embedding model."
                ),
                provider_name=self.get_provider_name(),
            )

        logger.info(
            "embedding_dimension_validated",
            dimension=stored_dim,
            stored_chunks=collection_count,
        )

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def put(self, document_id: str, chunks: list[DocumentChunk]) -> int:
        """Write a document's chunk set in slices of at most the upsert batch size.

        A slice that fails raises ``StoreWriteError`` with earlier slices
        already stored; the ingestion service removes them before marking
        the document failed.
        """
        if not chunks:
            return 0

        for chunk in chunks:
            if chunk.document_id != document_id:
                raise ValueError(
                    f"chunk {chunk.id} belongs to {chunk.document_id}, not {document_id}"
                )
            if not chunk.embedding:
                raise ValueError(f"chunk {chunk.id} has no embedding")

        batch_size = self._upsert_batch_size()
        try:
            for start in range(0, len(chunks), batch_size):
                batch = chunks[start : start + batch_size]
                self._collection.upsert(
                    ids=[c.id for c in batch],
                    embeddings=[c.embedding for c in batch],
                    documents=[c.content for c in batch],
                    metadatas=[self._chunk_to_metadata(c) for c in batch],
                )
        except Exception as exc:
            raise StoreWriteError(
                message=f"ChromaDB put failed for document {document_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "chromadb_put",
            document_id=document_id,
            count=len(chunks),
            batches=(len(chunks) + batch_size - 1) // batch_size,
        )
        return len(chunks)

    async def query(
        self,
        query_embedding: list[float],
        limit: int = 10,
        document_id: str | None = None,
    ) -> list[RetrievedChunk]:
        """Return the nearest chunks ranked by cosine similarity."""
        if limit <= 0:
            return []

        try:
            total = self._collection.count()
            if total == 0:
                return []

            kwargs: dict[str, Any] = {
                "query_embeddings": [query_embedding],
                "n_results": min(limit, total),
                "include": ["documents", "metadatas", "distances"],
            }
            if document_id is not None:
                kwargs["where"] = {"document_id": document_id}

            results = self._collection.query(**kwargs)
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not results["ids"] or not results["ids"][0]:
            return []

        ids = results["ids"][0]
        documents = results["documents"][0] if results["documents"] else [""] * len(ids)
        metadatas = results["metadatas"][0] if results["metadatas"] else [{}] * len(ids)
        distances = results["distances"][0] if results["distances"] else [1.0] * len(ids)

        ranked: list[tuple[str, RetrievedChunk]] = []
        for chunk_id, content, meta, distance in zip(
            ids, documents, metadatas, distances, strict=True
        ):
            ranked.append((chunk_id, self._metadata_to_result(meta or {}, content or "", distance)))

        # HNSW order is approximate on ties; sort explicitly for a stable order.
        ranked.sort(key=lambda item: (-item[1].similarity, item[1].position, item[0]))
        retrieved = [result for _, result in ranked]

        logger.info(
            "chromadb_query",
            document_id=document_id,
            limit=limit,
            results_count=len(retrieved),
            top_score=retrieved[0].similarity if retrieved else 0.0,
        )
        return retrieved

    async def delete_by_document(self, document_id: str) -> int:
        """Delete all chunks owned by the given document."""
        try:
            existing = self._collection.get(where={"document_id": document_id}, include=[])
            count = len(existing["ids"]) if existing["ids"] else 0

            if count > 0:
                self._collection.delete(where={"document_id": document_id})
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB delete_by_document failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("chromadb_delete_by_document", document_id=document_id, deleted_count=count)
        return count

    async def count_by_document(self, document_id: str) -> int:
        try:
            existing = self._collection.get(where={"document_id": document_id}, include=[])
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB count_by_document failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return len(existing["ids"]) if existing["ids"] else 0

    async def get_stats(self) -> CorpusStats:
        """Return total chunk and distinct document counts.

        Metadata is fetched in pages to stay under SQLite's bind-parameter
        limit on large collections.
        """
        try:
            current_count = self._collection.count()
            document_ids: set[str] = set()
            for page_offset in range(0, current_count, _PAGE_SIZE):
                page = self._collection.get(
                    include=["metadatas"],
                    limit=_PAGE_SIZE,
                    offset=page_offset,
                )
                for meta in page["metadatas"] or []:
                    document_ids.add(str(meta.get("document_id", "")))
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB get_stats failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        return CorpusStats(total_chunks=current_count, total_documents=len(document_ids))

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` if the ChromaDB collection is accessible."""
        try:
            self._collection.count()
            return True
        except Exception:
            return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _chunk_to_metadata(chunk: DocumentChunk) -> dict[str, str | int]:
        return {
            "document_id": chunk.document_id,
            "position": chunk.position,
            "metadata_json": json.dumps(chunk.metadata, sort_keys=True, default=str),
        }

    @staticmethod
    def _metadata_to_result(meta: dict[str, Any], content: str, distance: float) -> RetrievedChunk:
        raw = meta.get("metadata_json")
        return RetrievedChunk(
            content=content,
            position=int(meta.get("position", 0)),
            metadata=json.loads(raw) if raw else {},
            document_id=str(meta.get("document_id", "")),
            similarity=1.0 - float(distance),
        )
