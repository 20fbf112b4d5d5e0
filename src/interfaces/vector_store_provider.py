"""Abstract base class for vector-store service providers.

Defines the contract for storing, querying, and deleting embedded document
chunks.  Implementations may wrap ChromaDB (local/free), pgvector, Qdrant,
or any other vector database; the ingestion and retrieval services only
see this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.rag import CorpusStats, DocumentChunk, RetrievedChunk


# Concrete implementation: ChromaDBProvider (src/providers/vector_store/)
# Data persists to disk at CHROMADB_PERSIST_DIR.
class IVectorStoreProvider(ABC):
    """Contract for the chunk store shared by ingestion and retrieval.

    Chunks are partitioned by ``document_id``.  The store never replaces a
    document's chunks on its own; the ingestion service clears them with
    :meth:`delete_by_document` before writing a new set.
    """

    @abstractmethod
    async def put(self, document_id: str, chunks: list[DocumentChunk]) -> int:
        """Persist a complete chunk set for one document.

        Parameters
        ----------
        document_id:
            The owning document.  Every chunk's ``document_id`` must match.
        chunks:
            Chunks with embeddings.  An empty list is a no-op.

        Returns
        -------
        int
            Number of chunks written.

        Raises
        ------
        ValueError
            If a chunk belongs to a different document or has no embedding.
        src.utils.errors.StoreWriteError
            If the write fails.
        """

    @abstractmethod
    async def query(
        self,
        query_embedding: list[float],
        limit: int = 10,
        document_id: str | None = None,
    ) -> list[RetrievedChunk]:
        """Return the chunks nearest to *query_embedding*.

        Parameters
        ----------
        query_embedding:
            The embedded question.
        limit:
            Maximum number of results to return.
        document_id:
            When given, only chunks owned by this document are eligible.

        Returns
        -------
        list[RetrievedChunk]
            Results ordered by cosine similarity (``1 - cosine_distance``)
            descending; ties are ordered by position, then by chunk id.

        Raises
        ------
        src.utils.errors.VectorStoreError
            If the query fails.
        """

    @abstractmethod
    async def delete_by_document(self, document_id: str) -> int:
        """Delete every chunk owned by *document_id*.

        Idempotent: deleting a document with no chunks succeeds and
        returns ``0``.

        Returns
        -------
        int
            Number of chunks deleted.
        """

    @abstractmethod
    async def count_by_document(self, document_id: str) -> int:
        """Return the number of stored chunks owned by *document_id*."""

    @abstractmethod
    async def get_stats(self) -> CorpusStats:
        """Return total chunk and document counts for the whole store."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier (e.g. ``"chromadb"``)."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the store is initialised and usable."""
