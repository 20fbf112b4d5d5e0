"""Query-time retrieval over stored document chunks.

Embeds the question with the same :class:`EmbeddingClient` used at
ingestion time (a batch of one), then asks the vector store for the most
similar chunks, optionally restricted to a single document.  An unknown
document, or one without chunks, simply yields an empty list; the
answer-generation caller decides what to say when nothing is found.
"""

from __future__ import annotations

import structlog

from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.rag import RetrievedChunk
from src.services.ingestion.embedding_client import EmbeddingClient

logger = structlog.get_logger(logger_name=__name__)

CONTEXT_SEPARATOR = "\n\n---\n\n"


class RetrievalService:
    """Returns ranked chunks for a natural-language question."""

    def __init__(
        self,
        embedding_client: EmbeddingClient,
        vector_store: IVectorStoreProvider,
        default_limit: int = 10,
        context_separator: str = CONTEXT_SEPARATOR,
    ) -> None:
        self._embedding_client = embedding_client
        self._vector_store = vector_store
        self._default_limit = default_limit
        self._context_separator = context_separator

    async def retrieve(
        self,
        query_text: str,
        limit: int | None = None,
        document_id: str | None = None,
    ) -> list[RetrievedChunk]:
        """Return up to *limit* chunks ordered by descending similarity."""
        if not query_text or not query_text.strip():
            return []
        limit = self._default_limit if limit is None else limit
        if limit <= 0:
            return []

        query_embedding = await self._embedding_client.embed_one(query_text)
        results = await self._vector_store.query(
            query_embedding, limit=limit, document_id=document_id
        )
        logger.info(
            "retrieval_complete",
            query_length=len(query_text),
            document_id=document_id,
            results=len(results),
            top_score=results[0].similarity if results else None,
        )
        return results

    def build_context(self, chunks: list[RetrievedChunk]) -> str:
        """Join chunk contents with the configured separator."""
        return self.format_context(chunks, self._context_separator)

    @staticmethod
    def format_context(chunks: list[RetrievedChunk], separator: str = CONTEXT_SEPARATOR) -> str:
        """Join chunk contents into one prompt context block, in ranked order."""
        return separator.join(chunk.content for chunk in chunks)
