"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.
Implementations may wrap an OpenAI-compatible embeddings endpoint, Nomic
``nomic-embed-text`` (local via Ollama), or any other embedding backend.
Batch-size limits and order checks are enforced one level up by
:class:`~src.services.ingestion.embedding_client.EmbeddingClient`, so a
provider only has to embed the batch it is handed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations:
#   OpenAIEmbeddingProvider  -- OpenAI-compatible /embeddings (requires API key)
#   NomicEmbeddingProvider   -- nomic-embed-text via Ollama (local, 768 dims)
# Located in: src/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by ingestion and retrieval.

    Embeddings are consumed by
    :class:`~src.interfaces.vector_store_provider.IVectorStoreProvider` for
    indexing and query-time similarity search.
    """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for one request-sized batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.  Callers never pass more
            than the configured batch ceiling in one call.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.  Each
            inner list has length equal to :meth:`get_dimension`.

        Raises
        ------
        src.utils.errors.EmbeddingProviderError
            If the embedding API call fails.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        This value must remain constant for the lifetime of the provider
        instance and must match the vectors already in the vector store.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider.

        Example return values: ``"openai"``, ``"nomic"``.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured.

        Implementations should verify that credentials (if any) are present
        without generating an actual embedding.
        """
