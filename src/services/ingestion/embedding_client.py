"""Batched, order-preserving embedding generation.

Wraps an :class:`~src.interfaces.embedding_provider.IEmbeddingProvider`
and enforces the contract the rest of the pipeline relies on:

* at most ``max_batch_size`` texts per provider call; larger inputs are
  split into sequential sub-batches and the vectors concatenated in input
  order;
* exactly one vector per input text;
* the same dimension for every vector the client ever returns.

Any violation, or any provider failure, raises
:class:`~src.utils.errors.EmbeddingProviderError`.  Nothing partial is
returned; the ingestion service discards a run's vectors on failure.
"""

from __future__ import annotations

import structlog

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.utils.errors import EmbeddingProviderError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_MAX_BATCH_SIZE = 100


def partition(items: list[str], batch_size: int) -> list[list[str]]:
    """Split *items* into consecutive slices of at most *batch_size*."""
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")
    return [items[start : start + batch_size] for start in range(0, len(items), batch_size)]


class EmbeddingClient:
    """Embeds arbitrarily long text lists through a batch-limited provider."""

    def __init__(
        self,
        provider: IEmbeddingProvider,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
    ) -> None:
        if max_batch_size <= 0:
            raise ValueError("max_batch_size must be positive")
        self._provider = provider
        self._max_batch_size = max_batch_size
        self._dimension: int | None = None

    @property
    def provider_name(self) -> str:
        return self._provider.get_provider_name()

    @property
    def dimension(self) -> int:
        """Dimension observed so far, or the provider's declared dimension."""
        return self._dimension if self._dimension is not None else self._provider.get_dimension()

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Return one vector per text, in input order."""
        if not texts:
            return []

        batches = partition(texts, self._max_batch_size)
        vectors: list[list[float]] = []
        for index, batch in enumerate(batches):
            try:
                batch_vectors = await self._provider.embed(batch)
            except EmbeddingProviderError:
                raise
            except Exception as exc:
                raise EmbeddingProviderError(
                    message=f"Embedding batch {index + 1}/{len(batches)} failed: {exc}",
                    provider_name=self.provider_name,
                ) from exc

            if len(batch_vectors) != len(batch):
                raise EmbeddingProviderError(
                    message=(
                        f"Embedding batch {index + 1}/{len(batches)} returned "
                        f"{len(batch_vectors)} vectors for {len(batch)} texts"
                    ),
                    provider_name=self.provider_name,
                )
            for vector in batch_vectors:
                self._check_dimension(vector)
            vectors.extend(batch_vectors)

        logger.info(
            "embedding_complete",
            provider=self.provider_name,
            texts=len(texts),
            batches=len(batches),
            dimension=self._dimension,
        )
        return vectors

    async def embed_one(self, text: str) -> list[float]:
        """Embed a single text (a batch of one)."""
        vectors = await self.embed([text])
        return vectors[0]

    def _check_dimension(self, vector: list[float]) -> None:
        if not vector:
            raise EmbeddingProviderError(
                message="Provider returned an empty embedding vector",
                provider_name=self.provider_name,
            )
        if self._dimension is None:
            self._dimension = len(vector)
        elif len(vector) != self._dimension:
            raise EmbeddingProviderError(
                message=(
                    f"Embedding dimension changed from {self._dimension} to {len(vector)}"
                ),
                provider_name=self.provider_name,
            )
