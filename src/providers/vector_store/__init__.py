"""Vector store provider implementations.

ChromaDB is the sole vector store implementation. It stores chunk
embeddings on disk (persistent) and supports cosine-similarity search
filtered by document. Data persists at CHROMADB_PERSIST_DIR.

To swap ChromaDB for another vector database (pgvector, Qdrant),
create a new class implementing IVectorStoreProvider and register it in main.py.
"""

from src.providers.vector_store.chromadb_provider import ChromaDBProvider

__all__ = ["ChromaDBProvider"]
