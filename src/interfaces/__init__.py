"""Public interface definitions for all external service providers.

Every external API or backing store is accessed exclusively through the
abstract base classes defined in this package.  Concrete adapters implement
these interfaces and are injected at runtime, so services never import a
vendor SDK directly and unit tests can inject fakes.

The concrete providers live in ``src/providers/`` and are wired together in
``src/main.py`` during application startup.

CONCRETE PROVIDER MAP:
    Interface                  →  Concrete implementations (in src/providers/)
    ─────────────────────────────────────────────────────────────────────
    IEmbeddingProvider         →  OpenAIEmbeddingProvider,
                                  NomicEmbeddingProvider
    IVectorStoreProvider       →  ChromaDBProvider
    IOCRProvider               →  GoogleVisionOCRProvider
    IDocumentRepository        →  SQLiteDocumentRepository
    IBlobStorage               →  LocalBlobStorage
"""

from src.interfaces.blob_storage import IBlobStorage
from src.interfaces.document_repository import IDocumentRepository
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.ocr_provider import IOCRProvider, OCRPageResult
from src.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "IBlobStorage",
    "IDocumentRepository",
    "IEmbeddingProvider",
    "IOCRProvider",
    "IVectorStoreProvider",
    "OCRPageResult",
]
