"""Legal document service FastAPI application entry point.

Wires together all providers and services via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml``, configures
structured logging, and exposes the REST API.

Also provides :func:`build_components` for CLI or scripting usage outside
the web server.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router as api_router
from src.config.loader import load_config
from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.providers.document_store.sqlite_document_repository import SQLiteDocumentRepository
from src.providers.ocr.google_vision_provider import GoogleVisionOCRProvider
from src.providers.storage.local_blob_storage import LocalBlobStorage
from src.providers.vector_store.chromadb_provider import ChromaDBProvider
from src.services.document_service import DocumentService
from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.embedding_client import EmbeddingClient
from src.services.ingestion.ingestion_service import IngestionService
from src.services.ingestion.text_extractor import TextExtractor
from src.services.retrieval_service import CONTEXT_SEPARATOR, RetrievalService
from src.services.status_notifier import StatusNotifier
from src.services.task_runner import BackgroundTaskRunner
from src.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Embedding provider selection
# ---------------------------------------------------------------------------


def _build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider:
    """Select the first available embedding provider.

    Priority: OpenAI/OpenAI-compatible (if API key set) -> Nomic/Ollama.
    When neither is reachable the Nomic provider is still returned so the
    service starts; ingestion runs then fail with an embedding error and
    the health endpoint reports the provider as unavailable.
    """
    if app_settings.openai_api_key:
        from src.providers.embedding.openai_embedding_provider import (
            OpenAIEmbeddingProvider,
        )

        provider: IEmbeddingProvider = OpenAIEmbeddingProvider(settings=app_settings)
        if provider.is_available():
            return provider

    from src.providers.embedding.nomic_embedding_provider import (
        NomicEmbeddingProvider,
    )

    provider = NomicEmbeddingProvider(settings=app_settings)
    if not provider.is_available():
        _logger.warning(
            "no_embedding_provider_available",
            fallback=provider.get_provider_name(),
        )
    return provider


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def build_components(
    app_settings: Settings,
    app_config: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Construct every provider and service instance.

    Returns a flat dict of named components; the web app stores them on
    ``app.state`` and the CLI uses them directly.
    """
    app_config = app_config if app_config is not None else load_config(settings=app_settings)
    chunking_cfg = app_config.get("chunking", {})
    retrieval_cfg = app_config.get("retrieval", {})

    # -- Persistence --
    documents = SQLiteDocumentRepository(db_path=app_settings.documents_db_path)
    blob_storage = LocalBlobStorage(root_dir=app_settings.blob_storage_dir)
    vector_store = ChromaDBProvider(
        persist_directory=app_settings.chromadb_persist_dir,
        collection_name=app_settings.chromadb_collection,
        embedding_dimension=app_settings.embedding_dimension,
    )

    # -- Embedding --
    embedding_provider = _build_embedding_provider(app_settings)
    embedding_client = EmbeddingClient(
        provider=embedding_provider,
        max_batch_size=app_settings.embedding_batch_size,
    )

    # -- OCR (optional: only with a Google API key) --
    ocr_provider: GoogleVisionOCRProvider | None = None
    if app_settings.google_api_key:
        ocr_provider = GoogleVisionOCRProvider(
            api_key=app_settings.google_api_key,
            endpoint=app_settings.google_vision_url,
            timeout=app_settings.ocr_timeout_seconds,
        )

    # -- Ingestion pipeline --
    extractor = TextExtractor(
        ocr_provider=ocr_provider,
        min_text_length=app_settings.ocr_min_text_length,
        max_ocr_pages=app_settings.ocr_max_pages,
        ocr_batch_size=app_settings.ocr_batch_size,
    )
    chunker = TextChunker(
        chunk_size=app_settings.chunk_size,
        overlap=app_settings.chunk_overlap,
        separators=chunking_cfg.get("separators"),
    )
    notifier = StatusNotifier()
    runner = BackgroundTaskRunner(max_concurrency=app_settings.ingestion_concurrency)
    ingestion_service = IngestionService(
        extractor=extractor,
        chunker=chunker,
        embedding_client=embedding_client,
        vector_store=vector_store,
        documents=documents,
        notifier=notifier,
    )

    # -- Boundary services --
    document_service = DocumentService(
        documents=documents,
        blob_storage=blob_storage,
        vector_store=vector_store,
        ingestion=ingestion_service,
        runner=runner,
        max_upload_bytes=app_settings.max_upload_bytes,
        notifier=notifier,
    )
    retrieval_service = RetrievalService(
        embedding_client=embedding_client,
        vector_store=vector_store,
        default_limit=app_settings.retrieval_limit,
        context_separator=retrieval_cfg.get("context_separator", CONTEXT_SEPARATOR),
    )

    provider_status: dict[str, Any] = {
        "embedding": {
            "name": embedding_provider.get_provider_name(),
            "available": embedding_provider.is_available(),
        },
        "vector_store": {
            "name": vector_store.get_provider_name(),
            "available": vector_store.is_available(),
        },
        "ocr": {
            "name": ocr_provider.get_provider_name() if ocr_provider else None,
            "available": bool(ocr_provider and ocr_provider.is_available()),
        },
        "documents": {"name": documents.get_provider_name(), "available": True},
    }

    return {
        "settings": app_settings,
        "config": app_config,
        "documents": documents,
        "blob_storage": blob_storage,
        "vector_store": vector_store,
        "embedding_provider": embedding_provider,
        "embedding_client": embedding_client,
        "ocr_provider": ocr_provider,
        "extractor": extractor,
        "chunker": chunker,
        "notifier": notifier,
        "runner": runner,
        "ingestion_service": ingestion_service,
        "document_service": document_service,
        "retrieval_service": retrieval_service,
        "provider_status": provider_status,
    }


async def close_components(components: dict[str, Any]) -> None:
    """Cancel in-flight ingestion runs and close network clients."""
    runner: BackgroundTaskRunner | None = components.get("runner")
    if runner is not None:
        await runner.shutdown()
    ocr_provider: GoogleVisionOCRProvider | None = components.get("ocr_provider")
    if ocr_provider is not None:
        await ocr_provider.aclose()


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown.

    Components already placed on ``app.state`` by :func:`create_app` are
    used as-is instead of being built from settings.
    """
    components: dict[str, Any] | None = getattr(application.state, "components", None)
    if components is None:
        components = build_components(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["documents"].initialize()

    _logger.info(
        "app_startup",
        version=application.version,
        environment=settings.app_env,
        embedding_provider=components["embedding_client"].provider_name,
        ocr_enabled=components.get("ocr_provider") is not None,
    )

    yield

    await close_components(components)
    _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(components: dict[str, Any] | None = None) -> FastAPI:
    """Build and configure the FastAPI application.

    Parameters
    ----------
    components:
        Pre-built component dict (see :func:`build_components`).  When
        omitted, components are built from settings at startup.
    """
    app_cfg = config.get("app", {})
    application = FastAPI(
        title=app_cfg.get("title", "Legal Document QA"),
        version=str(app_cfg.get("version", "0.1.0")),
        description=(
            "Upload legal PDF and DOCX documents, index them as embedded "
            "chunks, and retrieve the passages most relevant to a question."
        ),
        lifespan=_lifespan,
    )
    if components is not None:
        application.state.components = components

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
