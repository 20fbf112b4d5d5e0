"""Utility modules for the legal document service.

Available utility modules (re-exported here for convenience):

- **errors** -- Domain-specific exception hierarchy rooted at LegalDocsError;
  each pipeline stage raises its own subclass so callers can handle failures
  granularly without broad ``except Exception`` blocks.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

# -- Domain exception hierarchy --------------------------------------------
from src.utils.errors import (
    ConfigurationError,
    DocumentNotFoundError,
    EmbeddingProviderError,
    ExtractionError,
    FileTooLargeError,
    LegalDocsError,
    OCRBatchError,
    OCRUnavailableError,
    StoreWriteError,
    UnsupportedFileTypeError,
    VectorStoreError,
)

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "DocumentNotFoundError",
    "EmbeddingProviderError",
    "ExtractionError",
    "FileTooLargeError",
    "LegalDocsError",
    "OCRBatchError",
    "OCRUnavailableError",
    "StoreWriteError",
    "UnsupportedFileTypeError",
    "VectorStoreError",
    "configure_logging",
    "get_logger",
]
