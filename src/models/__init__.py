"""Domain models -- re-exports all public model classes.

Other parts of the codebase can import directly from ``src.models``
(e.g. ``from src.models import LegalDocument``).

The models are organized across two submodules by domain concern:
    - document.py -- Uploaded documents, status machine, listing rows, events
    - rag.py      -- Extraction output, stored chunks and retrieval results
"""

from __future__ import annotations

from src.models.document import (
    DOCX_MIME_TYPE,
    PDF_MIME_TYPE,
    DocumentStatus,
    DocumentSummary,
    FileType,
    LegalDocument,
    StatusEvent,
)
from src.models.rag import (
    CorpusStats,
    DocumentChunk,
    ExtractionResult,
    IngestionResult,
    RetrievedChunk,
)

__all__ = [
    "DOCX_MIME_TYPE",
    "PDF_MIME_TYPE",
    "CorpusStats",
    "DocumentChunk",
    "DocumentStatus",
    "DocumentSummary",
    "ExtractionResult",
    "FileType",
    "IngestionResult",
    "LegalDocument",
    "RetrievedChunk",
    "StatusEvent",
]
