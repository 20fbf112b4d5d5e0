"""Retrieval pipeline data models.

Defines Pydantic v2 models for extraction output, stored chunks, retrieval
results, ingestion summaries and corpus statistics.  All models use frozen
config to enforce immutability.

Overview:
    1. EXTRACTION: a PDF or DOCX buffer becomes plain text
       (:class:`ExtractionResult`).
    2. CHUNKING: the text is split into overlapping windows.
    3. EMBEDDING: each window becomes a fixed-dimension vector.
    4. STORAGE: windows + vectors are stored as :class:`DocumentChunk` rows
       keyed by document id.
    5. RETRIEVAL: a question is embedded and the nearest chunks come back as
       :class:`RetrievedChunk` objects, ranked by cosine similarity.

    See src/services/ingestion/ for the ingestion pipeline and
    src/providers/vector_store/ for the ChromaDB integration.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.models.document import DocumentStatus


# ---------------------------------------------------------------------------
# ExtractionResult -- output of the text extractor.
# ---------------------------------------------------------------------------
class ExtractionResult(BaseModel):
    """Plain text extracted from one file plus its extraction metadata."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(default="", description="Extracted plain text (may be empty).")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description='Opaque extraction metadata, e.g. {"page_count": 12} for PDFs.',
    )
    used_ocr: bool = Field(
        default=False,
        description="True when the OCR text was longer and replaced the native text.",
    )
    ocr_pages_failed: int = Field(
        default=0,
        ge=0,
        description="Pages whose OCR batch or per-page detection failed.",
    )


# ---------------------------------------------------------------------------
# DocumentChunk -- the unit written to the vector store.
# ---------------------------------------------------------------------------
class DocumentChunk(BaseModel):
    """A contiguous span of a document's extracted text with its embedding.

    ``position`` is the 0-based emission order from the chunker and is unique
    within one document.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier (UUID) for this chunk.")
    document_id: str = Field(description="Identifier of the owning document.")
    content: str = Field(min_length=1, description="The chunk's text.")
    embedding: list[float] = Field(default_factory=list, description="Embedding vector.")
    position: int = Field(ge=0, description="0-based order within the document.")
    metadata: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# RetrievedChunk -- a search result from the vector store.
# ---------------------------------------------------------------------------
class RetrievedChunk(BaseModel):
    """A stored chunk returned from a similarity query.

    ``similarity`` is ``1 - cosine_distance``; higher means more similar.
    """

    model_config = ConfigDict(frozen=True)

    content: str
    position: int = Field(ge=0)
    metadata: dict[str, Any] = Field(default_factory=dict)
    document_id: str
    similarity: float = Field(description="Cosine similarity to the query vector.")


# ---------------------------------------------------------------------------
# IngestionResult -- output of one ingestion run.
# ---------------------------------------------------------------------------
class IngestionResult(BaseModel):
    """Summary of a single ingestion run.

    Returned by the ingestion service and printed by the CLI.
    """

    model_config = ConfigDict(frozen=True)

    document_id: str
    status: DocumentStatus
    chunk_count: int = Field(default=0, ge=0, description="Chunks written by this run.")
    used_ocr: bool = False
    ingestion_time: float = Field(
        default=0.0,
        ge=0.0,
        description="Wall-clock time in seconds for the ingestion run.",
    )
    error: str | None = Field(default=None, description="Failure reason when status is failed.")


# ---------------------------------------------------------------------------
# CorpusStats -- a snapshot of the vector store's size.
# ---------------------------------------------------------------------------
class CorpusStats(BaseModel):
    """Aggregate statistics for the vector-store corpus."""

    model_config = ConfigDict(frozen=True)

    total_chunks: int = Field(default=0, ge=0)
    total_documents: int = Field(default=0, ge=0)
