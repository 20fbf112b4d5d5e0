"""Document ingestion pipeline.

Orchestrates the full pipeline: **extract -> chunk -> embed -> store**.

1. **Extract** (text_extractor.py / TextExtractor) -- PDF (PyMuPDF) and
   DOCX (python-docx) to plain text, with a batched OCR fallback for
   scanned PDFs.

2. **Chunk** (chunker.py / TextChunker) -- Recursive character splitting
   into 1000-character windows with up to 200 characters of overlap.

3. **Embed** (embedding_client.py / EmbeddingClient) -- Order-preserving
   embedding in sub-batches of at most 100 texts.

4. **Store** (via IVectorStoreProvider) -- The complete chunk set for a
   document is written in one call.

IngestionService drives the four stages and the document status machine.
"""

from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.embedding_client import EmbeddingClient
from src.services.ingestion.ingestion_service import IngestionService
from src.services.ingestion.text_extractor import TextExtractor

__all__ = [
    "EmbeddingClient",
    "IngestionService",
    "TextChunker",
    "TextExtractor",
]
