"""Document record persistence providers.

SQLiteDocumentRepository stores one row per uploaded document in
data/documents.db: title, file type, blob location, status, archived flag,
category, timestamps and extraction metadata.  Chunk rows are not stored
here; they live in the vector store keyed by document id.
"""

from src.providers.document_store.sqlite_document_repository import SQLiteDocumentRepository

__all__ = ["SQLiteDocumentRepository"]
