"""Blob storage providers for uploaded binaries.

LocalBlobStorage keeps each upload under BLOB_STORAGE_DIR so a document
can be reprocessed from its stored bytes.
"""

from src.providers.storage.local_blob_storage import LocalBlobStorage

__all__ = ["LocalBlobStorage"]
