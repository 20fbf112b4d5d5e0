"""Abstract base class for raw file (blob) storage.

Uploaded binaries are kept so a document can be reprocessed later without
re-uploading.  The value returned by :meth:`IBlobStorage.put` is stored on
the document record as its opaque ``source_location``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: LocalBlobStorage (src/providers/storage/)
class IBlobStorage(ABC):
    """Contract for storing and fetching uploaded binaries."""

    @abstractmethod
    async def put(self, file_name: str, data: bytes) -> str:
        """Store *data* and return its source location."""

    @abstractmethod
    async def get(self, source_location: str) -> bytes:
        """Return the bytes stored at *source_location*.

        Raises
        ------
        src.utils.errors.DocumentNotFoundError
            If nothing is stored there.
        """

    @abstractmethod
    async def delete(self, source_location: str) -> None:
        """Remove the blob; deleting a missing blob is not an error."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier (e.g. ``"local"``)."""
