"""Abstract base class for document record persistence.

Defines the contract for storing :class:`~src.models.document.LegalDocument`
records and their status transitions.  Implementations may use SQLite
(local), PostgreSQL, or any other backend.  Chunk rows live in the vector
store; this repository only holds the document records.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from src.models.document import DocumentStatus, LegalDocument


class IDocumentRepository(ABC):
    """Contract for document record persistence services.

    All operations are async to support network-backed stores.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables and indexes if they do not already exist."""

    @abstractmethod
    async def create(self, document: LegalDocument) -> LegalDocument:
        """Insert a new document record and return it.

        Raises
        ------
        src.utils.errors.StoreWriteError
            If the record cannot be written.
        """

    @abstractmethod
    async def get(self, document_id: str) -> LegalDocument:
        """Return the document with *document_id*.

        Raises
        ------
        src.utils.errors.DocumentNotFoundError
            If no such document exists.
        """

    @abstractmethod
    async def list_documents(self, include_archived: bool = True) -> list[LegalDocument]:
        """Return all documents, newest upload first."""

    @abstractmethod
    async def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        metadata: dict[str, Any] | None = None,
    ) -> LegalDocument:
        """Set the status of a document and return the updated record.

        Parameters
        ----------
        document_id:
            The document to update.
        status:
            The new status.  ``processed_at`` is set to the current time
            when *status* is ``READY`` and cleared for any other status.
        metadata:
            Extraction metadata to store; ``None`` leaves it unchanged.

        Raises
        ------
        src.utils.errors.DocumentNotFoundError
            If no such document exists.
        """

    @abstractmethod
    async def set_archived(self, document_id: str, archived: bool) -> LegalDocument:
        """Set the archived flag and return the updated record."""

    @abstractmethod
    async def delete(self, document_id: str) -> None:
        """Delete the document record.

        Raises
        ------
        src.utils.errors.DocumentNotFoundError
            If no such document exists.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier (e.g. ``"sqlite"``)."""
