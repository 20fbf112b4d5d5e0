"""Custom exception hierarchy for the legal document service.

All application exceptions inherit from :class:`LegalDocsError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "chromadb", "google_vision") caused the
failure.

The hierarchy is organized by pipeline stage:

    LegalDocsError  (base -- catch-all for any application error)
    +-- UnsupportedFileTypeError (upload validation: not pdf/docx)
    +-- FileTooLargeError        (upload validation: size ceiling)
    +-- ExtractionError          (PDF/DOCX parser failure)
    +-- OCRUnavailableError      (OCR not configured -- non-fatal)
    +-- OCRBatchError            (one OCR page batch failed -- non-fatal)
    +-- EmbeddingProviderError   (any embedding batch call failed)
    +-- StoreWriteError          (chunk persistence failed)
    +-- VectorStoreError         (similarity query / delete failed)
    +-- DocumentNotFoundError    (unknown document id)
    +-- ConfigurationError       (startup / missing config)

Validation errors are raised synchronously at the upload boundary before
any document record exists.  Everything raised inside an ingestion run is
caught by the ingestion service and turned into a ``failed`` status.
"""


class LegalDocsError(Exception):
    """Base exception for all application errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Upload validation errors
# ---------------------------------------------------------------------------

class UnsupportedFileTypeError(LegalDocsError):
    """Raised when a declared file type or MIME type is not PDF or DOCX."""

    def __init__(
        self,
        message: str = "Unsupported file type",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class FileTooLargeError(LegalDocsError):
    """Raised when an uploaded file exceeds the configured size ceiling."""

    def __init__(
        self,
        message: str = "File exceeds the maximum upload size",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Extraction errors
# ---------------------------------------------------------------------------

class ExtractionError(LegalDocsError):
    """Raised when the PDF or DOCX parser fails on a corrupt or unreadable file."""

    def __init__(
        self,
        message: str = "Text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class OCRUnavailableError(LegalDocsError):
    """Raised when the OCR fallback is requested but no credential is configured.

    Never escalated: the text extractor logs it and keeps the native text.
    """

    def __init__(
        self,
        message: str = "OCR service is not configured",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class OCRBatchError(LegalDocsError):
    """Raised when a single OCR page batch request fails.

    The text extractor logs it and continues with the remaining batches.
    """

    def __init__(
        self,
        message: str = "OCR batch request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Embedding / storage errors
# ---------------------------------------------------------------------------

class EmbeddingProviderError(LegalDocsError):
    """Raised when an embedding batch call fails or returns malformed vectors."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StoreWriteError(LegalDocsError):
    """Raised when chunks or document records cannot be persisted."""

    def __init__(
        self,
        message: str = "Failed to persist data",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class VectorStoreError(LegalDocsError):
    """Raised when a similarity query, count, or delete against the vector store fails."""

    def __init__(
        self,
        message: str = "Vector store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Lookup / configuration errors
# ---------------------------------------------------------------------------

class DocumentNotFoundError(LegalDocsError):
    """Raised when a reprocess, delete, or lookup names an unknown document id."""

    def __init__(
        self,
        message: str = "Document not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(LegalDocsError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
