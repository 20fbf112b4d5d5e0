"""Abstract base class for OCR service providers.

Defines the contract for the OCR engine used as a fallback for scanned
(image-based) PDFs.  Implementations may wrap Google Vision, AWS Textract,
or a local engine.  The text extractor decides *when* OCR runs and how
pages are batched; a provider only annotates the pages it is handed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class OCRPageResult:
    """Text detected on one PDF page, or the per-page error that replaced it."""

    page: int
    text: str = ""
    error: str | None = None


# Concrete implementation: GoogleVisionOCRProvider
# Located in: src/providers/ocr/
class IOCRProvider(ABC):
    """Contract for OCR services that read text from PDF pages."""

    @abstractmethod
    async def extract_pdf_pages(self, pdf_bytes: bytes, pages: list[int]) -> list[OCRPageResult]:
        """Run text detection on the given pages of a PDF.

        Parameters
        ----------
        pdf_bytes:
            The complete PDF file.
        pages:
            1-based page numbers to process in this call.  Callers keep the
            list within the provider's per-request page limit.

        Returns
        -------
        list[OCRPageResult]
            One entry per requested page, in request order.  A page whose
            detection failed carries ``error`` and empty ``text``.

        Raises
        ------
        src.utils.errors.OCRUnavailableError
            If the provider has no credential configured.
        src.utils.errors.OCRBatchError
            If the request for this batch failed as a whole.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this OCR provider.

        Example return values: ``"google_vision"``.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider has the credentials it needs.

        Implementations should not perform a network round-trip here.
        """
