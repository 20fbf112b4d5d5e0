"""Plain-text extraction from uploaded PDF and DOCX files.

PDF files are read with PyMuPDF (fitz), DOCX files with python-docx.  Both
parsers are synchronous, so they run in a worker thread via
``asyncio.to_thread``.

Scanned PDFs carry little or no text layer.  When the native text is
shorter than ``min_text_length`` characters the extractor runs an OCR
fallback through an :class:`~src.interfaces.ocr_provider.IOCRProvider`:

* at most ``max_ocr_pages`` pages are sent (1-based page numbers);
* pages go out in batches of ``ocr_batch_size`` per request;
* a failed batch is logged and skipped, the remaining batches still run;
* a page-level detection error skips only that page;
* with no provider or no credential, OCR is skipped entirely.

OCR is best effort and never fails an extraction.  Whichever of the
native text and the OCR text is longer is returned.
"""

from __future__ import annotations

import asyncio
import io
from typing import Any

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog
from docx import Document
from docx.table import Table

from src.interfaces.ocr_provider import IOCRProvider
from src.models.document import FileType
from src.models.rag import ExtractionResult
from src.utils.errors import (
    ExtractionError,
    OCRBatchError,
    OCRUnavailableError,
    UnsupportedFileTypeError,
)

logger = structlog.get_logger(logger_name=__name__)


class TextExtractor:
    """Turns a raw file buffer and its declared type into plain text.

    Parameters
    ----------
    ocr_provider:
        Optional OCR backend for image-based PDFs.  ``None`` disables OCR.
    min_text_length:
        Native PDF text shorter than this (after stripping) triggers OCR.
    max_ocr_pages:
        Upper bound on pages sent to OCR for a single document.
    ocr_batch_size:
        Pages per OCR request.
    """

    def __init__(
        self,
        ocr_provider: IOCRProvider | None = None,
        min_text_length: int = 100,
        max_ocr_pages: int = 50,
        ocr_batch_size: int = 5,
    ) -> None:
        if ocr_batch_size <= 0:
            raise ValueError("ocr_batch_size must be positive")
        self._ocr = ocr_provider
        self._min_text_length = min_text_length
        self._max_ocr_pages = max_ocr_pages
        self._ocr_batch_size = ocr_batch_size

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def extract(self, buffer: bytes, file_type: FileType | str) -> ExtractionResult:
        """Extract plain text and metadata from *buffer*.

        Raises
        ------
        UnsupportedFileTypeError
            If *file_type* is not ``pdf`` or ``docx``.
        ExtractionError
            If the parser cannot read the file.
        """
        resolved = self._resolve_file_type(file_type)
        if resolved is FileType.DOCX:
            text = await asyncio.to_thread(self._extract_docx, buffer)
            logger.info("docx_extracted", text_length=len(text))
            return ExtractionResult(text=text)
        return await self._extract_pdf(buffer)

    # ------------------------------------------------------------------
    # DOCX
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_docx(buffer: bytes) -> str:
        """Read paragraphs and tables in document order."""
        try:
            document = Document(io.BytesIO(buffer))
            blocks: list[str] = []
            for item in document.iter_inner_content():
                if isinstance(item, Table):
                    for row in item.rows:
                        cells = [cell.text.strip() for cell in row.cells]
                        line = "\t".join(cell for cell in cells if cell)
                        if line:
                            blocks.append(line)
                elif item.text.strip():
                    blocks.append(item.text)
        except Exception as exc:
            raise ExtractionError(
                message=f"Could not read DOCX file: {exc}",
                provider_name="python-docx",
            ) from exc
        return "\n\n".join(blocks).strip()

    # ------------------------------------------------------------------
    # PDF
    # ------------------------------------------------------------------

    async def _extract_pdf(self, buffer: bytes) -> ExtractionResult:
        native_text, page_count = await asyncio.to_thread(self._read_pdf_text_layer, buffer)
        metadata: dict[str, Any] = {"page_count": page_count}

        if len(native_text) >= self._min_text_length or page_count == 0:
            logger.info("pdf_extracted", page_count=page_count, text_length=len(native_text))
            return ExtractionResult(text=native_text, metadata=metadata)

        logger.info(
            "pdf_text_layer_sparse",
            page_count=page_count,
            text_length=len(native_text),
            threshold=self._min_text_length,
        )
        ocr_text, pages_failed = await self._run_ocr(buffer, page_count)

        if len(ocr_text) > len(native_text):
            logger.info(
                "pdf_extracted_with_ocr",
                page_count=page_count,
                native_length=len(native_text),
                ocr_length=len(ocr_text),
                ocr_pages_failed=pages_failed,
            )
            return ExtractionResult(
                text=ocr_text,
                metadata=metadata,
                used_ocr=True,
                ocr_pages_failed=pages_failed,
            )

        return ExtractionResult(
            text=native_text,
            metadata=metadata,
            ocr_pages_failed=pages_failed,
        )

    @staticmethod
    def _read_pdf_text_layer(buffer: bytes) -> tuple[str, int]:
        """Return the PDF's native text (pages joined by blank lines) and page count."""
        try:
            doc = fitz.open(stream=buffer, filetype="pdf")
        except Exception as exc:
            raise ExtractionError(
                message=f"Could not open PDF file: {exc}",
                provider_name="pymupdf",
            ) from exc

        try:
            if doc.needs_pass:
                raise ExtractionError(
                    message="PDF is password protected",
                    provider_name="pymupdf",
                )
            page_texts = [page.get_text("text").strip() for page in doc]
            page_count = doc.page_count
        except ExtractionError:
            raise
        except Exception as exc:
            raise ExtractionError(
                message=f"Could not read PDF text: {exc}",
                provider_name="pymupdf",
            ) from exc
        finally:
            doc.close()

        return "\n\n".join(t for t in page_texts if t), page_count

    async def _run_ocr(self, buffer: bytes, page_count: int) -> tuple[str, int]:
        """Run OCR over the first pages in batches.

        Returns
        -------
        tuple[str, int]
            The joined OCR text and the number of pages that produced an
            error (failed batches count every page in the batch).
        """
        if self._ocr is None or not self._ocr.is_available():
            logger.warning("ocr_unavailable", reason="no OCR provider configured")
            return "", 0

        pages = list(range(1, min(page_count, self._max_ocr_pages) + 1))
        if page_count > self._max_ocr_pages:
            logger.info("ocr_page_cap_applied", page_count=page_count, cap=self._max_ocr_pages)

        page_texts: list[str] = []
        pages_failed = 0
        for start in range(0, len(pages), self._ocr_batch_size):
            batch = pages[start : start + self._ocr_batch_size]
            try:
                results = await self._ocr.extract_pdf_pages(buffer, batch)
            except OCRUnavailableError as exc:
                logger.warning("ocr_unavailable", reason=str(exc))
                break
            except OCRBatchError as exc:
                logger.warning("ocr_batch_failed", pages=batch, error=str(exc))
                pages_failed += len(batch)
                continue
            except Exception as exc:
                logger.warning(
                    "ocr_batch_failed",
                    pages=batch,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                pages_failed += len(batch)
                continue

            for result in results:
                if result.error:
                    logger.warning("ocr_page_failed", page=result.page, error=result.error)
                    pages_failed += 1
                elif result.text.strip():
                    page_texts.append(result.text.strip())

        return "\n\n".join(page_texts).strip(), pages_failed

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _resolve_file_type(file_type: FileType | str) -> FileType:
        if isinstance(file_type, FileType):
            return file_type
        try:
            return FileType(str(file_type).lower())
        except ValueError as exc:
            raise UnsupportedFileTypeError(
                message=f"Unsupported file type: {file_type!r} (expected pdf or docx)"
            ) from exc
