"""Google Cloud Vision OCR provider for scanned PDFs.

Sends the whole PDF (base64) to the ``files:annotate`` endpoint with
``DOCUMENT_TEXT_DETECTION`` and a list of page numbers.  The endpoint
accepts at most five pages per request, which is why the text extractor
batches pages before calling :meth:`GoogleVisionOCRProvider.extract_pdf_pages`.
"""

from __future__ import annotations

import base64

import httpx
import structlog

from src.interfaces.ocr_provider import IOCRProvider, OCRPageResult
from src.utils.errors import OCRBatchError, OCRUnavailableError

logger = structlog.get_logger(logger_name=__name__)

_VISION_FILES_URL = "https://vision.googleapis.com/v1/files:annotate"
_DEFAULT_TIMEOUT = 60.0
_MAX_PAGES_PER_REQUEST = 5


class GoogleVisionOCRProvider(IOCRProvider):
    """OCR provider backed by the Google Cloud Vision REST API.

    Authentication uses an API key passed as the ``key`` query parameter.
    An empty key leaves the provider unavailable; callers receive
    :class:`~src.utils.errors.OCRUnavailableError` instead of a request.
    """

    def __init__(
        self,
        api_key: str,
        http_client: httpx.AsyncClient | None = None,
        endpoint: str = _VISION_FILES_URL,
        timeout: float = _DEFAULT_TIMEOUT,
    ) -> None:
        self._api_key = api_key
        self._endpoint = endpoint
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    # ------------------------------------------------------------------
    # IOCRProvider implementation
    # ------------------------------------------------------------------

    async def extract_pdf_pages(self, pdf_bytes: bytes, pages: list[int]) -> list[OCRPageResult]:
        if not self._api_key:
            raise OCRUnavailableError(
                message="Google Vision API key is not configured",
                provider_name=self.get_provider_name(),
            )
        if not pages:
            return []
        if len(pages) > _MAX_PAGES_PER_REQUEST:
            raise ValueError(
                f"Google Vision accepts at most {_MAX_PAGES_PER_REQUEST} pages per request, "
                f"got {len(pages)}"
            )

        body = {
            "requests": [
                {
                    "inputConfig": {
                        "content": base64.b64encode(pdf_bytes).decode("ascii"),
                        "mimeType": "application/pdf",
                    },
                    "features": [{"type": "DOCUMENT_TEXT_DETECTION"}],
                    "pages": pages,
                }
            ]
        }

        try:
            response = await self._client.post(
                self._endpoint,
                params={"key": self._api_key},
                json=body,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise OCRBatchError(
                message=f"Vision API returned HTTP {exc.response.status_code} for pages {pages}",
                provider_name=self.get_provider_name(),
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise OCRBatchError(
                message=f"Vision API request failed for pages {pages}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        outer = data.get("responses") or [{}]
        if outer[0].get("error"):
            raise OCRBatchError(
                message=f"Vision API rejected pages {pages}: {outer[0]['error'].get('message', '')}",
                provider_name=self.get_provider_name(),
            )
        page_responses = outer[0].get("responses") or []

        results: list[OCRPageResult] = []
        for index, page in enumerate(pages):
            page_data = page_responses[index] if index < len(page_responses) else {}
            if page_data.get("error"):
                results.append(
                    OCRPageResult(page=page, error=str(page_data["error"].get("message", "error")))
                )
                continue
            text = (page_data.get("fullTextAnnotation") or {}).get("text", "")
            results.append(OCRPageResult(page=page, text=text))

        logger.info(
            "vision_ocr_batch",
            pages=pages,
            pages_with_text=sum(1 for r in results if r.text),
        )
        return results

    def get_provider_name(self) -> str:
        return "google_vision"

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)

    async def aclose(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()
