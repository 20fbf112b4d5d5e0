"""OCR provider implementations for scanned PDFs.

One implementation of IOCRProvider:
    GoogleVisionOCRProvider -- Google Cloud Vision ``files:annotate`` with
    DOCUMENT_TEXT_DETECTION, five pages per request.  Requires an API key;
    without one the text extractor skips OCR and keeps the native text.
"""

from src.providers.ocr.google_vision_provider import GoogleVisionOCRProvider

__all__ = ["GoogleVisionOCRProvider"]
