"""Resilient client for the Nanonets OCR web service."""

__version__ = "0.1.0"

from ocrlib.models import MessageTemplates, OCRConfig, OCRResult
from ocrlib.ocr.client import NanonetsOCRClient, analyze_image

__all__ = [
    "MessageTemplates",
    "NanonetsOCRClient",
    "OCRConfig",
    "OCRResult",
    "__version__",
    "analyze_image",
]
