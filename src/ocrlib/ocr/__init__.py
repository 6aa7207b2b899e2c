"""Resilient request pipeline for the Nanonets OCR API.

Public API
----------
.. autoclass:: NanonetsOCRClient
.. autoclass:: SlidingWindowRateLimiter
.. autoclass:: RetryOrchestrator
.. autoclass:: RetryPolicy
.. autofunction:: extract_text
"""

from ocrlib.ocr.client import NanonetsOCRClient, analyze_image, upload_filename
from ocrlib.ocr.exceptions import (
    ConfigurationError,
    ExtractionFailure,
    LocalRateLimitExceeded,
    NetworkFailure,
    OCRError,
    UpstreamError,
    UpstreamRetryableError,
    UpstreamTerminalError,
)
from ocrlib.ocr.extractor import extract_text
from ocrlib.ocr.policy import RetryPolicy, compute_backoff_delay, is_rate_limit_error
from ocrlib.ocr.rate_limiter import SlidingWindowRateLimiter
from ocrlib.ocr.retry import RetryOrchestrator

__all__ = [
    "ConfigurationError",
    "ExtractionFailure",
    "LocalRateLimitExceeded",
    "NanonetsOCRClient",
    "NetworkFailure",
    "OCRError",
    "RetryOrchestrator",
    "RetryPolicy",
    "SlidingWindowRateLimiter",
    "UpstreamError",
    "UpstreamRetryableError",
    "UpstreamTerminalError",
    "analyze_image",
    "compute_backoff_delay",
    "extract_text",
    "is_rate_limit_error",
    "upload_filename",
]
