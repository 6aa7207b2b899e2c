"""Error taxonomy for the OCR request pipeline.

Every failure inside the pipeline is raised as an :class:`OCRError`
subclass and converted to an :class:`~ocrlib.models.OCRResult` at the
client boundary.  Only :class:`UpstreamRetryableError` and
:class:`NetworkFailure` are retried.
"""

from __future__ import annotations


class OCRError(Exception):
    """Base class for all OCR pipeline errors."""


class ConfigurationError(OCRError):
    """Missing or invalid API key, model ID, or image payload. Never retried."""


class LocalRateLimitExceeded(OCRError):
    """The local sliding-window limiter denied the request."""

    def __init__(self, message: str, wait_seconds: float) -> None:
        super().__init__(message)
        self.wait_seconds = wait_seconds


class UpstreamError(OCRError):
    """Non-2xx response from the OCR provider."""

    def __init__(self, message: str, status_code: int, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class UpstreamRetryableError(UpstreamError):
    """Transient or rate-limit response that may succeed on retry."""


class UpstreamTerminalError(UpstreamError):
    """Response that will not improve with retry, or retries exhausted."""


class NetworkFailure(OCRError):
    """The transport raised before a usable response was received."""


class ExtractionFailure(OCRError):
    """Successful response that contained no recoverable text."""
