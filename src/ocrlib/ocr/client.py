"""Nanonets OCR client facade.

Validates credentials and model configuration, applies local admission
control, builds the multipart upload, and delegates the request to a
:class:`~ocrlib.ocr.retry.RetryOrchestrator`.  Every outcome, including
every failure, is returned as an :class:`~ocrlib.models.OCRResult`.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import math
import re
from typing import Awaitable, Callable

import httpx

from ocrlib.config import get_api_key, load_ocr_config, resolve_model_id
from ocrlib.models import OCRConfig, OCRResult
from ocrlib.ocr.exceptions import ConfigurationError, LocalRateLimitExceeded, OCRError
from ocrlib.ocr.policy import RetryPolicy, RetryPredicate, is_rate_limit_error
from ocrlib.ocr.rate_limiter import SlidingWindowRateLimiter
from ocrlib.ocr.retry import RetryOrchestrator

logger = logging.getLogger(__name__)

# A model display name that users commonly paste where the model ID belongs.
_PLACEHOLDER_MODEL_PATTERN = re.compile(r"^nanonets-ocr2-7b$", re.IGNORECASE)


def upload_filename(mime_type: str) -> str:
    """Derive the multipart filename from a MIME type (``image/png`` -> ``upload.png``)."""
    _, _, subtype = mime_type.partition("/")
    return f"upload.{subtype or 'jpg'}"


class NanonetsOCRClient:
    """Resilient client for the Nanonets OCR endpoint.

    The client owns its :class:`SlidingWindowRateLimiter`, so the request
    budget is shared by every call made through one instance.  Hold a
    single client for the lifetime of the process to enforce the budget.

    Construction raises ``ValueError`` for an invalid rate-limit or retry
    setting, or for a message template with unknown placeholders, so a
    bad configuration fails before any call is made.

    Usage::

        async with NanonetsOCRClient(load_ocr_config()) as client:
            result = await client.analyze_image(image_b64, "image/png")
            if result.ok:
                print(result.text)
    """

    def __init__(
        self,
        config: OCRConfig | None = None,
        *,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        http_client: httpx.AsyncClient | None = None,
        retry_predicate: RetryPredicate = is_rate_limit_error,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config or OCRConfig()
        self._messages = self._config.messages
        self._messages.validate()
        self._rate_limiter = rate_limiter or SlidingWindowRateLimiter(
            self._config.max_requests, self._config.window_seconds
        )
        self._orchestrator = RetryOrchestrator(
            RetryPolicy(
                max_retries=self._config.max_retries,
                base_delay=self._config.base_delay,
                backoff_multiplier=self._config.backoff_multiplier,
                max_delay=self._config.max_delay,
            ),
            is_retryable=retry_predicate,
            sleep=sleep,
            messages=self._messages,
            max_error_chars=self._config.max_error_chars,
            max_depth=self._config.max_depth,
        )
        # Must follow every validating constructor above.
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=self._config.timeout_seconds
        )

    @property
    def rate_limiter(self) -> SlidingWindowRateLimiter:
        return self._rate_limiter

    async def __aenter__(self) -> NanonetsOCRClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_http_client:
            await self._http.aclose()

    def endpoint_for(self, model_id: str) -> str:
        return self._config.endpoint_template.format(model_id=model_id)

    async def analyze_image(
        self,
        image_base64: str,
        mime_type: str = "image/jpeg",
        api_key: str | None = None,
        model_id: str | None = None,
    ) -> OCRResult:
        """Run OCR on a base64-encoded image.

        Configuration is validated before the rate limiter is consulted, so
        a misconfigured call never consumes a request slot.

        Args:
            image_base64: Base64-encoded image bytes.
            mime_type: MIME type of the image.
            api_key: Nanonets API key; falls back to keyring, then
                ``NANONETS_API_KEY``.
            model_id: Nanonets model ID; falls back to ``NANONETS_MODEL_ID``,
                then the configured default.

        Returns:
            OCRResult with either the extracted text or an error message.
        """
        try:
            text = await self._analyze(image_base64, mime_type, api_key, model_id)
        except OCRError as exc:
            return OCRResult.failure(str(exc))
        return OCRResult.success(text)

    async def _analyze(
        self,
        image_base64: str,
        mime_type: str,
        api_key: str | None,
        model_id: str | None,
    ) -> str:
        # Keyring backends may block on IPC, so keep the lookup off the event loop.
        resolved_key = await asyncio.to_thread(get_api_key, api_key)
        if not resolved_key:
            logger.warning("Nanonets API key is not configured")
            raise ConfigurationError(self._messages.missing_api_key)

        resolved_model = resolve_model_id(model_id, self._config.model_id)
        if not resolved_model:
            logger.warning("Nanonets model ID is not configured")
            raise ConfigurationError(self._messages.missing_model_id)

        if _PLACEHOLDER_MODEL_PATTERN.match(resolved_model):
            logger.warning("Model display name %r used in place of a model ID", resolved_model)
            raise ConfigurationError(self._messages.invalid_model_name)

        image_bytes = self._decode_image(image_base64)

        if not self._rate_limiter.can_make_request():
            wait = self._rate_limiter.time_until_next_request()
            logger.warning("Local OCR rate limit reached, next slot in %.1fs", wait)
            raise LocalRateLimitExceeded(
                self._messages.rate_limit_exceeded.format(wait_seconds=math.ceil(wait)),
                wait,
            )

        endpoint = self.endpoint_for(resolved_model)
        files = {"file": (upload_filename(mime_type), image_bytes, mime_type)}
        auth = httpx.BasicAuth(resolved_key, "")

        async def upload() -> httpx.Response:
            return await self._http.post(endpoint, files=files, auth=auth)

        logger.debug("Uploading %d bytes to %s", len(image_bytes), endpoint)
        return await self._orchestrator.run(upload)

    def _decode_image(self, image_base64: str) -> bytes:
        try:
            image_bytes = base64.b64decode(image_base64)
        except (binascii.Error, ValueError) as exc:
            raise ConfigurationError(self._messages.invalid_image) from exc
        if not image_bytes:
            raise ConfigurationError(self._messages.invalid_image)
        return image_bytes


async def analyze_image(
    image_base64: str,
    mime_type: str = "image/jpeg",
    api_key: str | None = None,
    model_id: str | None = None,
) -> OCRResult:
    """One-shot OCR call with a short-lived client built from ``load_ocr_config()``.

    Each call gets a fresh rate-limit window.  Callers making repeated
    requests should keep one :class:`NanonetsOCRClient` instead.  An
    invalid config file is reported as a failed result, not raised.
    """
    try:
        client = NanonetsOCRClient(load_ocr_config())
    except (ConfigurationError, TypeError, ValueError) as exc:
        logger.warning("Invalid OCR configuration: %s", exc)
        return OCRResult.failure(f"Invalid OCR configuration: {exc}")

    async with client:
        return await client.analyze_image(image_base64, mime_type, api_key, model_id)
