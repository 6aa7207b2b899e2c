"""Attempt loop for a single OCR upload.

Classifies each attempt as success, retryable failure, or terminal
failure, and backs off between retryable ones.  The loop is driven by
tenacity's ``AsyncRetrying`` with a wait derived from
:class:`~ocrlib.ocr.policy.RetryPolicy`.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Awaitable, Callable

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
)

from ocrlib.models import MessageTemplates
from ocrlib.ocr.exceptions import (
    ExtractionFailure,
    NetworkFailure,
    UpstreamRetryableError,
    UpstreamTerminalError,
)
from ocrlib.ocr.extractor import DEFAULT_MAX_DEPTH, extract_text
from ocrlib.ocr.policy import RetryPolicy, RetryPredicate, is_rate_limit_error

logger = logging.getLogger(__name__)

Upload = Callable[[], Awaitable[httpx.Response]]

_MODEL_ID_PATTERN = re.compile(r"model id", re.IGNORECASE)


class RetryOrchestrator:
    """Runs an upload up to ``policy.max_retries + 1`` times.

    * Transport exceptions become :class:`NetworkFailure` and are retried.
      On the last attempt the failure is surfaced with a generic message.
    * Non-2xx responses are classified by *is_retryable*.  Retryable ones
      are retried while attempts remain; anything else raises
      :class:`UpstreamTerminalError` with the body capped at
      *max_error_chars*.
    * 2xx responses are decoded and passed to :func:`extract_text`.

    Usage::

        orchestrator = RetryOrchestrator(RetryPolicy(max_retries=3))
        text = await orchestrator.run(lambda: http.post(url, files=files))
    """

    def __init__(
        self,
        policy: RetryPolicy,
        is_retryable: RetryPredicate = is_rate_limit_error,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        messages: MessageTemplates | None = None,
        max_error_chars: int = 500,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self._policy = policy
        self._is_retryable = is_retryable
        self._sleep = sleep
        self._messages = messages or MessageTemplates()
        self._max_error_chars = max_error_chars
        self._max_depth = max_depth

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def run(self, upload: Upload) -> str:
        """Execute the attempt loop.

        Args:
            upload: Zero-argument coroutine function performing one request.

        Returns:
            The extracted OCR text.

        Raises:
            NetworkFailure: Transport failed on every attempt.
            UpstreamTerminalError: Non-retryable response, or retries exhausted.
            ExtractionFailure: Successful response without recoverable text.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._policy.attempts),
            wait=self._wait,
            retry=retry_if_exception_type((UpstreamRetryableError, NetworkFailure)),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    index = attempt.retry_state.attempt_number - 1
                    return await self._attempt(upload, index)
        except NetworkFailure as exc:
            logger.error(
                "Error calling Nanonets OCR (final attempt): %s",
                exc,
                exc_info=exc.__cause__,
            )
            raise NetworkFailure(self._messages.unexpected_error) from exc
        except UpstreamRetryableError as exc:
            raise UpstreamTerminalError(
                self._messages.max_retries_exceeded, exc.status_code, exc.body
            ) from exc

        raise UpstreamTerminalError(self._messages.max_retries_exceeded, 0)

    async def _attempt(self, upload: Upload, index: int) -> str:
        try:
            response = await upload()
        except Exception as exc:
            raise NetworkFailure(f"{type(exc).__name__}: {exc}") from exc

        if not response.is_success:
            body = response.text
            status = response.status_code
            if self._is_retryable(status, body) and index < self._policy.max_retries:
                raise UpstreamRetryableError(
                    f"Retryable upstream response ({status})", status, body
                )
            logger.error(
                "Nanonets API error (status=%d): %s",
                status,
                body[: self._max_error_chars],
            )
            raise UpstreamTerminalError(
                self.format_api_error(status, body),
                status,
                body[: self._max_error_chars],
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise NetworkFailure(f"Invalid JSON in response: {exc}") from exc

        text = extract_text(data, max_depth=self._max_depth)
        if not text:
            raise ExtractionFailure(self._messages.no_text_extracted)

        logger.info("Extracted %d characters of OCR text", len(text))
        return text

    def format_api_error(self, status: int, body: str) -> str:
        """Build the user-facing message for a terminal upstream failure."""
        sanitized = body[: self._max_error_chars] or self._messages.generic_api_error
        hint = ""
        if status == 400 and _MODEL_ID_PATTERN.search(body):
            hint = self._messages.model_id_hint
        return self._messages.api_error.format(status=status, body=sanitized, hint=hint)

    def _wait(self, retry_state: RetryCallState) -> float:
        # attempt_number is 1-based; the delay is keyed on the failed attempt's index.
        return self._policy.delay_for(retry_state.attempt_number - 1)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        kind = "Rate limit hit" if isinstance(exc, UpstreamRetryableError) else "Network error"
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.info(
            "%s, retrying in %.2fs (attempt %d/%d): %s",
            kind,
            delay,
            retry_state.attempt_number,
            self._policy.attempts,
            exc,
        )
