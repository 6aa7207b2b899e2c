"""Data models for the OCR client: results and configuration."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class OCRResult:
    """Uniform outcome of an OCR call.

    Exactly one of ``text`` (non-empty) or ``error`` is populated.  Use
    :meth:`success` and :meth:`failure` rather than the constructor.
    """

    text: str | None
    error: str | None = None

    def __post_init__(self) -> None:
        if (self.text is None) == (self.error is None):
            raise ValueError("OCRResult needs exactly one of text or error")
        if self.text is not None and not self.text:
            raise ValueError("OCRResult text must be non-empty")
        if self.error is not None and not self.error:
            raise ValueError("OCRResult error must be non-empty")

    @classmethod
    def success(cls, text: str) -> OCRResult:
        return cls(text=text)

    @classmethod
    def failure(cls, error: str) -> OCRResult:
        return cls(text=None, error=error)

    @property
    def ok(self) -> bool:
        return self.text is not None

    def to_dict(self) -> dict[str, str | None]:
        """Convert to the ``{"text": ..., "error": ...}`` wire shape."""
        if self.ok:
            return {"text": self.text}
        return {"text": None, "error": self.error}


@dataclass
class MessageTemplates:
    """User-facing error messages.

    ``rate_limit_exceeded`` is formatted with ``wait_seconds`` (whole
    seconds, rounded up).  ``api_error`` is formatted with ``status``,
    ``body`` and ``hint``.
    """

    rate_limit_exceeded: str = (
        "Rate limit exceeded. Please wait {wait_seconds} seconds before trying again."
    )
    max_retries_exceeded: str = (
        "Maximum retry attempts exceeded. The OCR service is busy, please try again later."
    )
    missing_api_key: str = "API key missing. Please configure the Nanonets API key."
    missing_model_id: str = (
        "Model ID missing. Configure NANONETS_MODEL_ID or pass the account-specific "
        "model ID from the Nanonets dashboard."
    )
    invalid_model_name: str = (
        'The Nanonets model name "Nanonets-ocr2-7B" is not a valid model ID. '
        "Copy your model ID from the Nanonets console and set NANONETS_MODEL_ID."
    )
    invalid_image: str = "The image payload is not valid base64 data."
    api_error: str = "API Error ({status}): {body}.{hint}"
    generic_api_error: str = "Failed to call Nanonets OCR API"
    model_id_hint: str = (
        " Verify the Nanonets model ID by setting NANONETS_MODEL_ID or passing model_id."
    )
    unexpected_error: str = "An unexpected error occurred while processing the image."
    no_text_extracted: str = (
        "No text extracted from the image. Try a clearer image or manual entry."
    )

    def validate(self) -> None:
        """Check that the formatted templates only use their known placeholders.

        Raises:
            ValueError: A template fails to format with its documented fields.
        """
        samples = {
            "rate_limit_exceeded": {"wait_seconds": 0},
            "api_error": {"status": 0, "body": "", "hint": ""},
        }
        for name, sample in samples.items():
            template = getattr(self, name)
            try:
                template.format(**sample)
            except (AttributeError, IndexError, KeyError, ValueError) as exc:
                raise ValueError(
                    f"Invalid {name} message template {template!r}: {exc!r}"
                ) from exc


@dataclass
class OCRConfig:
    """Configuration for the Nanonets OCR client.

    Durations are in seconds.  ``model_id`` is only a fallback: an
    explicit argument or ``NANONETS_MODEL_ID`` takes precedence.
    """

    model_id: str | None = None
    endpoint_template: str = (
        "https://app.nanonets.com/api/v2/OCR/Model/{model_id}/LabelFile/"
    )
    max_requests: int = 10
    window_seconds: float = 60.0
    max_retries: int = 3
    base_delay: float = 1.0
    backoff_multiplier: float = 2.0
    max_delay: float = 10.0
    max_error_chars: int = 500
    max_depth: int = 64
    timeout_seconds: float = 60.0
    messages: MessageTemplates = field(default_factory=MessageTemplates)
