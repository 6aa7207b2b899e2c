"""Configuration loading and credential resolution for the OCR client."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import fields
from pathlib import Path

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from ocrlib.models import MessageTemplates, OCRConfig
from ocrlib.ocr.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

SERVICE_NAME = "ocrlib-nanonets"
KEY_NAME = "api_key"

API_KEY_ENV = "NANONETS_API_KEY"
MODEL_ID_ENV = "NANONETS_MODEL_ID"

DEFAULT_CONFIG_PATH = Path("config/ocr_config.json")


def get_stored_api_key() -> str | None:
    """Read the API key from the system keyring, or ``None`` if absent or unavailable."""
    try:
        return keyring.get_password(SERVICE_NAME, KEY_NAME) or None
    except KeyringError:
        logger.debug("Keyring unavailable, falling back to %s", API_KEY_ENV, exc_info=True)
        return None


def store_api_key(api_key: str) -> None:
    """Save *api_key* in the keyring.  Raises ``KeyringError`` on backend failure."""
    keyring.set_password(SERVICE_NAME, KEY_NAME, api_key)


def delete_api_key() -> bool:
    """Remove the stored key.  Returns ``False`` if there was nothing to remove."""
    if get_stored_api_key() is None:
        return False
    try:
        keyring.delete_password(SERVICE_NAME, KEY_NAME)
    except PasswordDeleteError:
        return False
    return True


def mask_api_key(api_key: str) -> str:
    """Show the first 8 characters (2 for short keys) and star out the rest."""
    visible = 8 if len(api_key) > 8 else 2
    return api_key[:visible] + "*" * max(1, len(api_key) - visible)


def get_api_key(explicit: str | None = None) -> str | None:
    """Resolve the Nanonets API key.

    Order: *explicit* argument, system keyring (service ``ocrlib-nanonets``,
    key ``api_key``), then the ``NANONETS_API_KEY`` environment variable.
    The keyring lookup may block on IPC; async callers run this in a thread.

    Returns:
        The key, or ``None`` if none is configured.
    """
    if explicit:
        return explicit
    return get_stored_api_key() or os.environ.get(API_KEY_ENV) or None


def resolve_model_id(explicit: str | None = None, default: str | None = None) -> str:
    """Resolve the model ID: argument, ``NANONETS_MODEL_ID``, then *default*.

    Returns the stripped ID, which may be empty when nothing is configured.
    """
    return (explicit or os.environ.get(MODEL_ID_ENV) or default or "").strip()


def load_ocr_config(config_path: Path | None = None) -> OCRConfig:
    """Load OCR client configuration from JSON, falling back to defaults.

    Reads ``config/ocr_config.json`` when *config_path* is ``None``.  Only
    recognised :class:`OCRConfig` fields are used; a nested ``messages``
    object overrides individual :class:`MessageTemplates` entries.  A
    missing file yields the defaults.

    Args:
        config_path: Optional explicit path to the JSON file.

    Returns:
        OCRConfig populated from file over defaults.

    Raises:
        ConfigurationError: The file is unreadable, is not a JSON object,
            or defines a message template with unknown placeholders.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    data: dict = {}
    if config_path.exists():
        try:
            with open(config_path) as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise ConfigurationError(f"Cannot read OCR config {config_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"OCR config {config_path} must be a JSON object")
        logger.debug("Loaded OCR config from %s", config_path)

    field_names = {f.name for f in fields(OCRConfig)} - {"messages"}
    kwargs = {k: v for k, v in data.items() if k in field_names}

    message_names = {f.name for f in fields(MessageTemplates)}
    raw_messages = data.get("messages") or {}
    if not isinstance(raw_messages, dict):
        raise ConfigurationError(f"OCR config {config_path}: 'messages' must be an object")
    messages = MessageTemplates(
        **{k: v for k, v in raw_messages.items() if k in message_names}
    )
    try:
        messages.validate()
    except ValueError as exc:
        raise ConfigurationError(f"OCR config {config_path}: {exc}") from exc

    return OCRConfig(messages=messages, **kwargs)
