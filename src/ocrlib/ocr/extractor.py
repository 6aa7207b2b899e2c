"""Schema-tolerant text extraction from Nanonets OCR responses.

The provider's response shape differs between models and API versions,
so extraction walks the decoded JSON and collects anything stored under
a known text field, descending through known collection fields.  No
schema is validated.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)

# Single-value fields whose string contents are OCR text, in emission order.
TEXT_FIELDS: tuple[str, ...] = ("text", "ocr_text", "fullText")

# List-valued fields whose elements are visited recursively, in emission order.
COLLECTION_FIELDS: tuple[str, ...] = (
    "result",
    "results",
    "predictions",
    "fields",
    "pages",
    "page_data",
    "lines",
)

DEFAULT_MAX_DEPTH = 64


def extract_text(node: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> str | None:
    """Collect all OCR text fragments from a decoded response.

    Own text fields are emitted before nested collections, so fragment
    order follows traversal order.  Fragments are stripped, empty ones
    dropped, and the rest joined with newlines.

    Args:
        node: Decoded JSON value of unknown shape.
        max_depth: Nesting depth beyond which nodes are skipped.  Guards
            against pathologically deep input.  A mapping that reappears
            on its own path is skipped, so cyclic input terminates.

    Returns:
        The combined text, or ``None`` if nothing was found.
    """
    fragments: list[str] = []
    _collect(node, fragments, 0, max_depth, set())
    combined = "\n".join(f.strip() for f in fragments if f.strip()).strip()
    return combined or None


def _collect(
    node: Any,
    fragments: list[str],
    depth: int,
    max_depth: int,
    path: set[int],
) -> None:
    if not node:
        return

    if depth > max_depth:
        logger.debug("Extraction depth limit (%d) reached, skipping subtree", max_depth)
        return

    if isinstance(node, str):
        fragments.append(node)
        return

    if not isinstance(node, Mapping):
        return

    # Mappings on the current path; a repeat means the input refers back to itself.
    node_id = id(node)
    if node_id in path:
        logger.debug("Cyclic reference in OCR response, skipping node")
        return

    for field in TEXT_FIELDS:
        value = node.get(field)
        if isinstance(value, str):
            fragments.append(value)

    path.add(node_id)
    try:
        for field in COLLECTION_FIELDS:
            collection = node.get(field)
            if isinstance(collection, (list, tuple)):
                for child in collection:
                    _collect(child, fragments, depth + 1, max_depth, path)
    finally:
        path.discard(node_id)
