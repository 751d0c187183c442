"""Token-count estimates for comparing JSON and ASON renditions.

The estimate is the usual one-token-per-four-characters heuristic; it is
tokenizer-free on purpose so the numbers are reproducible offline.
"""

from __future__ import annotations

import math
from typing import Any

import orjson

from ason.contracts.responses import FormatComparison

CHARS_PER_TOKEN = 4


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return orjson.dumps(value).decode()


def estimate_tokens(text: Any) -> int:
    """Approximate token count; non-string values are serialized as compact JSON."""
    return math.ceil(len(_as_text(text)) / CHARS_PER_TOKEN)


def compare_formats(original: Any, encoded: Any) -> FormatComparison:
    """Compare the compact JSON form of ``original`` with ``encoded``.

    ``encoded`` is usually ASON text; any other value is serialized as JSON.
    Sizes are UTF-8 byte counts.
    """
    original_text = orjson.dumps(original).decode()
    encoded_text = _as_text(encoded)
    original_tokens = estimate_tokens(original_text)
    compressed_tokens = estimate_tokens(encoded_text)
    reduction = 0.0
    if original_tokens:
        reduction = round(100 * (1 - compressed_tokens / original_tokens), 2)
    return FormatComparison(
        original_tokens=original_tokens,
        compressed_tokens=compressed_tokens,
        reduction_percent=reduction,
        original_size=len(original_text.encode("utf-8")),
        compressed_size=len(encoded_text.encode("utf-8")),
    )
