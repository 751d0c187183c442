"""Command-specific result models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class TableCounts(BaseModel):
    """How many entries each analysis table produced."""

    structures: int = 0
    aliases: int = 0
    dictionary: int = 0


class FormatComparison(BaseModel):
    """Token and size comparison between JSON and ASON renditions."""

    original_tokens: int
    compressed_tokens: int
    reduction_percent: float
    original_size: int
    compressed_size: int


class EncodeResult(BaseModel):
    """Result of ``ason encode``."""

    text: str | None = None
    output: str | None = None
    tables: TableCounts
    stats: FormatComparison | None = None


class DecodeResult(BaseModel):
    """Result of ``ason decode``."""

    value: Any = None
    output: str | None = None
    stats: FormatComparison | None = None
