"""Per-call state for one encode or decode run."""

from __future__ import annotations

from typing import Any

from ason.contracts.options import CodecOptions
from ason.core.analysis import AnalysisTables


class EncodeContext:
    """Tables and the inline-first bookkeeping for a single ``render`` call."""

    def __init__(self, tables: AnalysisTables, options: CodecOptions) -> None:
        self.tables = tables
        self.options = options
        self.delimiter = options.delimiter
        self.emitted: set[str] = set()
        # Off while alias definitions are written
        self.aliasing = True

    def tag_for(self, text: str) -> tuple[str, bool] | None:
        """Return ``(tag, first_use)`` for a dictionary string, or None.

        Marks the tag as emitted, so call it only when the text is written.
        """
        tag = self.tables.tag_for(text)
        if tag is None:
            return None
        first = tag not in self.emitted
        self.emitted.add(tag)
        return tag, first

    def alias_for(self, obj: dict[str, Any]) -> str | None:
        if not self.aliasing:
            return None
        alias = self.tables.alias_for(obj)
        return alias.name if alias is not None else None


class DecodeContext:
    """Definitions recovered from one document's header and body."""

    def __init__(self, options: CodecOptions) -> None:
        self.options = options
        self.delimiter = options.delimiter
        self.strict = options.strict
        self.structures: dict[str, list[str]] = {}
        self.aliases: dict[str, Any] = {}
        self.dictionary: dict[str, str] = {}

    def __repr__(self) -> str:
        return (
            f"DecodeContext(structures={len(self.structures)}, "
            f"aliases={len(self.aliases)}, dictionary={len(self.dictionary)})"
        )
