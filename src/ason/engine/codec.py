"""Codec façade: encode and decode with fresh per-call state."""

from __future__ import annotations

from typing import Any

from ason.contracts.options import CodecOptions, resolve_options
from ason.core.analysis import AnalysisTables, analyze
from ason.core.decoder import Parser
from ason.core.encoder import render
from ason.core.values import normalize
from ason.engine.context import DecodeContext


def encode(value: Any, options: CodecOptions | None = None, **overrides: Any) -> str:
    """Encode a JSON-model value as ASON text.

    Args:
        value: dict/list/str/int/float/bool/None tree (tuples and pydantic
            models are normalized first).
        options: Codec options; keyword overrides are applied on top.

    Raises:
        EncodeError: the value falls outside the JSON data model.
    """
    opts = resolve_options(options, **overrides) if overrides else options or CodecOptions()
    value = normalize(value)
    return render(value, analyze(value, opts), opts)


def decode(text: str, options: CodecOptions | None = None, **overrides: Any) -> Any:
    """Decode ASON text back into a value tree.

    Raises:
        StructuralError: block boundaries or a literal cannot be determined.
        UnresolvedReferenceError: unknown reference in strict mode.
    """
    opts = resolve_options(options, **overrides) if overrides else options or CodecOptions()
    return Parser(text, DecodeContext(opts)).parse()


class AsonCodec:
    """Holds options only; every call builds its own tables and contexts."""

    def __init__(self, options: CodecOptions | None = None, **overrides: Any) -> None:
        self.options = resolve_options(options, **overrides)

    def analyze(self, value: Any) -> AnalysisTables:
        return analyze(normalize(value), self.options)

    def encode(self, value: Any) -> str:
        return encode(value, self.options)

    def decode(self, text: str) -> Any:
        return decode(text, self.options)

    def __repr__(self) -> str:
        return f"AsonCodec({self.options!r})"


__all__ = ["AsonCodec", "decode", "encode", "render"]
