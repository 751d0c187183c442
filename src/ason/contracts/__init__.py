"""Pydantic models for options, responses, and the codec's exceptions."""

from ason.contracts.common import (
    AsonError,
    DecodeError,
    EncodeError,
    ErrorDetail,
    Metrics,
    ResponseEnvelope,
    StructuralError,
    Target,
    UnresolvedReferenceError,
    WarningDetail,
)
from ason.contracts.options import CodecOptions, resolve_options
from ason.contracts.responses import (
    DecodeResult,
    EncodeResult,
    FormatComparison,
    TableCounts,
)

__all__ = [
    "AsonError",
    "CodecOptions",
    "DecodeError",
    "DecodeResult",
    "EncodeError",
    "EncodeResult",
    "ErrorDetail",
    "FormatComparison",
    "Metrics",
    "ResponseEnvelope",
    "StructuralError",
    "TableCounts",
    "Target",
    "UnresolvedReferenceError",
    "WarningDetail",
    "resolve_options",
]
