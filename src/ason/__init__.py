"""ason - Aliased Serialization Object Notation for Python.

A lossless text encoding for JSON data that hoists repeated table schemas,
small repeated objects and recurring strings, so the same data costs fewer
tokens when handed to an LLM.
"""

from ason.contracts.common import (
    AsonError,
    DecodeError,
    EncodeError,
    StructuralError,
    UnresolvedReferenceError,
)
from ason.contracts.options import CodecOptions
from ason.core.analysis import AnalysisTables, analyze
from ason.engine.codec import AsonCodec, decode, encode, render

__version__ = "0.1.0"
__all__ = [
    "AnalysisTables",
    "AsonCodec",
    "AsonError",
    "CodecOptions",
    "DecodeError",
    "EncodeError",
    "StructuralError",
    "UnresolvedReferenceError",
    "analyze",
    "decode",
    "encode",
    "render",
]
