"""Codec configuration."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

DEFAULT_DELIMITER = ","

# Friendly names accepted wherever a delimiter is configured
DELIMITERS = {
    "comma": ",",
    "tab": "\t",
    "pipe": "|",
    "semicolon": ";",
}

# Characters that already carry meaning in the notation
_RESERVED_DELIMITERS = set('"\\:.#&$@+-[]{}')


class CodecOptions(BaseModel):
    """Options shared by the encoder and the decoder.

    Attributes:
        indent: Spaces per nesting level (minimum 1, the decoder relies on it).
        delimiter: Field separator for table rows and inline arrays.
        enable_structural_dedup: Hoist repeated schemas and small objects.
        enable_string_dictionary: Tag recurring strings inline-first.
        strict: Raise on unresolved references instead of degrading.
    """

    indent: int = Field(default=1, ge=1)
    delimiter: str = DEFAULT_DELIMITER
    enable_structural_dedup: bool = True
    enable_string_dictionary: bool = True
    strict: bool = False

    @field_validator("delimiter", mode="before")
    @classmethod
    def _resolve_delimiter(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = DELIMITERS.get(value.lower(), value)
            if value == "\\t":
                value = "\t"
        if isinstance(value, str) and not _usable_delimiter(value):
            raise ValueError(f"delimiter must be a single character with no meaning in ASON, got {value!r}")
        return value


def _usable_delimiter(value: str) -> bool:
    if len(value) != 1 or value in _RESERVED_DELIMITERS or value.isalnum():
        return False
    # Tab is the only whitespace delimiter
    return value == "\t" or not value.isspace()


def resolve_options(options: CodecOptions | None = None, **overrides: Any) -> CodecOptions:
    """Apply non-None overrides on top of ``options`` (or the defaults)."""
    base = options.model_dump() if options is not None else {}
    base.update({k: v for k, v in overrides.items() if v is not None})
    return CodecOptions(**base)
