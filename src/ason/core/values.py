"""Value model: the six JSON kinds every codec component dispatches on."""

from __future__ import annotations

import math
from enum import Enum
from typing import Any

from pydantic import BaseModel

from ason.contracts.common import EncodeError


class ValueKind(str, Enum):
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    SEQUENCE = "sequence"
    MAPPING = "mapping"


SCALAR_KINDS = frozenset({ValueKind.NULL, ValueKind.BOOL, ValueKind.NUMBER, ValueKind.STRING})


def kind_of(value: Any) -> ValueKind:
    """Classify a value. Raises EncodeError for anything outside the JSON model."""
    if value is None:
        return ValueKind.NULL
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, int):
        return ValueKind.NUMBER
    if isinstance(value, float):
        if not math.isfinite(value):
            raise EncodeError(f"Non-finite number is not representable: {value!r}")
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, list):
        return ValueKind.SEQUENCE
    if isinstance(value, dict):
        return ValueKind.MAPPING
    raise EncodeError(f"Unsupported value type: {type(value).__name__}")


def is_scalar(value: Any) -> bool:
    return kind_of(value) in SCALAR_KINDS


def is_empty_container(value: Any) -> bool:
    return isinstance(value, (list, dict)) and not value


def normalize(value: Any) -> Any:
    """Convert tuples and pydantic models into plain JSON values.

    Mapping keys must already be strings; anything else that ``kind_of``
    rejects is reported here, before analysis starts.
    """
    if isinstance(value, BaseModel):
        return normalize(value.model_dump(mode="json"))
    if isinstance(value, tuple):
        value = list(value)
    kind = kind_of(value)
    if kind is ValueKind.SEQUENCE:
        return [normalize(item) for item in value]
    if kind is ValueKind.MAPPING:
        out: dict[str, Any] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise EncodeError(f"Mapping keys must be strings, got {type(key).__name__}: {key!r}")
            out[key] = normalize(item)
        return out
    return value


def deep_merge(left: Any, right: Any) -> Any:
    """Merge two mappings recursively; any other pair resolves to ``right``.

    Neither argument is mutated. Keys keep the left side's order and keys
    only present on the right are appended.
    """
    if not (isinstance(left, dict) and isinstance(right, dict)):
        return right
    merged = dict(left)
    for key, value in right.items():
        merged[key] = deep_merge(merged[key], value) if key in merged else value
    return merged
