"""Structural signatures used to detect recurring schemas and objects."""

from __future__ import annotations

from typing import Any, Hashable

from ason.core.values import ValueKind, is_scalar, kind_of

# Share of elements that must carry the dominant key signature
UNIFORMITY_THRESHOLD = 0.6


def key_signature(obj: dict[str, Any]) -> tuple[str, ...]:
    """Order-insensitive signature of a mapping's key set."""
    return tuple(sorted(obj))


def canonical_key(value: Any) -> Hashable:
    """Hashable, type-tagged structural key.

    Two values share a key exactly when they are equal *and* agree on every
    scalar type and every mapping key order, so ``1``, ``1.0`` and ``True``
    stay distinct.
    """
    kind = kind_of(value)
    if kind is ValueKind.SEQUENCE:
        return (kind.value, tuple(canonical_key(item) for item in value))
    if kind is ValueKind.MAPPING:
        return (kind.value, tuple((key, canonical_key(item)) for key, item in value.items()))
    if kind is ValueKind.NUMBER:
        return (type(value).__name__, value)
    return (kind.value, value)


class Schema:
    """Dominant key layout of an array of mappings."""

    __slots__ = ("keys", "signature", "matches", "uniformity")

    def __init__(self, keys: list[str], signature: tuple[str, ...], matches: int, total: int) -> None:
        self.keys = keys
        self.signature = signature
        self.matches = matches
        self.uniformity = matches / total if total else 0.0

    def __repr__(self) -> str:
        return f"Schema(keys={self.keys!r}, matches={self.matches}, uniformity={self.uniformity:.2f})"


def dominant_schema(items: list[dict[str, Any]]) -> Schema:
    """Most frequent key signature; ties go to the signature seen first.

    The returned key order is the exact order of the first element carrying
    that signature.
    """
    counts: dict[tuple[str, ...], int] = {}
    first_keys: dict[tuple[str, ...], list[str]] = {}
    for item in items:
        sig = key_signature(item)
        counts[sig] = counts.get(sig, 0) + 1
        if sig not in first_keys:
            first_keys[sig] = list(item)

    best: tuple[str, ...] = ()
    best_count = 0
    for sig, count in counts.items():
        if count > best_count:
            best, best_count = sig, count
    return Schema(first_keys.get(best, []), best, best_count, len(items))


def uniform_schema(value: Any) -> Schema | None:
    """Return the dominant schema when ``value`` is a uniform object array."""
    if not isinstance(value, list) or not value:
        return None
    if not all(isinstance(item, dict) for item in value):
        return None
    schema = dominant_schema(value)
    if schema.uniformity < UNIFORMITY_THRESHOLD:
        return None
    return schema


def tabular_schema(value: Any) -> Schema | None:
    """Dominant schema when ``value`` can be written as table rows.

    Beyond uniformity, every element must be non-empty, list its keys as a
    subsequence of the schema keys, and hold only scalars.
    """
    schema = uniform_schema(value)
    if schema is None or not schema.keys:
        return None
    position = {key: i for i, key in enumerate(schema.keys)}
    for item in value:
        if not item:
            return None
        last = -1
        for key, cell in item.items():
            idx = position.get(key, -1)
            if idx <= last or not is_scalar(cell):
                return None
            last = idx
    return schema
