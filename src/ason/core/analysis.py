"""Analysis passes that decide what the encoder deduplicates.

Three independent read-only walks over the value tree:

- schema counting   -> structure refs  ($0, $1, ...)
- small-object counting -> object aliases (&obj0, &obj1, ...)
- string counting   -> dictionary entries (#0, #1, ...)

None of the passes shares a counter with another, so the resulting tables
do not depend on the order they run in.
"""

from __future__ import annotations

from typing import Any, Hashable

from pydantic import BaseModel

from ason.contracts.options import CodecOptions
from ason.core.fingerprint import canonical_key, uniform_schema
from ason.core.values import is_empty_container

STRUCTURE_MIN_OCCURRENCES = 3
ALIAS_MIN_OCCURRENCES = 2
ALIAS_MAX_KEYS = 3
DICTIONARY_MIN_OCCURRENCES = 2
DICTIONARY_MIN_LENGTH = 5
# Approximate cost of the " #N" tag
TAG_COST = 3


class StructureRef(BaseModel):
    """A named, reusable column schema."""

    name: str
    keys: list[str]
    count: int = 0


class ObjectAlias(BaseModel):
    """A named small object that recurs by value."""

    name: str
    value: Any
    count: int = 0


class DictionaryEntry(BaseModel):
    """A recurring string rendered inline-first."""

    tag: str
    value: str
    count: int = 0
    savings: int = 0


class AnalysisTables:
    """Lookup tables produced by ``analyze`` for a single encode call."""

    def __init__(
        self,
        structures: list[StructureRef] | None = None,
        aliases: list[ObjectAlias] | None = None,
        dictionary: list[DictionaryEntry] | None = None,
    ) -> None:
        self.structures = structures or []
        self.aliases = aliases or []
        self.dictionary = dictionary or []
        self._structure_by_keys = {tuple(ref.keys): ref for ref in self.structures}
        self._alias_by_key: dict[Hashable, ObjectAlias] = {
            canonical_key(alias.value): alias for alias in self.aliases
        }
        self._dictionary_by_value = {entry.value: entry for entry in self.dictionary}

    @property
    def has_definitions(self) -> bool:
        """True when a ``$def`` header is needed."""
        return bool(self.structures or self.aliases)

    def structure_for(self, keys: list[str]) -> StructureRef | None:
        return self._structure_by_keys.get(tuple(keys))

    def alias_for(self, obj: dict[str, Any]) -> ObjectAlias | None:
        if not self._alias_by_key or not is_alias_candidate(obj):
            return None
        return self._alias_by_key.get(canonical_key(obj))

    def tag_for(self, text: str) -> str | None:
        entry = self._dictionary_by_value.get(text)
        return entry.tag if entry is not None else None

    def __repr__(self) -> str:
        return (
            f"AnalysisTables(structures={len(self.structures)}, "
            f"aliases={len(self.aliases)}, dictionary={len(self.dictionary)})"
        )


# ---------------------------------------------------------------------------
# Schema counting
# ---------------------------------------------------------------------------
def count_schemas(value: Any, counts: dict[tuple[str, ...], int] | None = None) -> dict[tuple[str, ...], int]:
    """Count key schemas (exact key order) of uniform object arrays.

    Every element carrying the dominant signature counts as one occurrence.
    Elements are only descended into through the schema's own keys.
    """
    if counts is None:
        counts = {}
    if isinstance(value, list):
        schema = uniform_schema(value)
        if schema is not None:
            if schema.keys:
                keys = tuple(schema.keys)
                counts[keys] = counts.get(keys, 0) + schema.matches
            for item in value:
                for key in schema.keys:
                    if key in item:
                        count_schemas(item[key], counts)
        else:
            for item in value:
                count_schemas(item, counts)
    elif isinstance(value, dict):
        for item in value.values():
            count_schemas(item, counts)
    return counts


def build_structure_refs(value: Any) -> list[StructureRef]:
    refs: list[StructureRef] = []
    for keys, count in count_schemas(value).items():
        if count >= STRUCTURE_MIN_OCCURRENCES:
            refs.append(StructureRef(name=f"${len(refs)}", keys=list(keys), count=count))
    return refs


# ---------------------------------------------------------------------------
# Small-object counting
# ---------------------------------------------------------------------------
def is_alias_candidate(obj: dict[str, Any]) -> bool:
    """1-3 keys, and no value is a non-empty container."""
    if not 0 < len(obj) <= ALIAS_MAX_KEYS:
        return False
    return all(not isinstance(v, (list, dict)) or is_empty_container(v) for v in obj.values())


def count_small_objects(
    value: Any, groups: dict[Hashable, list[Any]] | None = None
) -> dict[Hashable, list[Any]]:
    """Group alias candidates by canonical key: ``key -> [first_value, count]``."""
    if groups is None:
        groups = {}
    if isinstance(value, list):
        for item in value:
            count_small_objects(item, groups)
    elif isinstance(value, dict):
        if is_alias_candidate(value):
            key = canonical_key(value)
            if key in groups:
                groups[key][1] += 1
            else:
                groups[key] = [value, 1]
        for item in value.values():
            count_small_objects(item, groups)
    return groups


def build_object_aliases(value: Any) -> list[ObjectAlias]:
    aliases: list[ObjectAlias] = []
    for obj, count in count_small_objects(value).values():
        if count >= ALIAS_MIN_OCCURRENCES:
            aliases.append(ObjectAlias(name=f"&obj{len(aliases)}", value=obj, count=count))
    return aliases


# ---------------------------------------------------------------------------
# String counting
# ---------------------------------------------------------------------------
def count_strings(value: Any, counts: dict[str, int] | None = None) -> dict[str, int]:
    """Count strings of length >= 5 that appear as mapping values."""
    if counts is None:
        counts = {}
    if isinstance(value, list):
        for item in value:
            count_strings(item, counts)
    elif isinstance(value, dict):
        for item in value.values():
            if isinstance(item, str) and len(item) >= DICTIONARY_MIN_LENGTH:
                counts[item] = counts.get(item, 0) + 1
            count_strings(item, counts)
    return counts


def dictionary_savings(text: str, count: int) -> int:
    """Characters saved by inline-first tagging: first site ``value #N``, then ``#N``."""
    original = len(text) * count
    tagged = len(text) + TAG_COST + (TAG_COST - 1) * (count - 1)
    return original - tagged


def build_dictionary(value: Any) -> list[DictionaryEntry]:
    candidates: list[tuple[str, int, int]] = []
    for text, count in count_strings(value).items():
        if count < DICTIONARY_MIN_OCCURRENCES:
            continue
        savings = dictionary_savings(text, count)
        if savings > 0:
            candidates.append((text, count, savings))
    # sorted() is stable: equal savings keep first-seen order
    candidates = sorted(candidates, key=lambda c: c[2], reverse=True)
    return [
        DictionaryEntry(tag=f"#{i}", value=text, count=count, savings=savings)
        for i, (text, count, savings) in enumerate(candidates)
    ]


def analyze(value: Any, options: CodecOptions | None = None) -> AnalysisTables:
    """Build the structure, alias and dictionary tables for ``value``."""
    options = options or CodecOptions()
    structures: list[StructureRef] = []
    aliases: list[ObjectAlias] = []
    dictionary: list[DictionaryEntry] = []
    if options.enable_structural_dedup:
        structures = build_structure_refs(value)
        aliases = build_object_aliases(value)
    if options.enable_string_dictionary:
        dictionary = build_dictionary(value)
    return AnalysisTables(structures, aliases, dictionary)


__all__ = [
    "AnalysisTables",
    "DictionaryEntry",
    "ObjectAlias",
    "StructureRef",
    "analyze",
    "build_dictionary",
    "build_object_aliases",
    "build_structure_refs",
    "count_schemas",
    "count_small_objects",
    "count_strings",
    "dictionary_savings",
    "is_alias_candidate",
]
