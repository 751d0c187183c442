"""Tests for the value model, structural fingerprints and the analysis passes."""

from __future__ import annotations

import pytest
from pydantic import BaseModel

from ason import EncodeError, analyze
from ason.contracts.options import CodecOptions
from ason.core.analysis import (
    build_dictionary,
    build_object_aliases,
    build_structure_refs,
    count_schemas,
    count_strings,
    dictionary_savings,
    is_alias_candidate,
)
from ason.core.fingerprint import (
    canonical_key,
    dominant_schema,
    key_signature,
    tabular_schema,
    uniform_schema,
)
from ason.core.values import ValueKind, deep_merge, is_empty_container, is_scalar, kind_of, normalize


# ---------------------------------------------------------------------------
# Value model
# ---------------------------------------------------------------------------


class TestValues:
    def test_kind_of(self):
        assert kind_of(None) is ValueKind.NULL
        assert kind_of(True) is ValueKind.BOOL
        assert kind_of(0) is ValueKind.NUMBER
        assert kind_of(0.5) is ValueKind.NUMBER
        assert kind_of("") is ValueKind.STRING
        assert kind_of([]) is ValueKind.SEQUENCE
        assert kind_of({}) is ValueKind.MAPPING

    def test_kind_of_rejects_non_json(self):
        with pytest.raises(EncodeError):
            kind_of({1, 2})
        with pytest.raises(EncodeError):
            kind_of(float("-inf"))

    def test_is_scalar(self):
        assert is_scalar("x")
        assert is_scalar(None)
        assert not is_scalar([])

    def test_is_empty_container(self):
        assert is_empty_container([])
        assert is_empty_container({})
        assert not is_empty_container("")
        assert not is_empty_container([0])

    def test_normalize_tuples_and_models(self):
        class Point(BaseModel):
            x: int
            y: int

        assert normalize({"p": Point(x=1, y=2), "t": (1, (2, 3))}) == {"p": {"x": 1, "y": 2}, "t": [1, [2, 3]]}

    def test_deep_merge(self):
        left = {"a": {"x": 1}, "b": 1}
        right = {"a": {"y": 2}, "c": 3}
        assert deep_merge(left, right) == {"a": {"x": 1, "y": 2}, "b": 1, "c": 3}
        assert left == {"a": {"x": 1}, "b": 1}

    def test_deep_merge_right_wins_for_non_mappings(self):
        assert deep_merge({"a": 1}, {"a": {"b": 2}}) == {"a": {"b": 2}}
        assert deep_merge([1], {"a": 1}) == {"a": 1}


# ---------------------------------------------------------------------------
# Fingerprints
# ---------------------------------------------------------------------------


class TestFingerprint:
    def test_key_signature_ignores_order(self):
        assert key_signature({"b": 1, "a": 2}) == key_signature({"a": 1, "b": 2})

    def test_canonical_key_is_type_aware(self):
        assert canonical_key(1) != canonical_key(1.0)
        assert canonical_key(1) != canonical_key(True)
        assert canonical_key(0) != canonical_key(False)
        assert canonical_key("1") != canonical_key(1)

    def test_canonical_key_respects_key_order(self):
        assert canonical_key({"a": 1, "b": 2}) != canonical_key({"b": 2, "a": 1})
        assert canonical_key({"a": [1, {"b": None}]}) == canonical_key({"a": [1, {"b": None}]})

    def test_dominant_schema_takes_first_key_order(self):
        schema = dominant_schema([{"b": 1, "a": 2}, {"a": 3, "b": 4}, {"c": 5}])
        assert schema.keys == ["b", "a"]
        assert schema.matches == 2

    def test_dominant_schema_tie_goes_to_first_seen(self):
        schema = dominant_schema([{"x": 1}, {"y": 1}, {"y": 2}, {"x": 2}])
        assert schema.keys == ["x"]

    def test_uniformity_threshold(self):
        assert uniform_schema([{"a": 1}, {"a": 2}, {"b": 3}]).keys == ["a"]
        assert uniform_schema([{"a": 1}, {"b": 2}]) is None
        assert uniform_schema([{"a": 1}, 2]) is None
        assert uniform_schema([]) is None
        assert uniform_schema("abc") is None

    def test_tabular_schema(self):
        assert tabular_schema([{"a": 1, "b": "x"}, {"a": 2, "b": None}, {"a": 3}]).keys == ["a", "b"]

    def test_tabular_schema_rejects_nested_cells(self):
        assert tabular_schema([{"a": [1]}, {"a": [2]}]) is None

    def test_tabular_schema_rejects_out_of_order_keys(self):
        assert tabular_schema([{"a": 1, "b": 2}, {"b": 3, "a": 4}]) is None

    def test_tabular_schema_rejects_foreign_keys_and_empties(self):
        assert tabular_schema([{"a": 1}, {"a": 2}, {"z": 3}]) is None
        assert tabular_schema([{"a": 1}, {"a": 2}, {}]) is None
        assert tabular_schema([{}, {}]) is None


# ---------------------------------------------------------------------------
# Analysis passes
# ---------------------------------------------------------------------------


def _records(n, **extra):
    return [{"id": i, "name": f"user{i}", **extra} for i in range(n)]


class TestStructureRefs:
    def test_below_threshold(self):
        assert build_structure_refs({"rows": _records(2)}) == []

    def test_at_threshold(self):
        refs = build_structure_refs({"rows": _records(3)})
        assert [(r.name, r.keys, r.count) for r in refs] == [("$0", ["id", "name"], 3)]

    def test_counts_accumulate_across_arrays(self):
        value = {"a": _records(2), "b": _records(2)}
        assert build_structure_refs(value)[0].count == 4

    def test_key_order_distinguishes_schemas(self):
        value = {"a": _records(3), "b": [{"name": "x", "id": i} for i in range(3)]}
        assert [r.keys for r in build_structure_refs(value)] == [["id", "name"], ["name", "id"]]

    def test_nested_arrays_are_counted(self):
        value = [{"id": 1, "tags": [{"k": "a"}, {"k": "b"}, {"k": "c"}]}]
        assert count_schemas(value) == {("id", "tags"): 1, ("k",): 3}


class TestObjectAliases:
    def test_candidates(self):
        assert is_alias_candidate({"a": 1})
        assert is_alias_candidate({"a": 1, "b": [], "c": {}})
        assert not is_alias_candidate({})
        assert not is_alias_candidate({"a": 1, "b": 2, "c": 3, "d": 4})
        assert not is_alias_candidate({"a": [1]})

    def test_repeated_small_object(self):
        aliases = build_object_aliases([{"x": 1}, {"x": 1}, {"y": 2}])
        assert [(a.name, a.value, a.count) for a in aliases] == [("&obj0", {"x": 1}, 2)]

    def test_type_aware_grouping(self):
        assert build_object_aliases([{"x": 1}, {"x": True}, {"x": 1.0}]) == []

    def test_key_order_is_significant(self):
        assert build_object_aliases([{"a": 1, "b": 2}, {"b": 2, "a": 1}]) == []

    def test_first_seen_naming(self):
        value = {"p": {"k": "b"}, "q": {"k": "a"}, "r": {"k": "a"}, "s": {"k": "b"}}
        assert [a.value for a in build_object_aliases(value)] == [{"k": "b"}, {"k": "a"}]


class TestDictionary:
    def test_savings_formula(self):
        assert dictionary_savings("shared", 3) == 5
        assert dictionary_savings("hello", 2) == 0
        assert dictionary_savings("alice@example.com", 2) == 12

    def test_only_mapping_values_are_counted(self):
        value = {"k": "hello world", "list": ["hello world"], "hello world": 1}
        assert count_strings(value) == {"hello world": 1}

    def test_short_strings_ignored(self):
        assert count_strings({"a": "abcd", "b": "abcd"}) == {}

    def test_requires_positive_savings(self):
        assert build_dictionary({"a": "hello", "b": "hello"}) == []

    def test_sorted_by_savings(self):
        value = {"a": "short", "b": "short", "c": "short", "d": "a much longer value", "e": "a much longer value"}
        entries = build_dictionary(value)
        assert [(e.tag, e.value) for e in entries] == [("#0", "a much longer value"), ("#1", "short")]


class TestAnalyze:
    def test_tables(self, orders):
        tables = analyze(orders)
        assert [r.keys for r in tables.structures] == [["sku", "qty", "price"]]
        assert [a.value for a in tables.aliases] == [{"city": "Rotterdam", "country": "NL"}]
        assert [e.value for e in tables.dictionary] == ["delivered", "Rotterdam"]
        assert tables.has_definitions

    def test_lookups(self, orders):
        tables = analyze(orders)
        assert tables.structure_for(["sku", "qty", "price"]).name == "$0"
        assert tables.structure_for(["qty", "sku", "price"]) is None
        assert tables.alias_for({"city": "Rotterdam", "country": "NL"}).name == "&obj0"
        assert tables.alias_for({"country": "NL", "city": "Rotterdam"}) is None
        assert tables.tag_for("delivered") == "#0"
        assert tables.tag_for("cancelled") is None

    def test_options_disable_passes(self, orders):
        tables = analyze(orders, CodecOptions(enable_structural_dedup=False, enable_string_dictionary=False))
        assert not tables.structures
        assert not tables.aliases
        assert not tables.dictionary
        assert not tables.has_definitions

    def test_dictionary_alone_needs_no_header(self):
        tables = analyze({"a": "shared", "b": "shared", "c": "shared"})
        assert not tables.has_definitions
        assert len(tables.dictionary) == 1

    def test_analysis_does_not_mutate(self, orders):
        import copy

        before = copy.deepcopy(orders)
        analyze(orders)
        assert orders == before
