"""Tests for the ASON decoder: layout recognition, leniency and errors."""

from __future__ import annotations

import pytest

from ason import StructuralError, UnresolvedReferenceError, decode
from ason.contracts.common import DecodeError
from ason.contracts.options import CodecOptions
from ason.core.decoder import Parser, parse
from ason.engine.context import DecodeContext


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------


class TestLayout:
    def test_empty_text_is_none(self):
        assert decode("") is None
        assert decode("\n  \n") is None

    def test_root_scalars(self):
        assert decode("null") is None
        assert decode("true") is True
        assert decode("42") == 42
        assert decode("-1.5e3") == -1500.0
        assert decode("hello world") == "hello world"
        assert decode('"12"') == "12"

    def test_mapping(self):
        assert decode("a:1\nb:\n c:x\n d:true") == {"a": 1, "b": {"c": "x", "d": True}}

    def test_key_order_preserved(self):
        assert list(decode("z:1\na:2\nm:3")) == ["z", "a", "m"]

    def test_value_with_colon(self):
        assert decode("url:http://x:8080") == {"url": "http://x:8080"}

    def test_quoted_keys(self):
        assert decode('"a.b":1\n"":2\n"x:y":3') == {"a.b": 1, "": 2, "x:y": 3}

    def test_dotted_path_unfolds_and_merges(self):
        assert decode("a.b:1\na.c:2") == {"a": {"b": 1, "c": 2}}

    def test_dotted_path_merges_into_block(self):
        assert decode("a:\n x:1\na.y.z:2") == {"a": {"x": 1, "y": {"z": 2}}}

    def test_empty_containers(self):
        assert decode("a:[]\nb:{}") == {"a": [], "b": {}}

    def test_key_without_block_is_null(self):
        assert decode("a:\nb:1") == {"a": None, "b": 1}

    def test_blank_lines_are_ignored(self):
        assert decode("\n\na:1\n\n\nb:\n\n c:2\n") == {"a": 1, "b": {"c": 2}}

    def test_crlf_line_endings(self):
        assert decode("a:1\r\nb:\r\n c:2\r\n") == {"a": 1, "b": {"c": 2}}

    def test_any_consistent_indent_width(self):
        assert decode("a:\n    b:\n        c:1\n    d:2") == {"a": {"b": {"c": 1}, "d": 2}}

    def test_numbers(self):
        assert decode("a:1.5e3\nb:-2\nc:007x\nd:1e999") == {"a": 1500.0, "b": -2, "c": "007x", "d": "1e999"}

    def test_int_and_float_stay_distinct(self):
        value = decode("a:1\nb:1.0")
        assert type(value["a"]) is int
        assert type(value["b"]) is float


class TestLists:
    def test_bullets(self):
        assert decode("- 1\n- x\n- null") == [1, "x", None]

    def test_nested_blocks(self):
        text = "- 1\n- x\n-\n a:1\n- [1,2]\n-\n [1]@b\n  1"
        assert decode(text) == [1, "x", {"a": 1}, [1, 2], [{"b": 1}]]

    def test_bracket_literal_with_quoted_delimiter(self):
        assert decode('a:[1,"x,y",true]') == {"a": [1, "x,y", True]}

    def test_object_bullets_continue_on_deeper_lines(self):
        text = "- id:1\n  name:Alice\n- id:2\n  name:Bob"
        assert decode(text) == [{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}]

    def test_single_key_object_bullets(self):
        assert decode("- a:1\n- b:2") == [{"a": 1}, {"b": 2}]

    def test_bullet_with_block_value(self):
        assert decode("- a:\n   b:1") == [{"a": {"b": 1}}]

    def test_list_under_key(self):
        assert decode("items:\n - 1\n -\n  a:1") == {"items": [1, {"a": 1}]}


class TestTables:
    def test_inline_schema(self):
        text = "users:[2]@id,name\n 1,Alice\n 2,Bob"
        assert decode(text) == {"users": [{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}]}

    def test_schema_without_count(self):
        assert decode("t:@a,b\n 1,2") == {"t": [{"a": 1, "b": 2}]}

    def test_structure_ref(self):
        text = "$def:\n $0:@id,name\n$data:\n users:[3]$0\n  1,Alice\n  2,Bob\n  3,Carol"
        assert decode(text) == {
            "users": [
                {"id": 1, "name": "Alice"},
                {"id": 2, "name": "Bob"},
                {"id": 3, "name": "Carol"},
            ]
        }

    def test_blank_cells_are_absent_keys(self):
        assert decode("[3]@a,b\n 1,2\n 3,4\n 5,") == [{"a": 1, "b": 2}, {"a": 3, "b": 4}, {"a": 5}]

    def test_leading_blank_cell_with_tab_delimiter(self):
        text = "[2]@a\tb\n \t1\n 2\t3"
        assert decode(text, delimiter="tab") == [{"b": 1}, {"a": 2, "b": 3}]

    def test_doubled_quotes_inside_cells(self):
        assert decode('[1]@a,b\n "say ""hi""",2') == [{"a": 'say "hi"', "b": 2}]

    def test_quoted_cell_keeps_delimiter(self):
        assert decode('[1]@a,b\n "x,y",2') == [{"a": "x,y", "b": 2}]

    def test_complex_rows(self):
        text = "[2]@id,name\n - id:1 name:Alice Smith\n - id:2 name:Bob"
        assert decode(text) == [{"id": 1, "name": "Alice Smith"}, {"id": 2, "name": "Bob"}]

    def test_pipe_delimiter(self):
        assert decode("t:[1]@a|b\n x,y|2", delimiter="pipe") == {"t": [{"a": "x,y", "b": 2}]}

    def test_row_count_mismatch_is_lenient_by_default(self):
        assert decode("t:[3]@a\n 1\n 2") == {"t": [{"a": 1}, {"a": 2}]}


# ---------------------------------------------------------------------------
# References
# ---------------------------------------------------------------------------


class TestReferences:
    def test_alias_expands(self):
        text = "$def:\n &obj0:\n  x:1\n  y:2\n$data:\n p:&obj0\n q:&obj0"
        assert decode(text) == {"p": {"x": 1, "y": 2}, "q": {"x": 1, "y": 2}}

    def test_alias_expansions_are_independent_copies(self):
        text = "$def:\n &obj0:\n  x:1\n$data:\n p:&obj0\n q:&obj0"
        value = decode(text)
        assert value["p"] == value["q"]
        assert value["p"] is not value["q"]

    def test_scalar_alias_definition(self):
        assert decode("$def:\n &obj0:x\n$data:\n a:&obj0") == {"a": "x"}

    def test_inline_first_dictionary(self):
        assert decode("a:hello there #0\nb:#0") == {"a": "hello there", "b": "hello there"}

    def test_quoted_dictionary_value(self):
        assert decode('a:"12345" #0\nb:#0') == {"a": "12345", "b": "12345"}

    def test_dictionary_entries_in_header(self):
        text = '$def:\n #0:"hello world"\n$data:\n a:#0\n b:#0'
        assert decode(text) == {"a": "hello world", "b": "hello world"}

    def test_dictionary_inside_alias_definition(self):
        text = "$def:\n $0:@s\n &obj0:\n  s:active #0\n$data:\n [3]$0\n  #0\n  #0\n  #0"
        assert decode(text) == [{"s": "active"}, {"s": "active"}, {"s": "active"}]

    def test_unknown_structure_ref_is_empty_table(self):
        assert decode("items:[2]$9\n 1,2\n 3,4\nnext:1") == {"items": [], "next": 1}

    def test_unknown_alias_is_raw_text(self):
        assert decode("a:&obj3") == {"a": "&obj3"}

    def test_unknown_tag_is_raw_text(self):
        assert decode("a:#4") == {"a": "#4"}


class TestLenientReading:
    def test_unknown_definition_is_skipped(self):
        text = "$def:\n $0:@a\n foo:bar\n$data:\nx:1"
        assert decode(text) == {"x": 1}

    def test_unknown_definition_block_is_skipped(self):
        text = "$def:\n misc:\n  deep:1\n &obj0:\n  k:v\n$data:\n a:&obj0"
        assert decode(text) == {"a": {"k": "v"}}

    def test_line_without_colon_in_mapping_is_skipped(self):
        assert decode("x:1\n\nnot a pair") == {"x": 1}
        assert decode("x:1\nstray words\ny:2") == {"x": 1, "y": 2}

    def test_skipped_line_takes_its_block_along(self):
        assert decode("a:1\nnoise\n  b:2\nc:3") == {"a": 1, "c": 3}

    def test_bullet_inside_mapping_is_skipped(self):
        assert decode("a:1\n- 2\nb:3") == {"a": 1, "b": 3}

    def test_trailing_content_after_root_is_ignored(self):
        assert decode("- 1\nx:2") == [1]

    def test_complex_row_segment_without_colon(self):
        assert decode("[1]@a,b\n - junk b:2") == [{"b": 2}]


class TestStrictMode:
    def test_unknown_structure_ref(self):
        with pytest.raises(UnresolvedReferenceError) as exc:
            decode("a:1\nitems:[2]$9\n 1,2", strict=True)
        assert exc.value.line == 2

    def test_unknown_alias(self):
        with pytest.raises(UnresolvedReferenceError):
            decode("a:&obj3", strict=True)

    def test_unknown_tag(self):
        with pytest.raises(UnresolvedReferenceError):
            decode("a:#4", strict=True)

    def test_row_count_mismatch(self):
        with pytest.raises(StructuralError, match="declares 3 rows"):
            decode("t:[3]@a\n 1\n 2", strict=True)

    def test_line_without_colon_in_mapping(self):
        with pytest.raises(StructuralError, match="Expected 'key:value'") as exc:
            decode("x:1\n\nnot a pair", strict=True)
        assert exc.value.line == 3

    def test_complex_row_segment_without_colon(self):
        with pytest.raises(StructuralError, match="row segment"):
            decode("[1]@a,b\n - junk b:2", strict=True)

    def test_known_references_pass(self):
        text = "$def:\n &obj0:\n  x:1\n$data:\n p:&obj0\n q:a long value #0\n r:#0"
        assert decode(text, strict=True) == {"p": {"x": 1}, "q": "a long value", "r": "a long value"}


# ---------------------------------------------------------------------------
# Structural errors
# ---------------------------------------------------------------------------


class TestStructuralErrors:
    def test_unterminated_header(self):
        with pytest.raises(StructuralError) as exc:
            decode("$def:\n $0:@a")
        assert exc.value.line == 1
        assert "$data:" in str(exc.value)

    def test_unknown_definition(self):
        with pytest.raises(StructuralError, match="Unknown definition") as exc:
            decode("$def:\n foo:1\n$data:\n a:1", strict=True)
        assert exc.value.line == 2

    def test_unexpected_indentation_under_scalar(self):
        with pytest.raises(StructuralError) as exc:
            decode("a:1\n  b:2")
        assert exc.value.line == 2

    def test_sibling_at_deeper_indent(self):
        with pytest.raises(StructuralError, match="Unexpected indentation"):
            decode("a:\n - 1\n b:2")

    def test_trailing_content_after_root(self):
        with pytest.raises(StructuralError, match="after the root value"):
            decode("- 1\nx:2", strict=True)

    def test_bullet_inside_mapping(self):
        with pytest.raises(StructuralError, match="Expected 'key:value'"):
            decode("a:1\n- 2", strict=True)

    def test_unterminated_quoted_cell(self):
        with pytest.raises(StructuralError, match="Unterminated"):
            decode('[2]@a,b\n "x,1')

    def test_malformed_quoted_literal(self):
        with pytest.raises(StructuralError, match="Malformed quoted literal"):
            decode('a:"\\q"')

    def test_errors_are_decode_errors(self):
        with pytest.raises(DecodeError):
            decode("a:1\n  b:2")

    def test_message_carries_line_number(self):
        with pytest.raises(StructuralError, match="^line 2: "):
            decode("a:1\n  b:2")


def test_parse_accepts_options():
    assert parse("[1]@a;b\n 1;2", CodecOptions(delimiter=";")) == [{"a": 1, "b": 2}]


def test_parser_records_definitions():
    parser = Parser("$def:\n $0:@a,b\n &obj0:\n  x:1\n$data:\n k:long string #0", DecodeContext(CodecOptions()))
    assert parser.parse() == {"k": "long string"}
    assert parser.ctx.structures == {"$0": ["a", "b"]}
    assert parser.ctx.aliases == {"&obj0": {"x": 1}}
    assert parser.ctx.dictionary == {"#0": "long string"}
