"""Render a value tree as ASON text.

Layout rules:
- key:value for scalars, inline arrays, aliases and empty containers
- key: followed by an indented block for mappings and list blocks
- key:[N]@k1,k2 (or key:[N]$ref) followed by one delimited row per element
- "- item" bullets for mixed arrays; a bare "-" opens a deeper block
- single-key mapping chains fold into dotted paths (a.b.c:value)
"""

from __future__ import annotations

from typing import Any

from ason.contracts.common import EncodeError
from ason.contracts.options import CodecOptions
from ason.core.analysis import AnalysisTables
from ason.core.fingerprint import Schema, tabular_schema
from ason.core.lexer import (
    DATA_MARKER,
    DEF_MARKER,
    EMPTY_LIST,
    EMPTY_MAP,
    FALSE,
    LIST_ITEM,
    LIST_ITEM_PREFIX,
    NULL,
    SCHEMA_MARKER,
    TRUE,
    format_key,
    format_number,
    format_string,
    is_plain_key,
)
from ason.core.values import ValueKind, is_scalar, kind_of
from ason.engine.context import EncodeContext


class LineWriter:
    """Collects output lines, indenting each by ``depth`` units."""

    def __init__(self, indent: int) -> None:
        self.indent = " " * indent
        self.lines: list[str] = []

    def push(self, depth: int, text: str) -> None:
        self.lines.append(self.indent * depth + text)

    def to_string(self) -> str:
        return "\n".join(self.lines)


def render(value: Any, tables: AnalysisTables, options: CodecOptions | None = None) -> str:
    """Render ``value`` using precomputed analysis tables."""
    options = options or CodecOptions()
    ctx = EncodeContext(tables, options)
    writer = LineWriter(options.indent)
    depth = 0
    if tables.has_definitions:
        encode_header(tables, ctx, writer)
        depth = 1
    encode_value(value, ctx, writer, depth)
    return writer.to_string()


def encode_header(tables: AnalysisTables, ctx: EncodeContext, writer: LineWriter) -> None:
    writer.push(0, DEF_MARKER)
    for ref in tables.structures:
        writer.push(1, f"{ref.name}:{SCHEMA_MARKER}{_join_keys(ref.keys, ctx.delimiter)}")
    # An alias body never refers to another alias
    ctx.aliasing = False
    for alias in tables.aliases:
        writer.push(1, f"{alias.name}:")
        encode_object(alias.value, ctx, writer, 2)
    ctx.aliasing = True
    writer.push(0, DATA_MARKER)


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------
def encode_value(value: Any, ctx: EncodeContext, writer: LineWriter, depth: int) -> None:
    """Write ``value`` as a stand-alone block starting at ``depth``."""
    if not needs_block(value, ctx):
        writer.push(depth, inline_value(value, ctx, ctx.delimiter))
    elif isinstance(value, dict):
        encode_object(value, ctx, writer, depth)
    else:
        encode_array(value, ctx, writer, depth)


def encode_object(obj: dict[str, Any], ctx: EncodeContext, writer: LineWriter, depth: int) -> None:
    for key, value in obj.items():
        encode_key_value_pair(key, value, ctx, writer, depth)


def encode_key_value_pair(key: str, value: Any, ctx: EncodeContext, writer: LineWriter, depth: int) -> None:
    path, value = fold_path(key, value, ctx)
    if not needs_block(value, ctx):
        writer.push(depth, f"{path}:{inline_value(value, ctx)}")
        return
    if isinstance(value, dict):
        writer.push(depth, f"{path}:")
        encode_object(value, ctx, writer, depth + 1)
        return
    schema = tabular_schema(value)
    if schema is not None:
        writer.push(depth, f"{path}:{table_header(value, schema, ctx)}")
        encode_rows(value, schema, ctx, writer, depth + 1)
    else:
        writer.push(depth, f"{path}:")
        encode_list_items(value, ctx, writer, depth + 1)


def encode_array(items: list[Any], ctx: EncodeContext, writer: LineWriter, depth: int) -> None:
    schema = tabular_schema(items)
    if schema is not None:
        writer.push(depth, table_header(items, schema, ctx))
        encode_rows(items, schema, ctx, writer, depth + 1)
    else:
        encode_list_items(items, ctx, writer, depth)


def encode_list_items(items: list[Any], ctx: EncodeContext, writer: LineWriter, depth: int) -> None:
    for item in items:
        if needs_block(item, ctx):
            writer.push(depth, LIST_ITEM)
            encode_value(item, ctx, writer, depth + 1)
        else:
            writer.push(depth, LIST_ITEM_PREFIX + inline_value(item, ctx, ctx.delimiter))


def table_header(items: list[dict[str, Any]], schema: Schema, ctx: EncodeContext) -> str:
    ref = ctx.tables.structure_for(schema.keys)
    if ref is not None:
        return f"[{len(items)}]{ref.name}"
    return f"[{len(items)}]{SCHEMA_MARKER}{_join_keys(schema.keys, ctx.delimiter)}"


def encode_rows(
    items: list[dict[str, Any]], schema: Schema, ctx: EncodeContext, writer: LineWriter, depth: int
) -> None:
    for item in items:
        cells = [inline_value(item[key], ctx, ctx.delimiter) if key in item else "" for key in schema.keys]
        writer.push(depth, ctx.delimiter.join(cells))


def fold_path(key: str, value: Any, ctx: EncodeContext) -> tuple[str, Any]:
    """Fold single-key mapping chains into a dotted path.

    Folding stops at an alias target or at a key that cannot be written bare.
    """
    if not is_plain_key(key):
        return format_key(key), value
    parts = [key]
    while isinstance(value, dict) and len(value) == 1 and ctx.alias_for(value) is None:
        inner_key, inner_value = next(iter(value.items()))
        if not is_plain_key(inner_key):
            break
        parts.append(inner_key)
        value = inner_value
    return ".".join(parts), value


# ---------------------------------------------------------------------------
# Inline forms
# ---------------------------------------------------------------------------
def needs_block(value: Any, ctx: EncodeContext) -> bool:
    """True when ``value`` cannot be written on a single line."""
    kind = kind_of(value)
    if kind is ValueKind.MAPPING:
        return bool(value) and ctx.alias_for(value) is None
    if kind is ValueKind.SEQUENCE:
        if not value:
            return False
        if tabular_schema(value) is not None:
            return True
        return not all(is_scalar(item) for item in value)
    return False


def inline_value(value: Any, ctx: EncodeContext, delimiter: str | None = None) -> str:
    """Single-line form of a value that does not need a block.

    ``delimiter`` selects the stricter quoting used outside ``key:value``.
    """
    kind = kind_of(value)
    if kind is ValueKind.NULL:
        return NULL
    if kind is ValueKind.BOOL:
        return TRUE if value else FALSE
    if kind is ValueKind.NUMBER:
        return format_number(value)
    if kind is ValueKind.STRING:
        return inline_string(value, ctx, delimiter)
    if kind is ValueKind.SEQUENCE:
        if not value:
            return EMPTY_LIST
        cells = [inline_value(item, ctx, ctx.delimiter) for item in value]
        return "[" + ctx.delimiter.join(cells) + "]"
    if not value:
        return EMPTY_MAP
    alias = ctx.alias_for(value)
    if alias is None:
        raise EncodeError("Non-empty mapping has no single-line form")
    return alias


def inline_string(text: str, ctx: EncodeContext, delimiter: str | None = None) -> str:
    """Quote as needed; dictionary strings are tagged on first use, then replaced by the tag."""
    hit = ctx.tag_for(text)
    if hit is None:
        return format_string(text, delimiter)
    tag, first = hit
    if not first:
        return tag
    return f"{format_string(text, delimiter)} {tag}"


def _join_keys(keys: list[str], delimiter: str) -> str:
    return delimiter.join(format_key(key, delimiter) for key in keys)


__all__ = [
    "LineWriter",
    "encode_array",
    "encode_header",
    "encode_key_value_pair",
    "encode_list_items",
    "encode_object",
    "encode_value",
    "fold_path",
    "inline_value",
    "needs_block",
    "render",
]
