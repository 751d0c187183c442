"""Indentation-sensitive recursive-descent parser for ASON text.

The parser walks a list of physical lines with a single cursor. Every block
parser receives the indentation of the line that owns it and consumes the
lines that are deeper than that owner. Indentation and quoting are enforced
strictly. Unless the options ask for strict mode, lines that cannot be read
are skipped and unknown references degrade to their raw text.
"""

from __future__ import annotations

import copy
import re
from typing import Any

from ason.contracts.common import StructuralError, UnresolvedReferenceError
from ason.contracts.options import CodecOptions
from ason.core.lexer import (
    ALIAS_PREFIX,
    DATA_MARKER,
    DEF_MARKER,
    INLINE_TAG_RE,
    REF_MARKER,
    TAG_MARKER,
    indent_of,
    is_list_item,
    match_table_header,
    parse_key,
    parse_literal,
    parse_number,
    split_fields,
    split_key,
    unquote,
)
from ason.core.values import deep_merge
from ason.engine.context import DecodeContext

TAG_RE = re.compile(r"#[0-9]+")
ALIAS_RE = re.compile(r"&obj[0-9]+")
# Segments of a "- key:val key:val" row
ROW_SEGMENT_RE = re.compile(r"\s+(?=[\w$.\-]+:)")


def parse(text: str, options: CodecOptions | None = None) -> Any:
    """Decode ASON text into a value tree."""
    return Parser(text, DecodeContext(options or CodecOptions())).parse()


class Parser:
    """Single-use parser over the lines of one document."""

    def __init__(self, text: str, ctx: DecodeContext) -> None:
        self.lines = [line[:-1] if line.endswith("\r") else line for line in text.split("\n")]
        self.ctx = ctx
        self.pos = 0

    # -- cursor helpers ----------------------------------------------------
    def _skip_blank(self) -> None:
        while self.pos < len(self.lines) and not self.lines[self.pos].strip():
            self.pos += 1

    def _peek_indent(self) -> int:
        """Indent of the next non-blank line, or -1 at end of input."""
        self._skip_blank()
        if self.pos >= len(self.lines):
            return -1
        return indent_of(self.lines[self.pos])

    def _line_no(self) -> int:
        return self.pos + 1

    def _reject_deeper(self, indent: int) -> None:
        if self._peek_indent() > indent:
            raise StructuralError("Unexpected indentation", line=self._line_no())

    def _skip_unreadable(self, message: str, indent: int, line_no: int) -> None:
        """Strict mode raises; otherwise drop the current line and any block under it."""
        if self.ctx.strict:
            raise StructuralError(message, line=line_no)
        self.pos += 1
        while self._peek_indent() > indent:
            self.pos += 1

    # -- document ----------------------------------------------------------
    def parse(self) -> Any:
        self._skip_blank()
        if self.pos < len(self.lines) and self.lines[self.pos].strip() == DEF_MARKER:
            self.parse_header()
        value = self.parse_value(-1)
        self._skip_blank()
        if self.pos < len(self.lines) and self.ctx.strict:
            raise StructuralError("Unexpected content after the root value", line=self._line_no())
        return value

    def parse_header(self) -> None:
        start = self._line_no()
        self.pos += 1
        while True:
            self._skip_blank()
            if self.pos >= len(self.lines):
                raise StructuralError(f"Unterminated {DEF_MARKER} block, missing {DATA_MARKER}", line=start)
            line = self.lines[self.pos]
            content = line.strip()
            line_no = self._line_no()
            if content == DATA_MARKER:
                self.pos += 1
                return
            split = split_key(content)
            if split is None:
                self._skip_unreadable(f"Unknown definition {content!r}", indent_of(line), line_no)
                continue
            name, rest = split
            if rest.startswith("@"):
                self.pos += 1
                self.ctx.structures[name] = self.parse_keys(rest[1:], line_no)
            elif name.startswith(TAG_MARKER):
                self.pos += 1
                self.ctx.dictionary[name] = unquote(rest, line=line_no) if rest.startswith('"') else rest
            elif name.startswith(ALIAS_PREFIX):
                self.pos += 1
                if rest:
                    self.ctx.aliases[name] = self.parse_scalar(rest, line_no)
                else:
                    self.ctx.aliases[name] = self.parse_value(indent_of(line))
            else:
                self._skip_unreadable(f"Unknown definition {name!r}", indent_of(line), line_no)

    # -- blocks ------------------------------------------------------------
    def parse_value(self, parent_indent: int) -> Any:
        """Parse the block deeper than ``parent_indent``; None when there is none."""
        indent = self._peek_indent()
        if indent <= parent_indent:
            return None
        line_no = self._line_no()
        content = self.lines[self.pos].strip()
        if is_list_item(content):
            return self.parse_list(indent)
        header = match_table_header(content)
        if header is not None:
            self.pos += 1
            return self.parse_table(header, indent, line_no)
        if content[0] not in "[{" and split_key(content) is not None:
            return self.parse_object(indent)
        self.pos += 1
        value = self.parse_scalar(content, line_no)
        self._reject_deeper(indent)
        return value

    def parse_object(self, indent: int, into: dict[str, Any] | None = None) -> dict[str, Any]:
        obj: dict[str, Any] = {} if into is None else into
        while True:
            line_indent = self._peek_indent()
            if line_indent < indent:
                break
            line_no = self._line_no()
            if line_indent > indent:
                raise StructuralError("Unexpected indentation", line=line_no)
            content = self.lines[self.pos].strip()
            split = split_key(content) if content[0] not in "[{" else None
            if split is None or is_list_item(content):
                self._skip_unreadable(f"Expected 'key:value', got {content!r}", indent, line_no)
                continue
            self.pos += 1
            key_token, rest = split
            key, quoted = parse_key(key_token, line=line_no)
            self.assign(obj, key, quoted, self.parse_entry(rest, indent, line_no))
        return obj

    def parse_entry(self, rest: str, indent: int, line_no: int) -> Any:
        """Value of a ``key:rest`` line owned by a line at ``indent``."""
        if not rest:
            return self.parse_value(indent)
        header = match_table_header(rest)
        if header is not None:
            return self.parse_table(header, indent, line_no)
        value = self.parse_scalar(rest, line_no)
        self._reject_deeper(indent)
        return value

    def assign(self, obj: dict[str, Any], key: str, quoted: bool, value: Any) -> None:
        """Store ``value``; unquoted dotted keys unfold and merge into siblings."""
        if quoted or "." not in key:
            obj[key] = value
            return
        root, *path = key.split(".")
        for part in reversed(path):
            value = {part: value}
        obj[root] = deep_merge(obj[root], value) if root in obj else value

    def parse_list(self, indent: int) -> list[Any]:
        items: list[Any] = []
        while True:
            line_indent = self._peek_indent()
            if line_indent != indent:
                if line_indent > indent:
                    raise StructuralError("Unexpected indentation", line=self._line_no())
                break
            content = self.lines[self.pos].strip()
            if not is_list_item(content):
                break
            line_no = self._line_no()
            self.pos += 1
            items.append(self.parse_item(content[1:].strip(), indent, line_no))
        return items

    def parse_item(self, payload: str, indent: int, line_no: int) -> Any:
        """One bullet: deeper block, inline table, object, or scalar."""
        if not payload:
            return self.parse_value(indent)
        header = match_table_header(payload)
        if header is not None:
            return self.parse_table(header, indent, line_no)
        split = split_key(payload) if payload[0] not in "[{" else None
        if split is None:
            value = self.parse_scalar(payload, line_no)
            self._reject_deeper(indent)
            return value
        key_token, rest = split
        key, quoted = parse_key(key_token, line=line_no)
        obj: dict[str, Any] = {}
        self.assign(obj, key, quoted, self.parse_item_entry(rest, indent, line_no))
        # Deeper key lines continue the same object
        continuation = self._peek_indent()
        if continuation > indent:
            self.parse_object(continuation, into=obj)
        return obj

    def parse_item_entry(self, rest: str, indent: int, line_no: int) -> Any:
        if not rest:
            return self.parse_value(indent)
        header = match_table_header(rest)
        if header is not None:
            return self.parse_table(header, indent, line_no)
        return self.parse_scalar(rest, line_no)

    # -- tables ------------------------------------------------------------
    def parse_keys(self, text: str, line_no: int) -> list[str]:
        if not text:
            return []
        return [parse_key(field.strip(), line=line_no)[0] for field in split_fields(text, self.ctx.delimiter, line=line_no)]

    def parse_table(self, header: re.Match[str], owner_indent: int, line_no: int) -> list[Any]:
        """Consume the rows deeper than ``owner_indent`` under a table header."""
        count, marker, body = header.groups()
        keys: list[str] | None
        if marker == REF_MARKER:
            name = REF_MARKER + body
            keys = self.ctx.structures.get(name)
            if keys is None and self.ctx.strict:
                raise UnresolvedReferenceError(f"Unknown structure reference {name!r}", line=line_no)
        else:
            keys = self.parse_keys(body, line_no)

        rows: list[Any] = []
        while self._peek_indent() > owner_indent:
            row_no = self._line_no()
            line = self.lines[self.pos]
            self.pos += 1
            if keys is not None:
                rows.append(self.parse_row(line[indent_of(line):], keys, row_no))
        if keys is None:
            return []
        if self.ctx.strict and count is not None and int(count) != len(rows):
            raise StructuralError(f"Table declares {count} rows but has {len(rows)}", line=line_no)
        return rows

    def parse_row(self, raw: str, keys: list[str], line_no: int) -> dict[str, Any]:
        content = raw.strip()
        if is_list_item(content):
            return self.parse_complex_row(content[1:].strip(), line_no)
        row: dict[str, Any] = {}
        for key, field in zip(keys, split_fields(raw, self.ctx.delimiter, line=line_no)):
            field = field.strip()
            if field:
                row[key] = self.parse_scalar(field, line_no)
        return row

    def parse_complex_row(self, body: str, line_no: int) -> dict[str, Any]:
        """``key:val key:val`` segments, each split on its first colon."""
        row: dict[str, Any] = {}
        if not body:
            return row
        for segment in ROW_SEGMENT_RE.split(body):
            split = split_key(segment)
            if split is None:
                if self.ctx.strict:
                    raise StructuralError(f"Expected 'key:value' in row segment {segment!r}", line=line_no)
                continue
            key_token, rest = split
            key, _ = parse_key(key_token, line=line_no)
            row[key] = self.parse_scalar(rest, line_no) if rest else None
        return row

    # -- scalars -----------------------------------------------------------
    def parse_scalar(self, token: str, line_no: int | None = None) -> Any:
        literal = parse_literal(token)
        if literal is not NotImplemented:
            return literal
        if TAG_RE.fullmatch(token):
            if token in self.ctx.dictionary:
                return self.ctx.dictionary[token]
            return self._unresolved("dictionary tag", token, line_no)
        tagged = INLINE_TAG_RE.match(token)
        if tagged is not None:
            prefix, tag = tagged.groups()
            value = unquote(prefix, line=line_no) if prefix.startswith('"') else prefix
            self.ctx.dictionary.setdefault(tag, value)
            return value
        if token.startswith(ALIAS_PREFIX) and ALIAS_RE.fullmatch(token):
            if token in self.ctx.aliases:
                return copy.deepcopy(self.ctx.aliases[token])
            return self._unresolved("alias", token, line_no)
        if token.startswith("[") and token.endswith("]"):
            inner = token[1:-1]
            if not inner.strip():
                return []
            return [
                self.parse_scalar(field.strip(), line_no)
                for field in split_fields(inner, self.ctx.delimiter, line=line_no)
            ]
        if token.startswith('"'):
            return unquote(token, line=line_no)
        number = parse_number(token)
        if number is not None:
            return number
        return token

    def _unresolved(self, kind: str, token: str, line_no: int | None) -> str:
        if self.ctx.strict:
            raise UnresolvedReferenceError(f"Unknown {kind} {token!r}", line=line_no)
        return token


__all__ = ["Parser", "parse"]
