"""Lexical rules shared by the encoder and the decoder.

The encoder's quoting decisions and the decoder's scalar recognition are two
sides of the same contract, so both live here: whatever ``parse_number``
accepts, ``needs_quotes`` must quote.
"""

from __future__ import annotations

import math
import re
from typing import Any

import orjson

from ason.contracts.common import EncodeError, StructuralError

NULL = "null"
TRUE = "true"
FALSE = "false"
EMPTY_LIST = "[]"
EMPTY_MAP = "{}"
LITERAL_WORDS = {NULL: None, TRUE: True, FALSE: False}
RESERVED_WORDS = frozenset({NULL, TRUE, FALSE, EMPTY_LIST, EMPTY_MAP})

DEF_MARKER = "$def:"
DATA_MARKER = "$data:"
LIST_ITEM = "-"
LIST_ITEM_PREFIX = "- "
SCHEMA_MARKER = "@"
REF_MARKER = "$"
TAG_MARKER = "#"
ALIAS_PREFIX = "&obj"

NUMBER_RE = re.compile(r"-?[0-9]+(?:\.[0-9]*)?(?:[eE][+-]?[0-9]+)?")
INLINE_TAG_RE = re.compile(r"^(.+?)\s+(#[0-9]+)$", re.DOTALL)
TRAILING_TAG_RE = re.compile(r"\s#[0-9]+$")
TABLE_HEADER_RE = re.compile(r"^(?:\[([0-9]+)\])?([@$])(.*)$", re.DOTALL)
CONTROL_RE = re.compile(r"[\x00-\x1f]")

# Leading characters the decoder treats as markers
_MARKER_LEADS = frozenset('"#&$@[{')
_KEY_LEADS = _MARKER_LEADS | {"-"}
_STANDALONE_CHARS = frozenset('":[]')


# ---------------------------------------------------------------------------
# Quoting
# ---------------------------------------------------------------------------
def quote(text: str) -> str:
    """Literal-string escaping (JSON string syntax)."""
    try:
        return orjson.dumps(text).decode()
    except orjson.JSONEncodeError as e:
        raise EncodeError(f"Cannot encode string {text!r}: {e}") from e


def unquote(token: str, *, line: int | None = None) -> str:
    """Inverse of ``quote``. Raises StructuralError on a malformed literal."""
    try:
        value = orjson.loads(token)
    except orjson.JSONDecodeError as e:
        raise StructuralError(f"Malformed quoted literal {token!r}: {e}", line=line) from e
    if not isinstance(value, str):
        raise StructuralError(f"Malformed quoted literal {token!r}", line=line)
    return value


def looks_numeric(text: str) -> bool:
    return NUMBER_RE.fullmatch(text) is not None


def needs_quotes(text: str, delimiter: str | None = None) -> bool:
    """Whether a string value must be quoted to survive decoding.

    ``delimiter`` is given for stand-alone positions (root scalar, list item,
    inline array element, table cell) where the text is not preceded by a
    ``key:`` and may be split on the delimiter.
    """
    if not text or text != text.strip():
        return True
    if text in RESERVED_WORDS or looks_numeric(text):
        return True
    if text[0] in _MARKER_LEADS or CONTROL_RE.search(text) or TRAILING_TAG_RE.search(text):
        return True
    if delimiter is not None:
        if text[0] == "-" or delimiter in text:
            return True
        if any(c in _STANDALONE_CHARS for c in text):
            return True
    return False


def format_string(text: str, delimiter: str | None = None) -> str:
    return quote(text) if needs_quotes(text, delimiter) else text


def is_plain_key(key: str) -> bool:
    """Keys that can be written bare and folded into a dotted path."""
    if not key or key != key.strip() or key[0] in _KEY_LEADS:
        return False
    if CONTROL_RE.search(key):
        return False
    return not any(c in key for c in ':."')


def format_key(key: str, delimiter: str | None = None) -> str:
    """Render a key; ``delimiter`` is given for keys inside a schema header."""
    if not is_plain_key(key) or (delimiter is not None and delimiter in key):
        return quote(key)
    return key


def format_number(value: int | float) -> str:
    if isinstance(value, float):
        return repr(value)
    return str(value)


# ---------------------------------------------------------------------------
# Scanning
# ---------------------------------------------------------------------------
def indent_of(line: str) -> int:
    """Leading spaces, or -1 for a blank line."""
    if not line.strip():
        return -1
    return len(line) - len(line.lstrip(" "))


def is_list_item(content: str) -> bool:
    return content == LIST_ITEM or content.startswith(LIST_ITEM_PREFIX)


def find_unquoted(text: str, char: str) -> int:
    """Index of the first ``char`` outside a quoted literal, or -1."""
    in_quotes = False
    i = 0
    while i < len(text):
        c = text[i]
        if in_quotes:
            if c == "\\":
                i += 2
                continue
            if c == '"':
                in_quotes = False
        elif c == '"':
            in_quotes = True
        elif c == char:
            return i
        i += 1
    return -1


def split_fields(text: str, delimiter: str, *, line: int | None = None) -> list[str]:
    """Quote-aware split on ``delimiter``.

    Quotes are kept in the fields so each field can be handed to
    ``parse_scalar``. Inside quotes the delimiter is literal, backslash
    escapes are carried through and a doubled quote stands for one quote.
    """
    fields: list[str] = []
    buf: list[str] = []
    in_quotes = False
    i = 0
    n = len(text)
    while i < n:
        c = text[i]
        if in_quotes:
            if c == "\\" and i + 1 < n:
                buf.append(text[i : i + 2])
                i += 2
                continue
            if c == '"':
                if i + 1 < n and text[i + 1] == '"' and buf and buf[-1] != '"':
                    buf.append('\\"')
                    i += 2
                    continue
                in_quotes = False
            buf.append(c)
        elif c == '"':
            in_quotes = True
            buf.append(c)
        elif c == delimiter:
            fields.append("".join(buf))
            buf = []
        else:
            buf.append(c)
        i += 1
    if in_quotes:
        raise StructuralError(f"Unterminated quoted field in {text!r}", line=line)
    fields.append("".join(buf))
    return fields


def split_key(content: str) -> tuple[str, str] | None:
    """Split ``key:rest`` on the first colon outside quotes."""
    idx = find_unquoted(content, ":")
    if idx <= 0:
        return None
    return content[:idx].strip(), content[idx + 1 :].strip()


def parse_key(token: str, *, line: int | None = None) -> tuple[str, bool]:
    """Return ``(key, was_quoted)``."""
    if token.startswith('"'):
        return unquote(token, line=line), True
    return token, False


def parse_number(text: str) -> int | float | None:
    """Numeric literal, or None when ``text`` is not a finite number."""
    if not looks_numeric(text):
        return None
    if any(c in text for c in ".eE"):
        number = float(text)
        return number if math.isfinite(number) else None
    return int(text)


def match_table_header(text: str) -> re.Match[str] | None:
    """Match ``@keys``, ``[N]@keys``, ``$ref`` or ``[N]$ref``."""
    if text.startswith(DEF_MARKER) or text.startswith(DATA_MARKER):
        return None
    match = TABLE_HEADER_RE.match(text)
    if match is None:
        return None
    if match.group(2) == REF_MARKER and not match.group(3):
        return None
    return match


def parse_literal(text: str) -> Any:
    """Reserved words; returns ``NotImplemented`` for anything else."""
    if text in LITERAL_WORDS:
        return LITERAL_WORDS[text]
    if text == EMPTY_LIST:
        return []
    if text == EMPTY_MAP:
        return {}
    return NotImplemented
